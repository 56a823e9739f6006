"""
Box text layout: wrapping, clipping and drawing text into fixed page regions.
"""

# Standard Library
import dataclasses
import typing

# PIP3 modules
import reportlab.lib.colors
import reportlab.lib.utils
import reportlab.pdfbase.pdfmetrics
import reportlab.pdfgen.canvas

# local repo modules
import ctrl_profile_filler as cpf
import ctrl_profile_filler.config


LayoutBox = cpf.config.LayoutBox

DEFAULT_FONT_REGULAR = cpf.config.DEFAULT_FONT_REGULAR
DEFAULT_FONT_BOLD = cpf.config.DEFAULT_FONT_BOLD
BACKGROUND_COLOR = cpf.config.BACKGROUND_COLOR
TEXT_COLOR = cpf.config.TEXT_COLOR

MeasureFunc = typing.Callable[[str, str, float], float]


@dataclasses.dataclass
class LineInstruction:
	x: float
	y: float
	text: str
	size: float
	font: str


@dataclasses.dataclass
class RectInstruction:
	x: float
	y: float
	w: float
	h: float
	color: str = BACKGROUND_COLOR


@dataclasses.dataclass
class ImageInstruction:
	x: float
	y: float
	w: float
	h: float
	image: reportlab.lib.utils.ImageReader


Instruction = LineInstruction | RectInstruction | ImageInstruction


#============================================
def measure_text(text: str, font_name: str, font_size: float) -> float:
	"""
	Measure rendered text width with the standard font metrics.

	Args:
		text: Text content.
		font_name: ReportLab font name.
		font_size: Font size in points.

	Returns:
		Width in points.
	"""
	return reportlab.pdfbase.pdfmetrics.stringWidth(text, font_name, font_size)


#============================================
def to_bottom_left(y: float, height: float, page_height: float) -> float:
	"""
	Convert a top-left box origin to the bottom-left drawing origin.

	Args:
		y: Distance from the page top edge to the box top.
		height: Box height.
		page_height: Page height.

	Returns:
		Distance from the page bottom edge to the box bottom.
	"""
	return page_height - y - height


#============================================
def to_top_left(y: float, height: float, page_height: float) -> float:
	"""
	Convert a bottom-left box origin back to top-left coordinates.
	"""
	return page_height - y - height


#============================================
def normalize_paragraphs(text: str | None) -> list[str]:
	"""
	Split text into whitespace-collapsed paragraphs.

	Blank paragraphs between content are kept as empty strings; leading
	and trailing blank paragraphs are dropped.

	Args:
		text: Raw text.

	Returns:
		Paragraph list, empty when there is no visible text.
	"""
	if text is None:
		return []
	value = str(text).replace("\r\n", "\n").replace("\r", "\n")
	paragraphs = [" ".join(part.split()) for part in value.split("\n")]
	while paragraphs and not paragraphs[0]:
		paragraphs.pop(0)
	while paragraphs and not paragraphs[-1]:
		paragraphs.pop()
	return paragraphs


#============================================
def wrap_paragraph(
	paragraph: str,
	max_width: float,
	font_name: str,
	font_size: float,
	measure: MeasureFunc = measure_text,
) -> list[str]:
	"""
	Greedy word wrap of a single paragraph.

	A word wider than max_width is kept whole on its own line.

	Args:
		paragraph: Paragraph text with single spaces.
		max_width: Available line width.
		font_name: Font name passed to the measure function.
		font_size: Font size.
		measure: Text width function.

	Returns:
		Wrapped lines.
	"""
	lines: list[str] = []
	line = ""
	for word in paragraph.split(" "):
		if not word:
			continue
		candidate = f"{line} {word}" if line else word
		if not line or measure(candidate, font_name, font_size) <= max_width:
			line = candidate
			continue
		lines.append(line)
		line = word
	if line:
		lines.append(line)
	return lines


#============================================
def wrap_text(
	text: str | None,
	max_width: float,
	font_name: str,
	font_size: float,
	measure: MeasureFunc = measure_text,
) -> list[str]:
	"""
	Wrap text paragraph by paragraph, keeping blank lines between paragraphs.

	Args:
		text: Raw text.
		max_width: Available line width.
		font_name: Font name.
		font_size: Font size.
		measure: Text width function.

	Returns:
		Wrapped lines; blank separator lines are empty strings.
	"""
	lines: list[str] = []
	for paragraph in normalize_paragraphs(text):
		if not paragraph:
			lines.append("")
			continue
		lines.extend(wrap_paragraph(paragraph, max_width, font_name, font_size, measure))
	return lines


#============================================
def compute_line_x(box: LayoutBox, line_width: float) -> float:
	"""
	Compute the x position of a line inside a box.

	Args:
		box: Layout box.
		line_width: Measured line width.

	Returns:
		Left edge of the line.
	"""
	align = box.align.strip().lower()
	if align == "center":
		inner = box.w - 2.0 * box.pad
		return box.x + box.pad + (inner - line_width) / 2.0
	if align == "right":
		return box.x + box.w - box.pad - line_width
	return box.x + box.pad


#============================================
def render_text_box(
	text: str | None,
	box: LayoutBox,
	page_height: float,
	font_name: str = DEFAULT_FONT_REGULAR,
	measure: MeasureFunc = measure_text,
) -> list[Instruction]:
	"""
	Lay out text inside a box and return positioned draw instructions.

	Lines start at the top of the box and step down by size + line_gap.
	Output stops at max_lines or when the next baseline would drop below
	the box bottom plus padding, whichever comes first. A box with h == 0
	has no bottom edge and is clipped by max_lines only.

	Args:
		text: Raw text.
		box: Layout box in top-left coordinates.
		page_height: Page height for the coordinate conversion.
		font_name: Font used for measuring and drawing.
		measure: Text width function.

	Returns:
		Instructions in bottom-left page coordinates, background first.
	"""
	if box.w <= 0 or box.max_lines < 1:
		return []
	lines = wrap_text(text, box.w - 2.0 * box.pad, font_name, box.size, measure)
	if not lines:
		return []

	origin_y = to_bottom_left(box.y, box.h, page_height)
	instructions: list[Instruction] = []
	if box.bg:
		# a box without height masks one line
		bg_h = box.h if box.h > 0 else box.size + 2.0 * box.pad
		instructions.append(
			RectInstruction(x=box.x, y=origin_y + box.h - bg_h, w=box.w, h=bg_h)
		)

	line_height = box.size + box.line_gap
	cursor_y = origin_y + box.h - box.pad - box.size
	bottom_limit = origin_y + box.pad
	for line in lines[:box.max_lines]:
		if box.h > 0 and cursor_y < bottom_limit:
			break
		if line:
			line_width = measure(line, font_name, box.size)
			instructions.append(
				LineInstruction(
					x=compute_line_x(box, line_width),
					y=cursor_y,
					text=line,
					size=box.size,
					font=font_name,
				)
			)
		cursor_y -= line_height
	return instructions


#============================================
def render_labeled_box(
	label: str | None,
	body: str | None,
	box: LayoutBox,
	page_height: float,
	measure: MeasureFunc = measure_text,
) -> list[Instruction]:
	"""
	Render a bold one-line label followed by wrapped body text.

	The body goes into a sub-box one line lower with height and max_lines
	reduced by one line when a label was drawn.

	Args:
		label: Label text, drawn bold on the first line.
		body: Body text.
		box: Layout box holding both.
		page_height: Page height.
		measure: Text width function.

	Returns:
		Draw instructions for label then body.
	"""
	label_box = dataclasses.replace(box, max_lines=1)
	instructions = render_text_box(label, label_box, page_height, DEFAULT_FONT_BOLD, measure)
	if not any(isinstance(item, LineInstruction) for item in instructions):
		return render_text_box(body, box, page_height, DEFAULT_FONT_REGULAR, measure)

	line_height = box.size + box.line_gap
	body_box = dataclasses.replace(
		box,
		y=box.y + line_height,
		h=max(0.0, box.h - line_height) if box.h > 0 else 0.0,
		max_lines=box.max_lines - 1,
		# label already painted the background over the whole box
		bg=False,
	)
	instructions.extend(render_text_box(body, body_box, page_height, DEFAULT_FONT_REGULAR, measure))
	return instructions


#============================================
def image_instruction(
	image: reportlab.lib.utils.ImageReader,
	box: LayoutBox,
	page_height: float,
) -> ImageInstruction:
	"""
	Place an image over a whole layout box.
	"""
	return ImageInstruction(
		x=box.x,
		y=to_bottom_left(box.y, box.h, page_height),
		w=box.w,
		h=box.h,
		image=image,
	)


#============================================
def draw_instructions(
	pdf: reportlab.pdfgen.canvas.Canvas,
	instructions: list[Instruction],
) -> None:
	"""
	Draw instructions onto a ReportLab canvas in order.

	Args:
		pdf: ReportLab canvas.
		instructions: Instructions from the layout functions.
	"""
	for item in instructions:
		if isinstance(item, RectInstruction):
			pdf.setFillColor(reportlab.lib.colors.HexColor(item.color))
			pdf.rect(item.x, item.y, item.w, item.h, stroke=0, fill=1)
			continue
		if isinstance(item, LineInstruction):
			pdf.setFillColor(reportlab.lib.colors.HexColor(TEXT_COLOR))
			pdf.setFont(item.font, item.size)
			pdf.drawString(item.x, item.y, item.text)
			continue
		if isinstance(item, ImageInstruction):
			pdf.drawImage(
				item.image,
				item.x,
				item.y,
				width=item.w,
				height=item.h,
				mask="auto",
				preserveAspectRatio=True,
				anchor="c",
			)
