"""
Template selection and overlay of profile text onto the template pages.
"""

# Standard Library
import dataclasses
import io
import pathlib
import typing

# PIP3 modules
import pypdf
import reportlab.pdfgen.canvas

# local repo modules
import ctrl_profile_filler as cpf
import ctrl_profile_filler.chart
import ctrl_profile_filler.config
import ctrl_profile_filler.layout
import ctrl_profile_filler.payload
import ctrl_profile_filler.textbox


FillConfig = cpf.config.FillConfig
Profile = cpf.payload.Profile
MergeResult = cpf.layout.MergeResult
PageLayout = cpf.layout.PageLayout

DEFAULT_LAYOUT = cpf.config.DEFAULT_LAYOUT
DEFAULT_TEMPLATE_KEY = cpf.config.DEFAULT_TEMPLATE_KEY
TEMPLATE_FILENAME_PATTERN = cpf.config.TEMPLATE_FILENAME_PATTERN
HEADER_TEMPLATE = cpf.config.HEADER_TEMPLATE
STATE_NAMES = cpf.config.STATE_NAMES


@dataclasses.dataclass
class BoxPlan:
	page_key: str
	box_key: str
	text: str = ""
	label: str | None = None
	kind: str = "text"


@dataclasses.dataclass
class FillResult:
	pdf_bytes: bytes
	template_key: str
	template_path: pathlib.Path
	merge: MergeResult
	chart_url: str | None
	chart_drawn: bool
	pages: int


#============================================
def template_filename(template_key: str) -> str:
	"""
	Template filename for a template key.
	"""
	return TEMPLATE_FILENAME_PATTERN.format(key=template_key)


#============================================
def resolve_template_path(template_dir: pathlib.Path, template_key: str) -> pathlib.Path:
	"""
	Find the template file for a key, falling back to the default variant.

	Args:
		template_dir: Directory holding the template PDFs.
		template_key: Two letter template key.

	Returns:
		Existing template path.

	Raises:
		FileNotFoundError: neither the variant nor the default exists.
	"""
	path = template_dir / template_filename(template_key)
	if path.is_file():
		return path
	fallback = template_dir / template_filename(DEFAULT_TEMPLATE_KEY)
	if fallback.is_file():
		print(f"Template {path.name} not found, using {fallback.name}")
		return fallback
	raise FileNotFoundError(f"Template not found: {path}")


#============================================
def join_text(*parts) -> str:
	"""
	Join non-empty text parts with a blank line between them.
	"""
	values = [str(part).strip() for part in parts if cpf.payload.has_text(part)]
	return "\n\n".join(values)


#============================================
def plan_page_overlays(profile: Profile, page_count: int) -> dict[int, list[BoxPlan]]:
	"""
	Decide which text goes into which box on which page.

	Args:
		profile: Normalised payload.
		page_count: Number of pages in the template.

	Returns:
		Page index -> box plans, in drawing order.
	"""
	text = profile.text
	plans: dict[int, list[BoxPlan]] = {index: [] for index in range(page_count)}

	def add(index: int, plan: BoxPlan) -> None:
		if index < page_count:
			plans[index].append(plan)

	add(0, BoxPlan("p1", "name", profile.identity.full_name))
	add(0, BoxPlan("p1", "date", profile.identity.date_label))

	header = HEADER_TEMPLATE.format(name=profile.identity.full_name).strip()
	for index in range(1, page_count):
		add(index, BoxPlan("header", "title", header))

	add(2, BoxPlan("p3", "execTLDR", text.get("execSummary_tldr")))
	add(2, BoxPlan("p3", "exec", text.get("execSummary")))
	add(2, BoxPlan("p3", "tipAct", text.get("execSummary_tipact")))

	add(3, BoxPlan("p4", "tldr", text.get("state_tldr")))
	add(3, BoxPlan("p4", "main", join_text(text.get("domState"), text.get("bottomState"))))
	add(3, BoxPlan("p4", "act", text.get("state_tipact")))

	add(4, BoxPlan("p5", "tldr", text.get("frequency_tldr")))
	add(4, BoxPlan("p5", "main", text.get("frequency")))
	add(4, BoxPlan("p5", "chart", kind="chart"))

	add(5, BoxPlan("p6", "tldr", text.get("sequence_tldr")))
	add(5, BoxPlan("p6", "main", text.get("sequence")))
	add(5, BoxPlan("p6", "act", text.get("sequence_tipact")))

	add(6, BoxPlan("p7", "topTLDR", text.get("theme_tldr")))
	add(6, BoxPlan("p7", "top", text.get("theme")))
	add(6, BoxPlan("p7", "tip", text.get("theme_tipact")))

	for name in STATE_NAMES.values():
		key = name.lower()
		entry = profile.work_with.get(key)
		label = None
		if isinstance(entry, dict):
			label = entry.get("title") or entry.get("label")
		add(7, BoxPlan("p8", key, cpf.payload.work_with_text(entry), label=label))

	add(8, BoxPlan("p9", "anchor", text.get("act_anchor")))
	return plans


#============================================
def build_page_instructions(
	plans: list[BoxPlan],
	layout: PageLayout,
	page_height: float,
	chart_image=None,
	measure: cpf.textbox.MeasureFunc = cpf.textbox.measure_text,
) -> list[cpf.textbox.Instruction]:
	"""
	Turn box plans for one page into draw instructions.

	Plans whose page or box is missing from the layout are skipped.

	Args:
		plans: Box plans for the page.
		layout: Effective layout.
		page_height: Page height in points.
		chart_image: Optional ImageReader for chart boxes.
		measure: Text width function.

	Returns:
		Instructions in drawing order.
	"""
	instructions: list[cpf.textbox.Instruction] = []
	for plan in plans:
		target = layout.get(plan.page_key, {}).get(plan.box_key)
		if target is None:
			continue
		if plan.kind == "chart":
			if chart_image is not None:
				instructions.append(cpf.textbox.image_instruction(chart_image, target, page_height))
			continue
		if plan.label:
			instructions.extend(
				cpf.textbox.render_labeled_box(plan.label, plan.text, target, page_height, measure)
			)
			continue
		instructions.extend(
			cpf.textbox.render_text_box(plan.text, target, page_height, measure=measure)
		)
	return instructions


#============================================
def build_overlay_page(
	instructions: list[cpf.textbox.Instruction],
	page_width: float,
	page_height: float,
) -> pypdf.PageObject:
	"""
	Draw instructions onto a blank page of the template's size.

	Args:
		instructions: Draw instructions.
		page_width: Page width.
		page_height: Page height.

	Returns:
		Overlay page.
	"""
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=(page_width, page_height))
	cpf.textbox.draw_instructions(pdf, instructions)
	pdf.showPage()
	pdf.save()
	buffer.seek(0)
	reader = pypdf.PdfReader(buffer)
	return reader.pages[0]


#============================================
def fill_template(
	profile: Profile,
	config: FillConfig,
	flat_overrides: typing.Iterable[tuple[str, typing.Any]] = (),
	base_layout: PageLayout = DEFAULT_LAYOUT,
	http_client=None,
) -> FillResult:
	"""
	Overlay a profile onto its template and return the filled PDF.

	Args:
		profile: Normalised payload.
		config: Fill configuration.
		flat_overrides: Flat layout overrides from the request.
		base_layout: Default layout.
		http_client: Optional httpx client for the chart fetch.

	Returns:
		FillResult.
	"""
	template_path = resolve_template_path(pathlib.Path(config.template_dir), profile.template_key)
	merge = cpf.layout.merge_layout(
		base_layout,
		profile.layout,
		flat_overrides,
		config.override_prefix,
	)

	chart_url = cpf.chart.build_chart_url(profile.bands, config.chart_shape)
	chart_image = None
	if chart_url is not None and config.fetch_chart:
		chart_image = cpf.chart.fetch_chart_image(chart_url, config.chart_timeout, http_client)

	reader = pypdf.PdfReader(str(template_path))
	writer = pypdf.PdfWriter()
	plans = plan_page_overlays(profile, len(reader.pages))
	for index, page in enumerate(reader.pages):
		page_width = float(page.mediabox.width)
		page_height = float(page.mediabox.height)
		instructions = build_page_instructions(
			plans[index],
			merge.layout,
			page_height,
			chart_image,
		)
		if instructions:
			page.merge_page(build_overlay_page(instructions, page_width, page_height))
		writer.add_page(page)

	buffer = io.BytesIO()
	writer.write(buffer)
	return FillResult(
		pdf_bytes=buffer.getvalue(),
		template_key=profile.template_key,
		template_path=template_path,
		merge=merge,
		chart_url=chart_url,
		chart_drawn=chart_image is not None and len(reader.pages) > 4,
		pages=len(reader.pages),
	)
