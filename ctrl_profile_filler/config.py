"""
Shared configuration, constants and the default page layout.
"""

# Standard Library
import dataclasses


TEMPLATE_PAGE_WIDTH = 1080.0
TEMPLATE_PAGE_HEIGHT = 842.0
TEMPLATE_FILENAME_PATTERN = "CTRL_PoC_Assessment_Profile_template_{key}.pdf"

DEFAULT_FONT_REGULAR = "Helvetica"
DEFAULT_FONT_BOLD = "Helvetica-Bold"
DEFAULT_TEXT_SIZE = 16.0
DEFAULT_LINE_GAP = 4.0
DEFAULT_PAD = 0.0
BACKGROUND_COLOR = "#FFFFFF"
TEXT_COLOR = "#000000"
HEADER_TEMPLATE = "The CTRL Model PoC Profile for {name}"

STATE_CODES = ("C", "T", "R", "L")
STATE_NAMES = {
	"C": "CONCEALED",
	"T": "TRIGGERED",
	"R": "REGULATED",
	"L": "LEAD",
}
# priority for containment matches and for picking a second state
STATE_FALLBACK_ORDER = ("C", "T", "R", "L")
VALID_TEMPLATE_KEYS = frozenset({
	"CT", "CR", "CL",
	"TC", "TR", "TL",
	"RC", "RT", "RL",
	"LC", "LT", "LR",
})
DEFAULT_TEMPLATE_KEY = "CT"

BAND_TIERS = ("low", "mid", "high")
BAND_KEYS = tuple(f"{code}_{tier}" for code in STATE_CODES for tier in BAND_TIERS)

CHART_ENDPOINT = "https://quickchart.io/chart"
CHART_WIDTH = 800
CHART_HEIGHT = 800
CHART_FORMAT = "png"
CHART_FETCH_TIMEOUT = 8.0
CHART_COLORS = {
	"C": "#6B7A8F",
	"T": "#E4572E",
	"R": "#3F9C6D",
	"L": "#2E6FD8",
}

OVERRIDE_PREFIX = "L"
# query token -> LayoutBox attribute
OVERRIDE_PROPERTIES = {
	"x": "x",
	"y": "y",
	"w": "w",
	"h": "h",
	"size": "size",
	"maxLines": "max_lines",
	"align": "align",
	"pad": "pad",
	"lineGap": "line_gap",
	"bg": "bg",
}
ALIGN_VALUES = ("left", "center", "right")

PREVIEW_LENGTH = 140


@dataclasses.dataclass
class LayoutBox:
	x: float
	y: float
	w: float
	h: float = 0.0
	size: float = DEFAULT_TEXT_SIZE
	align: str = "left"
	max_lines: int = 1
	line_gap: float = DEFAULT_LINE_GAP
	pad: float = DEFAULT_PAD
	bg: bool = False


@dataclasses.dataclass
class FillConfig:
	template_dir: str
	override_prefix: str = OVERRIDE_PREFIX
	chart_shape: str = "twelve"
	fetch_chart: bool = True
	chart_timeout: float = CHART_FETCH_TIMEOUT


#============================================
def box(
	x: float,
	y: float,
	w: float,
	h: float,
	max_lines: int,
	size: float = DEFAULT_TEXT_SIZE,
	align: str = "left",
) -> LayoutBox:
	"""
	Shorthand used to declare the default layout.
	"""
	return LayoutBox(x=x, y=y, w=w, h=h, size=size, align=align, max_lines=max_lines)


# top-left origin, points, for the landscape template pages
# y is page height - first baseline - size, so the first line of each box
# prints on the template's baseline; main bodies fill the gap between the
# action box above and the summary box below
DEFAULT_LAYOUT = {
	"p1": {
		"name": box(370, 314, 520, 0, 1, size=18, align="center"),
		"date": box(370, 526, 520, 0, 1, size=16, align="center"),
	},
	"header": {
		"title": box(60, 13, 950, 0, 1, size=14),
	},
	"p3": {
		"tipAct": box(55, 96, 950, 200, 10),
		"exec": box(55, 316, 950, 280, 20),
		"execTLDR": box(55, 611, 950, 200, 10),
	},
	"p4": {
		"act": box(55, 91, 950, 200, 10),
		"main": box(55, 311, 950, 305, 28),
		"tldr": box(55, 636, 950, 180, 10),
	},
	"p5": {
		"main": box(55, 91, 560, 525, 22),
		"chart": box(650, 91, 380, 380, 1),
		"tldr": box(55, 636, 950, 180, 10),
	},
	"p6": {
		"act": box(55, 91, 950, 200, 10),
		"main": box(55, 311, 950, 305, 22),
		"tldr": box(55, 636, 950, 180, 10),
	},
	"p7": {
		"tip": box(55, 86, 950, 180, 9),
		"top": box(55, 286, 950, 330, 25),
		"topTLDR": box(55, 636, 950, 180, 10),
	},
	"p8": {
		"concealed": box(60, 303, 225, 340, 16, size=14),
		"triggered": box(305, 303, 225, 340, 16, size=14),
		"regulated": box(550, 303, 225, 340, 16, size=14),
		"lead": box(795, 303, 225, 340, 16, size=14),
	},
	"p9": {
		"anchor": box(55, 586, 950, 236, 14),
	},
}
