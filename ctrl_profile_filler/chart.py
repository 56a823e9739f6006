"""
Band chart configuration, chart URL building and chart image fetching.
"""

# Standard Library
import io
import json
import urllib.parse

# PIP3 modules
import httpx
import PIL.Image
import reportlab.lib.utils

# local repo modules
import ctrl_profile_filler as cpf
import ctrl_profile_filler.config
import ctrl_profile_filler.states


STATE_CODES = cpf.config.STATE_CODES
STATE_NAMES = cpf.config.STATE_NAMES
BAND_TIERS = cpf.config.BAND_TIERS
BAND_KEYS = cpf.config.BAND_KEYS
CHART_ENDPOINT = cpf.config.CHART_ENDPOINT
CHART_WIDTH = cpf.config.CHART_WIDTH
CHART_HEIGHT = cpf.config.CHART_HEIGHT
CHART_FORMAT = cpf.config.CHART_FORMAT
CHART_FETCH_TIMEOUT = cpf.config.CHART_FETCH_TIMEOUT
CHART_COLORS = cpf.config.CHART_COLORS

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"

# directional axes, clockwise from Concealed
EIGHT_SPOKE_AXES = ("C", "CT", "T", "TR", "R", "RL", "L", "LC")
EIGHT_SPOKE_LABELS = {
	"C": "Concealed",
	"CT": "C-T",
	"T": "Triggered",
	"TR": "T-R",
	"R": "Regulated",
	"RL": "R-L",
	"L": "Lead",
	"LC": "L-C",
}
# low leans back toward the previous state, high leans on toward the next
EIGHT_SPOKE_TIER_AXES = {
	"C": {"low": "LC", "mid": "C", "high": "CT"},
	"T": {"low": "CT", "mid": "T", "high": "TR"},
	"R": {"low": "TR", "mid": "R", "high": "RL"},
	"L": {"low": "RL", "mid": "L", "high": "LC"},
}
TIE_TOLERANCE = 1e-9


#============================================
def normalize_bands(raw) -> dict[str, float]:
	"""
	Read the twelve band values, defaulting missing or invalid ones to 0.

	Args:
		raw: Mapping like {"C_low": 2, "T_mid": "1.5"} or None.

	Returns:
		Dict with every band key, non-negative floats.
	"""
	bands = {key: 0.0 for key in BAND_KEYS}
	if not isinstance(raw, dict):
		return bands
	for key in BAND_KEYS:
		value = cpf.states.to_number(raw.get(key))
		bands[key] = max(0.0, value)
	return bands


#============================================
def hex_to_rgba(value: str, alpha: float) -> str:
	"""
	Convert "#RRGGBB" to a CSS rgba() string.
	"""
	red = int(value[1:3], 16)
	green = int(value[3:5], 16)
	blue = int(value[5:7], 16)
	return f"rgba({red},{green},{blue},{alpha})"


#============================================
def build_twelve_spoke_config(bands: dict[str, float]) -> dict:
	"""
	Build a polar area chart with one spoke per band.

	Values are divided by the largest band so the biggest spoke is 1.0.

	Args:
		bands: Normalized band values.

	Returns:
		Chart.js configuration.
	"""
	peak = max(bands.values())
	labels = []
	data = []
	colors = []
	for code in STATE_CODES:
		for tier in BAND_TIERS:
			key = f"{code}_{tier}"
			labels.append(f"{STATE_NAMES[code].title()} {tier}")
			data.append(round(bands[key] / peak, 4) if peak > 0 else 0.0)
			colors.append(hex_to_rgba(CHART_COLORS[code], 0.75))
	return {
		"type": "polarArea",
		"data": {
			"labels": labels,
			"datasets": [{
				"data": data,
				"backgroundColor": colors,
				"borderWidth": 0,
			}],
		},
		"options": {
			"legend": {"display": False},
			"scale": {
				"ticks": {"min": 0, "max": 1, "display": False},
				"gridLines": {"color": "rgba(0,0,0,0.15)"},
			},
		},
	}


#============================================
def distribute_category(values: dict[str, float]) -> dict[str, float]:
	"""
	Apply the max/tie rule to one category's three tiers.

	The tier holding the maximum gets the whole category mass. When two
	or three tiers tie for the maximum the mass is split evenly between
	them.

	Args:
		values: Tier name -> value for one category.

	Returns:
		Tier name -> distributed mass, only winning tiers present.
	"""
	total = sum(values.values())
	peak = max(values.values())
	if peak <= 0.0:
		return {}
	winners = [tier for tier in BAND_TIERS if abs(values[tier] - peak) <= TIE_TOLERANCE]
	share = total / len(winners)
	return {tier: share for tier in winners}


#============================================
def distribute_eight_spoke(bands: dict[str, float]) -> dict[str, float]:
	"""
	Redistribute the twelve bands onto the eight directional axes.

	Args:
		bands: Normalized band values.

	Returns:
		Axis -> mass, every axis present.
	"""
	axes = {axis: 0.0 for axis in EIGHT_SPOKE_AXES}
	for code in STATE_CODES:
		values = {tier: bands[f"{code}_{tier}"] for tier in BAND_TIERS}
		for tier, mass in distribute_category(values).items():
			axes[EIGHT_SPOKE_TIER_AXES[code][tier]] += mass
	return axes


#============================================
def build_eight_spoke_config(bands: dict[str, float]) -> dict:
	"""
	Build a directional radar chart on state and transition axes.

	Axis values are shares of the total band mass, so the radial scale
	is fixed at 0..1.

	Args:
		bands: Normalized band values.

	Returns:
		Chart.js configuration.
	"""
	axes = distribute_eight_spoke(bands)
	total = sum(axes.values())
	data = [round(axes[axis] / total, 4) if total > 0 else 0.0 for axis in EIGHT_SPOKE_AXES]
	point_colors = []
	for axis in EIGHT_SPOKE_AXES:
		point_colors.append(CHART_COLORS[axis[0]])
	return {
		"type": "radar",
		"data": {
			"labels": [EIGHT_SPOKE_LABELS[axis] for axis in EIGHT_SPOKE_AXES],
			"datasets": [{
				"data": data,
				"backgroundColor": "rgba(46,111,216,0.25)",
				"borderColor": "rgba(46,111,216,0.9)",
				"pointBackgroundColor": point_colors,
				"pointRadius": 4,
			}],
		},
		"options": {
			"legend": {"display": False},
			"scale": {
				"ticks": {"min": 0, "max": 1, "display": False},
			},
		},
	}


CHART_SHAPES = {
	"twelve": build_twelve_spoke_config,
	"eight": build_eight_spoke_config,
}


#============================================
def build_chart_config(bands: dict[str, float], shape: str = "twelve") -> dict:
	"""
	Build the chart configuration for a named shape.

	Args:
		bands: Normalized band values.
		shape: "twelve" or "eight".

	Returns:
		Chart.js configuration.

	Raises:
		ValueError: unknown shape.
	"""
	builder = CHART_SHAPES.get(shape)
	if builder is None:
		raise ValueError(f"Unknown chart shape: {shape}")
	return builder(bands)


#============================================
def build_chart_url(raw_bands, shape: str = "twelve") -> str | None:
	"""
	Build the chart service URL for a band value set.

	Args:
		raw_bands: Band mapping, may be partial or None.
		shape: Chart shape name.

	Returns:
		URL string, or None when every band is zero.
	"""
	bands = normalize_bands(raw_bands)
	if not any(value > 0.0 for value in bands.values()):
		return None
	config = build_chart_config(bands, shape)
	params = {
		"c": json.dumps(config, separators=(",", ":")),
		"format": CHART_FORMAT,
		"width": CHART_WIDTH,
		"height": CHART_HEIGHT,
		"backgroundColor": "transparent",
	}
	query = urllib.parse.urlencode(params, quote_via=urllib.parse.quote)
	return f"{CHART_ENDPOINT}?{query}"


#============================================
def decode_chart_url(url: str) -> dict:
	"""
	Decode the chart configuration back out of a chart URL.
	"""
	query = urllib.parse.urlparse(url).query
	values = urllib.parse.parse_qs(query)
	return json.loads(values["c"][0])


#============================================
def sniff_image_format(data: bytes) -> str | None:
	"""
	Identify PNG or JPEG data from its leading bytes.

	Args:
		data: Raw response body.

	Returns:
		"png", "jpeg" or None.
	"""
	if data.startswith(PNG_SIGNATURE):
		return "png"
	if data.startswith(JPEG_SIGNATURE):
		return "jpeg"
	return None


#============================================
def fetch_chart_image(
	url: str,
	timeout: float = CHART_FETCH_TIMEOUT,
	client: httpx.Client | None = None,
) -> reportlab.lib.utils.ImageReader | None:
	"""
	Fetch and decode the chart image.

	Any failure prints a warning and returns None so the document can be
	built without the chart.

	Args:
		url: Chart URL.
		timeout: Request timeout in seconds.
		client: Optional httpx client.

	Returns:
		ImageReader or None.
	"""
	try:
		if client is None:
			response = httpx.get(url, timeout=timeout)
		else:
			response = client.get(url, timeout=timeout)
		response.raise_for_status()
	except httpx.HTTPError as error:
		print(f"Warning: chart fetch failed: {error}")
		return None

	data = response.content
	image_format = sniff_image_format(data)
	if image_format is None:
		print(f"Warning: chart response is not PNG or JPEG ({len(data)} bytes)")
		return None
	try:
		image = PIL.Image.open(io.BytesIO(data))
		image.load()
	except (OSError, PIL.UnidentifiedImageError, PIL.Image.DecompressionBombError) as error:
		print(f"Warning: chart {image_format} could not be decoded: {error}")
		return None
	return reportlab.lib.utils.ImageReader(image)
