import io

import httpx
import PIL.Image
import pytest

import ctrl_profile_filler.chart as chart
import ctrl_profile_filler.config


#============================================
def _png_bytes() -> bytes:
	"""
	Build a small transparent PNG.
	"""
	buffer = io.BytesIO()
	PIL.Image.new("RGBA", (8, 8), (0, 0, 0, 0)).save(buffer, format="PNG")
	return buffer.getvalue()


#============================================
def _client(handler) -> httpx.Client:
	return httpx.Client(transport=httpx.MockTransport(handler))


#============================================
def test_all_zero_bands_no_chart() -> None:
	"""
	No chart URL without any band mass.
	"""
	assert chart.build_chart_url(None) is None
	assert chart.build_chart_url({}) is None
	assert chart.build_chart_url({key: 0 for key in ctrl_profile_filler.config.BAND_KEYS}) is None
	assert chart.build_chart_url({"C_low": -3, "T_mid": "abc"}, shape="eight") is None


#============================================
def test_normalize_bands_defaults() -> None:
	"""
	All twelve keys are present and invalid values become zero.
	"""
	bands = chart.normalize_bands({"C_low": "2", "T_mid": None, "R_high": -1, "extra": 9})
	assert len(bands) == 12
	assert bands["C_low"] == 2.0
	assert bands["T_mid"] == 0.0
	assert bands["R_high"] == 0.0
	assert "extra" not in bands


#============================================
def test_twelve_spoke_url() -> None:
	"""
	The twelve spoke chart is scaled by the largest band.
	"""
	url = chart.build_chart_url({"C_low": 2, "T_high": 4})
	assert url is not None
	assert url.startswith(ctrl_profile_filler.config.CHART_ENDPOINT + "?")
	assert "backgroundColor=transparent" in url
	assert "format=png" in url
	config = chart.decode_chart_url(url)
	data = config["data"]["datasets"][0]["data"]
	assert config["type"] == "polarArea"
	assert len(data) == 12
	assert data[0] == 0.5
	assert data[5] == 1.0
	assert sum(data) == 1.5
	assert len(config["data"]["datasets"][0]["backgroundColor"]) == 12


#============================================
def test_eight_spoke_single_band() -> None:
	"""
	A single non-zero band puts all mass on its mapped axis.
	"""
	url = chart.build_chart_url({"T_high": 5}, shape="eight")
	config = chart.decode_chart_url(url)
	data = config["data"]["datasets"][0]["data"]
	assert config["type"] == "radar"
	assert len(data) == 8
	index = chart.EIGHT_SPOKE_AXES.index("TR")
	assert data[index] == 1.0
	assert sum(data) == 1.0


#============================================
def test_eight_spoke_three_way_tie() -> None:
	"""
	A three-way tie splits the category mass evenly over its three axes.
	"""
	axes = chart.distribute_eight_spoke(
		chart.normalize_bands({"C_low": 2, "C_mid": 2, "C_high": 2})
	)
	assert axes["LC"] == 2.0
	assert axes["C"] == 2.0
	assert axes["CT"] == 2.0
	assert sum(axes.values()) == 6.0

	url = chart.build_chart_url({"C_low": 2, "C_mid": 2, "C_high": 2}, shape="eight")
	data = chart.decode_chart_url(url)["data"]["datasets"][0]["data"]
	assert sum(data) == pytest.approx(1.0, abs=1e-3)
	for axis in ("LC", "C", "CT"):
		assert data[chart.EIGHT_SPOKE_AXES.index(axis)] == pytest.approx(1.0 / 3.0, abs=1e-4)


#============================================
def test_eight_spoke_winner_takes_category_mass() -> None:
	"""
	A single maximum takes the whole category total, a pair splits it.
	"""
	assert chart.distribute_category({"low": 1.0, "mid": 3.0, "high": 2.0}) == {"mid": 6.0}
	assert chart.distribute_category({"low": 3.0, "mid": 1.0, "high": 3.0}) == {"low": 3.5, "high": 3.5}
	assert chart.distribute_category({"low": 0.0, "mid": 0.0, "high": 0.0}) == {}


#============================================
def test_unknown_shape_rejected() -> None:
	"""
	Only the named chart shapes are accepted.
	"""
	with pytest.raises(ValueError):
		chart.build_chart_config(chart.normalize_bands({"C_low": 1}), "pie")


#============================================
def test_sniff_image_format() -> None:
	"""
	Image type comes from the leading bytes.
	"""
	assert chart.sniff_image_format(_png_bytes()) == "png"
	assert chart.sniff_image_format(b"\xff\xd8\xff\xe0rest") == "jpeg"
	assert chart.sniff_image_format(b"<html>") is None


#============================================
def test_fetch_chart_image_success() -> None:
	"""
	A PNG response decodes to an image reader.
	"""
	body = _png_bytes()
	client = _client(lambda request: httpx.Response(200, content=body, headers={"content-type": "text/plain"}))
	reader = chart.fetch_chart_image("https://quickchart.io/chart?c=%7B%7D", client=client)
	assert reader is not None
	assert reader.getSize() == (8, 8)


#============================================
def test_fetch_chart_image_failures(capsys) -> None:
	"""
	HTTP errors, non-image bodies and corrupt images all return None.
	"""
	url = "https://quickchart.io/chart?c=%7B%7D"
	assert chart.fetch_chart_image(url, client=_client(lambda request: httpx.Response(500))) is None
	assert chart.fetch_chart_image(url, client=_client(lambda request: httpx.Response(200, content=b"<html>"))) is None
	corrupt = chart.PNG_SIGNATURE + b"garbage"
	assert chart.fetch_chart_image(url, client=_client(lambda request: httpx.Response(200, content=corrupt))) is None

	def raise_timeout(request):
		raise httpx.ReadTimeout("timed out", request=request)

	assert chart.fetch_chart_image(url, client=_client(raise_timeout)) is None
	output = capsys.readouterr().out
	assert output.count("Warning:") == 4


#============================================
def test_fetch_chart_image_oversized(monkeypatch, capsys) -> None:
	"""
	An image over Pillow's pixel limit is skipped with a warning.
	"""
	# 8x8 is more than twice a limit of 10 pixels
	monkeypatch.setattr(PIL.Image, "MAX_IMAGE_PIXELS", 10)
	url = "https://quickchart.io/chart?c=%7B%7D"
	body = _png_bytes()
	assert chart.fetch_chart_image(url, client=_client(lambda request: httpx.Response(200, content=body))) is None
	assert "could not be decoded" in capsys.readouterr().out
