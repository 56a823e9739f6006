import io
import pathlib

import fitz
import httpx
import PIL.Image
import pytest
import reportlab.pdfgen.canvas

import ctrl_profile_filler.cli
import ctrl_profile_filler.config
import ctrl_profile_filler.fill as fill
import ctrl_profile_filler.payload as payload


PAGE_SIZE = (
	ctrl_profile_filler.config.TEMPLATE_PAGE_WIDTH,
	ctrl_profile_filler.config.TEMPLATE_PAGE_HEIGHT,
)


#============================================
def _write_template(path: pathlib.Path, pages: int = 10) -> None:
	"""
	Write a plain multi-page template PDF with a page marker on each page.

	Args:
		path: Output path.
		pages: Page count.
	"""
	pdf = reportlab.pdfgen.canvas.Canvas(str(path), pagesize=PAGE_SIZE)
	for index in range(pages):
		pdf.setFont("Helvetica", 10)
		pdf.drawString(20, 20, f"template page {index + 1}")
		pdf.showPage()
	pdf.save()


#============================================
def _page_texts(pdf_bytes: bytes) -> list[str]:
	"""
	Extract the text of every page.
	"""
	document = fitz.open(stream=pdf_bytes, filetype="pdf")
	texts = [page.get_text() for page in document]
	document.close()
	return texts


#============================================
def _sample_payload() -> dict:
	return {
		"identity": {"fullName": "Ada Lovelace", "dateLabel": "18 Oct 2026"},
		"ctrl": {
			"summary": {"dominantState": "Regulated", "totals": {"C": 1, "T": 3, "R": 0, "L": 2}},
			"bands": {"R_mid": 3, "T_high": 1},
		},
		"text": {
			"execSummary": "You steady the room when pressure rises.",
			"domState": "Regulated most of the time.",
			"bottomState": "Rarely concealed.",
			"act_anchor": "Pause before you answer.",
		},
		"workWith": {
			"lead": "Give them room to decide.",
			"triggered": {"title": "Working with Triggered", "body": "Name the pressure."},
		},
	}


#============================================
def test_fill_template_overlays_text(tmp_path: pathlib.Path) -> None:
	"""
	Text lands on the expected pages of the selected template.
	"""
	_write_template(tmp_path / fill.template_filename("RT"))
	profile = payload.normalize_payload(_sample_payload())
	config = ctrl_profile_filler.config.FillConfig(template_dir=str(tmp_path), fetch_chart=False)
	result = fill.fill_template(profile, config, [("L_p9_anchor_size", "12"), ("L_p9_zzz_x", "1")])

	assert result.template_key == "RT"
	assert result.template_path.name.endswith("_RT.pdf")
	assert result.pages == 10
	assert result.chart_url is not None
	assert result.chart_drawn is False
	assert [record.reason for record in result.merge.discarded] == ["unknown_box"]

	texts = _page_texts(result.pdf_bytes)
	assert "Ada Lovelace" in texts[0]
	assert "18 Oct 2026" in texts[0]
	assert "The CTRL Model PoC Profile for Ada Lovelace" in texts[1]
	assert "The CTRL Model PoC Profile for Ada Lovelace" in texts[9]
	assert "steady the room" in texts[2]
	assert "Regulated most of the time." in texts[3]
	assert "Rarely concealed." in texts[3]
	assert "Working with Triggered" in texts[7]
	assert "Give them room to decide." in texts[7]
	assert "Pause before you answer." in texts[8]
	assert "template page 5" in texts[4]


#============================================
def test_missing_variant_falls_back(tmp_path: pathlib.Path) -> None:
	"""
	A missing variant uses the default template; no template at all fails.
	"""
	profile = payload.normalize_payload({"templateKey": "LR"})
	config = ctrl_profile_filler.config.FillConfig(template_dir=str(tmp_path), fetch_chart=False)
	with pytest.raises(FileNotFoundError):
		fill.fill_template(profile, config)

	_write_template(tmp_path / fill.template_filename("CT"), pages=3)
	result = fill.fill_template(profile, config)
	assert result.template_key == "LR"
	assert result.template_path.name.endswith("_CT.pdf")
	assert result.pages == 3


#============================================
def test_chart_drawn_from_mock_service(tmp_path: pathlib.Path) -> None:
	"""
	A fetched chart image is drawn on the frequency page.
	"""
	_write_template(tmp_path / fill.template_filename("RT"))
	buffer = io.BytesIO()
	PIL.Image.new("RGB", (16, 16), (200, 30, 30)).save(buffer, format="PNG")
	body = buffer.getvalue()
	client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body)))

	profile = payload.normalize_payload(_sample_payload())
	config = ctrl_profile_filler.config.FillConfig(template_dir=str(tmp_path), chart_shape="eight")
	result = fill.fill_template(profile, config, http_client=client)
	assert result.chart_drawn is True

	document = fitz.open(stream=result.pdf_bytes, filetype="pdf")
	assert len(document[4].get_images()) == 1
	assert len(document[3].get_images()) == 0
	document.close()


#============================================
def test_cli_writes_pdf(tmp_path: pathlib.Path, capsys) -> None:
	"""
	The CLI decodes the data token and writes the filled PDF.
	"""
	_write_template(tmp_path / fill.template_filename("RT"))
	output_path = tmp_path / "out.pdf"
	args = ctrl_profile_filler.cli.parse_args([
		"--data", payload.encode_data_param(_sample_payload()),
		"--template-dir", str(tmp_path),
		"--output", str(output_path),
		"--no-chart",
		"--set", "L_p3_exec_align=centre",
		"--query", "L_p3_exec_w=-5&debug=0",
	])
	ctrl_profile_filler.cli.run_pipeline(args)
	output = capsys.readouterr().out
	assert "Template key: RT" in output
	assert "Overrides applied: 1" in output
	assert "L_p3_exec_w=-5 (out_of_range)" in output
	assert output_path.stat().st_size > 0


#============================================
def test_cli_debug_probe(tmp_path: pathlib.Path, capsys) -> None:
	"""
	Debug mode prints the probe instead of writing a PDF.
	"""
	args = ctrl_profile_filler.cli.parse_args([
		"--data", payload.encode_data_param(_sample_payload()),
		"--template-dir", str(tmp_path),
		"--debug", "1",
	])
	ctrl_profile_filler.cli.run_pipeline(args)
	output = capsys.readouterr().out
	assert '"templateKey": "RT"' in output
	assert list(tmp_path.iterdir()) == []
