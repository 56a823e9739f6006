"""
CLI entry points for filling CTRL profile templates.
"""

# Standard Library
import argparse
import json
import pathlib
import sys
import time
import urllib.parse

# local repo modules
import ctrl_profile_filler as cpf
import ctrl_profile_filler.chart
import ctrl_profile_filler.config
import ctrl_profile_filler.fill
import ctrl_profile_filler.payload


FillConfig = cpf.config.FillConfig

OVERRIDE_PREFIX = cpf.config.OVERRIDE_PREFIX
CHART_FETCH_TIMEOUT = cpf.config.CHART_FETCH_TIMEOUT


#============================================
def build_config(args: argparse.Namespace) -> FillConfig:
	"""
	Build fill config from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		FillConfig.
	"""
	return FillConfig(
		template_dir=args.template_dir,
		override_prefix=args.override_prefix,
		chart_shape=args.chart_shape,
		fetch_chart=args.fetch_chart,
		chart_timeout=args.chart_timeout,
	)


#============================================
def parse_override_args(sets: list[str] | None, query: str | None) -> list[tuple[str, str]]:
	"""
	Collect flat overrides from --set options and a raw query string.

	Args:
		sets: Values like "L_p3_exec_x=100".
		query: Query string like "L_p3_exec_x=100&L_p3_exec_align=centre".

	Returns:
		List of (key, value) pairs, query first then --set options.
	"""
	pairs: list[tuple[str, str]] = []
	if query:
		pairs.extend(urllib.parse.parse_qsl(query.lstrip("?"), keep_blank_values=True))
	for item in sets or []:
		key, separator, value = item.partition("=")
		if not separator:
			print(f"Ignoring override without '=': {item}")
			continue
		pairs.append((key.strip(), value.strip()))
	return pairs


#============================================
def load_payload(args: argparse.Namespace) -> dict:
	"""
	Load the payload from --data or --payload.

	Raises:
		ValueError: payload missing or invalid.
	"""
	if args.payload_path:
		text = pathlib.Path(args.payload_path).read_text(encoding="utf-8")
		payload = json.loads(text)
		if not isinstance(payload, dict):
			raise ValueError("Payload file must hold a JSON object")
		return payload
	return cpf.payload.decode_data_param(args.data)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Fill a CTRL profile PDF template from a payload.")

	input_group = parser.add_argument_group("Input")
	source = input_group.add_mutually_exclusive_group(required=True)
	source.add_argument("-d", "--data", dest="data", help="base64url JSON payload.")
	source.add_argument("-p", "--payload", dest="payload_path", help="JSON payload file.")
	input_group.add_argument("-t", "--template-dir", dest="template_dir", required=True, help="Directory of template PDFs.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", default=None, help="Output PDF path.")
	output_group.add_argument(
		"--debug",
		dest="debug",
		type=int,
		choices=(1, 2),
		default=None,
		help="Print the payload probe (1 summary, 2 full) instead of writing a PDF.",
	)

	layout_group = parser.add_argument_group("Layout")
	layout_group.add_argument("-s", "--set", dest="sets", action="append", help="Layout override KEY=VALUE.")
	layout_group.add_argument("-q", "--query", dest="query", default=None, help="Raw query string of layout overrides.")
	layout_group.add_argument("--override-prefix", dest="override_prefix", default=OVERRIDE_PREFIX, help="Override key prefix.")

	chart_group = parser.add_argument_group("Chart")
	chart_group.add_argument(
		"--chart-shape",
		dest="chart_shape",
		choices=sorted(cpf.chart.CHART_SHAPES),
		default="twelve",
		help="Band chart shape.",
	)
	chart_group.add_argument("-c", "--chart", dest="fetch_chart", action="store_true", help="Fetch and draw the band chart.")
	chart_group.add_argument("-C", "--no-chart", dest="fetch_chart", action="store_false", help="Skip the band chart.")
	chart_group.add_argument(
		"--chart-timeout",
		dest="chart_timeout",
		type=float,
		default=CHART_FETCH_TIMEOUT,
		help="Chart fetch timeout in seconds.",
	)

	parser.set_defaults(fetch_chart=True)
	args = parser.parse_args(argv)
	if args.debug is None and not args.output_path:
		parser.error("--output is required unless --debug is given")
	return args


#============================================
def run_pipeline(args: argparse.Namespace) -> None:
	"""
	Run payload normalisation, template fill and output.

	Args:
		args: Parsed argparse namespace.
	"""
	start_time = time.perf_counter()
	payload = load_payload(args)
	profile = cpf.payload.normalize_payload(payload)

	if args.debug is not None:
		probe = cpf.payload.build_probe(profile, args.debug)
		print(json.dumps(probe, indent=2, sort_keys=True))
		return

	print(f"Dominant: {profile.dominant_key}  Second: {profile.second_key}")
	print(f"Template key: {profile.template_key}")
	config = build_config(args)
	overrides = parse_override_args(args.sets, args.query)
	result = cpf.fill.fill_template(profile, config, overrides)

	print(f"Template: {result.template_path}")
	print(f"Overrides applied: {len(result.merge.applied)}")
	for record in result.merge.discarded:
		print(f"Override discarded: {record.key}={record.value} ({record.reason})")
	if result.chart_url is None:
		print("Chart: no band data")
	else:
		print(f"Chart drawn: {result.chart_drawn}")

	output_path = pathlib.Path(args.output_path)
	output_path.write_bytes(result.pdf_bytes)
	total_time = time.perf_counter() - start_time
	print(f"Pages written: {result.pages}")
	print(f"Output PDF: {output_path}")
	print(f"Timing: total={total_time:.2f}s")


#============================================
def main() -> None:
	"""
	Main entry point.
	"""
	args = parse_args()
	try:
		run_pipeline(args)
	except (ValueError, FileNotFoundError) as error:
		print(f"Error: {error}", file=sys.stderr)
		sys.exit(1)


if __name__ == "__main__":
	main()
