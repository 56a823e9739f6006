"""
Payload decoding, normalisation and the debug probe.
"""

# Standard Library
import base64
import binascii
import dataclasses
import json

# local repo modules
import ctrl_profile_filler as cpf
import ctrl_profile_filler.chart
import ctrl_profile_filler.config
import ctrl_profile_filler.states


BAND_KEYS = cpf.config.BAND_KEYS
BAND_TIERS = cpf.config.BAND_TIERS
STATE_CODES = cpf.config.STATE_CODES
PREVIEW_LENGTH = cpf.config.PREVIEW_LENGTH

DOMINANT_PATHS = (
	"ctrl.summary.dominantKey",
	"ctrl.summary.domKey",
	"ctrl.summary.dominantState",
	"ctrl.summary.domState",
	"ctrl.dominantKey",
	"ctrl.domKey",
	"summary.dominantKey",
	"summary.domKey",
	"domSecond.domKey",
	"dominantKey",
	"domKey",
	"dominantState",
	"domState",
)
SECOND_PATHS = (
	"ctrl.summary.secondKey",
	"ctrl.summary.secondState",
	"ctrl.secondKey",
	"summary.secondKey",
	"domSecond.secondKey",
	"secondKey",
	"secondState",
)
TEMPLATE_PATHS = (
	"ctrl.summary.templateKey",
	"ctrl.templateKey",
	"summary.templateKey",
	"domSecond.templateKey",
	"templateKey",
	"tplKey",
)
TOTALS_PATHS = (
	"ctrl.summary.totals",
	"ctrl.totals",
	"summary.totals",
	"totals",
	"ctrl.summary.mix",
	"ctrl.mix",
	"mix",
)
BANDS_PATHS = ("ctrl.bands", "bands", "ctrl12")
LAYOUT_PATHS = ("layout", "ctrl.layout")

TEXT_KEYS = (
	"execSummary_tldr", "execSummary", "execSummary_tipact",
	"state_tldr", "domState", "bottomState", "state_tipact",
	"frequency_tldr", "frequency",
	"sequence_tldr", "sequence", "sequence_tipact",
	"theme_tldr", "theme", "theme_tipact",
	"act_anchor",
)
WORK_WITH_KEYS = ("concealed", "triggered", "regulated", "lead")


@dataclasses.dataclass
class Identity:
	full_name: str = ""
	email: str = ""
	date_label: str = ""


@dataclasses.dataclass
class Profile:
	identity: Identity
	dominant_key: str | None
	second_key: str | None
	template_key: str
	bands: dict
	text: dict
	work_with: dict
	questions: list
	scores: dict[str, float]
	layout: dict | None = None
	raw: dict | None = None


#============================================
def decode_data_param(token: str) -> dict:
	"""
	Decode a base64url JSON payload.

	Args:
		token: base64url text, padding optional.

	Returns:
		Decoded JSON object.

	Raises:
		ValueError: the token is not base64url JSON describing an object.
	"""
	text = str(token or "").strip()
	if not text:
		raise ValueError("Missing data payload")
	padded = text + "=" * (-len(text) % 4)
	try:
		decoded = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
		payload = json.loads(decoded)
	except (binascii.Error, UnicodeError, json.JSONDecodeError) as error:
		raise ValueError(f"Invalid JSON in data payload: {error}") from error
	if not isinstance(payload, dict):
		raise ValueError("Data payload must be a JSON object")
	return payload


#============================================
def encode_data_param(payload: dict) -> str:
	"""
	Encode a payload the way callers build the data parameter.
	"""
	raw = json.dumps(payload).encode("utf-8")
	return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


#============================================
def has_text(value) -> bool:
	return value is not None and bool(str(value).strip())


#============================================
def get_path(obj, dotted_path: str):
	"""
	Walk a dotted path through nested dicts.

	Args:
		obj: Root object.
		dotted_path: Path like "ctrl.summary.domKey".

	Returns:
		Found value or None.
	"""
	current = obj
	for part in dotted_path.split("."):
		if not isinstance(current, dict):
			return None
		current = current.get(part)
	return current


#============================================
def pick_first(obj, keys: tuple | list, fallback=""):
	"""
	Return the first non-blank value among keys of a dict.
	"""
	if not isinstance(obj, dict):
		return fallback
	for key in keys:
		if has_text(obj.get(key)):
			return obj.get(key)
	return fallback


#============================================
def pick_first_path(obj, paths: tuple | list, fallback=""):
	"""
	Return the first non-blank value among dotted paths.
	"""
	for path in paths:
		value = get_path(obj, path)
		if has_text(value):
			return value
	return fallback


#============================================
def pick_first_dict(obj, paths: tuple | list) -> dict:
	"""
	Return the first dict found along dotted paths, or an empty dict.
	"""
	for path in paths:
		value = get_path(obj, path)
		if isinstance(value, dict) and value:
			return value
	return {}


#============================================
def band_scores(bands: dict) -> dict[str, float]:
	"""
	Sum the three tiers of each state into a score.
	"""
	values = cpf.chart.normalize_bands(bands)
	return {
		code: sum(values[f"{code}_{tier}"] for tier in BAND_TIERS)
		for code in STATE_CODES
	}


#============================================
def normalize_identity(payload: dict) -> Identity:
	"""
	Find the identity block and read name, email and date label.
	"""
	identity = {}
	for path in ("identity", "ctrl.summary.identity", "ctrl.identity", "summary.identity"):
		value = get_path(payload, path)
		if isinstance(value, dict):
			identity = value
			break
	full_name = pick_first(identity, ("fullName", "FullName", "name", "Name"))
	email = pick_first(identity, ("email", "Email"))
	date_label = pick_first(
		identity,
		("dateLabel", "dateLbl", "date", "Date"),
		payload.get("dateLbl") or "",
	)
	return Identity(
		full_name=str(full_name).strip(),
		email=str(email).strip(),
		date_label=str(date_label).strip(),
	)


#============================================
def normalize_payload(payload: dict) -> Profile:
	"""
	Normalise a decoded payload into a Profile.

	Dominant, second and template keys are read along fixed path lists. A
	supplied template key fills a missing dominant or second; a missing
	second is then picked from the category scores (totals or mix, else
	band sums). The template key always comes from the key mapper.

	Args:
		payload: Decoded payload.

	Returns:
		Profile.
	"""
	dominant = cpf.states.resolve_state(pick_first_path(payload, DOMINANT_PATHS))
	second = cpf.states.resolve_state(pick_first_path(payload, SECOND_PATHS))
	supplied_template = cpf.states.normalize_template_key(pick_first_path(payload, TEMPLATE_PATHS))

	if supplied_template is not None:
		template_dom, template_second = cpf.states.split_template_key(supplied_template)
		if dominant is None:
			dominant = template_dom
		if second is None and dominant == template_dom:
			second = template_second

	bands = pick_first_dict(payload, BANDS_PATHS)
	totals = pick_first_dict(payload, TOTALS_PATHS)
	if totals:
		scores = cpf.states.category_scores(totals)
	else:
		scores = band_scores(bands)

	if second is None or second == dominant:
		second = cpf.states.pick_second_state(dominant, scores)
	template_key = cpf.states.map_template_key(dominant, second)

	text = pick_first_dict(payload, ("text", "gen", "copy"))
	work_with = pick_first_dict(payload, ("workWith", "workwith", "work_with"))
	questions = pick_first_path(
		payload,
		("questions", "ctrl.questions", "ctrl.summary.questions", "summary.questions"),
		[],
	)
	if not isinstance(questions, list):
		questions = []
	layout = pick_first_dict(payload, LAYOUT_PATHS) or None

	return Profile(
		identity=normalize_identity(payload),
		dominant_key=dominant,
		second_key=second,
		template_key=template_key,
		bands=bands,
		text=text,
		work_with=work_with,
		questions=questions,
		scores=scores,
		layout=layout,
		raw=payload,
	)


#============================================
def truncate(value, length: int = PREVIEW_LENGTH) -> str:
	text = "" if value is None else str(value)
	if len(text) <= length:
		return text
	return text[:length] + "..."


#============================================
def string_info(value) -> dict:
	text = "" if value is None else str(value)
	return {"has": bool(text), "len": len(text), "preview": truncate(text)}


#============================================
def work_with_text(value) -> str:
	"""
	Flatten a work-with entry that may be text or {"title", "body"}.
	"""
	if isinstance(value, dict):
		return str(value.get("body") or value.get("text") or "")
	return "" if value is None else str(value)


#============================================
def build_probe(profile: Profile, level: int = 1) -> dict:
	"""
	Build the debug probe for a normalised payload.

	Args:
		profile: Normalised payload.
		level: 1 for the summary, 2 for the full dump.

	Returns:
		JSON-ready dict.
	"""
	text = profile.text
	work_with = profile.work_with
	bands = profile.bands
	if level >= 2:
		return {
			"ok": True,
			"where": "fill-template:probe:full",
			"identity": dataclasses.asdict(profile.identity),
			"ctrlSummary": {
				"dominantKey": profile.dominant_key,
				"secondKey": profile.second_key,
				"templateKey": profile.template_key,
			},
			"scores": profile.scores,
			"bands": bands,
			"questions": profile.questions,
			"text": text,
			"workWith": work_with,
		}

	bands_present = sum(1 for key in BAND_KEYS if key in bands)
	missing = {"identity": [], "ctrl": [], "text": [], "workWith": []}
	if not profile.identity.full_name:
		missing["identity"].append("identity.fullName")
	if not profile.identity.email:
		missing["identity"].append("identity.email")
	if not profile.identity.date_label:
		missing["identity"].append("identity.dateLabel")
	if not profile.dominant_key:
		missing["ctrl"].append("ctrl.summary.dominantKey")
	if not profile.second_key:
		missing["ctrl"].append("ctrl.summary.secondKey")
	if bands_present != len(BAND_KEYS):
		missing["ctrl"].append(f"ctrl.bands ({bands_present}/{len(BAND_KEYS)})")
	for key in TEXT_KEYS:
		if not has_text(text.get(key)):
			missing["text"].append(f"text.{key}")
	for key in WORK_WITH_KEYS:
		if not has_text(work_with_text(work_with.get(key))):
			missing["workWith"].append(f"workWith.{key}")

	return {
		"ok": True,
		"where": "fill-template:probe:summary",
		"domSecond": {
			"domKey": profile.dominant_key,
			"secondKey": profile.second_key,
			"templateKey": profile.template_key,
		},
		"identity": {
			"fullName": string_info(profile.identity.full_name),
			"email": string_info(profile.identity.email),
			"dateLabel": string_info(profile.identity.date_label),
		},
		"counts": {
			"questions": len(profile.questions),
			"bandsKeys": len(bands),
			"bandsPresent12": bands_present,
			"textKeys": len(text),
			"workWithKeys": len(work_with),
		},
		"missing": missing,
		"previews": {
			"execSummary_tldr": truncate(text.get("execSummary_tldr")),
			"execSummary": truncate(text.get("execSummary")),
			"act_anchor": truncate(text.get("act_anchor")),
			"workWith_triggered": truncate(work_with_text(work_with.get("triggered"))),
		},
	}
