"""
Three-tier layout merge: defaults, structured overrides and flat query overrides.
"""

# Standard Library
import copy
import dataclasses
import math
import re
import typing

# local repo modules
import ctrl_profile_filler as cpf
import ctrl_profile_filler.config


LayoutBox = cpf.config.LayoutBox
PageLayout = dict[str, dict[str, LayoutBox]]

DEFAULT_LAYOUT = cpf.config.DEFAULT_LAYOUT
OVERRIDE_PREFIX = cpf.config.OVERRIDE_PREFIX
OVERRIDE_PROPERTIES = cpf.config.OVERRIDE_PROPERTIES
ALIGN_VALUES = cpf.config.ALIGN_VALUES

# lowercase lookup so "maxlines" and "maxLines" both work
PROPERTY_LOOKUP = {token.lower(): token for token in OVERRIDE_PROPERTIES}
IDENTIFIER = re.compile(r"^[A-Za-z0-9]+$")
TRUE_TOKENS = {"1", "true", "yes", "on"}
FALSE_TOKENS = {"0", "false", "no", "off"}

UNKNOWN_PAGE = "unknown_page"
UNKNOWN_BOX = "unknown_box"
PROP_NOT_ALLOWED = "prop_not_allowed"
NOT_A_NUMBER = "not_a_number"
BAD_ALIGN = "bad_align"
OUT_OF_RANGE = "out_of_range"
INCOMPLETE_BOX = "incomplete_box"


@dataclasses.dataclass
class OverrideRecord:
	page_key: str
	box_key: str
	prop: str
	value: typing.Any


@dataclasses.dataclass
class DiscardRecord:
	key: str
	value: typing.Any
	reason: str


@dataclasses.dataclass
class MergeResult:
	layout: PageLayout
	applied: list[OverrideRecord] = dataclasses.field(default_factory=list)
	discarded: list[DiscardRecord] = dataclasses.field(default_factory=list)


class OverrideError(ValueError):
	"""
	A single override value failed validation.
	"""

	def __init__(self, reason: str):
		super().__init__(reason)
		self.reason = reason


#============================================
def coerce_bool(value) -> bool:
	"""
	Coerce a boolean-ish token.

	Args:
		value: Bool, number or token like "true" / "0".

	Returns:
		Parsed boolean.

	Raises:
		OverrideError: not_a_number when the token is not recognized.
	"""
	if isinstance(value, bool):
		return value
	token = str(value).strip().lower()
	if token in TRUE_TOKENS:
		return True
	if token in FALSE_TOKENS:
		return False
	return coerce_number(value) != 0.0


#============================================
def coerce_number(value) -> float:
	"""
	Coerce a value to a finite float.

	Raises:
		OverrideError: not_a_number.
	"""
	if isinstance(value, bool):
		raise OverrideError(NOT_A_NUMBER)
	try:
		number = float(str(value).strip()) if isinstance(value, str) else float(value)
	except (TypeError, ValueError):
		raise OverrideError(NOT_A_NUMBER)
	if not math.isfinite(number):
		raise OverrideError(NOT_A_NUMBER)
	return number


#============================================
def coerce_align(value) -> str:
	"""
	Coerce an alignment token, accepting "centre".

	Raises:
		OverrideError: bad_align.
	"""
	token = str(value).strip().lower()
	if token == "centre":
		token = "center"
	if token not in ALIGN_VALUES:
		raise OverrideError(BAD_ALIGN)
	return token


#============================================
def coerce_property(prop: str, value) -> tuple[str, typing.Any]:
	"""
	Validate a property token and coerce its value.

	Args:
		prop: Property token such as "maxLines".
		value: Raw value.

	Returns:
		Tuple of (LayoutBox attribute name, coerced value).

	Raises:
		OverrideError: with the reason code for the failure.
	"""
	token = PROPERTY_LOOKUP.get(str(prop).lower())
	if token is None:
		raise OverrideError(PROP_NOT_ALLOWED)
	attribute = OVERRIDE_PROPERTIES[token]
	if attribute == "align":
		return (attribute, coerce_align(value))
	if attribute == "bg":
		return (attribute, coerce_bool(value))
	number = coerce_number(value)
	if attribute == "max_lines":
		number = int(number)
		if number < 1:
			raise OverrideError(OUT_OF_RANGE)
		return (attribute, number)
	if attribute in ("w", "size") and number <= 0.0:
		raise OverrideError(OUT_OF_RANGE)
	if attribute in ("h", "pad", "line_gap") and number < 0.0:
		raise OverrideError(OUT_OF_RANGE)
	return (attribute, number)


#============================================
def parse_override_key(key: str, prefix: str = OVERRIDE_PREFIX) -> tuple[str, str, str] | None:
	"""
	Parse "<prefix>_<page>_<box>_<prop>" into its parts.

	Args:
		key: Query key.
		prefix: Override prefix.

	Returns:
		Tuple of (page_key, box_key, prop) or None for unrelated keys.
	"""
	head = f"{prefix}_"
	if not key.startswith(head):
		return None
	parts = key[len(head):].split("_")
	if len(parts) != 3:
		return None
	if not all(IDENTIFIER.match(part) for part in parts):
		return None
	return (parts[0], parts[1], parts[2])


#============================================
def build_box(properties: dict) -> LayoutBox:
	"""
	Build a new LayoutBox from validated attribute values.

	Raises:
		OverrideError: incomplete_box without x, y and w.
	"""
	if not all(name in properties for name in ("x", "y", "w")):
		raise OverrideError(INCOMPLETE_BOX)
	return LayoutBox(**properties)


#============================================
def apply_structured(
	layout: PageLayout,
	structured: dict,
	result: MergeResult,
) -> None:
	"""
	Apply a nested page -> box -> property override in place.

	Existing boxes keep every property the override does not name; new
	boxes and new pages are added.

	Args:
		layout: Layout copy to mutate.
		structured: Nested override mapping.
		result: Merge result collecting applied and discarded records.
	"""
	for page_key, boxes in structured.items():
		if not isinstance(boxes, dict):
			result.discarded.append(DiscardRecord(str(page_key), boxes, INCOMPLETE_BOX))
			continue
		page = layout.setdefault(str(page_key), {})
		for box_key, properties in boxes.items():
			name = f"{page_key}.{box_key}"
			if not isinstance(properties, dict):
				result.discarded.append(DiscardRecord(name, properties, INCOMPLETE_BOX))
				continue
			values: dict = {}
			records: list[OverrideRecord] = []
			for prop, value in properties.items():
				try:
					attribute, coerced = coerce_property(prop, value)
				except OverrideError as error:
					result.discarded.append(DiscardRecord(f"{name}.{prop}", value, error.reason))
					continue
				values[attribute] = coerced
				records.append(OverrideRecord(str(page_key), str(box_key), str(prop), coerced))
			existing = page.get(str(box_key))
			if existing is None:
				try:
					page[str(box_key)] = build_box(values)
				except OverrideError as error:
					result.discarded.append(DiscardRecord(name, properties, error.reason))
					continue
			else:
				for attribute, coerced in values.items():
					setattr(existing, attribute, coerced)
			result.applied.extend(records)
	# drop pages that ended up with no boxes
	for page_key in [key for key, boxes in layout.items() if not boxes]:
		del layout[page_key]


#============================================
def apply_flat(
	layout: PageLayout,
	flat: typing.Iterable[tuple[str, typing.Any]],
	result: MergeResult,
	prefix: str = OVERRIDE_PREFIX,
) -> None:
	"""
	Apply flat "<prefix>_<page>_<box>_<prop>" overrides in place.

	Unrelated keys are ignored. Invalid overrides are not applied and are
	recorded with a reason code.

	Args:
		layout: Layout copy to mutate.
		flat: Iterable of (key, value) pairs.
		result: Merge result collecting applied and discarded records.
		prefix: Override key prefix.
	"""
	for key, value in flat:
		parsed = parse_override_key(str(key), prefix)
		if parsed is None:
			continue
		page_key, box_key, prop = parsed
		if page_key not in layout:
			result.discarded.append(DiscardRecord(key, value, UNKNOWN_PAGE))
			continue
		target = layout[page_key].get(box_key)
		if target is None:
			result.discarded.append(DiscardRecord(key, value, UNKNOWN_BOX))
			continue
		try:
			attribute, coerced = coerce_property(prop, value)
		except OverrideError as error:
			result.discarded.append(DiscardRecord(key, value, error.reason))
			continue
		setattr(target, attribute, coerced)
		result.applied.append(OverrideRecord(page_key, box_key, prop, coerced))


#============================================
def merge_layout(
	base: PageLayout = DEFAULT_LAYOUT,
	structured: dict | None = None,
	flat: typing.Iterable[tuple[str, typing.Any]] = (),
	prefix: str = OVERRIDE_PREFIX,
) -> MergeResult:
	"""
	Build the effective layout for one request.

	The base is deep-copied first so the shared default is never mutated.

	Args:
		base: Default layout.
		structured: Optional nested override from the payload.
		flat: Flat query overrides.
		prefix: Flat override key prefix.

	Returns:
		MergeResult with the effective layout and diagnostics.
	"""
	result = MergeResult(layout=copy.deepcopy(base))
	if isinstance(structured, dict):
		apply_structured(result.layout, structured, result)
	apply_flat(result.layout, flat, result, prefix)
	return result


#============================================
def layout_to_dict(layout: PageLayout) -> dict:
	"""
	Convert a layout to plain nested dicts for JSON output.
	"""
	return {
		page_key: {box_key: dataclasses.asdict(item) for box_key, item in boxes.items()}
		for page_key, boxes in layout.items()
	}
