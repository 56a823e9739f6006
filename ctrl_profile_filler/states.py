"""
State key resolution and template key mapping.
"""

# Standard Library
import math
import re

# local repo modules
import ctrl_profile_filler as cpf
import ctrl_profile_filler.config


STATE_CODES = cpf.config.STATE_CODES
STATE_NAMES = cpf.config.STATE_NAMES
STATE_FALLBACK_ORDER = cpf.config.STATE_FALLBACK_ORDER
VALID_TEMPLATE_KEYS = cpf.config.VALID_TEMPLATE_KEYS
DEFAULT_TEMPLATE_KEY = cpf.config.DEFAULT_TEMPLATE_KEY

NAME_TO_CODE = {name: code for code, name in STATE_NAMES.items()}
NON_LETTERS = re.compile(r"[^A-Z]")


#============================================
def resolve_state(value) -> str | None:
	"""
	Resolve a code, label or free text to a state code.

	Rules, first match wins:
	1. a lone state code, alone or followed by a non-letter ("R", "t (high)")
	2. exact state name
	3. exact state name after removing every non-letter
	4. state name contained in the cleaned value, in fallback order
	5. None

	Args:
		value: Raw value, any type.

	Returns:
		One of C, T, R, L or None.
	"""
	if value is None:
		return None
	upper = str(value).strip().upper()
	if not upper:
		return None
	cleaned = NON_LETTERS.sub("", upper)
	if cleaned in STATE_CODES:
		return cleaned
	# a leading code only counts when no other letter joins it into a word
	if upper[0] in STATE_CODES and (len(upper) == 1 or not upper[1].isalpha()):
		return upper[0]
	if upper in NAME_TO_CODE:
		return NAME_TO_CODE[upper]
	if cleaned in NAME_TO_CODE:
		return NAME_TO_CODE[cleaned]
	for code in STATE_FALLBACK_ORDER:
		if STATE_NAMES[code] in cleaned:
			return code
	return None


#============================================
def alias_code(key) -> str | None:
	"""
	Match a totals key against the aliases of each state.

	Aliases are the code letter and the full name, in any case and with
	punctuation ignored ("C", "concealed", "Concealed:").

	Args:
		key: Mapping key.

	Returns:
		State code or None.
	"""
	cleaned = NON_LETTERS.sub("", str(key).upper())
	if cleaned in STATE_CODES:
		return cleaned
	return NAME_TO_CODE.get(cleaned)


#============================================
def to_number(value) -> float:
	"""
	Coerce a score value to a finite float, 0.0 when not numeric.
	"""
	if isinstance(value, bool):
		return 0.0
	try:
		number = float(value)
	except (TypeError, ValueError):
		return 0.0
	if not math.isfinite(number):
		return 0.0
	return number


#============================================
def category_scores(totals: dict | None) -> dict[str, float]:
	"""
	Sum numeric totals per state across every alias.

	Args:
		totals: Mapping like {"C": 1, "triggered": 2, "Triggered": 1}.

	Returns:
		Score per state code, all four codes present.
	"""
	scores = {code: 0.0 for code in STATE_CODES}
	if not isinstance(totals, dict):
		return scores
	for key, value in totals.items():
		code = alias_code(key)
		if code is None:
			continue
		scores[code] += to_number(value)
	return scores


#============================================
def pick_second_state(dominant: str | None, scores: dict[str, float] | None) -> str | None:
	"""
	Pick the second state as the best non-dominant score.

	When every candidate scores zero, or the best score is shared, the
	first tied candidate in STATE_FALLBACK_ORDER wins.

	Args:
		dominant: Dominant state code.
		scores: Score per state code.

	Returns:
		State code different from dominant, or None without a dominant.
	"""
	if dominant not in STATE_CODES:
		return None
	scores = scores or {}
	candidates = [code for code in STATE_FALLBACK_ORDER if code != dominant]
	best = max(to_number(scores.get(code, 0.0)) for code in candidates)
	if best <= 0.0:
		return candidates[0]
	for code in candidates:
		if to_number(scores.get(code, 0.0)) == best:
			return code
	return candidates[0]


#============================================
def map_template_key(dominant: str | None, second: str | None) -> str:
	"""
	Map a dominant and second state to a legal template key.

	Never raises. An illegal or degenerate pair becomes the dominant state
	followed by the first other state in fallback order; without a
	dominant state the default key is returned.

	Args:
		dominant: Dominant state code.
		second: Second state code.

	Returns:
		Two letter template key.
	"""
	if dominant not in STATE_CODES:
		return DEFAULT_TEMPLATE_KEY
	key = f"{dominant}{second or ''}"
	if key in VALID_TEMPLATE_KEYS:
		return key
	for code in STATE_FALLBACK_ORDER:
		if code != dominant:
			return f"{dominant}{code}"
	return DEFAULT_TEMPLATE_KEY


#============================================
def normalize_template_key(value) -> str | None:
	"""
	Normalize a supplied template key like "r-t" or "RT profile".

	Args:
		value: Raw value.

	Returns:
		Legal template key or None.
	"""
	if value is None:
		return None
	cleaned = NON_LETTERS.sub("", str(value).strip().upper())
	if len(cleaned) < 2:
		return None
	key = cleaned[:2]
	if key in VALID_TEMPLATE_KEYS:
		return key
	return None


#============================================
def split_template_key(value) -> tuple[str | None, str | None]:
	"""
	Split a template key into (dominant, second).
	"""
	key = normalize_template_key(value)
	if key is None:
		return (None, None)
	return (key[0], key[1])
