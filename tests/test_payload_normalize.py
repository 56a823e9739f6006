import pytest

import ctrl_profile_filler.payload as payload


#============================================
def test_decode_data_param_round_trip() -> None:
	"""
	base64url payloads decode with or without padding.
	"""
	data = {"identity": {"fullName": "Ada Lovelace"}, "note": "été ~~~"}
	token = payload.encode_data_param(data)
	assert "=" not in token
	assert payload.decode_data_param(token) == data


#============================================
def test_decode_data_param_rejects_bad_input() -> None:
	"""
	Missing, non-JSON and non-object payloads raise ValueError.
	"""
	with pytest.raises(ValueError):
		payload.decode_data_param("")
	with pytest.raises(ValueError):
		payload.decode_data_param("bm90IGpzb24")
	with pytest.raises(ValueError):
		payload.decode_data_param(payload.encode_data_param([1, 2]))


#============================================
def test_dominant_regulated_picks_second_from_totals() -> None:
	"""
	A missing second state comes from the best non-dominant total.
	"""
	profile = payload.normalize_payload({
		"ctrl": {
			"summary": {
				"dominantState": "Regulated",
				"totals": {"C": 1, "T": 3, "R": 0, "L": 2},
			},
		},
	})
	assert profile.dominant_key == "R"
	assert profile.second_key == "T"
	assert profile.template_key == "RT"


#============================================
def test_template_key_fills_missing_states() -> None:
	"""
	A supplied template key provides dominant and second states.
	"""
	profile = payload.normalize_payload({"templateKey": "lt"})
	assert (profile.dominant_key, profile.second_key, profile.template_key) == ("L", "T", "LT")


#============================================
def test_explicit_states_win_over_paths_order() -> None:
	"""
	The first non-blank path wins and keys are resolved from labels.
	"""
	profile = payload.normalize_payload({
		"ctrl": {"summary": {"domKey": "  ", "secondKey": "lead"}},
		"dominantKey": "Concealed",
	})
	assert profile.dominant_key == "C"
	assert profile.second_key == "L"
	assert profile.template_key == "CL"


#============================================
def test_second_from_bands_when_no_totals() -> None:
	"""
	Band sums score the states when no totals are supplied.
	"""
	profile = payload.normalize_payload({
		"domKey": "T",
		"bands": {"C_low": 1, "R_mid": 2, "R_high": 1, "L_high": 2},
	})
	assert profile.second_key == "R"
	assert profile.template_key == "TR"


#============================================
def test_empty_payload_defaults() -> None:
	"""
	An empty payload still yields the default template key.
	"""
	profile = payload.normalize_payload({})
	assert profile.dominant_key is None
	assert profile.template_key == "CT"
	assert profile.identity.full_name == ""
	assert profile.text == {}
	assert profile.questions == []


#============================================
def test_identity_lookup() -> None:
	"""
	Identity fields are found under alternate keys and locations.
	"""
	profile = payload.normalize_payload({
		"ctrl": {"summary": {"identity": {"Name": " Grace Hopper ", "Email": "g@example.com"}}},
		"dateLbl": "1 May 2026",
	})
	assert profile.identity.full_name == "Grace Hopper"
	assert profile.identity.email == "g@example.com"
	assert profile.identity.date_label == "1 May 2026"


#============================================
def test_probe_summary_reports_missing() -> None:
	"""
	The summary probe lists missing identity, text and band entries.
	"""
	profile = payload.normalize_payload({
		"identity": {"fullName": "Ada"},
		"domKey": "C",
		"text": {"execSummary": "x" * 200},
		"workWith": {"triggered": {"title": "Triggered", "body": "Stay calm"}},
		"bands": {"C_low": 1},
	})
	probe = payload.build_probe(profile, 1)
	assert probe["domSecond"]["templateKey"] == "CT"
	assert "identity.email" in probe["missing"]["identity"]
	assert "ctrl.bands (1/12)" in probe["missing"]["ctrl"]
	assert "text.execSummary" not in probe["missing"]["text"]
	assert "workWith.triggered" not in probe["missing"]["workWith"]
	assert probe["previews"]["execSummary"].endswith("...")
	assert probe["previews"]["workWith_triggered"] == "Stay calm"
	assert probe["counts"]["bandsPresent12"] == 1


#============================================
def test_probe_full_dump() -> None:
	"""
	The full probe carries the normalised payload.
	"""
	profile = payload.normalize_payload({"domKey": "R", "secondKey": "L", "text": {"theme": "t"}})
	probe = payload.build_probe(profile, 2)
	assert probe["ctrlSummary"]["templateKey"] == "RL"
	assert probe["text"] == {"theme": "t"}
