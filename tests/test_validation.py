# ─────────────────────────────────────────────────────────────────────────────
# Request validation tests — ValidationResult, issue paths, JSON errors
# ─────────────────────────────────────────────────────────────────────────────

import json

import pytest
from conftest import INSPECTION_REQUEST, SCENARIO_REQUEST

from adlab.exceptions import InvalidJSONError, PayloadValidationError
from adlab.schemas import AdGenerationRequest, AdInspectionRequest, BrandVoice, Industry
from adlab.services.validation import validate_payload


def _body(base: dict, **changes) -> bytes:
    payload = {**base, **changes}
    return json.dumps({k: v for k, v in payload.items() if v is not None}).encode()


def _paths(result) -> list[str]:
    return [issue["path"] for issue in result.error.issues]


class TestValidGeneration:
    def test_scenario_request_is_valid(self):
        result = validate_payload(_body(SCENARIO_REQUEST), AdGenerationRequest)
        assert result.ok
        assert result.value.brand_voice is BrandVoice.friendly
        assert result.value.preferred_cta == "Sign Up"
        assert result.value.competitors is None

    def test_unknown_keys_are_ignored(self):
        result = validate_payload(_body(SCENARIO_REQUEST, extra="ignored"), AdGenerationRequest)
        assert result.ok

    def test_accepts_str_input(self):
        result = validate_payload(json.dumps(SCENARIO_REQUEST), AdGenerationRequest)
        assert result.ok


class TestGenerationIssues:
    def test_missing_field_names_the_path(self):
        payload = {k: v for k, v in SCENARIO_REQUEST.items() if k != "goal"}
        result = validate_payload(json.dumps(payload), AdGenerationRequest)
        assert not result.ok
        assert isinstance(result.error, PayloadValidationError)
        assert "goal" in _paths(result)

    def test_too_short_field(self):
        result = validate_payload(_body(SCENARIO_REQUEST, targetAudience="moms"), AdGenerationRequest)
        assert _paths(result) == ["targetAudience"]

    def test_too_long_field(self):
        result = validate_payload(
            _body(SCENARIO_REQUEST, competitors="x" * 101), AdGenerationRequest
        )
        assert _paths(result) == ["competitors"]

    @pytest.mark.parametrize(
        "field,value",
        [
            ("brandVoice", "Sarcastic"),
            ("keyEmotion", "Boredom"),
            ("adFormat", "Billboard"),
            ("industry", "Crypto"),
            ("preferredCTA", "Click Here"),
            ("visualDirection", "Abstract"),
        ],
    )
    def test_enum_violation(self, field, value):
        result = validate_payload(_body(SCENARIO_REQUEST, **{field: value}), AdGenerationRequest)
        assert _paths(result) == [field]

    def test_every_issue_is_reported(self):
        result = validate_payload(
            _body(SCENARIO_REQUEST, goal="short", brandVoice="Sarcastic"), AdGenerationRequest
        )
        assert sorted(_paths(result)) == ["brandVoice", "goal"]

    def test_issue_body_shape(self):
        result = validate_payload(_body(SCENARIO_REQUEST, goal="short"), AdGenerationRequest)
        body = result.error.to_body()
        assert body["error"] == "Validation failed"
        assert body["issues"][0]["path"] == "goal"
        assert body["issues"][0]["message"]


class TestInvalidJSON:
    @pytest.mark.parametrize("raw", [b"{not json", b"", b'{"goal": '])
    def test_unparseable_body(self, raw):
        result = validate_payload(raw, AdGenerationRequest)
        assert isinstance(result.error, InvalidJSONError)
        assert result.error.code == "INVALID_JSON"
        assert result.error.status_code == 400

    def test_non_object_json_is_a_validation_issue(self):
        result = validate_payload(b"[1, 2, 3]", AdGenerationRequest)
        assert isinstance(result.error, PayloadValidationError)
        assert not isinstance(result.error, InvalidJSONError)


class TestInspection:
    def test_valid_request_without_brand(self):
        result = validate_payload(_body(INSPECTION_REQUEST), AdInspectionRequest)
        assert result.ok
        assert result.value.website_or_brand is None
        assert result.value.industry is Industry.health

    def test_platform_enum(self):
        result = validate_payload(_body(INSPECTION_REQUEST, adType="tiktok"), AdInspectionRequest)
        assert _paths(result) == ["adType"]

    def test_brand_length_bound(self):
        result = validate_payload(
            _body(INSPECTION_REQUEST, websiteOrBrand="b" * 51), AdInspectionRequest
        )
        assert _paths(result) == ["websiteOrBrand"]
