"""Tests for AI request normalization and response shape validation."""
from __future__ import annotations

from aacr2_assist.llm.payload import (
    MAX_RECORD_FIELDS,
    MAX_RECORD_SUBFIELDS,
    MAX_TAG_SUBFIELDS,
    AiRequestPayload,
    normalize_ai_request_payload,
    validate_ai_response_shape,
)


def _subfields(count: int) -> list[dict]:
    return [{"code": "a", "value": f"v{i}"} for i in range(count)]


class TestNormalizeRequest:
    def test_non_mapping_gives_empty_payload(self) -> None:
        payload = normalize_ai_request_payload(None)

        assert payload == AiRequestPayload()
        assert payload.tag_context.subfields == []
        assert payload.record_context is None

    def test_values_are_coerced(self) -> None:
        payload = normalize_ai_request_payload({
            "request_id": 17,
            "tag_context": {
                "tag": 245,
                "ind1": None,
                "ind2": "04",
                "occurrence": "-3",
                "subfields": [{"code": "a", "value": None}, "junk"],
            },
            "features": {"subject_guidance": 1},
        })

        assert payload.request_id == "17"
        assert payload.tag_context.tag == "245"
        assert payload.tag_context.ind1 == " "
        assert payload.tag_context.ind2 == "0"
        assert payload.tag_context.occurrence == 0
        assert [(s.code, s.value) for s in payload.tag_context.subfields] == [("a", "")]
        assert payload.features.subject_guidance is True
        assert payload.features.punctuation_explain is False

    def test_tag_context_is_capped(self) -> None:
        payload = normalize_ai_request_payload({
            "tag_context": {"tag": "505", "subfields": _subfields(MAX_TAG_SUBFIELDS + 5)},
        })

        subfields = payload.tag_context.subfields
        assert len(subfields) == MAX_TAG_SUBFIELDS
        assert subfields[0].value == "v0"

    def test_record_context_is_capped(self) -> None:
        fields = [{"tag": "500", "subfields": _subfields(MAX_RECORD_SUBFIELDS + 1)}] * (MAX_RECORD_FIELDS + 10)

        payload = normalize_ai_request_payload({"tag_context": {"tag": "245"}, "record_context": {"fields": fields}})

        assert len(payload.record_context.fields) == MAX_RECORD_FIELDS
        assert len(payload.record_context.fields[0].subfields) == MAX_RECORD_SUBFIELDS

    def test_extra_keys_are_preserved(self) -> None:
        payload = normalize_ai_request_payload({"request_id": "r", "client": "editor"})

        assert payload.model_dump()["client"] == "editor"


class TestResponseShape:
    def test_minimal_valid_response(self) -> None:
        assert validate_ai_response_shape({"request_id": "r"}) == []

    def test_non_object(self) -> None:
        assert validate_ai_response_shape(["not", "an", "object"]) == ["$ should be object"]

    def test_missing_request_id(self) -> None:
        errors = validate_ai_response_shape({})

        assert len(errors) == 1
        assert errors[0].startswith("$.request_id:")

    def test_nested_paths(self) -> None:
        errors = validate_ai_response_shape({
            "request_id": "r",
            "confidence_percent": 150,
            "findings": [{"code": "X", "confidence": 2}],
            "subjects": [{"subfields": {"x": []}}],
        })

        prefixes = {error.split(":")[0] for error in errors}
        assert prefixes == {
            "$.confidence_percent",
            "$.findings[0].confidence",
            "$.subjects[0].subfields.a",
        }

    def test_patch_requires_op(self) -> None:
        errors = validate_ai_response_shape({
            "request_id": "r",
            "findings": [{"proposed_fixes": [{"patch": [{"tag": "245"}]}]}],
        })

        assert errors[0].startswith("$.findings[0].proposed_fixes[0].patch[0].op:")
