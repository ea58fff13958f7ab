"""Tests for redaction and record-context selection."""
from __future__ import annotations

import logging

from aacr2_assist.llm.context import (
    MAX_CONTEXT_FIELDS,
    REDACTED,
    filter_record_context,
    redact_record_context,
    redact_tag_context,
    should_redact_value,
)
from aacr2_assist.llm.payload import RecordContext, TagContext


def _tag(tag: str, occurrence: int = 0, **subfields: str) -> TagContext:
    return TagContext(
        tag=tag,
        occurrence=occurrence,
        subfields=[{"code": code, "value": value} for code, value in subfields.items()],
    )


RECORD = RecordContext(fields=[
    _tag("020", a="0743273567"),
    _tag("100", a="Fitzgerald, F. Scott"),
    _tag("245", a="The great Gatsby"),
    _tag("260", a="New York"),
    _tag("952", a="Main stacks"),
])


class TestRedaction:
    def test_856_query_string_is_redacted(self, settings) -> None:
        assert should_redact_value(settings, "856", "u", "https://proxy.example.edu/login?url=x") is True
        assert should_redact_value(settings, "856", "u", "https://example.org/book") is False
        assert should_redact_value(settings, "856", "z", "See ?notes") is False

    def test_856_redaction_can_be_disabled(self, make_settings) -> None:
        settings = make_settings(AI_REDACT_856_QUERYSTRINGS="false")

        assert should_redact_value(settings, "856", "u", "https://proxy.example.edu/login?url=x") is False

    def test_redaction_rules(self, make_settings) -> None:
        settings = make_settings(AI_REDACTION_RULES="590, 500a")

        assert should_redact_value(settings, "590", "a", "Donor: Jane") is True
        assert should_redact_value(settings, "500", "a", "Note") is True
        assert should_redact_value(settings, "500", "b", "Note") is False

    def test_redact_tag_context_keeps_structure(self, settings) -> None:
        context = _tag("856", u="https://proxy.example.edu/login?url=x", z="Online access")

        redacted = redact_tag_context(context, settings)

        assert [(s.code, s.value) for s in redacted.subfields] == [("u", REDACTED), ("z", "Online access")]
        assert context.subfields[0].value.startswith("https://")

    def test_redact_record_context(self, make_settings) -> None:
        settings = make_settings(AI_REDACTION_RULES="100")

        redacted = redact_record_context(RECORD, settings)

        assert redacted.fields[1].subfields[0].value == REDACTED
        assert redacted.fields[2].subfields[0].value == "The great Gatsby"


class TestContextModes:
    def test_tag_only_sends_nothing(self, settings) -> None:
        assert filter_record_context(RECORD, settings, _tag("245")) is None

    def test_neighbors(self, make_settings) -> None:
        settings = make_settings(AI_CONTEXT_MODE="tag_plus_neighbors")

        context = filter_record_context(RECORD, settings, _tag("245"))

        assert [f.tag for f in context.fields] == ["100", "245", "260"]

    def test_neighbors_without_target_uses_leading_fields(self, make_settings) -> None:
        settings = make_settings(AI_CONTEXT_MODE="tag_plus_neighbors")

        context = filter_record_context(RECORD, settings, _tag("500"))

        assert [f.tag for f in context.fields] == ["020", "100", "245"]

    def test_full_record_drops_excluded_fields(self, make_settings) -> None:
        settings = make_settings(AI_CONTEXT_MODE="full_record", EXCLUDED_TAGS="020")

        context = filter_record_context(RECORD, settings, _tag("245"))

        assert [f.tag for f in context.fields] == ["100", "245", "260"]

    def test_full_record_is_capped(self, make_settings) -> None:
        settings = make_settings(AI_CONTEXT_MODE="full_record")
        record = RecordContext(fields=[_tag("500", a=f"Note {i}") for i in range(MAX_CONTEXT_FIELDS + 5)])

        context = filter_record_context(record, settings)

        assert len(context.fields) == MAX_CONTEXT_FIELDS

    def test_unknown_mode_sends_nothing(self, make_settings, caplog) -> None:
        settings = make_settings(AI_CONTEXT_MODE="everything")

        with caplog.at_level(logging.WARNING, logger="aacr2_assist.llm.context"):
            assert filter_record_context(RECORD, settings, _tag("245")) is None

        assert "Unknown AI context mode" in caplog.text

    def test_missing_record_context(self, make_settings) -> None:
        settings = make_settings(AI_CONTEXT_MODE="full_record")

        assert filter_record_context(None, settings) is None
