"""Tests for aacr2_assist.rules.engine against the bundled AACR2 pack.

Covers:
- 245 title punctuation, including the follower-dependent $a suffix
- Applying every proposed patch yields a field with no findings
- No-op inputs (already correct, empty values, unknown tags)
- Strict coverage findings
- Field exclusion via settings
- Configuration problems reported on Diagnostics instead of raised
"""
from __future__ import annotations

import pytest

from aacr2_assist.core.constants import CODE_COVERAGE_MISSING, DEFAULT_FIX_LABEL
from aacr2_assist.core.diagnostics import Diagnostics
from aacr2_assist.marc.models import Field, Record, Subfield
from aacr2_assist.rules.engine import (
    apply_check,
    is_field_covered,
    validate_field,
    validate_record,
)
from aacr2_assist.rules.explain import explain_finding
from aacr2_assist.rules.models import Check, Rule


def _field(tag: str, *subfields: tuple[str, str], occurrence: int = 0) -> Field:
    return Field(
        tag=tag,
        ind1="1",
        ind2="0",
        occurrence=occurrence,
        subfields=tuple(Subfield(code=code, value=value) for code, value in subfields),
    )


def _apply_patches(field: Field, findings) -> Field:
    updated = field
    for finding in findings:
        for patch in finding.proposed_fixes:
            index = next(i for i, sub in enumerate(updated.subfields) if sub.code == patch.code)
            updated = updated.with_value(index, patch.value)
    return updated


def _expected(findings) -> dict[str, str]:
    return {finding.subfield: finding.expected_value for finding in findings}


# ---------------------------------------------------------------------------
# 245 Title statement
# ---------------------------------------------------------------------------


class TestTitleStatement:
    def test_full_title_statement_gets_isbd_punctuation(self, baseline_rules) -> None:
        field = _field("245", ("a", "The great Gatsby"), ("b", "a novel"), ("c", "F. Scott Fitzgerald"))

        result = validate_field(field, None, baseline_rules)

        assert _expected(result.findings) == {
            "a": "The great Gatsby :",
            "b": "a novel /",
            "c": "F. Scott Fitzgerald.",
        }
        assert result.coverage.covered is True
        assert "AACR2_245A_BEFORE_B" in result.coverage.rule_ids

    @pytest.mark.parametrize(
        ("tag", "subfields"),
        [
            ("245", (("a", "The great Gatsby"), ("b", "a novel"), ("c", "F. Scott Fitzgerald"))),
            ("650", (("a", "Cats"), ("x", "behavior."), ("y", "20th century"))),
            ("650", (("a", "Cats."), ("x", "[behavior]"), ("z", "Texas;"), ("v", "maps"))),
        ],
    )
    def test_applying_patches_leaves_nothing_to_fix(self, baseline_rules, tag, subfields) -> None:
        field = _field(tag, *subfields)

        first = validate_field(field, None, baseline_rules)
        fixed = _apply_patches(field, first.findings)
        second = validate_field(fixed, None, baseline_rules)

        assert second.findings == ()

    def test_same_input_yields_identical_findings(self, baseline_rules) -> None:
        field = _field("245", ("a", "The great Gatsby"), ("c", "F. Scott Fitzgerald"))

        assert validate_field(field, None, baseline_rules) == validate_field(field, None, baseline_rules)

    def test_parallel_title_in_b_suppresses_colon(self, baseline_rules) -> None:
        field = _field("245", ("a", "The great Gatsby"), ("b", "= Le grand Gatsby."))

        result = validate_field(field, None, baseline_rules)

        assert [f for f in result.findings if f.subfield == "a"] == []

    def test_parallel_title_prefix_is_spaced(self, baseline_rules) -> None:
        field = _field("245", ("a", "The great Gatsby"), ("b", "=Le grand Gatsby."))

        result = validate_field(field, None, baseline_rules)

        assert _expected(result.findings)["b"] == "= Le grand Gatsby."

    def test_title_alone_gets_terminal_full_stop(self, baseline_rules) -> None:
        field = _field("245", ("a", "The great Gatsby"))

        result = validate_field(field, None, baseline_rules)

        assert len(result.findings) == 1
        finding = result.findings[0]
        assert finding.expected_value == "The great Gatsby."
        assert finding.condition is not None
        assert finding.condition.follower_present is False
        assert finding.condition.action == "add"

    def test_question_mark_is_an_acceptable_ending(self, baseline_rules) -> None:
        field = _field("245", ("a", "Who killed Roger Ackroyd?"))

        assert validate_field(field, None, baseline_rules).findings == ()

    def test_patch_targets_the_field_occurrence(self, baseline_rules) -> None:
        field = _field("245", ("a", "The great Gatsby"), occurrence=2)

        finding = validate_field(field, None, baseline_rules).findings[0]

        patch = finding.proposed_fixes[0]
        assert (patch.tag, patch.code, patch.occurrence) == ("245", "a", 2)
        assert patch.op == "replace_subfield"


# ---------------------------------------------------------------------------
# Other areas
# ---------------------------------------------------------------------------


class TestOtherAreas:
    def test_publication_area(self, baseline_rules) -> None:
        field = _field("260", ("a", "New York"), ("b", "Scribner"), ("c", "1925"))

        result = validate_field(field, None, baseline_rules)

        assert _expected(result.findings) == {"a": "New York :", "b": "Scribner,", "c": "1925."}

    def test_physical_description_keeps_abbreviation_stops(self, baseline_rules) -> None:
        field = _field("300", ("a", "180 p."), ("c", "24 cm."), ("e", "1 map"))

        result = validate_field(field, None, baseline_rules)

        assert _expected(result.findings) == {"a": "180 p. ;", "c": "24 cm. +"}

    def test_series_numbering(self, baseline_rules) -> None:
        field = _field("490", ("a", "Penguin classics"), ("v", "3."))

        result = validate_field(field, None, baseline_rules)

        assert _expected(result.findings) == {"a": "Penguin classics ;", "v": "3"}

    def test_note_ends_with_full_stop(self, baseline_rules) -> None:
        field = _field("500", ("a", "Includes index"))

        assert _expected(validate_field(field, None, baseline_rules).findings) == {"a": "Includes index."}

    def test_contents_ellipsis_becomes_dashes(self, baseline_rules) -> None:
        field = _field("505", ("a", "Part one ... Part two"))

        result = validate_field(field, None, baseline_rules)

        assert _expected(result.findings) == {"a": "Part one -- Part two."}

    def test_subject_subdivisions(self, baseline_rules) -> None:
        field = _field("650", ("a", "Cats."), ("x", "Behavior"))

        result = validate_field(field, None, baseline_rules)

        assert _expected(result.findings) == {"a": "Cats", "x": "Behavior."}

    def test_inner_subdivision_gets_one_expected_value(self, baseline_rules) -> None:
        field = _field("650", ("a", "Cats"), ("x", "behavior."), ("y", "20th century"))

        result = validate_field(field, None, baseline_rules)

        assert [(f.subfield, f.expected_value) for f in result.findings] == [
            ("x", "Behavior"),
            ("y", "20th century."),
        ]
        assert result.findings[0].condition.action == "trim"

    def test_fallback_collapses_spaces_only_without_specific_rule(self, baseline_rules) -> None:
        field = _field("246", ("a", "Great  Gatsby"))

        result = validate_field(field, None, baseline_rules)

        assert _expected(result.findings) == {"a": "Great Gatsby"}
        assert result.coverage.rule_ids == ("AACR2_SPACING_FALLBACK",)


# ---------------------------------------------------------------------------
# No-op cases and scope
# ---------------------------------------------------------------------------


class TestNoOp:
    def test_empty_values_are_skipped(self, baseline_rules) -> None:
        field = _field("245", ("a", "   "), ("c", ""))

        assert validate_field(field, None, baseline_rules).findings == ()

    def test_uncovered_tag(self, baseline_rules) -> None:
        field = _field("020", ("a", "0743273567"))

        result = validate_field(field, None, baseline_rules)

        assert result.findings == ()
        assert result.coverage.covered is False
        assert result.coverage.rule_ids == ()

    def test_input_field_is_not_mutated(self, baseline_rules) -> None:
        field = _field("245", ("a", "The great Gatsby"))
        before = field.subfields

        validate_field(field, None, baseline_rules)

        assert field.subfields == before

    def test_excluded_tag_is_skipped(self, baseline_rules, make_settings) -> None:
        settings = make_settings(EXCLUDED_TAGS="245")
        field = _field("245", ("a", "The great Gatsby"))

        result = validate_field(field, settings, baseline_rules)

        assert result.findings == ()
        assert result.coverage.covered is False

    def test_excluded_subfield_only(self, baseline_rules, make_settings) -> None:
        settings = make_settings(EXCLUDED_TAGS="245c")
        field = _field("245", ("a", "The great Gatsby"), ("c", "F. Scott Fitzgerald"))

        result = validate_field(field, settings, baseline_rules)

        assert set(_expected(result.findings)) == {"a"}

    def test_missing_field_raises(self, baseline_rules) -> None:
        with pytest.raises(ValueError):
            validate_field(None, None, baseline_rules)


# ---------------------------------------------------------------------------
# Record validation and coverage
# ---------------------------------------------------------------------------


class TestRecordValidation:
    def test_strict_coverage_reports_uncovered_subfields(self, baseline_rules) -> None:
        record = Record(fields=(
            _field("020", ("a", "0743273567")),
            _field("245", ("a", "The great Gatsby.")),
        ))

        result = validate_record(record, None, baseline_rules, strict_coverage=True)

        coverage = [f for f in result.findings if f.code == CODE_COVERAGE_MISSING]
        assert len(coverage) == 1
        assert coverage[0].tag == "020"
        assert coverage[0].expected_value is None
        assert coverage[0].proposed_fixes == ()
        assert coverage[0].message == (
            "No AACR2 rule defined for 020$a; no punctuation assistance applied."
        )

    def test_coverage_findings_off_by_default(self, baseline_rules) -> None:
        record = Record(fields=(_field("020", ("a", "0743273567")),))

        assert validate_record(record, None, baseline_rules).findings == ()

    def test_record_findings_follow_field_order(self, baseline_rules) -> None:
        record = Record(fields=(
            _field("245", ("a", "The great Gatsby")),
            _field("500", ("a", "Includes index")),
        ))

        result = validate_record(record, None, baseline_rules)

        assert [f.tag for f in result.findings] == ["245", "500"]

    def test_is_field_covered(self, baseline_rules) -> None:
        assert is_field_covered("245", "a", "1", "0", baseline_rules) is True
        assert is_field_covered("650", "x", " ", "0", baseline_rules) is True
        assert is_field_covered("020", "a", " ", " ", baseline_rules) is False


# ---------------------------------------------------------------------------
# Configuration problems
# ---------------------------------------------------------------------------


class TestDiagnostics:
    def test_unsafe_pattern_reported_once(self) -> None:
        rules = [Rule.from_dict({
            "id": "BAD_PATTERN",
            "tag_pattern": "(a+)+$",
            "checks": [{"type": "spacing"}],
        })]
        diagnostics = Diagnostics()
        field = _field("245", ("a", "One  two"), ("b", "Three  four"))

        result = validate_field(field, None, rules, diagnostics)
        validate_field(field, None, rules, diagnostics)

        assert result.findings == ()
        assert len(diagnostics) == 1
        assert "(a+)+$" in diagnostics.warnings[0]

    def test_unknown_check_type_is_ignored_with_advisory(self) -> None:
        rules = [Rule.from_dict({
            "id": "ODD",
            "tag": "245",
            "subfields": ["a"],
            "checks": [{"type": "mystery"}],
        })]
        diagnostics = Diagnostics()

        result = validate_field(_field("245", ("a", "Title")), None, rules, diagnostics)

        assert result.findings == ()
        assert result.coverage.rule_ids == ("ODD",)
        assert len(diagnostics) == 1
        assert "mystery" in diagnostics.warnings[0]

    def test_fixed_field_check_is_a_no_op(self) -> None:
        rule = Rule.from_dict({"id": "FIXED", "tag": "008", "checks": [{"type": "fixed_field"}]})
        field = _field("008", ("a", "850101s1925"))

        assert apply_check(rule, rule.checks[0], field, 0) is None

    def test_finding_defaults(self) -> None:
        rule = Rule(id="", checks=(Check(type="spacing"),), severity="")
        field = _field("246", ("a", "A  b"))

        finding = apply_check(rule, rule.checks[0], field, 0)

        assert finding is not None
        assert finding.code == "AACR2_RULE"
        assert finding.severity == "INFO"
        assert finding.message == "AACR2 punctuation issue in 246$a"
        assert finding.fix_label == DEFAULT_FIX_LABEL


# ---------------------------------------------------------------------------
# Explanations
# ---------------------------------------------------------------------------


class TestExplain:
    def test_explanation_includes_condition_and_rationale(self, baseline_rules) -> None:
        finding = validate_field(_field("245", ("a", "The great Gatsby")), None, baseline_rules).findings[0]

        text = explain_finding(finding)

        assert text.splitlines()[0] == (
            "245$a: 245$a should end with a full stop when it is the last subfield."
        )
        assert "Expected: 'The great Gatsby.'" in text
        assert (
            "Terminal punctuation added because no following subfield is present "
            "(considered: $b, $c, $h, $n, $p)."
        ) in text
        assert text.splitlines()[-1].startswith("Why: AACR2 1.1A1")

    def test_explanation_includes_examples(self, baseline_rules) -> None:
        field = _field("245", ("a", "Cataloging basics"), ("b", "a primer"))
        finding = next(f for f in validate_field(field, None, baseline_rules).findings if f.subfield == "a")

        assert "Example: 'Cataloging basics' -> 'Cataloging basics :'" in explain_finding(finding)

    def test_finding_to_dict_carries_condition(self, baseline_rules) -> None:
        finding = validate_field(_field("245", ("a", "The great Gatsby")), None, baseline_rules).findings[0]

        data = finding.to_dict()

        assert data["proposed_fixes"][0]["patch"][0]["value"] == "The great Gatsby."
        assert data["condition"]["follower_present"] is False
