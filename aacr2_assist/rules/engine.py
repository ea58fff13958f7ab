"""Deterministic AACR2 punctuation rule engine.

Public API
----------
validate_field(field, settings, rules)            -> FieldValidation
validate_record(record, settings, rules, strict)  -> RecordValidation
is_field_covered(tag, subfield, ind1, ind2, rules) -> bool

Evaluation is a pure function of (field, settings, rules): inputs are never
mutated and evaluating the same field twice yields identical findings.
Configuration problems in the rules are reported on the caller-supplied
``Diagnostics`` collector; no exception escapes for bad rule data.

Safety rule: subfield values are never logged, only tags, codes and counts.
"""
from __future__ import annotations

import logging
from typing import Sequence

from aacr2_assist.core.constants import (
    CODE_COVERAGE_MISSING,
    CODE_DEFAULT_RULE,
    DEFAULT_FIX_LABEL,
    Severity,
)
from aacr2_assist.core.diagnostics import Diagnostics
from aacr2_assist.marc.models import (
    Coverage,
    Field,
    FieldValidation,
    Finding,
    Patch,
    Record,
    RecordValidation,
)
from aacr2_assist.marc.scope import is_excluded_field
from aacr2_assist.rules.checks import evaluate_check
from aacr2_assist.rules.matching import match_rules, rule_matches
from aacr2_assist.rules.models import VALID_CHECK_TYPES, Check, Rule

logger = logging.getLogger(__name__)


def apply_check(
    rule: Rule,
    check: Check,
    field: Field,
    index: int,
    diagnostics: Diagnostics | None = None,
) -> Finding | None:
    """Evaluate one check against the subfield at *index*.

    Returns ``None`` for empty values, no-op check types and whenever the
    expected value equals the current value.
    """
    sub = field.subfields[index]
    value = sub.value or ""
    if not value.strip():
        return None

    if check.type not in VALID_CHECK_TYPES:
        if diagnostics is not None:
            diagnostics.warn(
                f"unknown_check:{rule.id}:{check.type}",
                f"Rule {rule.id or '<unnamed>'} has unknown check type {check.type!r}; check ignored.",
            )
        return None

    outcome = evaluate_check(check, field, index)
    if outcome is None or outcome.expected == value:
        return None

    patch = Patch(
        tag=field.tag,
        code=sub.code,
        occurrence=field.occurrence,
        value=outcome.expected,
    )
    return Finding(
        severity=check.severity or rule.severity or Severity.INFO.value,
        code=rule.id or CODE_DEFAULT_RULE,
        message=check.message or f"AACR2 punctuation issue in {field.tag}${sub.code}",
        rationale=rule.rationale,
        tag=field.tag,
        subfield=sub.code,
        occurrence=field.occurrence,
        current_value=value,
        expected_value=outcome.expected,
        condition=outcome.condition,
        proposed_fixes=(patch,),
        fix_label=rule.fix_label or DEFAULT_FIX_LABEL,
        examples=rule.examples,
    )


def _evaluate_subfield(
    field: Field,
    index: int,
    rules: Sequence[Rule],
    diagnostics: Diagnostics,
) -> tuple[list[Rule], list[Finding]]:
    matched = match_rules(field, index, rules, diagnostics)
    findings: list[Finding] = []
    for rule in matched:
        for check in rule.checks:
            finding = apply_check(rule, check, field, index, diagnostics)
            if finding is not None:
                findings.append(finding)
    return matched, findings


def validate_field(
    field: Field,
    settings: object | None,
    rules: Sequence[Rule],
    diagnostics: Diagnostics | None = None,
) -> FieldValidation:
    """Evaluate every subfield of *field* and report rule coverage.

    Parameters
    ----------
    field:
        Transient view of one tag/occurrence.
    settings:
        Optional ``Settings``; supplies the field-exclusion policy.
    rules:
        Loaded rule list (see ``aacr2_assist.rules.loader``).
    diagnostics:
        Caller-owned advisory collector.  A private one is used when omitted,
        so an advisory is then repeated on every call; pass the session's
        collector (``RuleRegistry.diagnostics``) to report each problem once.

    Returns
    -------
    FieldValidation
        ``findings`` in subfield order, and ``coverage`` telling whether any
        rule matched at all (``covered``) and which ones (``rule_ids``).
    """
    if field is None:
        raise ValueError("field is required")
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    findings: list[Finding] = []
    rule_ids: list[str] = []
    for index, sub in enumerate(field.subfields):
        if not sub.code:
            continue
        if is_excluded_field(settings, field.tag, sub.code):
            continue
        matched, sub_findings = _evaluate_subfield(field, index, rules, diagnostics)
        for rule in matched:
            if rule.id not in rule_ids:
                rule_ids.append(rule.id)
        findings.extend(sub_findings)

    logger.debug(
        "validate_field: tag=%s occurrence=%s subfields=%d findings=%d rules=%d",
        field.tag,
        field.occurrence,
        len(field.subfields),
        len(findings),
        len(rule_ids),
    )
    return FieldValidation(
        findings=tuple(findings),
        coverage=Coverage(covered=bool(rule_ids), rule_ids=tuple(rule_ids)),
    )


def validate_record(
    record: Record,
    settings: object | None,
    rules: Sequence[Rule],
    strict_coverage: bool = False,
    diagnostics: Diagnostics | None = None,
) -> RecordValidation:
    """Evaluate every field of *record*.

    With *strict_coverage*, every subfield that matched zero rules yields an
    informational ``AACR2_COVERAGE_MISSING`` finding with no proposed fix.
    """
    if record is None:
        raise ValueError("record is required")
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    findings: list[Finding] = []
    for field in record.fields:
        for index, sub in enumerate(field.subfields):
            if not sub.code:
                continue
            if is_excluded_field(settings, field.tag, sub.code):
                continue
            matched, sub_findings = _evaluate_subfield(field, index, rules, diagnostics)
            if not matched and strict_coverage:
                findings.append(
                    Finding(
                        severity=Severity.INFO.value,
                        code=CODE_COVERAGE_MISSING,
                        message=(
                            f"No AACR2 rule defined for {field.tag}${sub.code}; "
                            "no punctuation assistance applied."
                        ),
                        rationale="Strict coverage mode is enabled.",
                        tag=field.tag,
                        subfield=sub.code,
                        occurrence=field.occurrence,
                        current_value=sub.value,
                        expected_value=None,
                    )
                )
            findings.extend(sub_findings)

    logger.debug(
        "validate_record: fields=%d findings=%d strict=%s",
        len(record.fields),
        len(findings),
        strict_coverage,
    )
    return RecordValidation(findings=tuple(findings))


def is_field_covered(
    tag: str,
    subfield: str,
    ind1: str,
    ind2: str,
    rules: Sequence[Rule],
    diagnostics: Diagnostics | None = None,
) -> bool:
    """Return True if any rule could apply to ``tag$subfield``, regardless of value.

    Without *diagnostics* an unsafe rule pattern is logged on every call.
    """
    return any(rule_matches(rule, tag, subfield, ind1, ind2, diagnostics) for rule in rules)
