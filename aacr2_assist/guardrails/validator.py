"""AI patch guardrail.

Approves or rejects the patches of one structured AI response before any of
them may reach an editable field.  Checks run in a fixed order and fail
closed on the first violation; one violation discards the whole response.

Order of checks
---------------
1. identity     result is a mapping carrying the pending request's id
2. operation    every patch is ``replace_subfield``
3. scope        tag and occurrence equal the request's target field
4. subfield     the patched code was among the subfields sent
5. staleness    ``original_text`` equals the value that was sent
6. content      only punctuation and whitespace differ
7. agreement    when the rule engine has an expected value for the code,
                the replacement equals one of them

Safety rule: rejections are logged with the reason and request id only,
never with field values.
"""
from __future__ import annotations

import logging
import unicodedata
from typing import Any, Iterator, Mapping, Sequence

from aacr2_assist.core.constants import (
    OP_REPLACE_SUBFIELD,
    REJECT_MISSING_PAYLOAD,
    REJECT_MISSING_REQUEST_ID,
    REJECT_MISSING_TARGET,
    REJECT_NON_PUNCTUATION,
    REJECT_OCCURRENCE_MISMATCH,
    REJECT_ORIGINAL_MISMATCH,
    REJECT_REQUEST_ID_MISMATCH,
    REJECT_RULE_CONFLICT,
    REJECT_SCOPE_VIOLATION,
    REJECT_UNKNOWN_SUBFIELD,
    REJECT_UNSUPPORTED_OP,
)
from aacr2_assist.core.diagnostics import Diagnostics
from aacr2_assist.marc.models import Field, normalize_occurrence
from aacr2_assist.rules.engine import validate_field
from aacr2_assist.rules.models import Rule

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Punctuation-only comparison
# ---------------------------------------------------------------------------

def strip_punct_space(value: object) -> str:
    """Keep only Unicode letters and digits."""
    text = "" if value is None else str(value)
    return "".join(char for char in text if unicodedata.category(char)[0] in ("L", "N"))


def punctuation_only_change(original: object, replacement: object) -> bool:
    """True when *original* and *replacement* differ only in punctuation/whitespace."""
    return strip_punct_space(original) == strip_punct_space(replacement)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_mapping(value: object) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    dump = getattr(value, "model_dump", None)
    if callable(dump):
        return dump()
    return None


def _iter_patches(result: Mapping[str, Any]) -> Iterator[object]:
    findings = result.get("findings")
    for finding in findings if isinstance(findings, list) else []:
        if not isinstance(finding, Mapping):
            continue
        fixes = finding.get("proposed_fixes")
        for fix in fixes if isinstance(fixes, list) else []:
            if not isinstance(fix, Mapping):
                continue
            patches = fix.get("patch")
            yield from patches if isinstance(patches, list) else []


def _patch_occurrence(value: object) -> int | None:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _expected_by_code(
    field: Field,
    settings: object | None,
    rules: Sequence[Rule],
    diagnostics: Diagnostics | None,
) -> dict[str, set[str]]:
    expected: dict[str, set[str]] = {}
    validation = validate_field(field, settings, rules, diagnostics)
    for finding in validation.findings:
        for patch in finding.proposed_fixes:
            if patch.value:
                expected.setdefault(patch.code, set()).add(patch.value)
    return expected


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_ai_response_guardrails(
    payload: Mapping[str, Any] | Any,
    result: object,
    rules: Sequence[Rule],
    settings: object | None = None,
    diagnostics: Diagnostics | None = None,
) -> str:
    """Return ``""`` when every patch in *result* may be applied, else a rejection reason.

    Parameters
    ----------
    payload:
        The request that was sent: ``request_id`` plus ``tag_context`` (the
        target field with the subfield values sent).  A mapping or an
        ``AiRequestPayload``.
    result:
        The parsed AI response.
    rules:
        Rule list used to cross-check punctuation proposals.
    settings, diagnostics:
        Passed through to the rule engine.

    Raises
    ------
    ValueError
        If *payload* or *rules* is missing.
    """
    request = _as_mapping(payload)
    if request is None:
        raise ValueError("payload is required")
    if rules is None:
        raise ValueError("rules is required")

    request_id = request.get("request_id")
    reason = _check(request, result, rules, settings, diagnostics)
    if reason:
        logger.info("AI response rejected: %s (request_id=%s)", reason, request_id)
    return reason


def _check(
    request: Mapping[str, Any],
    result: object,
    rules: Sequence[Rule],
    settings: object | None,
    diagnostics: Diagnostics | None,
) -> str:
    response = _as_mapping(result)
    if response is None:
        return REJECT_MISSING_PAYLOAD
    if not response.get("request_id"):
        return REJECT_MISSING_REQUEST_ID
    if request.get("request_id") != response.get("request_id"):
        return REJECT_REQUEST_ID_MISMATCH

    tag_context = request.get("tag_context")
    tag_context = tag_context if isinstance(tag_context, Mapping) else {}
    field = Field.from_dict(tag_context)
    target_tag = field.tag
    target_occurrence = normalize_occurrence(tag_context.get("occurrence"))

    sent: dict[str, set[str]] = {}
    for sub in field.subfields:
        if sub.code:
            sent.setdefault(sub.code, set()).add(sub.value)

    expected: dict[str, set[str]] | None = None

    for patch in _iter_patches(response):
        if not isinstance(patch, Mapping) or patch.get("op") != OP_REPLACE_SUBFIELD:
            return REJECT_UNSUPPORTED_OP
        tag = patch.get("tag")
        code = patch.get("subfield") or patch.get("code")
        if not tag or not code:
            return REJECT_MISSING_TARGET
        if str(tag) != target_tag:
            return REJECT_SCOPE_VIOLATION
        if _patch_occurrence(patch.get("occurrence")) != target_occurrence:
            return REJECT_OCCURRENCE_MISMATCH
        code = str(code)
        if code not in sent:
            return REJECT_UNKNOWN_SUBFIELD

        original = "" if patch.get("original_text") is None else str(patch.get("original_text"))
        replacement = "" if patch.get("replacement_text") is None else str(patch.get("replacement_text"))
        if original not in sent[code]:
            return REJECT_ORIGINAL_MISMATCH
        if not punctuation_only_change(original, replacement):
            return REJECT_NON_PUNCTUATION

        if expected is None:
            expected = _expected_by_code(field, settings, rules, diagnostics)
        if code in expected and replacement not in expected[code]:
            return REJECT_RULE_CONFLICT

    return ""


class GuardrailValidator:
    """Stateless guardrail bound to one rule list and settings object."""

    def __init__(self, rules: Sequence[Rule], settings: object | None = None) -> None:
        if rules is None:
            raise ValueError("rules is required")
        self._rules = tuple(rules)
        self._settings = settings

    def validate(
        self,
        payload: Mapping[str, Any] | Any,
        result: object,
        diagnostics: Diagnostics | None = None,
    ) -> str:
        return validate_ai_response_guardrails(
            payload, result, self._rules, self._settings, diagnostics
        )

    def approves(self, payload: Mapping[str, Any] | Any, result: object) -> bool:
        return not self.validate(payload, result)
