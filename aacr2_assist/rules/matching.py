"""Rule predicate evaluation.

A rule matches one subfield *instance* (a position within a field), not a
bare code: co-occurrence, adjacency and repeat-policy constraints are all
evaluated against the other subfields of the same field.

Rule-supplied regular expressions are configuration, not code.  A pattern
that is too long, structurally prone to catastrophic backtracking, or
invalid is treated as "never matches" and reported once per distinct
pattern on the caller's ``Diagnostics`` collector.
"""
from __future__ import annotations

import logging
import re
from typing import Sequence

from aacr2_assist.core.diagnostics import Diagnostics
from aacr2_assist.marc.models import Field, Subfield
from aacr2_assist.rules.models import RepeatPolicy, Rule

logger = logging.getLogger(__name__)

MAX_PATTERN_LENGTH: int = 100

# A quantified group that itself contains a quantifier: (a+)+, (\w*)*, (x|y+){2,}
_NESTED_QUANTIFIER_RE = re.compile(r"\((?:[^()\\]|\\.)*[+*}](?:[^()\\]|\\.)*\)\s*[+*{]")
_BACKREFERENCE_RE = re.compile(r"\\[1-9]|\(\?P=")
_WILDCARD_INDICATORS = frozenset({"", "*"})


def unsafe_pattern_reason(pattern: str) -> str | None:
    """Return why *pattern* is rejected, or ``None`` if it is acceptable."""
    if len(pattern) > MAX_PATTERN_LENGTH:
        return f"longer than {MAX_PATTERN_LENGTH} characters"
    if _NESTED_QUANTIFIER_RE.search(pattern):
        return "nested quantifier"
    if _BACKREFERENCE_RE.search(pattern):
        return "backreference"
    try:
        re.compile(pattern)
    except re.error as exc:
        return f"invalid expression ({exc})"
    return None


def pattern_matches(pattern: str, value: str, diagnostics: Diagnostics | None) -> bool:
    """``re.search`` *pattern* in *value*; unsafe patterns never match."""
    reason = unsafe_pattern_reason(pattern)
    if reason is not None:
        if diagnostics is not None:
            diagnostics.warn(
                f"unsafe_pattern:{pattern}",
                f"Rule pattern rejected ({reason}); the rule will never match: {pattern!r}",
            )
        else:
            logger.warning("Rule pattern rejected (%s); the rule will never match", reason)
        return False
    return re.search(pattern, value) is not None


def indicator_matches(value: str, rule_value: str | tuple[str, ...] | None) -> bool:
    """Exact, set-membership or wildcard (``None``, ``""``, ``"*"``) match."""
    if rule_value is None:
        return True
    if isinstance(rule_value, tuple):
        if not rule_value:
            return True
        return value in rule_value
    if rule_value in _WILDCARD_INDICATORS:
        return True
    return rule_value == value


def _populated(sub: Subfield) -> bool:
    return bool(sub.code) and bool(sub.value and sub.value.strip())


def _present_elsewhere(subfields: Sequence[Subfield], index: int, code: str) -> bool:
    return any(
        i != index and _populated(sub) and sub.code.lower() == code
        for i, sub in enumerate(subfields)
    )


def _nearest_populated(subfields: Sequence[Subfield], index: int, step: int) -> Subfield | None:
    i = index + step
    while 0 <= i < len(subfields):
        if _populated(subfields[i]):
            return subfields[i]
        i += step
    return None


def _repeat_allows(rule: Rule, subfields: Sequence[Subfield], index: int) -> bool:
    policy = rule.repeat_policy
    if policy == RepeatPolicy.ALL:
        return True
    code = subfields[index].code.lower()
    positions = [i for i, sub in enumerate(subfields) if sub.code.lower() == code]
    if policy == RepeatPolicy.FIRST_ONLY:
        return positions[0] == index
    if policy == RepeatPolicy.LAST_ONLY:
        return positions[-1] == index
    # Unknown policy: behave like "all".
    return True


def rule_matches(
    rule: Rule,
    tag: str,
    code: str,
    ind1: str,
    ind2: str,
    diagnostics: Diagnostics | None = None,
) -> bool:
    """Value-independent part of the predicate: tag, indicators, subfield code."""
    if rule.tag and rule.tag != tag:
        return False
    if rule.tag_pattern and not pattern_matches(rule.tag_pattern, tag, diagnostics):
        return False
    if not indicator_matches(ind1 or " ", rule.ind1):
        return False
    if not indicator_matches(ind2 or " ", rule.ind2):
        return False
    if rule.subfields is not None:
        return code.lower() in rule.subfields
    if rule.subfield_pattern:
        return pattern_matches(rule.subfield_pattern, code, diagnostics)
    return True


def rule_matches_instance(
    rule: Rule,
    field: Field,
    index: int,
    diagnostics: Diagnostics | None = None,
) -> bool:
    """Full predicate for the subfield at *index* of *field*."""
    subfields = field.subfields
    sub = subfields[index]
    if not rule_matches(rule, field.tag, sub.code, field.ind1, field.ind2, diagnostics):
        return False

    for code in rule.requires_subfields:
        if not _present_elsewhere(subfields, index, code):
            return False
    for code in rule.forbids_subfields:
        if _present_elsewhere(subfields, index, code):
            return False

    if rule.next_subfield_is:
        nxt = _nearest_populated(subfields, index, 1)
        if nxt is None or nxt.code.lower() not in rule.next_subfield_is:
            return False
    if rule.previous_subfield_is:
        prev = _nearest_populated(subfields, index, -1)
        if prev is None or prev.code.lower() not in rule.previous_subfield_is:
            return False

    return _repeat_allows(rule, subfields, index)


def filter_matched_rules(rules: list[Rule]) -> list[Rule]:
    """Drop fallback rules when any non-fallback rule also matched."""
    if len(rules) <= 1:
        return rules
    filtered = [rule for rule in rules if not rule.only_when_no_other_rule]
    return filtered or rules


def match_rules(
    field: Field,
    index: int,
    rules: Sequence[Rule],
    diagnostics: Diagnostics | None = None,
) -> list[Rule]:
    """Rules that apply to the subfield at *index*, fallback filtering applied."""
    matched = [rule for rule in rules if rule_matches_instance(rule, field, index, diagnostics)]
    return filter_matched_rules(matched)
