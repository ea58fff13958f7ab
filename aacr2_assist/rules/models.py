"""Rule and Check definitions.

Rules are pure data: a matching predicate plus an ordered list of checks.
They are parsed once from a rule pack (YAML/JSON) into frozen dataclasses
and never mutated by evaluation.

Check is a tagged variant keyed by ``type``; the evaluator in
``aacr2_assist.rules.checks`` dispatches on it.  Parameters that a given
check type does not use are simply ignored.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping


class CheckType(StrEnum):
    PUNCTUATION = "punctuation"
    SEPARATOR = "separator"
    NO_TERMINAL_PUNCTUATION = "no_terminal_punctuation"
    SPACING = "spacing"
    NORMALIZE_PUNCTUATION = "normalize_punctuation"
    FIXED_FIELD = "fixed_field"


class RepeatPolicy(StrEnum):
    ALL = "all"
    FIRST_ONLY = "first_only"
    LAST_ONLY = "last_only"


VALID_CHECK_TYPES: frozenset[str] = frozenset(t.value for t in CheckType)
VALID_REPEAT_POLICIES: frozenset[str] = frozenset(p.value for p in RepeatPolicy)

PREFIX_MODES: frozenset[str] = frozenset({
    "always", "when_first", "when_preceding", "conditional_preceding",
})
SUFFIX_MODES: frozenset[str] = frozenset({
    "always", "when_following", "conditional_following", "when_last",
})
# Suffix modes whose outcome depends on a following subfield.
FOLLOWER_SUFFIX_MODES: frozenset[str] = frozenset({
    "when_following", "conditional_following", "when_last",
})


def _codes(value: object) -> tuple[str, ...]:
    """Coerce a code list (or a single code string) to a lowercase tuple."""
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        return (value.lower(),)
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(str(item).lower() for item in value if item is not None and str(item))
    return ()


def _strings(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value if item is not None and str(item))
    return ()


def _indicator_spec(value: object) -> str | tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple("" if item is None else str(item) for item in value)
    return str(value)


def _opt_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class FollowingSuffixRule:
    """Override the "if following" suffix based on the follower's value.

    ``starts_with`` is compared against the first following subfield's
    value with leading whitespace removed.
    """

    starts_with: str
    suffix: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FollowingSuffixRule:
        starts = data.get("starts_with", data.get("prefix", ""))
        return cls(starts_with=str(starts or ""), suffix=str(data.get("suffix") or ""))


@dataclass(frozen=True)
class Check:
    type: str
    severity: str | None = None
    message: str | None = None

    # punctuation: prefix resolution
    prefix: str = ""
    prefix_mode: str = "always"
    prefix_if_first: str = ""
    prefix_if_preceding: str = ""
    when_preceding_subfields: tuple[str, ...] = ()
    parallel_prefix: str = ""

    # punctuation: suffix resolution
    suffix: str = ""
    suffix_mode: str = "always"
    suffix_if_following: str = ""
    suffix_if_last: str = ""
    when_following_subfields: tuple[str, ...] = ()
    following_suffix_rules: tuple[FollowingSuffixRule, ...] = ()
    acceptable_endings: tuple[str, ...] = ()
    trim_trailing_punct: bool = True
    trim_when_following: bool = False

    # punctuation: value transforms
    case_mode: str | None = None
    replace_ellipsis: bool = False
    replace_brackets: bool = False
    strip_leading: tuple[str, ...] = ()
    strip_trailing: str = ""

    # separator
    separator: str = " -- "

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Check:
        raw_rules = data.get("following_suffix_rules") or []
        following_rules = tuple(
            FollowingSuffixRule.from_dict(item) for item in raw_rules if isinstance(item, Mapping)
        )
        return cls(
            type=str(data.get("type") or ""),
            severity=_opt_str(data.get("severity")),
            message=_opt_str(data.get("message")),
            prefix=str(data.get("prefix") or ""),
            prefix_mode=str(data.get("prefix_mode") or "always"),
            prefix_if_first=str(data.get("prefix_if_first") or ""),
            prefix_if_preceding=str(data.get("prefix_if_preceding") or ""),
            when_preceding_subfields=_codes(data.get("when_preceding_subfields")),
            parallel_prefix=str(data.get("parallel_prefix") or ""),
            suffix=str(data.get("suffix") or ""),
            suffix_mode=str(data.get("suffix_mode") or "always"),
            suffix_if_following=str(data.get("suffix_if_following") or ""),
            suffix_if_last=str(data.get("suffix_if_last") or ""),
            when_following_subfields=_codes(data.get("when_following_subfields")),
            following_suffix_rules=following_rules,
            acceptable_endings=_strings(data.get("acceptable_endings")),
            trim_trailing_punct=data.get("trim_trailing_punct") is not False,
            trim_when_following=bool(data.get("trim_when_following", False)),
            case_mode=_opt_str(data.get("case_mode")) or None,
            replace_ellipsis=bool(data.get("replace_ellipsis", False)),
            replace_brackets=bool(data.get("replace_brackets", False)),
            strip_leading=_strings(data.get("strip_leading")),
            strip_trailing=str(data.get("strip_trailing") or ""),
            separator=str(data.get("separator") or " -- "),
        )


@dataclass(frozen=True)
class Rule:
    """A declarative AACR2 rule: predicate + ordered checks."""

    id: str
    checks: tuple[Check, ...] = ()
    severity: str = "INFO"
    rationale: str = ""
    examples: tuple[Mapping[str, Any], ...] = field(default=(), compare=False)
    fix_label: str | None = None

    # predicate
    tag: str | None = None
    tag_pattern: str | None = None
    subfields: tuple[str, ...] | None = None
    subfield_pattern: str | None = None
    ind1: str | tuple[str, ...] | None = None
    ind2: str | tuple[str, ...] | None = None
    requires_subfields: tuple[str, ...] = ()
    forbids_subfields: tuple[str, ...] = ()
    next_subfield_is: tuple[str, ...] = ()
    previous_subfield_is: tuple[str, ...] = ()
    repeat_policy: str = RepeatPolicy.ALL.value
    only_when_no_other_rule: bool = False

    extra: dict = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rule:
        checks = tuple(
            Check.from_dict(item) for item in (data.get("checks") or []) if isinstance(item, Mapping)
        )
        fixes = data.get("fixes")
        fix_label = None
        if isinstance(fixes, (list, tuple)) and fixes and isinstance(fixes[0], Mapping):
            fix_label = _opt_str(fixes[0].get("label"))
        examples = tuple(
            item for item in (data.get("examples") or []) if isinstance(item, Mapping)
        )
        raw_subfields = data.get("subfields")
        repeat_policy = str(data.get("repeat_policy") or RepeatPolicy.ALL.value)

        known = {
            "id", "checks", "severity", "rationale", "examples", "fixes", "tag",
            "tag_pattern", "subfields", "subfield_pattern", "ind1", "ind2",
            "requires_subfields", "forbids_subfields", "next_subfield_is",
            "previous_subfield_is", "repeat_policy", "only_when_no_other_rule",
        }
        extra = {key: data[key] for key in data.keys() - known}

        return cls(
            id=str(data.get("id") or ""),
            checks=checks,
            severity=str(data.get("severity") or "INFO"),
            rationale=str(data.get("rationale") or ""),
            examples=examples,
            fix_label=fix_label,
            tag=_opt_str(data.get("tag")) or None,
            tag_pattern=_opt_str(data.get("tag_pattern")) or None,
            subfields=_codes(raw_subfields) if isinstance(raw_subfields, (list, tuple)) else None,
            subfield_pattern=_opt_str(data.get("subfield_pattern")) or None,
            ind1=_indicator_spec(data.get("ind1")),
            ind2=_indicator_spec(data.get("ind2")),
            requires_subfields=_codes(data.get("requires_subfields")),
            forbids_subfields=_codes(data.get("forbids_subfields")),
            next_subfield_is=_codes(data.get("next_subfield_is")),
            previous_subfield_is=_codes(data.get("previous_subfield_is")),
            repeat_policy=repeat_policy,
            only_when_no_other_rule=bool(data.get("only_when_no_other_rule", False)),
            extra=extra,
        )
