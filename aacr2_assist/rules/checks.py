"""Check evaluator: current value -> expected value.

``evaluate_check`` is the single dispatch point over the ``Check.type``
variant.  Each branch is a pure function of (check, field, index); nothing
here reads or writes shared state.

Punctuation pipeline
--------------------
1. ``replace_ellipsis``   ``...`` / ``…`` become ``--``.
2. ``replace_brackets``   ``[`` / ``]`` become ``(`` / ``)``.
3. ``strip_leading``      configured leading strings are removed.
4. ``strip_trailing``     configured trailing characters are removed.
5. ``case_mode``          lower / sentence / initial_upper / initial_lower / title.
6. prefix resolution      ``prefix_mode`` against preceding subfields; a
                          value beginning with ``=`` is a parallel title and
                          takes ``parallel_prefix`` instead.
7. suffix resolution      ``suffix_mode`` against following subfields, with
                          content-dependent overrides and acceptable endings.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Sequence

from aacr2_assist.marc.models import Field, Subfield, SuffixCondition
from aacr2_assist.rules.models import FOLLOWER_SUFFIX_MODES, Check, CheckType

_ELLIPSIS_RE = re.compile(r"\s*(?:\.\s?\.\s?\.|…)\s*")
_TERMINAL_PUNCT_RE = re.compile(r"[.,;:!?]+\s*$")
_TRAILING_PUNCT_SPACE_RE = re.compile(r"[\s.,;:!?]+$")
_TRAILING_TRIM_RE = re.compile(r"[\s.,;:!?/=]+$")
_MULTI_SPACE_RE = re.compile(r"\s{2,}")

_SPACE_BEFORE_CLOSING_RE = re.compile(r"\s+([,.!?)\]])")
_MISSING_SPACE_AFTER_RE = re.compile(r"(?<!\d),(?=[^\s)\]])|,(?=[^\s\d)\]])|([;:])(?=[^\s)\]/])")
_REPEATED_SEPARATOR_RE = re.compile(r"(?<!:)([/:;])(?:\s*\1)+")

_TITLE_WORD_RE = re.compile(r"^([(\"'\[]*)([A-Za-z][A-Za-z'.-]*)([^A-Za-z]*)$")


@dataclass(frozen=True)
class CheckOutcome:
    expected: str
    condition: SuffixCondition | None = None


# ---------------------------------------------------------------------------
# Case transforms
# ---------------------------------------------------------------------------

def _initial(text: str, upper: bool) -> str:
    for i, char in enumerate(text):
        if char.isascii() and char.isalpha():
            return text[:i] + (char.upper() if upper else char.lower()) + text[i + 1:]
    return text


def _title_word(word: str) -> str:
    if not word:
        return word
    match = _TITLE_WORD_RE.match(word)
    if not match:
        return word
    leading, core, trailing = match.groups()
    if core.upper() == core and len(core) <= 3:
        return f"{leading}{core}{trailing}"
    if re.match(r"^Mc[A-Za-z]", core):
        rest = core[2:]
        return f"{leading}Mc{rest[0].upper()}{rest[1:].lower()}{trailing}"
    if "'" in core:
        fixed = "'".join(part[:1].upper() + part[1:].lower() for part in core.split("'"))
        return f"{leading}{fixed}{trailing}"
    return f"{leading}{core[0].upper()}{core[1:].lower()}{trailing}"


def apply_case_mode(value: str, mode: str | None) -> str:
    """Apply a named case transform; unknown modes leave *value* unchanged."""
    if mode == "lower":
        return value.lower()
    if mode == "sentence":
        return _initial(value.lower(), upper=True)
    if mode == "initial_upper":
        return _initial(value, upper=True)
    if mode == "initial_lower":
        return _initial(value, upper=False)
    if mode == "title":
        return " ".join(_title_word(word) for word in re.split(r"\s+", value))
    return value


# ---------------------------------------------------------------------------
# Neighbour lookup
# ---------------------------------------------------------------------------

def _has_preceding(subfields: Sequence[Subfield], index: int, wanted: tuple[str, ...]) -> bool:
    for sub in subfields[:index]:
        if sub.code and sub.value and sub.code.lower() in wanted:
            return True
    return False


def _first_following(
    subfields: Sequence[Subfield], index: int, wanted: tuple[str, ...]
) -> Subfield | None:
    for sub in subfields[index + 1:]:
        if sub.code and sub.value and sub.code.lower() in wanted:
            return sub
    return None


# ---------------------------------------------------------------------------
# Prefix / suffix resolution
# ---------------------------------------------------------------------------

def resolve_prefix(check: Check, field: Field, index: int) -> str:
    mode = check.prefix_mode
    has_preceding = _has_preceding(field.subfields, index, check.when_preceding_subfields)
    if mode == "conditional_preceding":
        if has_preceding:
            return check.prefix_if_preceding or check.prefix
        return check.prefix_if_first
    if mode == "when_preceding":
        return (check.prefix_if_preceding or check.prefix) if has_preceding else ""
    if mode == "when_first":
        return "" if has_preceding else (check.prefix_if_first or check.prefix)
    return check.prefix


def resolve_suffix(check: Check, field: Field, index: int) -> tuple[str, SuffixCondition | None]:
    """Return ``(suffix, condition)``; condition is set for follower-dependent modes."""
    mode = check.suffix_mode
    follower = _first_following(field.subfields, index, check.when_following_subfields)
    has_following = follower is not None

    if_following = check.suffix_if_following
    if follower is not None:
        follower_text = follower.value.lstrip()
        for override in check.following_suffix_rules:
            if override.starts_with and follower_text.startswith(override.starts_with):
                if_following = override.suffix
                break

    if mode == "conditional_following":
        suffix = if_following if has_following else (check.suffix_if_last or check.suffix)
    elif mode == "when_following":
        suffix = (if_following or check.suffix) if has_following else ""
    elif mode == "when_last":
        suffix = "" if has_following else (check.suffix_if_last or check.suffix)
    else:
        return check.suffix, None

    condition = None
    if mode in FOLLOWER_SUFFIX_MODES:
        condition = SuffixCondition(
            action="add" if suffix else "keep",
            follower_present=has_following,
            following_subfields=check.when_following_subfields,
        )
    return suffix, condition


def _apply_prefix(expected: str, prefix: str) -> str:
    if not prefix:
        return expected
    prefix_trim = prefix.lstrip()
    prefix_core = prefix_trim.rstrip()
    if expected.startswith(prefix):
        return expected
    if prefix_trim and expected.startswith(prefix_trim):
        return prefix + expected[len(prefix_trim):]
    if prefix_core and expected.startswith(prefix_core):
        return prefix + expected[len(prefix_core):].lstrip()
    return prefix + expected


def _apply_suffix(expected: str, suffix: str, check: Check) -> str:
    expected_trim = expected.rstrip()
    suffix_trim = suffix.rstrip()
    if suffix_trim and expected_trim.endswith(suffix_trim):
        if suffix[-1:].isspace():
            return expected_trim + " "
        return expected_trim
    if expected.endswith(suffix):
        return expected
    suffix_to_add = suffix
    if re.match(r"^\s*\.", suffix) and re.search(r"\.\s*$", expected):
        suffix_to_add = re.sub(r"^\s*\.", "", suffix)
        expected = expected.rstrip()
    elif check.trim_trailing_punct:
        expected = _TRAILING_PUNCT_SPACE_RE.sub("", expected)
    return expected + suffix_to_add


def punctuation_expected(check: Check, field: Field, index: int) -> CheckOutcome:
    value = field.subfields[index].value

    if check.replace_ellipsis:
        value = _ELLIPSIS_RE.sub(" -- ", value).strip()
    if check.replace_brackets:
        value = value.replace("[", "(").replace("]", ")")
    for lead in check.strip_leading:
        if value.startswith(lead):
            value = value[len(lead):]
    if check.strip_trailing:
        value = value.rstrip().rstrip(check.strip_trailing)
    if check.case_mode:
        value = apply_case_mode(value, check.case_mode)

    prefix = resolve_prefix(check, field, index)
    if check.parallel_prefix and value.lstrip().startswith("="):
        prefix = check.parallel_prefix
        value = value.lstrip()

    expected = _apply_prefix(value.rstrip(), prefix)

    suffix, condition = resolve_suffix(check, field, index)

    if any(expected.rstrip().endswith(ending) for ending in check.acceptable_endings):
        return CheckOutcome(expected=expected, condition=None)

    if not suffix:
        if condition is not None and condition.follower_present and check.trim_when_following:
            trimmed = _TRAILING_TRIM_RE.sub("", expected)
            if trimmed != expected:
                expected = trimmed
                condition = replace(condition, action="trim")
        return CheckOutcome(expected=expected, condition=condition)

    return CheckOutcome(expected=_apply_suffix(expected, suffix, check), condition=condition)


# ---------------------------------------------------------------------------
# Other check types
# ---------------------------------------------------------------------------

def separator_expected(check: Check, value: str) -> str:
    separator = check.separator or " -- "
    core = separator.strip()
    expected = _TRAILING_PUNCT_SPACE_RE.sub("", value)
    if core and expected.endswith(core):
        expected = expected[: -len(core)].rstrip()
    return expected + separator


def no_terminal_punctuation_expected(value: str) -> str:
    return _TERMINAL_PUNCT_RE.sub("", value)


def spacing_expected(value: str) -> str:
    return _MULTI_SPACE_RE.sub(" ", value)


def _normalize_once(value: str) -> str:
    text = _SPACE_BEFORE_CLOSING_RE.sub(r"\1", value)
    text = _MISSING_SPACE_AFTER_RE.sub(lambda m: (m.group(1) or ",") + " ", text)
    text = re.sub(r"([,;:]) {2,}", r"\1 ", text)
    return _REPEATED_SEPARATOR_RE.sub(r"\1", text)


def normalize_punctuation_expected(value: str) -> str:
    text = value
    for _ in range(3):
        updated = _normalize_once(text)
        if updated == text:
            break
        text = updated
    return text


def evaluate_check(check: Check, field: Field, index: int) -> CheckOutcome | None:
    """Return the expected value for one check, or ``None`` for no-op / unknown types."""
    value = field.subfields[index].value
    check_type = check.type
    if check_type == CheckType.PUNCTUATION:
        return punctuation_expected(check, field, index)
    if check_type == CheckType.SEPARATOR:
        return CheckOutcome(expected=separator_expected(check, value))
    if check_type == CheckType.NO_TERMINAL_PUNCTUATION:
        return CheckOutcome(expected=no_terminal_punctuation_expected(value))
    if check_type == CheckType.SPACING:
        return CheckOutcome(expected=spacing_expected(value))
    if check_type == CheckType.NORMALIZE_PUNCTUATION:
        return CheckOutcome(expected=normalize_punctuation_expected(value))
    if check_type == CheckType.FIXED_FIELD:
        return None
    return None
