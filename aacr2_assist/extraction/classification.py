"""LC classification number extraction from AI prose.

Pipeline
--------
1. ``normalize_lc_text``   dash variants become ``-``; whitespace collapses.
2. Range blanking          ``QA76 - QA76.9`` style spans are overwritten with
                           spaces in a per-call character buffer so a range
                           is never read as two single class numbers.
3. Single-number scan      ``CLASS NUMBER`` matches; common English words and
                           MARC tag references (``050 $a``) are discarded.
4. Ranking                 proximity to classification keywords, plus a
                           bonus for candidates inside a nearby ``{...}``.
5. Dedupe                  case-insensitive, first (highest ranked) wins.

A range anywhere in the text disqualifies the suggestion altogether; see
``detect_classification_range``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from aacr2_assist.core.constants import CLASSIFICATION_RANGE_MESSAGE

_DASH_RE = re.compile(r"[‒–—−]")
_WHITESPACE_RE = re.compile(r"\s+")

_NUMBER = r"\d{1,4}(?:\.\d+)?"
_RANGE_RE = re.compile(
    rf"\b([A-Z]{{1,3}})\s*({_NUMBER})\s*-\s*(?:([A-Z]{{1,3}})\s*)?({_NUMBER})\b",
    re.IGNORECASE,
)
_NUMERIC_RANGE_RE = re.compile(rf"^{_NUMBER}\s*-\s*{_NUMBER}$")
_SINGLE_RE = re.compile(rf"\b([A-Z]{{1,3}})\s*({_NUMBER})\b", re.IGNORECASE)
_MARC_TAG_TAIL_RE = re.compile(r"^\s*\$[a-z0-9]", re.IGNORECASE)
_TAG_NUMBER_RE = re.compile(r"^\d{3}$")

_LABELLED_LINE_RE = re.compile(
    r"\b(?:classification|call number|lc class(?:ification)?|lcc)\b"
    r"(?:\s*\([^)]*\))?\s*[:\-]\s*([^\r\n]+)",
    re.IGNORECASE,
)
_LC_LABEL_RE = re.compile(rf"\b(lc)\b\s*[:\-]\s*([A-Z]{{1,3}}\s*{_NUMBER})", re.IGNORECASE)
_TARGET_RE = re.compile(r"^(\d{3})\s*\$\s*([a-z0-9])$", re.IGNORECASE)
_TARGET_COMPACT_RE = re.compile(r"^(\d{3})([a-z0-9])$", re.IGNORECASE)

# Words that look like a 1-3 letter class followed by a number in prose
# ("published IN 1999", "THE 2nd edition").
BLOCKED_CLASS_PREFIXES: frozenset[str] = frozenset({
    "AND", "ARE", "BUT", "CAN", "FOR", "FROM", "HAD", "HAS", "HAVE",
    "HER", "HIS", "ITS", "MAY", "NOT", "OUR", "THE", "THIS", "THAT",
    "TOO", "WAS", "WERE", "WHO", "YOU",
    "IN", "OF", "ON", "TO", "BY", "AT", "OR", "IS",
    "NO", "PP", "VOL",
})

CLASSIFICATION_KEYWORDS: tuple[str, ...] = (
    "lc classification",
    "lc class",
    "lcc",
    "lc",
    "classification",
    "call number",
    "call no",
)

_NEAR_DISTANCE = 80
_FAR_DISTANCE = 200
_BRACE_SPAN = 400


@dataclass(frozen=True)
class ClassificationCandidate:
    value: str
    start_offset: int
    score: int = 0


@dataclass(frozen=True)
class LcTarget:
    """Where an accepted class number is written, e.g. ``050$a``."""

    tag: str
    code: str


def normalize_lc_text(text: str | None) -> str:
    """Replace dash variants with ``-`` and collapse whitespace runs."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", _DASH_RE.sub("-", str(text)))


def format_lc_call_number(cls: str, number: str) -> str:
    if not cls or not number:
        return ""
    return f"{cls.upper()} {number}"


def is_blocked_class_prefix(value: str) -> bool:
    return (value or "").strip().upper() in BLOCKED_CLASS_PREFIXES


def _looks_like_marc_tag_reference(text: str, end: int, number: str) -> bool:
    if not _TAG_NUMBER_RE.match(number):
        return False
    return bool(_MARC_TAG_TAIL_RE.match(text[end:end + 6]))


def _keyword_positions(text: str) -> list[int]:
    lower = text.lower()
    positions: list[int] = []
    for keyword in CLASSIFICATION_KEYWORDS:
        for match in re.finditer(rf"\b{re.escape(keyword)}", lower):
            positions.append(match.start())
    return positions


def _score(text: str, start: int, keyword_positions: list[int]) -> int:
    score = 0
    for pos in keyword_positions:
        distance = abs(start - pos)
        if distance <= _NEAR_DISTANCE:
            score += 3
        elif distance <= _FAR_DISTANCE:
            score += 1
    before = text.rfind("{", 0, start + 1)
    after = text.find("}", start)
    if before >= 0 and after > start and after - before <= _BRACE_SPAN:
        score += 1
    return score


def _blank_ranges(normalized: str) -> str:
    buffer = list(normalized)
    for match in _RANGE_RE.finditer(normalized):
        for i in range(match.start(), match.end()):
            buffer[i] = " "
    return "".join(buffer)


def extract_lc_candidates(text: str | None) -> list[ClassificationCandidate]:
    """Return ranked, de-duplicated single class-number candidates found in *text*."""
    normalized = normalize_lc_text(text)
    if not normalized:
        return []

    scrubbed = _blank_ranges(normalized)
    keyword_positions = _keyword_positions(normalized)

    candidates: list[ClassificationCandidate] = []
    for match in _SINGLE_RE.finditer(scrubbed):
        cls, number = match.group(1).upper(), match.group(2)
        if is_blocked_class_prefix(cls):
            continue
        if _looks_like_marc_tag_reference(scrubbed, match.end(), number):
            continue
        value = format_lc_call_number(cls, number)
        if value:
            candidates.append(
                ClassificationCandidate(
                    value=value,
                    start_offset=match.start(),
                    score=_score(normalized, match.start(), keyword_positions),
                )
            )

    candidates.sort(key=lambda cand: (-cand.score, cand.start_offset))

    ordered: list[ClassificationCandidate] = []
    seen: set[str] = set()
    for cand in candidates:
        key = cand.value.lower()
        if key in seen:
            continue
        seen.add(key)
        ordered.append(cand)
    return ordered


def extract_lc_call_numbers(text: str | None) -> list[str]:
    """Ranked class-number strings (``"QA 76.73"``) found in *text*."""
    return [cand.value for cand in extract_lc_candidates(text)]


def extract_classification_from_text(text: str | None) -> str:
    """Best single class number in *text*, or ``""``.

    A labelled line (``Classification: ...``) is preferred, then an
    ``LC: QA76`` form, then the best candidate anywhere in the text.
    """
    if not text:
        return ""
    text = str(text)

    match = _LABELLED_LINE_RE.search(text)
    if match:
        values = extract_lc_call_numbers(match.group(1))
        if values:
            return values[0]

    match = _LC_LABEL_RE.search(text)
    if match:
        values = extract_lc_call_numbers(match.group(2))
        if values:
            return values[0]

    values = extract_lc_call_numbers(text)
    return values[0] if values else ""


def detect_classification_range(text: str | None) -> str:
    """Return the range rejection message if *text* contains a class range, else ``""``."""
    normalized = normalize_lc_text(text).strip()
    if not normalized:
        return ""
    for match in _RANGE_RE.finditer(normalized):
        if not is_blocked_class_prefix(match.group(1)):
            return CLASSIFICATION_RANGE_MESSAGE
    if _NUMERIC_RANGE_RE.match(normalized):
        return CLASSIFICATION_RANGE_MESSAGE
    return ""


def parse_lc_target(target: str | None) -> LcTarget | None:
    """Parse ``"050$a"`` / ``"050 $ a"`` / ``"050a"``; ``None`` when malformed."""
    value = (target or "").strip()
    match = _TARGET_RE.match(value) or _TARGET_COMPACT_RE.match(value)
    if not match:
        return None
    return LcTarget(tag=match.group(1), code=match.group(2).lower())
