"""Subject heading extraction from AI prose.

Order of attempts
-----------------
1. Structured pre-pass: the text parses as a JSON object carrying
   ``subjects`` (list or delimited string) or an ``AI_SUBJECTS`` finding.
2. Line scan: a ``Subjects:`` / ``Subject headings -`` / ``LCSH:`` label
   starts a capture block that runs until a blank line or a
   classification / call number / confidence line.
3. Inline fallback: the same label anywhere in the text.

Captured text is split into headings on ``;``, newlines and ``|``, then on
commas by a heuristic: compound headings (``--``) are kept whole, entries
with two or more commas are split on every comma, and a single comma splits
only when both sides are single tokens ("Cats, Dogs" but not
"United States, Congress").
"""
from __future__ import annotations

import re
from typing import Iterable

from aacr2_assist.core.constants import CODE_AI_SUBJECTS
from aacr2_assist.extraction.json_text import try_parse_json
from aacr2_assist.extraction.subject_headings import heading_text, subjects_from_heading_list

_BULLET_RE = re.compile(r"^\s*[-*•‣◦⁃∙]+\s*")
_LABEL_RE = re.compile(r"\b(subjects?|subject headings?|lcsh)\b\s*[:\-]\s*(.*)", re.IGNORECASE)
_INLINE_LABEL_RE = re.compile(
    r"\b(subjects?|subject headings?|lcsh)\b\s*[:\-]\s*(.+)$",
    re.IGNORECASE | re.DOTALL,
)
# A classification / call number / confidence label, not a heading that merely
# contains the word ("Library classification", "Classification -- History").
_OTHER_LABEL = r"\b(classification|call number|confidence)\b(?:\s*\([^)]*\))?\s*(?:[:=]|-(?!-)|\d)"
_STOP_LABEL_RE = re.compile(_OTHER_LABEL, re.IGNORECASE)
_TRAILING_LABEL_RE = re.compile(_OTHER_LABEL + r".*$", re.IGNORECASE | re.DOTALL)
_ENTRY_SPLIT_RE = re.compile(r"[;\n|]+")
_WHITESPACE_RE = re.compile(r"\s")

_EM_DASH = "—"


def normalize_subject_heading(value: object) -> str:
    """Canonicalize ``--`` spacing, collapse spaces and drop a trailing ``--``."""
    text = "" if value is None else str(value).strip()
    if not text:
        return ""
    text = text.replace(_EM_DASH, "--")
    text = re.sub(r"\s*--\s*", " -- ", text)
    text = re.sub(r"\s{2,}", " ", text)
    text = re.sub(r"\s*--\s*$", "", text)
    return text.strip()


def dedupe_case_insensitive(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if not item:
            continue
        key = item.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def split_subject_entry(entry: str) -> list[str]:
    """Apply the comma heuristic to one ``;``/newline-delimited entry."""
    entry = entry.strip()
    if not entry:
        return []
    if "--" in entry or _EM_DASH in entry:
        return [entry]
    commas = entry.count(",")
    if commas >= 2:
        return [part.strip() for part in entry.split(",") if part.strip()]
    if commas == 1:
        left, right = (part.strip() for part in entry.split(","))
        if left and right and not _WHITESPACE_RE.search(left) and not _WHITESPACE_RE.search(right):
            return [left, right]
    return [entry]


def _split_entries(text: str) -> list[str]:
    headings: list[str] = []
    for entry in _ENTRY_SPLIT_RE.split(text):
        headings.extend(split_subject_entry(entry))
    return headings


def _structured_subjects(text: str) -> list[str]:
    parsed = try_parse_json(text)
    if not isinstance(parsed, dict):
        return []

    raw = parsed.get("subjects")
    items: list[object] = []
    if isinstance(raw, list):
        items = raw
    elif isinstance(raw, str):
        items = [item.strip() for item in _ENTRY_SPLIT_RE.split(raw) if item.strip()]
    elif isinstance(parsed.get("findings"), list):
        for finding in parsed["findings"]:
            if not isinstance(finding, dict):
                continue
            if CODE_AI_SUBJECTS.lower() not in str(finding.get("code") or "").lower():
                continue
            message = finding.get("message")
            if isinstance(message, str):
                items = [item.strip() for item in _ENTRY_SPLIT_RE.split(message) if item.strip()]
            break

    subjects = subjects_from_heading_list(items)
    return dedupe_case_insensitive(heading_text(subject) for subject in subjects)


def _labelled_segments(text: str) -> list[str]:
    segments: list[str] = []
    capture = False
    for line in text.splitlines():
        stripped = _BULLET_RE.sub("", line or "")
        match = _LABEL_RE.search(stripped)
        if match:
            if match.group(2).strip():
                segments.append(match.group(2))
            capture = True
            continue
        if not capture:
            continue
        if not stripped.strip() or _STOP_LABEL_RE.search(stripped):
            capture = False
            continue
        segments.append(stripped)
    return segments


def extract_subject_headings_from_text(text: str | None) -> list[str]:
    """Return de-duplicated subject heading strings found in *text* (``[]`` if none)."""
    if not text:
        return []
    text = str(text)

    structured = _structured_subjects(text)
    if structured:
        return [heading for heading in map(normalize_subject_heading, structured) if heading]

    segments = _labelled_segments(text)
    if not segments:
        inline = _INLINE_LABEL_RE.search(text)
        if inline:
            segments.append(inline.group(2))

    joined = _TRAILING_LABEL_RE.sub("", "\n".join(segments))
    headings = [normalize_subject_heading(item) for item in _split_entries(joined)]
    return dedupe_case_insensitive(heading for heading in headings if heading)
