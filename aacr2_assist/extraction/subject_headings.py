"""Structured subject heading objects.

Canonical shape (the ``subjects`` entries of a structured AI response)::

    {"tag": "650", "ind1": " ", "ind2": "0",
     "subfields": {"a": "Cats", "x": ["Behavior"], "y": ["20th century"],
                   "z": [], "v": []}}

Free-text headings are split on ``--``: the first segment is ``$a``,
chronological segments (a 3-4 digit year or an "Nth century" phrase) go to
``$y``, segments explicitly marked ``$z Texas`` / ``v: Maps`` keep their
code, and everything else is a topical ``$x``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

DEFAULT_SUBJECT_TAG = "650"
DEFAULT_SUBJECT_IND1 = " "
DEFAULT_SUBJECT_IND2 = "0"
DEFAULT_MAX_SUBFIELDS = 20

SUBDIVISION_CODES: tuple[str, ...] = ("x", "y", "z", "v")

_YEAR_RE = re.compile(r"\b\d{3,4}\b")
_CENTURY_RE = re.compile(r"\b\d{1,2}(?:st|nd|rd|th)\s+century\b", re.IGNORECASE)
_EXPLICIT_DOLLAR_RE = re.compile(r"^\$([xyvz])\s*(.+)$", re.IGNORECASE)
_EXPLICIT_LABEL_RE = re.compile(r"^([xyvz])\s*[:=]\s*(.+)$", re.IGNORECASE)
# "650 0 Cats" (display form: indicators directly after the tag), then
# looser spacings such as "650 00 Cats".
_DISPLAY_PREFIX_RE = re.compile(r"^(6\d{2})([0-9 ])([0-9 ])\s+(.+)$")
_TAG_PREFIX_RE = re.compile(r"^(6\d{2})\s*([0-9 ])\s*([0-9 ])\s*[:\-]?\s*(.+)$")
_SEGMENT_SPLIT_RE = re.compile(r"\s*--\s*")
_TRAILING_SEMICOLON_RE = re.compile(r"\s*;\s*$")


@dataclass(frozen=True)
class SubjectHeading:
    a: str
    tag: str = DEFAULT_SUBJECT_TAG
    ind1: str = DEFAULT_SUBJECT_IND1
    ind2: str = DEFAULT_SUBJECT_IND2
    x: tuple[str, ...] = ()
    y: tuple[str, ...] = ()
    z: tuple[str, ...] = ()
    v: tuple[str, ...] = ()

    def subdivisions(self) -> list[str]:
        """Subdivision values in display order (x, y, z, v)."""
        return [*self.x, *self.y, *self.z, *self.v]

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "ind1": self.ind1,
            "ind2": self.ind2,
            "subfields": {
                "a": self.a,
                "x": list(self.x),
                "y": list(self.y),
                "z": list(self.z),
                "v": list(self.v),
            },
        }


def is_chronological_subdivision(text: str) -> bool:
    if not text:
        return False
    return bool(_YEAR_RE.search(text) or _CENTURY_RE.search(text))


def explicit_subdivision_code(value: str) -> tuple[str, str] | None:
    """``"$z Texas"`` / ``"z: Texas"`` -> ``("z", "Texas")``; ``None`` otherwise."""
    text = (value or "").strip()
    if not text:
        return None
    match = _EXPLICIT_DOLLAR_RE.match(text) or _EXPLICIT_LABEL_RE.match(text)
    if not match:
        return None
    return match.group(1).lower(), match.group(2).strip()


def _as_list(value: object) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    text = str(value).strip()
    return [text] if text else []


def _cap(subdivisions: dict[str, list[str]], max_subfields: int) -> dict[str, list[str]]:
    """Keep ``$a`` plus the earliest subdivisions so the total fits *max_subfields*."""
    budget = max(max_subfields - 1, 0)
    capped: dict[str, list[str]] = {code: [] for code in SUBDIVISION_CODES}
    for code in SUBDIVISION_CODES:
        for value in subdivisions.get(code, []):
            if budget <= 0:
                return capped
            capped[code].append(value)
            budget -= 1
    return capped


def normalize_subject_object(
    subject: object,
    max_subfields: int = DEFAULT_MAX_SUBFIELDS,
) -> SubjectHeading | None:
    """Coerce a raw subject mapping (or ``SubjectHeading``) to canonical form.

    Returns ``None`` when there is no ``$a``.
    """
    if isinstance(subject, SubjectHeading):
        subject = subject.to_dict()
    if not isinstance(subject, Mapping):
        return None

    subfields = subject.get("subfields")
    subfields = subfields if isinstance(subfields, Mapping) else {}
    a = str(subfields.get("a") or "").strip()
    if not a:
        return None

    ind1 = subject.get("ind1")
    ind2 = subject.get("ind2")
    capped = _cap({code: _as_list(subfields.get(code)) for code in SUBDIVISION_CODES}, max_subfields)
    return SubjectHeading(
        a=a,
        tag=str(subject.get("tag") or DEFAULT_SUBJECT_TAG),
        ind1=DEFAULT_SUBJECT_IND1 if ind1 is None else str(ind1),
        ind2=DEFAULT_SUBJECT_IND2 if ind2 is None else str(ind2),
        x=tuple(capped["x"]),
        y=tuple(capped["y"]),
        z=tuple(capped["z"]),
        v=tuple(capped["v"]),
    )


def subject_object_from_heading(
    text: str | None,
    defaults: Mapping[str, str] | None = None,
    max_subfields: int = DEFAULT_MAX_SUBFIELDS,
) -> SubjectHeading | None:
    """Parse ``"650 0 Cats -- Behavior -- 20th century"`` into a ``SubjectHeading``."""
    value = (text or "").strip() if isinstance(text, str) else ""
    if not value:
        return None

    defaults = defaults or {}
    tag = defaults.get("tag") or DEFAULT_SUBJECT_TAG
    ind1 = defaults.get("ind1") or DEFAULT_SUBJECT_IND1
    ind2 = defaults.get("ind2") or DEFAULT_SUBJECT_IND2

    prefix = _DISPLAY_PREFIX_RE.match(value) or _TAG_PREFIX_RE.match(value)
    if prefix:
        tag, ind1, ind2 = prefix.group(1), prefix.group(2), prefix.group(3)
        value = prefix.group(4).strip()

    value = _TRAILING_SEMICOLON_RE.sub("", value)
    parts = [part.strip() for part in _SEGMENT_SPLIT_RE.split(value) if part.strip()]
    if not parts:
        return None

    a, rest = parts[0], parts[1:]
    buckets: dict[str, list[str]] = {code: [] for code in SUBDIVISION_CODES}
    for part in rest:
        explicit = explicit_subdivision_code(part)
        if explicit and explicit[1]:
            buckets[explicit[0]].append(explicit[1])
        elif is_chronological_subdivision(part):
            buckets["y"].append(part)
        else:
            buckets["x"].append(part)

    return normalize_subject_object(
        {"tag": tag, "ind1": ind1, "ind2": ind2, "subfields": {"a": a, **buckets}},
        max_subfields=max_subfields,
    )


def subjects_from_heading_list(
    items: Iterable[object] | None,
    defaults: Mapping[str, str] | None = None,
    max_subfields: int = DEFAULT_MAX_SUBFIELDS,
) -> list[SubjectHeading]:
    """Normalize a mixed list of heading strings and subject mappings."""
    if not isinstance(items, (list, tuple)):
        return []
    subjects: list[SubjectHeading] = []
    for item in items:
        if isinstance(item, (Mapping, SubjectHeading)):
            subject = normalize_subject_object(item, max_subfields=max_subfields)
        else:
            subject = subject_object_from_heading(item, defaults, max_subfields=max_subfields)
        if subject is not None:
            subjects.append(subject)
    return subjects


def heading_text(subject: SubjectHeading) -> str:
    """``"Cats -- Behavior"``: the heading without its tag label."""
    return " -- ".join([subject.a, *subject.subdivisions()])


def format_subject_display(subject: object) -> str:
    """``"650 0 Cats -- Behavior"``; ``""`` for unusable input."""
    normalized = normalize_subject_object(subject)
    if normalized is None:
        return ""
    label = f"{normalized.tag}{normalized.ind1 or ' '}{normalized.ind2 or ' '}"
    return f"{label} {heading_text(normalized)}".strip()
