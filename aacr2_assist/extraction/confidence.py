"""Confidence percentage extraction from AI prose."""
from __future__ import annotations

import re

# Tried in order; the first match wins.
_LABELLED_RE = re.compile(
    r"confidence(?:[\s_]*percent|[\s_]*score)?[\"']?\s*[:=]?\s*([0-9]{1,3}(?:\.\d+)?)(\s*%?)",
    re.IGNORECASE,
)
_PERCENT_FIRST_RE = re.compile(r"([0-9]{1,3}(?:\.\d+)?)\s*%\s*confidence", re.IGNORECASE)
_FRACTION_RE = re.compile(r"confidence\s*[:=]?\s*([01](?:\.\d+)?)", re.IGNORECASE)
_OUT_OF_100_RE = re.compile(r"confidence\s*[:=]?\s*(\d{1,3})\s*/\s*100", re.IGNORECASE)


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def extract_confidence_percent_from_text(text: str | None) -> float | None:
    """Return a confidence in [0, 100] mentioned in *text*, or ``None``.

    A bare value of 1 or less without a ``%`` sign is read as a fraction
    (``confidence: 0.85`` -> 85).
    """
    if not text:
        return None
    text = str(text)

    match = _LABELLED_RE.search(text)
    if match:
        value = float(match.group(1))
        if "%" not in match.group(2) and value <= 1:
            value *= 100
        return clamp_percent(value)

    match = _PERCENT_FIRST_RE.search(text)
    if match:
        return clamp_percent(float(match.group(1)))

    match = _FRACTION_RE.search(text)
    if match:
        raw = float(match.group(1))
        return clamp_percent(raw * 100 if raw <= 1 else raw)

    match = _OUT_OF_100_RE.search(text)
    if match:
        return clamp_percent(float(match.group(1)))

    return None
