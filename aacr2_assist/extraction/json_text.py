"""Tolerant JSON recovery from model output.

Models wrap JSON in Markdown fences or surround it with prose.  These
helpers return the parsed value when one can be recovered and ``None``
otherwise; they never raise.
"""
from __future__ import annotations

import json
import re
from typing import Any

_FENCED_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.IGNORECASE | re.DOTALL)


def clean_json_text(content: object) -> str:
    """Strip whitespace and a surrounding Markdown code fence."""
    text = "" if content is None else str(content).strip()
    if not text:
        return ""
    fenced = _FENCED_RE.match(text)
    if fenced:
        return fenced.group(1).strip()
    return text


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def try_parse_json(content: object) -> Any:
    """Parse *content* as JSON, falling back to the outermost ``{...}`` then ``[...]``."""
    cleaned = clean_json_text(content)
    if not cleaned:
        return None

    parsed = _loads(cleaned)
    if parsed is not None:
        return parsed

    for opener, closer in (("{", "}"), ("[", "]")):
        start = cleaned.find(opener)
        end = cleaned.rfind(closer)
        if start != -1 and end > start:
            parsed = _loads(cleaned[start:end + 1])
            if parsed is not None:
                return parsed
    return None
