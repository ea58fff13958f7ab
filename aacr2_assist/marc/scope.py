"""Tag-list parsing and field exclusion policy.

Settings express tag scopes as comma/whitespace separated entries:

* ``245``   a whole tag
* ``245a``  one subfield of a tag
* ``6XX``   a block of tags sharing the first digit
* ``9XX``   local fields
"""
from __future__ import annotations

import re

_TAG_BLOCK_RE = re.compile(r"^(\d)XX$", re.IGNORECASE)
_TAG_SUBFIELD_RE = re.compile(r"^\d{3}[a-z0-9]$", re.IGNORECASE)
_TAG_RE = re.compile(r"^\d{3}$")
_LOCAL_TAG_RE = re.compile(r"^9\d\d$")


def parse_list(value: str | None) -> list[str]:
    """Split a settings list on commas/whitespace, dropping empty entries."""
    return [item.strip() for item in re.split(r"[,\s]+", value or "") if item.strip()]


def entry_matches(entry: str, tag: str, code: str = "") -> bool:
    """Return True if the scope *entry* covers ``tag$code``."""
    block = _TAG_BLOCK_RE.match(entry)
    if block:
        return bool(re.match(rf"^{block.group(1)}\d\d$", tag))
    if _TAG_SUBFIELD_RE.match(entry):
        return entry.lower() == f"{tag}{code}".lower()
    if _TAG_RE.match(entry):
        return entry == tag
    return False


def is_local_tag(tag: str) -> bool:
    return bool(_LOCAL_TAG_RE.match(tag or ""))


def is_excluded_field(settings: object | None, tag: str, code: str = "") -> bool:
    """Return True when *settings* place ``tag$code`` outside assistance scope.

    Local 9XX fields are excluded unless ``enable_local_fields`` is set; when
    local fields are enabled with an allowlist, only allowlisted local fields are
    in scope.  ``excluded_tags`` entries are always excluded.  ``None``
    settings exclude nothing.
    """
    if settings is None:
        return False
    enable_local = bool(getattr(settings, "enable_local_fields", False))
    if not enable_local and is_local_tag(tag):
        return True
    allowlist = parse_list(getattr(settings, "local_fields_allowlist", ""))
    if enable_local and allowlist and is_local_tag(tag):
        if not any(entry_matches(entry, tag, code) for entry in allowlist):
            return True
    excluded = parse_list(getattr(settings, "excluded_tags", ""))
    return any(entry_matches(entry, tag, code) for entry in excluded)
