"""Rule pack loader.

Loads the base rule pack from a YAML (or JSON, which YAML accepts) file and
merges cataloger overrides supplied as a JSON string.  Overrides come in
two shapes:

* ``{"rules": [...]}``  full rule definitions appended to the pack
* ``{"AACR2": {"245a": {"prefix": "", "suffix": "."}}}``  the legacy
  per-subfield prefix/suffix table, converted into ``CUSTOM_<tag><code>``
  rules
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Mapping

import yaml

from aacr2_assist.rules.models import Rule

logger = logging.getLogger(__name__)

BUNDLED_PACK_PATH: Path = Path(__file__).parent / "packs" / "aacr2_baseline.yaml"

_LEGACY_KEY_RE = re.compile(r"^(\d{3})([a-z0-9])$", re.IGNORECASE)


def load_rule_pack(path: str | Path = BUNDLED_PACK_PATH) -> dict[str, Any]:
    """Load a rule pack document from *path*.

    Raises
    ------
    ValueError
        If the document is not a mapping or its ``rules`` entry is not a list.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a YAML mapping, got {type(data).__name__}")

    rules = data.get("rules", [])
    if not isinstance(rules, list):
        raise ValueError(f"{path}: 'rules' must be a list, got {type(rules).__name__}")

    logger.info("Loaded rule pack %s (%d rules)", path.name, len(rules))
    return data


def _parse_custom(custom_rules_raw: str | Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not custom_rules_raw:
        return {}
    if isinstance(custom_rules_raw, Mapping):
        return custom_rules_raw
    try:
        parsed = json.loads(custom_rules_raw)
    except (TypeError, ValueError):
        logger.warning("Custom rule overrides are not valid JSON; ignoring them")
        return {}
    if not isinstance(parsed, dict):
        logger.warning("Custom rule overrides must be a JSON object; ignoring them")
        return {}
    return parsed


def legacy_rules_to_new(legacy: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Convert the legacy ``{"AACR2": {"245a": {...}}}`` table into rule dicts.

    Keys that are not a three-digit tag followed by one subfield code are
    skipped.
    """
    table = legacy.get("AACR2") if isinstance(legacy, Mapping) else None
    if not isinstance(table, Mapping):
        return []

    rules: list[dict[str, Any]] = []
    for key, spec in table.items():
        match = _LEGACY_KEY_RE.match(str(key))
        if not match:
            logger.debug("Skipping legacy override with malformed key %r", key)
            continue
        spec = spec if isinstance(spec, Mapping) else {}
        tag, code = match.group(1), match.group(2)
        rules.append({
            "id": f"CUSTOM_{tag}{code}",
            "tag": tag,
            "subfields": [code],
            "severity": "WARNING",
            "rationale": "Custom punctuation rule (legacy format).",
            "checks": [{
                "type": "punctuation",
                "prefix": spec.get("prefix") or "",
                "suffix": spec.get("suffix") or "",
                "suffix_mode": "always",
                "severity": "WARNING",
                "message": "Apply custom AACR2 punctuation.",
            }],
            "fixes": [{"label": "Apply custom punctuation"}],
        })
    return rules


def load_rules(
    rule_pack: Mapping[str, Any] | None,
    custom_rules_raw: str | Mapping[str, Any] | None = None,
) -> list[Rule]:
    """Merge *rule_pack* with cataloger overrides and parse into ``Rule`` objects.

    Malformed override JSON means "no overrides".  Non-mapping entries in
    either rule list are dropped.
    """
    base = list((rule_pack or {}).get("rules") or [])
    custom = _parse_custom(custom_rules_raw)

    custom_rules = custom.get("rules")
    if isinstance(custom_rules, list):
        extra = custom_rules
    else:
        extra = legacy_rules_to_new(custom)

    rules = [Rule.from_dict(item) for item in base + list(extra) if isinstance(item, Mapping)]
    logger.debug("Rules loaded: base=%d custom=%d", len(base), len(extra))
    return rules
