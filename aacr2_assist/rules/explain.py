"""Plain-language rendering of engine findings.

The condition sentence comes straight from ``SuffixCondition.describe()``
so that the explanation a cataloger sees matches the engine's decision
byte-for-byte.
"""
from __future__ import annotations

from aacr2_assist.marc.models import Finding


def explain_finding(finding: Finding) -> str:
    """Return a multi-line explanation for *finding*."""
    lines = [f"{finding.tag}${finding.subfield}: {finding.message}"]
    if finding.expected_value is not None:
        lines.append(f"Current: {finding.current_value!r}")
        lines.append(f"Expected: {finding.expected_value!r}")
    if finding.condition is not None:
        lines.append(finding.condition.describe())
    if finding.rationale:
        lines.append(f"Why: {finding.rationale}")
    for example in finding.examples:
        before = example.get("before")
        after = example.get("after")
        if before or after:
            lines.append(f"Example: {before!r} -> {after!r}")
    return "\n".join(lines)
