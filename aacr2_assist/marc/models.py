"""In-memory MARC field views and the engine's output records.

A ``Field`` is a transient view of one tag/occurrence built by the caller at
validation time.  ``Finding`` and ``Patch`` are produced fresh on every
evaluation and are never mutated afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from aacr2_assist.core.constants import DEFAULT_FIX_LABEL, OP_REPLACE_SUBFIELD


def normalize_occurrence(value: object) -> int:
    """Return *value* as a non-negative occurrence index (``0`` when unusable)."""
    if value is None or value == "" or isinstance(value, bool):
        return 0
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return parsed if parsed >= 0 else 0


def normalize_indicator(value: object) -> str:
    """Single-character indicator; absent or empty becomes a blank."""
    text = "" if value is None else str(value)
    return text[:1] if text else " "


@dataclass(frozen=True)
class Subfield:
    code: str
    value: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Subfield:
        value = data.get("value")
        return cls(
            code=str(data.get("code") or ""),
            value="" if value is None else str(value),
        )


@dataclass(frozen=True)
class Field:
    """One MARC data field: tag, indicators and ordered subfields."""

    tag: str
    ind1: str = " "
    ind2: str = " "
    occurrence: int = 0
    subfields: tuple[Subfield, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Field:
        """Build a Field from a form-binding dict; absent indicators become blanks."""
        raw_subs = data.get("subfields") or []
        subfields = tuple(
            Subfield.from_dict(sub) for sub in raw_subs if isinstance(sub, Mapping)
        )
        return cls(
            tag=str(data.get("tag") or ""),
            ind1=normalize_indicator(data.get("ind1")),
            ind2=normalize_indicator(data.get("ind2")),
            occurrence=normalize_occurrence(data.get("occurrence")),
            subfields=subfields,
        )

    def with_value(self, index: int, value: str) -> Field:
        """Return a copy with the subfield at *index* replaced by *value*."""
        subs = list(self.subfields)
        subs[index] = Subfield(code=subs[index].code, value=value)
        return Field(
            tag=self.tag,
            ind1=self.ind1,
            ind2=self.ind2,
            occurrence=self.occurrence,
            subfields=tuple(subs),
        )


@dataclass(frozen=True)
class Record:
    fields: tuple[Field, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Record:
        raw_fields = data.get("fields") or []
        return cls(fields=tuple(Field.from_dict(f) for f in raw_fields if isinstance(f, Mapping)))


@dataclass(frozen=True)
class Patch:
    """Replacement of exactly one subfield occurrence."""

    tag: str
    code: str
    occurrence: int
    value: str
    op: str = OP_REPLACE_SUBFIELD

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.op,
            "tag": self.tag,
            "code": self.code,
            "occurrence": self.occurrence,
            "value": self.value,
        }


@dataclass(frozen=True)
class SuffixCondition:
    """Why a follower-dependent suffix was trimmed, added or left alone.

    The ``describe()`` text is shown to catalogers verbatim and must stay
    stable across releases.
    """

    action: str  # "trim" | "add" | "keep"
    follower_present: bool
    following_subfields: tuple[str, ...] = ()

    def describe(self) -> str:
        codes = ", ".join(f"${code}" for code in self.following_subfields) or "none configured"
        if self.action == "trim":
            lead = "Trailing punctuation trimmed"
        elif self.action == "keep":
            lead = "No punctuation added"
        elif self.follower_present:
            lead = "Punctuation added"
        else:
            lead = "Terminal punctuation added"
        if self.follower_present:
            return f"{lead} because a following subfield is present (considered: {codes})."
        return f"{lead} because no following subfield is present (considered: {codes})."

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "follower_present": self.follower_present,
            "following_subfields": list(self.following_subfields),
            "description": self.describe(),
        }


@dataclass(frozen=True)
class Finding:
    severity: str
    code: str
    message: str
    rationale: str
    tag: str
    subfield: str
    occurrence: int
    current_value: str
    expected_value: str | None
    condition: SuffixCondition | None = None
    proposed_fixes: tuple[Patch, ...] = ()
    fix_label: str = DEFAULT_FIX_LABEL
    examples: tuple[Mapping[str, Any], ...] = field(default=(), compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Render the wire shape shared with AI responses."""
        data: dict[str, Any] = {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "rationale": self.rationale,
            "tag": self.tag,
            "subfield": self.subfield,
            "occurrence": self.occurrence,
            "current_value": self.current_value,
            "expected_value": self.expected_value,
            "examples": [dict(example) for example in self.examples],
            "proposed_fixes": [
                {"label": self.fix_label, "patch": [patch.to_dict()]}
                for patch in self.proposed_fixes
            ],
        }
        if self.condition is not None:
            data["condition"] = self.condition.to_dict()
        return data


@dataclass(frozen=True)
class Coverage:
    covered: bool
    rule_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class FieldValidation:
    findings: tuple[Finding, ...] = ()
    coverage: Coverage = field(default_factory=lambda: Coverage(covered=False))


@dataclass(frozen=True)
class RecordValidation:
    findings: tuple[Finding, ...] = ()
