"""Rule registry.

Holds the immutable rule list loaded once per cataloging session and hands
it to every engine call.  Lookup by id is used by explanations and by the
guardrail when reporting which rule a patch conflicts with.

The registry also owns the session's ``Diagnostics`` collector, so its
``validate_*`` helpers report each rule configuration problem once per
session instead of once per call.
"""
from __future__ import annotations

from aacr2_assist.core.diagnostics import Diagnostics
from aacr2_assist.marc.models import Field, FieldValidation, Record, RecordValidation
from aacr2_assist.rules import engine
from aacr2_assist.rules.loader import BUNDLED_PACK_PATH, load_rule_pack, load_rules
from aacr2_assist.rules.models import Rule


class RuleRegistry:
    """In-memory registry of loaded AACR2 rules, in evaluation order."""

    def __init__(self, rules: list[Rule] | None = None, diagnostics: Diagnostics | None = None) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules or ())
        self._by_id: dict[str, Rule] = {}
        for rule in self._rules:
            if rule.id:
                self._by_id.setdefault(rule.id, rule)
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def get(self, rule_id: str) -> Rule:
        """Return the first rule with *rule_id* or raise ``KeyError``."""
        try:
            return self._by_id[rule_id]
        except KeyError:
            raise KeyError(f"Rule not found: {rule_id!r}")

    def list_all(self) -> list[Rule]:
        """Return all rules in evaluation order."""
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    # ------------------------------------------------------------------
    # Engine calls sharing the session collector
    # ------------------------------------------------------------------

    def validate_field(self, field: Field, settings: object | None = None) -> FieldValidation:
        return engine.validate_field(field, settings, self._rules, self.diagnostics)

    def validate_record(
        self,
        record: Record,
        settings: object | None = None,
        strict_coverage: bool | None = None,
    ) -> RecordValidation:
        """Validate *record*; *strict_coverage* defaults to ``settings.strict_coverage``."""
        if strict_coverage is None:
            strict_coverage = bool(getattr(settings, "strict_coverage", False))
        return engine.validate_record(record, settings, self._rules, strict_coverage, self.diagnostics)

    def is_field_covered(self, tag: str, subfield: str, ind1: str = " ", ind2: str = " ") -> bool:
        return engine.is_field_covered(tag, subfield, ind1, ind2, self._rules, self.diagnostics)

    @classmethod
    def default(cls, settings: object | None = None) -> RuleRegistry:
        """Return a registry loaded from the configured (or bundled) pack plus overrides."""
        pack_path = getattr(settings, "rule_pack_path", None) or BUNDLED_PACK_PATH
        custom = getattr(settings, "custom_rules", None)
        return cls(load_rules(load_rule_pack(pack_path), custom))
