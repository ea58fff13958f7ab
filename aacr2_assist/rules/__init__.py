"""Declarative AACR2 punctuation rules.

Rules are loaded once per session from a YAML rule pack (plus cataloger
overrides) and evaluated against transient field views by
``aacr2_assist.rules.engine``.  Evaluation is pure: findings depend only on
the field, the settings and the rule list.
"""
