"""AACR2 cataloging assistance core.

Deterministic punctuation rules, free-text extraction of AI cataloging
suggestions, and the guardrail that gates AI edits before they reach an
editable field.  Every component is a pure, synchronous transformation over
in-memory inputs.
"""
