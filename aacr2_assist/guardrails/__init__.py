"""Guardrail that gates AI-proposed patches before they reach a field."""
