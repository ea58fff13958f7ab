"""MARC field views, engine output records and field-scope policy."""
