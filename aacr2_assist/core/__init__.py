"""Ambient configuration, logging, diagnostics and shared constants."""
