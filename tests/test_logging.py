import logging

from aacr2_assist.core.diagnostics import Diagnostics
from aacr2_assist.core.logging import RecordSafeFilter, setup_logging


def test_record_filter_redacts_url_query_string(caplog):
    logger = logging.getLogger("test.record_safe")
    logger.setLevel(logging.INFO)
    logger.filters = []
    logger.addFilter(RecordSafeFilter())

    with caplog.at_level(logging.INFO, logger="test.record_safe"):
        logger.info("Resolving 856$u https://proxy.example.edu/login?url=abc&patron=123")

    assert "patron=123" not in caplog.text
    assert "https://proxy.example.edu/login?[REDACTED]" in caplog.text


def test_record_filter_redacts_email_in_args(caplog):
    logger = logging.getLogger("test.record_args")
    logger.setLevel(logging.INFO)
    logger.filters = []
    logger.addFilter(RecordSafeFilter())

    with caplog.at_level(logging.INFO, logger="test.record_args"):
        logger.info("Local note from %s", "cataloger@example.org")

    assert "cataloger@example.org" not in caplog.text
    assert "[REDACTED]" in caplog.text


def test_setup_logging_uses_configured_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, root.handlers[:]

    try:
        setup_logging()

        assert root.level == logging.WARNING
        assert any(
            isinstance(f, RecordSafeFilter) for handler in root.handlers for f in handler.filters
        )
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_diagnostics_deduplicates_by_key(caplog):
    diagnostics = Diagnostics()

    with caplog.at_level(logging.WARNING, logger="aacr2_assist.core.diagnostics"):
        assert diagnostics.warn("k", "first") is True
        assert diagnostics.warn("k", "again") is False
        assert diagnostics.warn("other", "second") is True

    assert diagnostics.warnings == ["first", "second"]
    assert caplog.text.count("first") == 1

    diagnostics.clear()
    assert len(diagnostics) == 0
