"""Tests for logging setup, correlation IDs and operation contexts."""

from __future__ import annotations

import io
import json
import logging

import pytest
from rich.console import Console

pytestmark = [pytest.mark.unit, pytest.mark.observability]

from btmeta.models import LogLevel, ObservabilityConfig
from btmeta.utils.exceptions import TorrentError, TorrentErrorKind
from btmeta.utils.logging_config import (
    CorrelationFilter,
    LoggingContext,
    get_correlation_id,
    get_logger,
    log_exception,
    set_correlation_id,
    setup_logging,
)
from btmeta.utils.rich_logging import create_rich_handler, strip_rich_markup


def _flush_package_handlers() -> None:
    for handler in logging.getLogger("btmeta").handlers:
        handler.flush()


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_console_handler_installed(self):
        """The package logger gets a console handler and stops propagating."""
        setup_logging(ObservabilityConfig(log_level=LogLevel.WARNING))

        package_logger = logging.getLogger("btmeta")
        assert package_logger.level == logging.WARNING
        assert package_logger.propagate is False
        assert len(package_logger.handlers) == 1

    def test_structured_file_output(self, tmp_path):
        """Structured logging writes one JSON object per record."""
        log_file = tmp_path / "logs" / "btmeta.log"
        setup_logging(
            ObservabilityConfig(
                log_level=LogLevel.DEBUG,
                log_file=str(log_file),
                structured_logging=True,
            )
        )
        set_correlation_id("corr-1234567890")

        logging.getLogger("btmeta.test").info("hello %s", "world", extra={"torrent": "x"})
        _flush_package_handlers()

        entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "btmeta.test"
        assert entry["correlation_id"] == "corr-1234567890"
        assert entry["torrent"] == "x"

    def test_plain_file_output_strips_markup(self, tmp_path):
        """The plain file format carries no Rich markup."""
        log_file = tmp_path / "btmeta.log"
        setup_logging(ObservabilityConfig(log_file=str(log_file)))

        logging.getLogger("btmeta.test").warning("[bold]careful[/bold]")
        _flush_package_handlers()

        content = log_file.read_text(encoding="utf-8")
        assert "careful" in content
        assert "[bold]" not in content
        assert "[dim]" not in content


class TestCorrelationRichHandler:
    """Test cases for the Rich console handler."""

    def test_message_markup_is_literal(self):
        """Interpolated text is escaped; the correlation tag is still styled."""
        output = io.StringIO()
        handler = create_rich_handler(console=Console(file=output, width=200), level=logging.DEBUG)
        record = logging.LogRecord(
            "btmeta", logging.WARNING, __file__, 1, "warning: %s", ("[/bold] [red]x",), None
        )
        record.correlation_id = "abcdef1234"

        handler.handle(record)

        text = output.getvalue()
        assert "warning: [/bold] [red]x" in text
        assert "abcdef12" in text
        assert "[dim]" not in text
        assert record.msg == "warning: %s"
        assert record.args == ("[/bold] [red]x",)


class TestCorrelationIds:
    """Test cases for correlation ID helpers."""

    def test_set_and_get(self):
        """Explicit IDs are stored in the current context."""
        assert set_correlation_id("abc") == "abc"
        assert get_correlation_id() == "abc"

    def test_generated_id(self):
        """A fresh ID is generated when none is given."""
        corr_id = set_correlation_id()
        assert corr_id
        assert get_correlation_id() == corr_id

    def test_filter_tags_records(self):
        """The filter copies the current ID onto each record."""
        set_correlation_id("tagged")
        record = logging.LogRecord("btmeta", logging.INFO, __file__, 1, "msg", None, None)
        assert CorrelationFilter().filter(record)
        assert record.correlation_id == "tagged"


class TestLoggingHelpers:
    """Test cases for logger helpers."""

    def test_get_logger_namespaces(self):
        """Loggers live under the btmeta namespace."""
        assert get_logger("tools").name == "btmeta.tools"
        assert get_logger("btmeta.core").name == "btmeta.core"
        assert get_logger("btmeta").name == "btmeta"

    def test_strip_rich_markup(self):
        """Markup tags are removed, text is kept."""
        assert strip_rich_markup("[red]error[/red] in [dim]x[/dim]") == "error in x"

    def test_log_exception(self, caplog):
        """Package errors are logged with their details."""
        caplog.set_level(logging.ERROR, logger="btmeta")
        logger = get_logger("test")
        try:
            raise TorrentError(TorrentErrorKind.INVALID_FORMAT, "broken", "info")
        except TorrentError as e:
            log_exception(logger, e, "loading")

        assert caplog.records[-1].details == {"field": "info"}
        assert "loading: broken" in caplog.text


class TestLoggingContext:
    """Test cases for LoggingContext."""

    def test_success(self, caplog):
        """Start and completion are logged."""
        caplog.set_level(logging.DEBUG, logger="btmeta")
        with LoggingContext("unit_op", item="a"):
            pass

        messages = [r.getMessage() for r in caplog.records]
        assert "Starting unit_op" in messages
        assert any(m.startswith("Completed unit_op in") for m in messages)
        assert caplog.records[-1].item == "a"

    def test_failure_propagates(self, caplog):
        """Exceptions are logged and re-raised."""
        caplog.set_level(logging.DEBUG, logger="btmeta")
        with pytest.raises(RuntimeError), LoggingContext("unit_op"):
            raise RuntimeError("boom")

        assert caplog.records[-1].levelno == logging.WARNING
        assert "Failed unit_op" in caplog.records[-1].getMessage()
