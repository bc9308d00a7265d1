"""Rich logging integration for btmeta.

Provides a Rich console handler and a plain formatter for log files.
"""

from __future__ import annotations

import logging
import re
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

_MARKUP_RE = re.compile(r"\[/?[^\]]+\]")


class CorrelationRichHandler(RichHandler):
    """RichHandler that prefixes messages with the record's correlation ID.

    The rendered message is escaped; only the correlation tag is parsed as markup.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a record, tagging it with its correlation ID if present."""
        # Other handlers see the same record
        record = logging.makeLogRecord(record.__dict__)
        try:
            message = escape(record.getMessage())
        except Exception:
            self.handleError(record)
            return
        corr_id = getattr(record, "correlation_id", None)
        if corr_id and corr_id != "no-correlation-id":
            message = f"[dim]{escape(corr_id[:8])}[/dim] {message}"
        record.msg = message
        record.args = None
        super().emit(record)


def strip_rich_markup(text: str) -> str:
    """Strip Rich markup tags like ``[red]`` or ``[/dim]`` from text."""
    return _MARKUP_RE.sub("", text)


class FileFormatter(logging.Formatter):
    """Formatter for file output that strips Rich markup."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, stripping Rich markup for file output."""
        return strip_rich_markup(super().format(record))


def create_rich_handler(
    console: Console | None = None,
    level: int | str = logging.INFO,
    show_path: bool = False,
    rich_tracebacks: bool = True,
) -> logging.Handler:
    """Create a RichHandler with correlation ID support.

    Args:
        console: Optional Rich Console instance, defaults to stderr
        level: Log level
        show_path: Whether to show file paths in log output
        rich_tracebacks: Whether to use rich tracebacks

    Returns:
        Configured RichHandler instance

    """
    if console is None:
        console = Console(file=sys.stderr, markup=True)

    return CorrelationRichHandler(
        console=console,
        level=level,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
        markup=True,
    )
