"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so that every module logs a
snake_case event name followed by structured fields:

    info nostr_mcp.client note_published id=ab12... relays=3

Values containing spaces, equals signs, or quotes are escaped and wrapped
in double quotes; long values (note contents in particular) are truncated.

The ``StructuredFormatter`` is installed on the root handler by the CLI.
Handlers write to stderr, which keeps stdout free for the stdio MCP
transport.

Examples:
    ```python
    from nostr_mcp.core.logger import Logger

    logger = Logger("nostr_mcp.client")
    logger.info("note_published", id=event_id, relays=3)
    ```
"""

import datetime
import json
import logging
from typing import Any


DEFAULT_MAX_VALUE_LENGTH = 1000

# Characters that force a value into double quotes.
_QUOTE_TRIGGERS = frozenset(' ="\'\n')


def _truncate(value: Any, max_value_length: int | None) -> str:
    text = str(value)
    if max_value_length and len(text) > max_value_length:
        dropped = len(text) - max_value_length
        return f"{text[:max_value_length]}...<truncated {dropped} chars>"
    return text


def _render_value(text: str) -> str:
    if text and _QUOTE_TRIGGERS.isdisjoint(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def format_kv_pairs(
    fields: dict[str, Any],
    max_value_length: int | None = DEFAULT_MAX_VALUE_LENGTH,
    prefix: str = " ",
) -> str:
    """Render *fields* as ``key=value`` pairs separated by spaces.

    Empty values and values containing whitespace, ``=`` or quotes are
    double-quoted with backslash escapes. Values longer than
    *max_value_length* are cut (``None`` keeps them whole).

    Returns an empty string when *fields* is empty, otherwise *prefix*
    followed by the pairs, e.g. ``' tool=post_note note="hello world"'``.
    """
    if not fields:
        return ""
    rendered = (
        f"{key}={_render_value(_truncate(value, max_value_length))}"
        for key, value in fields.items()
    )
    return prefix + " ".join(rendered)


class StructuredFormatter(logging.Formatter):
    """Formats log records as ``level name message key=value ...``.

    Reads structured data from the ``structured_kv`` extra field attached
    by [Logger][nostr_mcp.core.logger.Logger]. Records from plain
    ``logging.getLogger()`` calls (e.g. inside ``mcp`` or ``uvicorn``) are
    emitted with the same prefix and no fields.

    With ``json_output=True`` every record becomes one JSON object per line
    (``timestamp``, ``level``, ``logger``, ``message`` plus the fields).
    """

    def __init__(self, *, json_output: bool = False) -> None:
        super().__init__()
        self._json_output = json_output

    def _as_json(self, record: logging.LogRecord, fields: dict[str, Any]) -> str:
        created = datetime.datetime.fromtimestamp(record.created, datetime.UTC)
        payload = {
            "timestamp": created.isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            **fields,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = getattr(record, "structured_kv", {})
        if self._json_output:
            return self._as_json(record, fields)
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        line += format_kv_pairs(fields)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class Logger:
    """Named logger taking structured fields as keyword arguments.

    Field values are stringified and truncated when the call is made, then
    attached to the record as ``structured_kv`` for
    [StructuredFormatter][nostr_mcp.core.logger.StructuredFormatter].

    Args:
        name: Logger name, passed to ``logging.getLogger(name)``.
        max_value_length: Per-value truncation limit, ``None`` to disable.
    """

    def __init__(
        self,
        name: str,
        *,
        max_value_length: int | None = DEFAULT_MAX_VALUE_LENGTH,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(
        self, level: int, event: str, fields: dict[str, Any], *, exc_info: bool = False
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        limit = self._max_value_length
        structured = {key: _truncate(value, limit) for key, value in fields.items()}
        extra = {"structured_kv": structured} if structured else None
        self._logger.log(level, event, extra=extra, exc_info=exc_info)

    def debug(self, event: str, **fields: Any) -> None:
        self._log(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, fields)

    def critical(self, event: str, **fields: Any) -> None:
        self._log(logging.CRITICAL, event, fields)

    def exception(self, event: str, **fields: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log(logging.ERROR, event, fields, exc_info=True)
