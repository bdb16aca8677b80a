"""Logging setup for the styles extractor.

Every record emitted inside a ``LogContext`` carries the bound run fields
(version, instance). The text format appends them as
``[instance=... version=...]``; the JSON format nests them under ``context``.
Credentials are redacted from messages, arguments, context and tracebacks in
both formats.
"""

from __future__ import annotations

import contextvars
import json
import logging
import time
from typing import Any

from server_styles.secrets import redact_string, redact_structure

_CONFIGURED = False

DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# urllib3 logs a connection line for every readiness check.
NOISY_LOGGERS = ("urllib3",)

_run_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "run_context", default=None
)


def get_log_context() -> dict[str, Any]:
    """Return the fields bound to the current run."""
    ctx = _run_context.get()
    return dict(ctx) if ctx else {}


class LogContext:
    """Bind fields (version, instance) to every record logged inside the block."""

    def __init__(self, **fields: Any):
        self.fields = fields
        self.token: contextvars.Token | None = None

    def __enter__(self) -> LogContext:
        current = get_log_context()
        current.update(self.fields)
        self.token = _run_context.set(current)
        return self

    def __exit__(self, *args: Any) -> None:
        if self.token is not None:
            _run_context.reset(self.token)


def _redacted_message(record: logging.LogRecord) -> str:
    msg = redact_structure(record.msg)
    args = redact_structure(record.args)
    if args:
        try:
            return redact_string(str(msg) % args)
        except (TypeError, ValueError):
            return redact_string(str(msg))
    return redact_string(str(msg))


def _context_suffix(context: dict[str, Any]) -> str:
    if not context:
        return ""
    redacted = redact_structure(context)
    return " [" + " ".join(f"{key}={redacted[key]}" for key in sorted(redacted)) + "]"


class TextFormatter(logging.Formatter):
    """``<time> | <level> | <logger> | <message> [<run fields>]``"""

    def __init__(self) -> None:
        super().__init__(datefmt=DATE_FORMAT)
        self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        line = " | ".join(
            (
                self.formatTime(record, self.datefmt),
                record.levelname,
                record.name,
                _redacted_message(record) + _context_suffix(get_log_context()),
            )
        )
        if record.exc_info:
            line = f"{line}\n{redact_string(self.formatException(record.exc_info))}"
        return line


class JsonFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(datefmt=DATE_FORMAT)
        self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": _redacted_message(record),
        }

        context = get_log_context()
        if context:
            payload["context"] = redact_structure(context)

        if record.exc_info:
            payload["exc_info"] = redact_string(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        return logging.INFO
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(*, level: str | int | None = None, fmt: str = "text") -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = _resolve_level(level)
    root = logging.getLogger()
    root.setLevel(resolved)
    if resolved > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter() if fmt.lower() == "json" else TextFormatter())
        root.addHandler(handler)

    _CONFIGURED = True


def add_logging_args(parser: Any) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO; DEBUG also shows urllib3 connection logs)",
    )
    parser.add_argument(
        "--log-format",
        default="text",
        choices=["text", "json"],
        help="Logging format (default: text)",
    )
