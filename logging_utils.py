"""Tagged console logging for the analysis engine and its tools.

Messages render as ``[LEVEL][Tag] message | key=value ...`` so tick-level
diagnostics stay greppable by component.
"""
from __future__ import annotations

import logging
from typing import Any

LOGGER_NAME = "pulsebands"

_logger = logging.getLogger(LOGGER_NAME)
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s][%(tag)s] %(message)s"))
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)


class _TagAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]):
        tag = kwargs.pop("tag", "Engine")
        kwargs.setdefault("extra", {})["tag"] = tag
        return msg, kwargs


_adapter = _TagAdapter(_logger, {})


def _level_value(level: str | None) -> int:
    return getattr(logging, (level or "INFO").upper(), logging.INFO)


def _format_field(value: Any) -> str:
    # Floats are trimmed so per-tick fields stay readable
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log ``message`` under ``tag``; extra keyword fields are appended as key=value."""
    if fields:
        extras = " ".join(f"{k}={_format_field(v)}" for k, v in fields.items())
        message = f"{message} | {extras}"
    _adapter.log(_level_value(level), message, tag=tag)


def is_enabled(level: str) -> bool:
    """True when a message at ``level`` would be emitted.

    Used on the tick path to skip building DEBUG fields nobody will see.
    """
    return _logger.isEnabledFor(_level_value(level))


def set_log_level(level: str) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR)."""
    _logger.setLevel(_level_value(level))
