"""
Structured logging with key=value and JSON output support.

The client layer logs through [Logger][nostrkit.core.logger.Logger], which
attaches keyword arguments to each record; the models, nips and utils layers
use plain ``logging.getLogger(__name__)`` with ``key=%s`` messages. Installing
[StructuredFormatter][nostrkit.core.logger.StructuredFormatter] with
[configure_logging()][nostrkit.core.logger.configure_logging] renders both
kinds the same way.

Examples:
    ```python
    from nostrkit.core.logger import Logger, configure_logging

    configure_logging("DEBUG")
    logger = Logger("nostrkit.client")
    logger.info("relay_added", url="wss://relay.damus.io", relays=3)
    # info nostrkit.client relay_added url=wss://relay.damus.io relays=3
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: str, max_value_length: int | None) -> str:
    if max_value_length and len(value) > max_value_length:
        return value[:max_value_length] + f"...<truncated {len(value) - max_value_length} chars>"
    return value


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values longer than ``max_value_length`` are truncated; values that are
    empty or contain whitespace, ``=`` or quotes are escaped and quoted.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value, or None to disable.
        prefix: String prepended to a non-empty result.

    Returns:
        E.g. ``' url=wss://a reason="timed out"'``, or ``""`` for no pairs.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(str(v), max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")
    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Render records as ``level logger message key=value ...``.

    Key-value pairs come from the ``structured_kv`` extra attached by
    [Logger][nostrkit.core.logger.Logger]; records from plain stdlib loggers
    are emitted with the same prefix and no pairs.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Structured logger that appends keyword arguments to each message.

    Mirrors the stdlib logging methods with an added ``**kwargs`` parameter
    rendered as key=value pairs, or as fields of a JSON object when
    ``json_output`` is set.

    Examples:
        ```python
        logger = Logger("nostrkit.client")
        logger.warning("publish_failed", url="wss://a", error="closed")
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Name passed to ``logging.getLogger``.
            json_output: Emit JSON objects instead of key=value pairs.
            max_value_length: Truncation limit per value (default 1000).
        """
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def is_enabled_for(self, level: int) -> bool:
        """Return True if *level* would be emitted (skip building costly kwargs)."""
        return self._logger.isEnabledFor(level)

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "logger": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        truncated = {
            k: v if isinstance(v, int | float | bool) else _truncate(str(v), self._max_value_length)
            for k, v in kwargs.items()
        }
        return {"structured_kv": truncated}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)


def configure_logging(level: int | str = logging.INFO, *, json_output: bool = False) -> None:
    """Install [StructuredFormatter][nostrkit.core.logger.StructuredFormatter] on the root logger.

    Adds a stream handler when the root logger has none. With
    ``json_output`` the messages are already JSON (see
    [Logger][nostrkit.core.logger.Logger]), so a bare ``%(message)s``
    formatter is used instead.

    Args:
        level: Root log level, as a number or a name like ``"DEBUG"``.
        json_output: Pass through pre-rendered JSON messages.
    """
    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    formatter = logging.Formatter("%(message)s") if json_output else StructuredFormatter()
    for handler in root.handlers:
        handler.setFormatter(formatter)
