"""
Structured logger for the domain expiry notifier.

Every entry carries a level, the emitting component, a message and a data
dict. Entries are written as human-readable text, JSON lines, or both.
Sensitive values such as the Slack token are masked before output.
"""

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from .enums import LogLevel


OUTPUT_FORMATS = ("json", "text", "both")

_LEVEL_NAMES = {
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "warn": LogLevel.WARN,
    "warning": LogLevel.WARN,
    "error": LogLevel.ERROR,
}


@dataclass
class LogEntry:
    """One emitted log record."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)

    def as_json(self) -> str:
        return json.dumps(
            {
                "timestamp": self.timestamp,
                "level": self.level.value,
                "component": self.component,
                "message": self.message,
                "data": self.data,
            },
            ensure_ascii=False,
            default=str,
        )

    def as_text(self) -> str:
        """Format: [TIMESTAMP] LEVEL [COMPONENT] MESSAGE {data}"""
        line = f"[{self.timestamp}] {self.level.value.upper()} [{self.component}] {self.message}"
        if self.data:
            line += " " + json.dumps(self.data, ensure_ascii=False, default=str)
        return line


def error_context(error: BaseException) -> dict:
    """Describe an exception for the data dict of an error entry."""
    context = {
        "error_message": str(error),
        "error_type": type(error).__name__,
    }
    code = getattr(error, "code", None)
    if code is not None:
        context["error_code"] = code
    return context


class AuditLogger:
    """
    Logger with dual-format output and sensitive data masking.

    Entries below ``min_level`` are dropped. With ``capture`` set, emitted
    entries are also kept in memory and exposed through ``entries``.
    """

    # Substrings that mark a data key as secret
    SENSITIVE_KEYS = frozenset({
        'token', 'secret', 'password', 'api_key', 'auth', 'authorization',
        'credential', 'private_key', 'access_token',
    })

    MASK_VALUE = "***MASKED***"

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        min_level: LogLevel = LogLevel.INFO,
        capture: bool = False,
    ):
        """
        Initialize the logger.

        Args:
            output_format: One of 'json', 'text' or 'both'
            output_stream: Where entries are written; stderr when omitted
            min_level: Lowest level that is emitted
            capture: Keep emitted entries in memory, exposed through ``entries``

        Raises:
            ValueError: If ``output_format`` is not supported
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"output_format must be one of {', '.join(OUTPUT_FORMATS)}, got {output_format!r}"
            )

        self._format = output_format
        self._stream = output_stream
        self._min_level = min_level
        self._capture = capture
        self._entries: list[LogEntry] = []

    @classmethod
    def from_config(cls, logging_config, output_stream: Optional[TextIO] = None) -> "AuditLogger":
        """Build a logger from a LoggingConfig; unknown levels mean info."""
        return cls(
            output_format=logging_config.output_format,
            output_stream=output_stream,
            min_level=_LEVEL_NAMES.get(logging_config.level.lower(), LogLevel.INFO),
        )

    @property
    def output_format(self) -> str:
        return self._format

    @property
    def min_level(self) -> LogLevel:
        return self._min_level

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level.rank >= self._min_level.rank

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Record and write an entry.

        Returns:
            The created LogEntry, or None when the level is filtered out
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=self.mask_sensitive_data(data or {}),
        )
        if self._capture:
            self._entries.append(entry)
        self._write(entry)
        return entry

    def debug(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, component, message, data)

    def info(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, component, message, data)

    def warn(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, component, message, data)

    def error(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.ERROR, component, message, data)

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[BaseException] = None,
        request_url: Optional[str] = None,
        additional_data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Log an error entry enriched with exception details.

        ``additional_data`` is copied, never modified. The exception adds
        ``error_message``, ``error_type`` and, for package errors,
        ``error_code``.
        """
        data = dict(additional_data or {})
        if error is not None:
            data.update(error_context(error))
        if request_url is not None:
            data["request_url"] = request_url
        return self.error(component, message, data)

    def is_sensitive_key(self, key: Any) -> bool:
        lowered = str(key).lower()
        return any(marker in lowered for marker in self.SENSITIVE_KEYS)

    def mask_sensitive_data(self, data: Any) -> Any:
        """Return a copy of ``data`` with secret-looking keys masked at any depth."""
        if isinstance(data, dict):
            return {
                key: self.MASK_VALUE if self.is_sensitive_key(key) else self.mask_sensitive_data(value)
                for key, value in data.items()
            }
        if isinstance(data, (list, tuple)):
            return [self.mask_sensitive_data(item) for item in data]
        return data

    def _write(self, entry: LogEntry) -> None:
        stream = self._stream or sys.stderr
        lines = []
        if self._format != "text":
            lines.append(entry.as_json())
        if self._format != "json":
            lines.append(entry.as_text())
        stream.write("\n".join(lines) + "\n")
        stream.flush()

    def clear_entries(self) -> None:
        self._entries.clear()
