"""Structured diagnostics for condition and computed-value evaluation.

The engine never raises out of its public entry points. Instead, every
structural or runtime problem is reported as a Diagnostic to an injectable
sink:
- the default sink forwards to the standard library ``formrules`` logger
- DiagnosticLog collects diagnostics in memory (tests, CLI reports)
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger("formrules")


class LogLevel(Enum):
    """Diagnostic severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass
class Diagnostic:
    """A single diagnostic emitted while evaluating configuration."""
    level: LogLevel
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to serializable dict."""
        d = {
            "level": self.level.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.context:
            d["context"] = self.context
        return d

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} {json.dumps(self.context, default=repr, ensure_ascii=False)}"


# Sink signature: (diagnostic) -> None
DiagnosticSink = Callable[[Diagnostic], None]


def default_sink(diagnostic: Diagnostic) -> None:
    """Forward a diagnostic to the ``formrules`` standard library logger."""
    logger.log(_STDLIB_LEVELS[diagnostic.level], "[formrules] %s", diagnostic)


def emit(
    sink: DiagnosticSink,
    level: LogLevel,
    message: str,
    **context: Any,
) -> None:
    """Build a diagnostic and hand it to ``sink``.

    A failing sink must not break evaluation, so its errors are routed to
    the standard library logger instead.
    """
    try:
        sink(Diagnostic(level=level, message=message, context=context))
    except Exception:
        logger.exception("[formrules] diagnostic sink failed")


class DiagnosticLog:
    """Sink that keeps every diagnostic in memory."""

    def __init__(self):
        self.entries: list[Diagnostic] = []

    def __call__(self, diagnostic: Diagnostic) -> None:
        self.entries.append(diagnostic)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.entries if d.level == LogLevel.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.entries if d.level == LogLevel.WARN]

    def messages(self) -> list[str]:
        return [d.message for d in self.entries]

    def clear(self) -> None:
        self.entries.clear()

    def to_json(self, pretty: bool = False) -> str:
        indent = 2 if pretty else None
        return json.dumps([d.to_dict() for d in self.entries], indent=indent, default=repr)

    def summary(self) -> str:
        lines = [f"Diagnostics: {len(self.errors)} errors, {len(self.warnings)} warnings"]
        for d in self.entries:
            icon = "❌" if d.level == LogLevel.ERROR else "⚠" if d.level == LogLevel.WARN else "·"
            lines.append(f"  {icon} {d}")
        return "\n".join(lines)
