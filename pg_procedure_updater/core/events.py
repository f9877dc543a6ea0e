"""Status and warning events emitted while updating a script.

The core never writes to the console. Every condition worth telling the user
about becomes an :class:`UpdateEvent`, which is logged through the package
logger and handed to an optional callback (the CLI uses the logger only,
tests inspect the collected events).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from pg_procedure_updater.utils.logger import get_logger

logger = get_logger(__name__)


class Severity(Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class UpdateEvent:
    severity: Severity
    message: str
    object_name: Optional[str] = None
    file: Optional[str] = None
    line: Optional[str] = None


EventCallback = Callable[[UpdateEvent], None]


class EventReporter:
    """Collects events for one update pass."""

    def __init__(self, callback: Optional[EventCallback] = None) -> None:
        self.callback = callback
        self.events: List[UpdateEvent] = []

    def report(self, severity: Severity, message: str, **context: Optional[str]) -> UpdateEvent:
        event = UpdateEvent(severity, message, **context)
        self.events.append(event)
        logger.log(_LOG_LEVELS[severity], message)
        if self.callback:
            self.callback(event)
        return event

    def info(self, message: str, **context: Optional[str]) -> UpdateEvent:
        return self.report(Severity.INFO, message, **context)

    def warning(self, message: str, **context: Optional[str]) -> UpdateEvent:
        return self.report(Severity.WARNING, message, **context)

    def error(self, message: str, **context: Optional[str]) -> UpdateEvent:
        return self.report(Severity.ERROR, message, **context)

    def debug(self, message: str) -> None:
        """Verbose progress; logged but not recorded as an event."""
        logger.debug(message)

    def of_severity(self, severity: Severity) -> List[UpdateEvent]:
        return [event for event in self.events if event.severity == severity]
