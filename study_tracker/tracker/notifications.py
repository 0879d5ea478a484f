"""
One-shot user-facing notices.

The engine never raises remote failures to its caller. Each failure is
delivered once to a Notifier; the default one writes it to the log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from loguru import logger

from study_tracker.tracker.errors import TrackerError

Severity = Literal["error", "warning", "info"]


@dataclass(frozen=True)
class Notice:
    """A message for the user, optionally carrying the failure behind it."""

    severity: Severity
    message: str
    error: TrackerError | None = None


Notifier = Callable[[Notice], None]


def log_notice(notice: Notice) -> None:
    """Default notifier: route the notice through loguru."""
    if notice.error is not None:
        logger.log(notice.severity.upper(), "{} ({})", notice.message, notice.error)
    else:
        logger.log(notice.severity.upper(), notice.message)


class NoticeCollector:
    """Notifier that keeps every notice, for callers that report in bulk."""

    def __init__(self) -> None:
        self.notices: list[Notice] = []

    def __call__(self, notice: Notice) -> None:
        self.notices.append(notice)

    @property
    def errors(self) -> list[Notice]:
        return [n for n in self.notices if n.severity == "error"]

    def clear(self) -> None:
        self.notices.clear()
