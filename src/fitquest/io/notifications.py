"""
Notification sinks.

The engine emits an event as the last step of an award and never depends
on its delivery: a failing sink is logged and otherwise ignored.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Protocol

logger = logging.getLogger(__name__)

EventKind = Literal["achievement_unlocked", "personal_record", "power_day", "level_up"]


@dataclass
class NotificationEvent:
    kind: EventKind
    user_id: str
    title: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


class NotificationSink(Protocol):
    def emit(self, event: NotificationEvent) -> None: ...


class LoggingSink:
    """Writes every event to the log at INFO."""

    def emit(self, event: NotificationEvent) -> None:
        logger.info("[%s] %s: %s", event.kind, event.user_id, event.title)


class MemorySink:
    """Collects events in a list; used by the CLI summary and by tests."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def emit(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: EventKind) -> list[NotificationEvent]:
        return [e for e in self.events if e.kind == kind]

    def clear(self) -> None:
        self.events.clear()


def notify(sink: NotificationSink | None, event: NotificationEvent) -> None:
    """Fire-and-forget emission."""
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception:
        logger.warning("Notification sink failed for %s event", event.kind, exc_info=True)


class Outbox:
    """
    Holds events until the operation that produced them has committed.

    flush() forwards everything to the target sink; discard() drops the
    buffer after a failed operation.
    """

    def __init__(self, target: NotificationSink | None = None) -> None:
        self.target = target
        self._pending: list[NotificationEvent] = []

    def emit(self, event: NotificationEvent) -> None:
        self._pending.append(event)

    @property
    def pending(self) -> list[NotificationEvent]:
        return list(self._pending)

    def flush(self) -> list[NotificationEvent]:
        sent, self._pending = self._pending, []
        for event in sent:
            notify(self.target, event)
        return sent

    def discard(self) -> None:
        if self._pending:
            logger.debug("Dropping %d undelivered events", len(self._pending))
        self._pending = []
