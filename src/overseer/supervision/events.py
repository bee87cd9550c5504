"""
Typed notification channel for supervision lifecycle and decisions.

Listeners subscribe to a manager's EventChannel and receive frozen
SupervisionEvent records synchronously, in subscription order. A listener
that raises is logged and skipped; it never changes the outcome of a
supervision chain.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class SupervisionEventKind(str, Enum):
    """What happened."""

    ADDED = "added"
    REMOVED = "removed"
    REGISTERED = "registered"
    UNREGISTERED = "unregistered"
    BLOCKED = "blocked"
    MODIFIED = "modified"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class SupervisionEvent:
    """
    A single notification.

    Attributes:
        kind: The event kind
        supervisor_id: Supervisor the event is about
        session_id: Session involved, if any
        reasons: Reasons reported with a block or modify
        detail: Extra data (error text, timeout, chain direction)
    """

    kind: SupervisionEventKind
    supervisor_id: str
    session_id: str | None = None
    reasons: tuple[str, ...] = ()
    detail: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[SupervisionEvent], None]


class EventChannel:
    """
    Explicit subscription point for supervision events.

    Usage:
        unsubscribe = manager.events.subscribe(lambda e: print(e.kind))
        ...
        unsubscribe()
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Add a listener.

        Returns:
            A callable that removes the listener again (safe to call twice)
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: SupervisionEvent) -> None:
        """Deliver an event to every listener."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Supervision event listener failed for %s", event.kind.value)

    def __len__(self) -> int:
        return len(self._listeners)
