"""
Supervision chains for Overseer.

- SupervisionManager: Registry, session rosters, request/response chains
- EventChannel / SupervisionEvent: Typed notifications from the manager
"""

from overseer.supervision.events import (
    EventChannel,
    SupervisionEvent,
    SupervisionEventKind,
)
from overseer.supervision.manager import SupervisionManager

__all__ = [
    "EventChannel",
    "SupervisionEvent",
    "SupervisionEventKind",
    "SupervisionManager",
]
