"""
Collection supervisor: read-only recording of supervised traffic.

Records the last message of every request and every message of every
response, grouped by session, and can export what it collected as JSON,
CSV or a plain-text log. It never modifies or blocks anything.
"""

import csv
import io
import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from overseer.errors import UnsupportedExportFormatError
from overseer.permissions import PermissionSet
from overseer.schema import (
    ChatMessage,
    ChatSession,
    CollectionStats,
    MessageRole,
    MessageUpdate,
    Permission,
    RequestSupervisionResult,
    ResponseSupervisionResult,
    SupervisorKind,
)
from overseer.supervisors.base import Supervisor, allow_request, allow_response

logger = logging.getLogger(__name__)


@dataclass
class CollectedMessage:
    """One recorded message with its collection metadata."""

    message: ChatMessage
    session_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionStats:
    """Per-session message counters."""

    message_count: int = 0
    user_messages: int = 0
    assistant_messages: int = 0
    system_messages: int = 0
    first_message: datetime | None = None
    last_message: datetime | None = None


class CollectionSupervisor(Supervisor):
    """
    Supervisor that collects messages for later analysis.

    Attributes:
        _collected: Recorded messages, by session id
        _session_stats: Counters, by session id
    """

    def __init__(
        self,
        supervisor_id: str,
        name: str,
        permissions: PermissionSet | list[Permission] | None = None,
    ) -> None:
        super().__init__(
            supervisor_id,
            name,
            permissions if permissions is not None else [Permission.READ_ONLY],
        )
        self._collected: dict[str, list[CollectedMessage]] = {}
        self._session_stats: dict[str, SessionStats] = {}
        self._total_messages = 0

    @property
    def kind(self) -> SupervisorKind:
        return SupervisorKind.COLLECTION

    async def process_request(
        self,
        session: ChatSession,
        messages: list[ChatMessage],
    ) -> RequestSupervisionResult:
        if messages:
            self.collect_message(messages[-1], session.id, direction="request")
        return allow_request(messages)

    async def process_response(
        self,
        session: ChatSession,
        response: MessageUpdate,
    ) -> ResponseSupervisionResult:
        for message in response.updates:
            self.collect_message(message, session.id, direction="response")
        return allow_response()

    def collect_message(self, message: ChatMessage, session_id: str, **metadata: Any) -> None:
        """Record a message for a session."""
        entry = CollectedMessage(
            message=message,
            session_id=session_id,
            metadata={"supervisor_id": self.id, **metadata},
        )
        self._collected.setdefault(session_id, []).append(entry)
        self._total_messages += 1

        stats = self._session_stats.setdefault(session_id, SessionStats())
        stats.message_count += 1
        if stats.first_message is None:
            stats.first_message = entry.timestamp
        stats.last_message = entry.timestamp
        if message.role == MessageRole.USER:
            stats.user_messages += 1
        elif message.role == MessageRole.ASSISTANT:
            stats.assistant_messages += 1
        elif message.role == MessageRole.SYSTEM:
            stats.system_messages += 1

        logger.debug("Collected message for session %s", session_id)

    def get_session_stats(self, session_id: str) -> SessionStats | None:
        """Counters for one session, or None if nothing was collected."""
        return self._session_stats.get(session_id)

    def get_collection_stats(self) -> CollectionStats:
        """Aggregate statistics across all sessions."""
        message_types: Counter[str] = Counter()
        hourly_activity: Counter[int] = Counter()
        session_lengths: list[int] = []

        for entries in self._collected.values():
            session_lengths.append(len(entries))
            for entry in entries:
                message_types[entry.message.role.value] += 1
                hourly_activity[entry.timestamp.hour] += 1

        average = sum(session_lengths) / len(session_lengths) if session_lengths else 0.0
        most_active = [hour for hour, _ in hourly_activity.most_common(3)]

        return CollectionStats(
            total_messages=self._total_messages,
            total_sessions=len(self._collected),
            average_session_length=average,
            most_active_hours=most_active,
            message_types=dict(message_types),
        )

    def export_data(self, export_format: str) -> str:
        """
        Export collected data.

        Args:
            export_format: One of "json", "csv", "log"

        Raises:
            UnsupportedExportFormatError: For any other format
        """
        if export_format == "json":
            return self._export_json()
        if export_format == "csv":
            return self._export_csv()
        if export_format == "log":
            return self._export_log()
        raise UnsupportedExportFormatError(
            supervisor_id=self.id,
            export_format=export_format,
        )

    def _export_json(self) -> str:
        data = {
            "stats": self.get_collection_stats().model_dump(),
            "sessions": {
                session_id: [
                    {
                        "message": entry.message.model_dump(mode="json"),
                        "timestamp": entry.timestamp.isoformat(),
                        "metadata": entry.metadata,
                    }
                    for entry in entries
                ]
                for session_id, entries in self._collected.items()
            },
        }
        return json.dumps(data, indent=2, default=str)

    def _export_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["timestamp", "session_id", "role", "content", "metadata"])
        for session_id, entries in self._collected.items():
            for entry in entries:
                message = entry.message
                content = (
                    message.content
                    if message.has_text
                    else json.dumps(message.model_dump(mode="json"), default=str)
                )
                writer.writerow([
                    entry.timestamp.isoformat(),
                    session_id,
                    message.role.value,
                    content,
                    json.dumps(entry.metadata, default=str),
                ])
        return buffer.getvalue()

    def _export_log(self) -> str:
        lines = [
            f"# Collection Supervisor Log - {datetime.now(UTC).isoformat()}",
            f"# Total Messages: {self._total_messages}",
            f"# Total Sessions: {len(self._collected)}",
            "",
        ]
        for session_id, entries in self._collected.items():
            lines.append(f"## Session: {session_id}")
            lines.append(f"Messages: {len(entries)}")
            lines.append("")
            for entry in entries:
                message = entry.message
                lines.append(f"[{entry.timestamp.isoformat()}] {message.role.value.upper()}:")
                if message.has_text:
                    lines.append(message.content)
                else:
                    lines.append(json.dumps(message.model_dump(mode="json"), indent=2, default=str))
                lines.append("")
        return "\n".join(lines)
