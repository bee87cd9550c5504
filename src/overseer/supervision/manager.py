"""
Supervision manager: registry, session rosters and the two supervision chains.

The manager owns every supervisor instance (the registry, keyed by id) and
an ordered roster of supervisor ids per chat session. Chains are resolved
from the roster against the registry at call time; roster ids without a
registry entry are skipped silently.

Request chain (fail-closed):
    Supervisors run in roster order, each seeing the possibly rewritten
    message list of the previous one. The first block is returned as is,
    discarding reasons gathered earlier in the pass. A supervisor exception
    propagates and aborts the chain.

Response chain (fail-open):
    Same ordering and block short-circuit, but a supervisor exception is
    logged and that step is skipped.

Design Principles:
    - Sequential, never parallel: later supervisors see earlier rewrites
    - The registry is the single holder of instances; removing a
      supervisor revokes it from every roster and drops empty rosters
    - No internal locking; hosts serialize exchanges per session
    - Optional per-supervisor timeout with a configurable fallback
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from overseer.config import FallbackAction, OverseerSettings, get_settings
from overseer.errors import SupervisorNotFoundError
from overseer.schema import (
    ChatMessage,
    ChatSession,
    MessageUpdate,
    RequestSupervisionResult,
    ResponseSupervisionResult,
    SupervisionAction,
)
from overseer.supervision.events import EventChannel, SupervisionEvent, SupervisionEventKind
from overseer.supervisors.base import Supervisor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SupervisionManager:
    """
    Registry of supervisors and the chains that run them for a session.

    Usage:
        manager = SupervisionManager()
        await manager.add_supervisor(GuardianSupervisor("guardian", "Guardian"))
        manager.register_supervisor(session.id, "guardian")

        result = await manager.process_request(session, messages)
        if result.action == SupervisionAction.BLOCK:
            ...

    Attributes:
        events: Channel for lifecycle and decision notifications
        _supervisors: Registry, supervisor id -> instance
        _session_supervisors: Roster per session, an insertion-ordered id set
    """

    def __init__(self, settings: OverseerSettings | None = None) -> None:
        self._settings = settings or get_settings()
        self._supervisors: dict[str, Supervisor] = {}
        self._session_supervisors: dict[str, dict[str, None]] = {}
        self.events = EventChannel()

    @property
    def settings(self) -> OverseerSettings:
        return self._settings

    # =========================================================================
    # Registry
    # =========================================================================

    async def add_supervisor(self, supervisor: Supervisor) -> None:
        """
        Add a supervisor to the registry and initialize it.

        The registry entry is made before initialize() runs and is not
        rolled back if it fails; the error propagates to the caller.
        """
        self._supervisors[supervisor.id] = supervisor
        await supervisor.initialize()
        logger.info("Added supervisor: %s (%s)", supervisor.name, supervisor.id)
        self._emit(SupervisionEventKind.ADDED, supervisor.id)

    async def remove_supervisor(self, supervisor_id: str) -> None:
        """
        Clean up and remove a supervisor, revoking it from every session.

        Unknown ids are ignored.
        """
        supervisor = self._supervisors.get(supervisor_id)
        if supervisor is None:
            return

        await supervisor.cleanup()
        del self._supervisors[supervisor_id]

        for session_id in list(self._session_supervisors):
            roster = self._session_supervisors[session_id]
            roster.pop(supervisor_id, None)
            if not roster:
                del self._session_supervisors[session_id]

        logger.info("Removed supervisor: %s", supervisor_id)
        self._emit(SupervisionEventKind.REMOVED, supervisor_id)

    def get_supervisor(self, supervisor_id: str) -> Supervisor | None:
        """Look up a supervisor by id, returning None if absent."""
        return self._supervisors.get(supervisor_id)

    def get_all_supervisors(self) -> list[Supervisor]:
        """All registered supervisors, in insertion order."""
        return list(self._supervisors.values())

    # =========================================================================
    # Session Rosters
    # =========================================================================

    def register_supervisor(self, session_id: str, supervisor: Supervisor | str) -> None:
        """
        Add a supervisor to a session's roster.

        Registering an id twice keeps its original position. Ids missing
        from the registry are accepted and resolve to nothing, unless
        strict_registration is enabled.

        Raises:
            SupervisorNotFoundError: Unknown id with strict_registration on
        """
        supervisor_id = supervisor if isinstance(supervisor, str) else supervisor.id

        if self._settings.strict_registration and supervisor_id not in self._supervisors:
            raise SupervisorNotFoundError(supervisor_id=supervisor_id, session_id=session_id)

        self._session_supervisors.setdefault(session_id, {})[supervisor_id] = None
        logger.info("Registered supervisor %s for session %s", supervisor_id, session_id)
        self._emit(SupervisionEventKind.REGISTERED, supervisor_id, session_id)

    def unregister_supervisor(self, session_id: str, supervisor_id: str) -> None:
        """Remove a supervisor id from a session's roster."""
        roster = self._session_supervisors.get(session_id)
        if roster is None or supervisor_id not in roster:
            return

        del roster[supervisor_id]
        if not roster:
            del self._session_supervisors[session_id]

        logger.info("Unregistered supervisor %s from session %s", supervisor_id, session_id)
        self._emit(SupervisionEventKind.UNREGISTERED, supervisor_id, session_id)

    def get_session_supervisors(self, session_id: str) -> list[Supervisor]:
        """
        The effective chain for a session.

        Roster ids are resolved in insertion order; ids with no registry
        entry are dropped.
        """
        roster = self._session_supervisors.get(session_id, {})
        return [
            self._supervisors[supervisor_id]
            for supervisor_id in roster
            if supervisor_id in self._supervisors
        ]

    def get_session_ids(self) -> list[str]:
        """Sessions that currently have a (non-empty) roster."""
        return list(self._session_supervisors)

    # =========================================================================
    # Request Chain
    # =========================================================================

    async def process_request(
        self,
        session: ChatSession,
        messages: list[ChatMessage],
    ) -> RequestSupervisionResult:
        """
        Run the session's supervisors over an outgoing request.

        Args:
            session: The chat session
            messages: The message list that will be sent to the model

        Returns:
            The blocking supervisor's own result, or a composite allow/modify
            result with the rewritten last message and accumulated reasons

        Raises:
            Exception: Anything a supervisor raises (fail-closed)
        """
        chain = self.get_session_supervisors(session.id)
        working = list(messages)
        reasons: list[str] = []

        for supervisor in chain:
            try:
                result = await self._call(supervisor.process_request(session, working))
            except TimeoutError as e:
                if self._settings.supervisor_timeout_seconds is None:
                    self._request_failed(supervisor, session.id, e)
                    raise
                fallback = self._timed_out(supervisor, session.id, "request")
                if fallback == "block":
                    return RequestSupervisionResult(
                        action=SupervisionAction.BLOCK,
                        reasons=[self._timeout_reason(supervisor)],
                        metadata={"timeout": True, "supervisorId": supervisor.id},
                    )
                continue
            except Exception as e:
                self._request_failed(supervisor, session.id, e)
                raise

            if result.action == SupervisionAction.BLOCK:
                logger.info("Request blocked by supervisor %s", supervisor.id)
                self._emit(
                    SupervisionEventKind.BLOCKED,
                    supervisor.id,
                    session.id,
                    reasons=result.reasons,
                    detail={"direction": "request"},
                )
                return result

            if result.action == SupervisionAction.MODIFY and result.final_message is not None:
                if not self._modification_permitted(supervisor):
                    continue
                if working:
                    working[-1] = result.final_message
                else:
                    working.append(result.final_message)
                reasons.extend(result.reasons)
                self._emit(
                    SupervisionEventKind.MODIFIED,
                    supervisor.id,
                    session.id,
                    reasons=result.reasons,
                    detail={"direction": "request"},
                )

        return RequestSupervisionResult(
            action=SupervisionAction.MODIFY if reasons else SupervisionAction.ALLOW,
            final_message=working[-1] if working else None,
            reasons=reasons,
            metadata={
                "modificationsApplied": len(reasons),
                "supervisorsProcessed": len(chain),
            },
        )

    # =========================================================================
    # Response Chain
    # =========================================================================

    async def process_response(
        self,
        session: ChatSession,
        response: MessageUpdate,
    ) -> ResponseSupervisionResult:
        """
        Run the session's supervisors over a model response.

        A supervisor that raises is logged and skipped; the chain continues
        with the response as it was before that step.
        """
        chain = self.get_session_supervisors(session.id)
        working = response
        reasons: list[str] = []

        for supervisor in chain:
            try:
                result = await self._call(supervisor.process_response(session, working))
            except TimeoutError:
                if self._settings.supervisor_timeout_seconds is None:
                    self._response_failed(supervisor, session.id, "timed out")
                    continue
                fallback = self._timed_out(supervisor, session.id, "response")
                if fallback == "block":
                    return ResponseSupervisionResult(
                        action=SupervisionAction.BLOCK,
                        reasons=[self._timeout_reason(supervisor)],
                        metadata={"timeout": True, "supervisorId": supervisor.id},
                    )
                continue
            except Exception as e:
                self._response_failed(supervisor, session.id, str(e))
                continue

            if result.action == SupervisionAction.BLOCK:
                logger.info("Response blocked by supervisor %s", supervisor.id)
                self._emit(
                    SupervisionEventKind.BLOCKED,
                    supervisor.id,
                    session.id,
                    reasons=result.reasons,
                    detail={"direction": "response"},
                )
                return ResponseSupervisionResult(
                    action=SupervisionAction.BLOCK,
                    reasons=list(result.reasons),
                    metadata=dict(result.metadata),
                )

            if result.action == SupervisionAction.MODIFY and result.final_response is not None:
                if not self._modification_permitted(supervisor):
                    continue
                working = result.final_response
                reasons.extend(result.reasons)
                self._emit(
                    SupervisionEventKind.MODIFIED,
                    supervisor.id,
                    session.id,
                    reasons=result.reasons,
                    detail={"direction": "response"},
                )

        return ResponseSupervisionResult(
            action=SupervisionAction.ALLOW,
            final_response=working,
            reasons=reasons,
            metadata={
                "modificationsApplied": len(reasons),
                "supervisorsProcessed": len(chain),
            },
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _call(self, awaitable: Awaitable[T]) -> T:
        timeout = self._settings.supervisor_timeout_seconds
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout)

    def _timed_out(self, supervisor: Supervisor, session_id: str, direction: str) -> FallbackAction:
        if direction == "request":
            fallback = self._settings.request_timeout_fallback
        else:
            fallback = self._settings.response_timeout_fallback
        logger.warning(
            "Supervisor %s timed out on %s after %ss, applying fallback '%s'",
            supervisor.id,
            direction,
            self._settings.supervisor_timeout_seconds,
            fallback,
        )
        self._emit(
            SupervisionEventKind.TIMED_OUT,
            supervisor.id,
            session_id,
            detail={
                "direction": direction,
                "timeout": self._settings.supervisor_timeout_seconds,
                "fallback": fallback,
            },
        )
        return fallback

    def _timeout_reason(self, supervisor: Supervisor) -> str:
        return (
            f"Supervisor {supervisor.name} timed out after "
            f"{self._settings.supervisor_timeout_seconds}s"
        )

    def _request_failed(self, supervisor: Supervisor, session_id: str, error: Exception) -> None:
        self._emit(
            SupervisionEventKind.FAILED,
            supervisor.id,
            session_id,
            detail={"direction": "request", "error": str(error)},
        )

    def _response_failed(self, supervisor: Supervisor, session_id: str, error: str) -> None:
        logger.exception("Error in supervisor %s during response processing", supervisor.id)
        self._emit(
            SupervisionEventKind.FAILED,
            supervisor.id,
            session_id,
            detail={"direction": "response", "error": error},
        )

    def _modification_permitted(self, supervisor: Supervisor) -> bool:
        if not self._settings.enforce_permissions or supervisor.can_modify_messages():
            return True
        logger.warning(
            "Ignoring modification from supervisor %s: missing modify_messages permission",
            supervisor.id,
        )
        return False

    def _emit(
        self,
        kind: SupervisionEventKind,
        supervisor_id: str,
        session_id: str | None = None,
        reasons: list[str] | None = None,
        detail: dict | None = None,
    ) -> None:
        self.events.emit(
            SupervisionEvent(
                kind=kind,
                supervisor_id=supervisor_id,
                session_id=session_id,
                reasons=tuple(reasons or ()),
                detail=detail or {},
            )
        )

    def __repr__(self) -> str:
        return (
            f"<SupervisionManager: {len(self._supervisors)} supervisors, "
            f"{len(self._session_supervisors)} sessions>"
        )
