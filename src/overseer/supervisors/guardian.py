"""
Guardian supervisor: keyword and pattern based content policy.

The guardian holds an ordered list of free-text rule phrases. A phrase
activates a detector when it contains one of the known category markers:

    "no profanity"        -> profanity keyword detector     (confidence 0.9)
    "no personal info"    -> email / phone / SSN patterns    (confidence 0.8)
    "no harmful content"  -> harmful keyword detector        (confidence 0.7)

Rules are evaluated in order, and within a rule the categories are tried
in the order above. The first detector that triggers decides the outcome;
nothing after it is evaluated.

Redaction (apply_guardrails) is a separate capability that is never
invoked by process_request.
"""

import logging
import re
from collections.abc import Sequence

from overseer.permissions import PermissionSet
from overseer.schema import (
    ChatMessage,
    ChatSession,
    GuardianDecision,
    MessageUpdate,
    Permission,
    RequestSupervisionResult,
    ResponseSupervisionResult,
    SupervisionAction,
    SupervisorKind,
)
from overseer.supervisors.base import Supervisor, allow_request, allow_response

logger = logging.getLogger(__name__)

DEFAULT_PROFANITY_WORDS = ("badword1", "badword2")
HARMFUL_PATTERNS = ("violence", "self-harm", "illegal activities")

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")
PHONE_PATTERN = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")
SSN_PATTERN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")

REASON_PROFANITY = "Content contains inappropriate language"
REASON_PERSONAL_INFO = "Content contains personal information"
REASON_HARMFUL = "Content may be harmful"
REASON_BLOCKED = "Content blocked by guardian"
REASON_MODIFIED = "Content modified by guardian"


class GuardianSupervisor(Supervisor):
    """
    Supervisor enforcing a keyword/pattern content policy.

    Usage:
        guardian = GuardianSupervisor("guardian", "Content Guardian")
        await guardian.set_guardrail_rules(["no personal info"])
        decision = await guardian.check_content(ChatMessage.user("call 555-123-4567"))
        assert decision.allowed is False

    Attributes:
        _rules: Ordered rule phrases
        _profanity_words: Lowercase keywords for the profanity detector
        _blocked_messages: Messages this guardian blocked
        _allowed_messages: Messages this guardian let through
    """

    def __init__(
        self,
        supervisor_id: str,
        name: str,
        rules: Sequence[str] | None = None,
        profanity_words: Sequence[str] | None = None,
        permissions: PermissionSet | list[Permission] | None = None,
    ) -> None:
        super().__init__(
            supervisor_id,
            name,
            permissions
            if permissions is not None
            else [Permission.READ_ONLY, Permission.MODIFY_MESSAGES],
        )
        self._rules: list[str] = list(rules or [])
        words = profanity_words if profanity_words is not None else DEFAULT_PROFANITY_WORDS
        self._profanity_words: list[str] = [w.lower() for w in words]
        self._blocked_messages: list[ChatMessage] = []
        self._allowed_messages: list[ChatMessage] = []

    @property
    def kind(self) -> SupervisorKind:
        return SupervisorKind.GUARDIAN

    @property
    def blocked_messages(self) -> list[ChatMessage]:
        """Messages blocked so far (copy)."""
        return list(self._blocked_messages)

    @property
    def allowed_messages(self) -> list[ChatMessage]:
        """Messages allowed so far (copy)."""
        return list(self._allowed_messages)

    # =========================================================================
    # Supervision Hooks
    # =========================================================================

    async def process_request(
        self,
        session: ChatSession,
        messages: list[ChatMessage],
    ) -> RequestSupervisionResult:
        if not messages:
            return allow_request(messages)

        last_message = messages[-1]
        decision = await self.check_content(last_message)

        if not decision.allowed:
            self._blocked_messages.append(last_message)
            logger.warning("Guardian blocked message: %s", decision.reason)
            return RequestSupervisionResult(
                action=SupervisionAction.BLOCK,
                reasons=[decision.reason or REASON_BLOCKED],
                metadata={"confidence": decision.confidence},
            )

        self._allowed_messages.append(last_message)

        if decision.modified_content is not None:
            return RequestSupervisionResult(
                action=SupervisionAction.MODIFY,
                final_message=last_message.model_copy(
                    update={"content": decision.modified_content}
                ),
                reasons=[REASON_MODIFIED],
            )

        return RequestSupervisionResult(
            action=SupervisionAction.ALLOW,
            final_message=last_message,
        )

    async def process_response(
        self,
        session: ChatSession,
        response: MessageUpdate,
    ) -> ResponseSupervisionResult:
        return allow_response()

    # =========================================================================
    # Content Policy
    # =========================================================================

    async def check_content(self, message: ChatMessage) -> GuardianDecision:
        """
        Decide whether a message is acceptable under the configured rules.

        Messages without textual content are always allowed.
        """
        if not message.has_text:
            return GuardianDecision.allow()

        content = message.content.lower()

        for rule in self._rules:
            rule_lower = rule.lower()

            if "no profanity" in rule_lower and self._contains_profanity(content):
                return GuardianDecision.deny(REASON_PROFANITY, confidence=0.9)

            if "no personal info" in rule_lower and self._contains_personal_info(content):
                return GuardianDecision.deny(REASON_PERSONAL_INFO, confidence=0.8)

            if "no harmful content" in rule_lower and self._contains_harmful_content(content):
                return GuardianDecision.deny(REASON_HARMFUL, confidence=0.7)

        return GuardianDecision.allow()

    async def apply_guardrails(self, message: ChatMessage) -> ChatMessage:
        """
        Redact profanity and personal information from a message.

        Every match is replaced: profanity with [FILTERED], email addresses
        with [EMAIL], phone numbers with [PHONE] and SSN-shaped strings
        with [SSN]. Independent of the rules and of check_content().
        """
        if not message.has_text:
            return message

        content = self._filter_profanity(message.content)
        content = self._filter_personal_info(content)
        return message.model_copy(update={"content": content})

    def get_guardrail_rules(self) -> list[str]:
        """Return a copy of the current rule phrases."""
        return list(self._rules)

    async def set_guardrail_rules(self, rules: Sequence[str]) -> None:
        """Replace the rule phrases."""
        self._rules = list(rules)
        logger.info("Updated guardrail rules: %d rules set", len(self._rules))

    # =========================================================================
    # Detectors
    # =========================================================================

    def _contains_profanity(self, content: str) -> bool:
        return any(word in content for word in self._profanity_words)

    def _contains_personal_info(self, content: str) -> bool:
        return bool(
            EMAIL_PATTERN.search(content)
            or PHONE_PATTERN.search(content)
            or SSN_PATTERN.search(content)
        )

    def _contains_harmful_content(self, content: str) -> bool:
        return any(pattern in content for pattern in HARMFUL_PATTERNS)

    # =========================================================================
    # Filters
    # =========================================================================

    def _filter_profanity(self, content: str) -> str:
        for word in self._profanity_words:
            content = re.sub(
                r"\b" + re.escape(word) + r"\b",
                "[FILTERED]",
                content,
                flags=re.IGNORECASE,
            )
        return content

    def _filter_personal_info(self, content: str) -> str:
        content = EMAIL_PATTERN.sub("[EMAIL]", content)
        content = PHONE_PATTERN.sub("[PHONE]", content)
        return SSN_PATTERN.sub("[SSN]", content)
