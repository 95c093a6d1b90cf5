"""Debate turn controller: owns the session, calls the provider, absorbs failures."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from debatesim.errors import PersistenceFailure
from debatesim.gateway import ProviderGateway
from debatesim.models import Message, PendingMessage, ProviderRequest, Sender, Session, Side
from debatesim.prompts import PromptBuilder
from debatesim.providers.base import ProviderError, ProviderTimeout
from debatesim.storage import TranscriptStore, save_session

logger = logging.getLogger(__name__)


class DebateState(str, Enum):
    AWAITING_OPENING = "awaiting_opening"
    HUMAN_TURN = "human_turn"
    AI_TURN = "ai_turn"
    ENDED = "ended"


@dataclass(frozen=True)
class EndResult:
    session: Session
    transcript_key: str | None = None
    save_error: PersistenceFailure | None = None

    @property
    def saved(self) -> bool:
        return self.transcript_key is not None


class DebateOrchestrator:
    """State machine: AwaitingOpening -> HumanTurn <-> AiTurn -> Ended.

    The AI always speaks first. At most one provider call is in flight at a
    time, and every provider failure is replaced with fallback text so the
    debate never stalls. Ending the debate discards any reply still in flight.
    """

    def __init__(
        self,
        session: Session,
        gateway: ProviderGateway,
        prompts: PromptBuilder,
        *,
        store: TranscriptStore | None = None,
        timeout_retries: int = 0,
        on_ai_message: Callable[[Message], None] | None = None,
    ) -> None:
        if session.messages or not session.active:
            raise ValueError("DebateOrchestrator needs a fresh, active session")
        self._session = session
        self._gateway = gateway
        self._prompts = prompts
        self._store = store
        self._timeout_retries = max(0, timeout_retries)
        self._on_ai_message = on_ai_message
        self._state = DebateState.AWAITING_OPENING
        self._opening_requested = False
        self._inflight: asyncio.Future | None = None
        self._end_result: EndResult | None = None

    @classmethod
    async def begin(
        cls,
        topic: str,
        human_side: Side | str,
        gateway: ProviderGateway,
        prompts: PromptBuilder,
        **kwargs,
    ) -> "DebateOrchestrator":
        """Create a session and immediately request the opening statement.

        Raises:
            ValidationError: If the topic is empty or the side is invalid.
        """
        orchestrator = cls(Session.new(topic, human_side), gateway, prompts, **kwargs)
        await orchestrator.start()
        return orchestrator

    @property
    def session(self) -> Session:
        return self._session

    @property
    def state(self) -> DebateState:
        return self._state

    @property
    def end_result(self) -> EndResult | None:
        return self._end_result

    async def start(self) -> Message | None:
        """Request the opening statement. Only the first call does anything."""
        if self._state is not DebateState.AWAITING_OPENING or self._opening_requested:
            return None
        self._opening_requested = True
        session = self._session
        logger.info("Debate %s: requesting opening (%s \"%s\")", session.id, session.ai_side.value, session.topic)
        request = self._prompts.build_opening_request(session.topic, session.ai_side)
        return await self._ai_turn(
            request,
            fallback=self._prompts.fallback_opening(session.topic, session.ai_side),
            label="Thinking about my opening statement...",
        )

    async def submit(self, text: str) -> Message | None:
        """Accept a human message and return the AI rebuttal.

        A submission outside the human's turn, or with no text, is ignored and
        returns None.
        """
        if self._state is not DebateState.HUMAN_TURN:
            logger.debug("Ignoring submission in state %s", self._state.value)
            return None
        text = (text or "").strip()
        if not text:
            logger.debug("Ignoring empty submission")
            return None

        prior = self._session.committed_messages
        human_message = Message.create(Sender.HUMAN, text)
        self._session = self._session.append(human_message).with_turn(Sender.AI)
        self._state = DebateState.AI_TURN

        session = self._session
        request = self._prompts.build_rebuttal_request(session.topic, session.ai_side, prior, text)
        return await self._ai_turn(
            request,
            fallback=self._prompts.fallback_rebuttal(session.topic, session.ai_side),
            label="Thinking about my response...",
        )

    def end(self) -> EndResult:
        """End the debate and persist it once. Repeated calls return the first result."""
        if self._end_result is not None:
            return self._end_result

        self._state = DebateState.ENDED
        if self._inflight is not None and not self._inflight.done():
            logger.info("Debate %s ended with a provider call in flight; cancelling it", self._session.id)
            self._inflight.cancel()

        self._session = self._session.drop_pending().finish()
        logger.info(
            "Debate %s ended after %d messages",
            self._session.id,
            len(self._session.messages),
        )

        transcript_key: str | None = None
        save_error: PersistenceFailure | None = None
        if self._store is not None:
            try:
                transcript_key = save_session(self._store, self._session)
            except PersistenceFailure as exc:
                logger.error("Failed to save transcript for %s: %s", self._session.id, exc)
                save_error = exc

        self._end_result = EndResult(
            session=self._session,
            transcript_key=transcript_key,
            save_error=save_error,
        )
        return self._end_result

    async def _ai_turn(self, request: ProviderRequest, fallback: str, label: str) -> Message | None:
        placeholder = PendingMessage(label=label)
        self._session = self._session.append(placeholder).with_turn(Sender.AI)

        try:
            content = await self._request_content(request)
        except asyncio.CancelledError:
            # The caller gave up on this turn; the placeholder must not outlive it.
            if self._state is not DebateState.ENDED:
                logger.warning("Debate %s: turn cancelled, committing fallback content", self._session.id)
                self._commit(placeholder.id, fallback)
            raise
        if content is None:
            return None
        if not content.strip():
            logger.warning("Debate %s: using fallback content", self._session.id)
            content = fallback
        return self._commit(placeholder.id, content)

    def _commit(self, placeholder_id: str, content: str) -> Message:
        """Replace the placeholder with the AI message and hand the turn back."""
        message = Message.create(Sender.AI, content, message_id=placeholder_id)
        self._session = self._session.replace_message(placeholder_id, message).with_turn(Sender.HUMAN)
        self._state = DebateState.HUMAN_TURN

        if self._on_ai_message:
            try:
                self._on_ai_message(message)
            except Exception as exc:
                logger.error("on_ai_message hook failed for message %s: %s", message.id, exc)
        return message

    async def _request_content(self, request: ProviderRequest) -> str | None:
        """Call the gateway, retrying timeouts as configured.

        Returns the reply text, "" when the provider failed, or None when the
        debate ended while the call was outstanding.
        """
        attempts = 1 + self._timeout_retries
        content = ""
        for attempt in range(1, attempts + 1):
            self._inflight = asyncio.ensure_future(self._gateway.generate(request))
            retry = False
            try:
                response = await self._inflight
                content = response.content
            except asyncio.CancelledError:
                if self._state is DebateState.ENDED:
                    logger.info("Discarded cancelled provider call for ended debate %s", self._session.id)
                    return None
                raise
            except ProviderTimeout as exc:
                retry = attempt < attempts
                logger.warning(
                    "Provider %s timed out (attempt %d/%d): %s",
                    self._gateway.provider_id, attempt, attempts, exc,
                )
            except ProviderError as exc:
                logger.warning("Provider %s failed: %s", self._gateway.provider_id, exc)
            except Exception as exc:
                logger.warning("Provider %s unexpected failure: %s", self._gateway.provider_id, exc)
            finally:
                self._inflight = None

            if self._state is DebateState.ENDED:
                logger.info("Discarded provider reply for ended debate %s", self._session.id)
                return None
            if not retry:
                break
        return content
