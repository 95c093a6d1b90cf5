"""Frozen dataclasses and enums for a human-vs-AI debate session."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from debatesim.errors import ValidationError
from debatesim.word_counter import count_words


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Side(str, Enum):
    FOR = "for"
    AGAINST = "against"

    def opposite(self) -> "Side":
        return Side.AGAINST if self is Side.FOR else Side.FOR


class Sender(str, Enum):
    HUMAN = "human"
    AI = "ai"


# The party allowed to speak next is always one of the two senders.
Turn = Sender


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class HistoryEntry:
    role: Role
    content: str


@dataclass(frozen=True)
class Message:
    """A committed message. Immutable once appended to a session."""

    id: str
    sender: Sender
    content: str
    created_at: datetime
    word_count: int

    @classmethod
    def create(
        cls,
        sender: Sender,
        content: str,
        *,
        message_id: str | None = None,
        created_at: datetime | None = None,
    ) -> "Message":
        return cls(
            id=message_id or new_id(),
            sender=sender,
            content=content,
            created_at=created_at or utcnow(),
            word_count=count_words(content),
        )


@dataclass(frozen=True)
class PendingMessage:
    """The "thinking" placeholder shown while the AI reply is in flight."""

    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    label: str = "Thinking..."
    sender: Sender = Sender.AI


@dataclass(frozen=True)
class Session:
    id: str
    topic: str
    human_side: Side
    turn: Turn
    started_at: datetime
    messages: tuple[Message | PendingMessage, ...] = ()
    ended_at: datetime | None = None

    @classmethod
    def new(cls, topic: str, human_side: Side | str) -> "Session":
        """Create a fresh session. The AI always holds the first turn."""
        topic = (topic or "").strip()
        if not topic:
            raise ValidationError("Topic is required")
        try:
            side = Side(human_side)
        except ValueError as exc:
            raise ValidationError(f"Side must be 'for' or 'against', got {human_side!r}") from exc
        return cls(
            id=new_id(),
            topic=topic,
            human_side=side,
            turn=Sender.AI,
            started_at=utcnow(),
        )

    @property
    def ai_side(self) -> Side:
        return self.human_side.opposite()

    @property
    def active(self) -> bool:
        return self.ended_at is None

    @property
    def committed_messages(self) -> tuple[Message, ...]:
        return tuple(m for m in self.messages if isinstance(m, Message))

    @property
    def pending(self) -> PendingMessage | None:
        for m in self.messages:
            if isinstance(m, PendingMessage):
                return m
        return None

    def append(self, message: Message | PendingMessage) -> "Session":
        return replace(self, messages=self.messages + (message,))

    def replace_message(self, message_id: str, message: Message) -> "Session":
        """Swap the message with the given id, keeping its position."""
        if not any(m.id == message_id for m in self.messages):
            raise KeyError(message_id)
        return replace(
            self,
            messages=tuple(message if m.id == message_id else m for m in self.messages),
        )

    def drop_pending(self) -> "Session":
        return replace(
            self,
            messages=tuple(m for m in self.messages if not isinstance(m, PendingMessage)),
        )

    def with_turn(self, turn: Turn) -> "Session":
        return replace(self, turn=turn)

    def finish(self, ended_at: datetime | None = None) -> "Session":
        return replace(self, ended_at=ended_at or utcnow())


@dataclass(frozen=True)
class ProviderRequest:
    system_prompt: str
    history: tuple[HistoryEntry, ...] = ()


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(frozen=True)
class ProviderResponse:
    content: str
    provider_id: str
    model_id: str
    usage: TokenUsage | None = None
    latency_sec: float = 0.0
    response_id: str | None = None
