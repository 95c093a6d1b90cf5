"""Serialize finished sessions to JSON transcripts and back, plus a plain-text export."""

import json
import logging
from datetime import datetime, timezone

from debatesim.errors import MalformedTranscript
from debatesim.models import Message, Sender, Session, Side, utcnow

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

# Older transcripts recorded the human as "user".
_SENDER_ALIASES = {"user": Sender.HUMAN}

_SENDER_LABELS = {Sender.HUMAN: "You", Sender.AI: "AI"}


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with microseconds, so encoded strings sort chronologically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: object, field_name: str) -> datetime:
    if not isinstance(value, str):
        raise MalformedTranscript(f"Field '{field_name}' must be an ISO-8601 string")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MalformedTranscript(f"Field '{field_name}' is not a valid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _require(record: dict, key: str, context: str = "transcript") -> object:
    if key not in record or record[key] is None:
        raise MalformedTranscript(f"Missing required field '{key}' in {context}")
    return record[key]


def _encode_message(message: Message) -> dict:
    return {
        "id": message.id,
        "sender": message.sender.value,
        "content": message.content,
        "timestamp": format_timestamp(message.created_at),
        "wordCount": message.word_count,
    }


def to_record(session: Session, generated_at: datetime | None = None) -> dict:
    """Build the JSON-ready record. Pending placeholders are never written."""
    return {
        "version": FORMAT_VERSION,
        "id": session.id,
        "topic": session.topic,
        "userSide": session.human_side.value,
        "aiSide": session.ai_side.value,
        "currentTurn": session.turn.value,
        "startTime": format_timestamp(session.started_at),
        "endTime": format_timestamp(session.ended_at) if session.ended_at else None,
        "isActive": session.active,
        "messages": [_encode_message(m) for m in session.committed_messages],
        "generatedAt": format_timestamp(generated_at or utcnow()),
    }


def encode(session: Session, generated_at: datetime | None = None) -> bytes:
    """Encode a session as UTF-8 JSON.

    The same session always produces the same bytes apart from ``generatedAt``.
    """
    return json.dumps(to_record(session, generated_at), indent=2, ensure_ascii=False).encode("utf-8")


def _decode_message(raw: object, index: int) -> Message:
    context = f"message {index}"
    if not isinstance(raw, dict):
        raise MalformedTranscript(f"{context} is not an object")
    sender_raw = str(_require(raw, "sender", context))
    try:
        sender = _SENDER_ALIASES.get(sender_raw) or Sender(sender_raw)
    except ValueError as exc:
        raise MalformedTranscript(f"Unknown sender {sender_raw!r} in {context}") from exc
    content = _require(raw, "content", context)
    if not isinstance(content, str):
        raise MalformedTranscript(f"Field 'content' in {context} must be a string")
    message = Message.create(
        sender,
        content,
        message_id=str(_require(raw, "id", context)),
        created_at=parse_timestamp(_require(raw, "timestamp", context), f"{context}.timestamp"),
    )
    return message


def from_record(record: object) -> Session:
    if not isinstance(record, dict):
        raise MalformedTranscript("Transcript must be a JSON object")

    side_raw = _require(record, "userSide")
    try:
        human_side = Side(side_raw)
    except ValueError as exc:
        raise MalformedTranscript(f"Unknown side {side_raw!r}") from exc

    turn_raw = str(record.get("currentTurn") or Sender.HUMAN.value)
    try:
        turn = _SENDER_ALIASES.get(turn_raw) or Sender(turn_raw)
    except ValueError as exc:
        raise MalformedTranscript(f"Unknown turn {turn_raw!r}") from exc

    messages_raw = _require(record, "messages")
    if not isinstance(messages_raw, list):
        raise MalformedTranscript("Field 'messages' must be a list")

    topic = _require(record, "topic")
    if not isinstance(topic, str) or not topic.strip():
        raise MalformedTranscript("Field 'topic' must be a non-empty string")

    end_raw = record.get("endTime")
    return Session(
        id=str(_require(record, "id")),
        topic=topic,
        human_side=human_side,
        turn=turn,
        started_at=parse_timestamp(_require(record, "startTime"), "startTime"),
        messages=tuple(_decode_message(m, i) for i, m in enumerate(messages_raw)),
        ended_at=parse_timestamp(end_raw, "endTime") if end_raw is not None else None,
    )


def decode(data: bytes | str) -> Session:
    """Decode a transcript produced by :func:`encode`.

    Raises:
        MalformedTranscript: On invalid JSON, missing fields, or bad timestamps.
    """
    try:
        record = json.loads(data)
    except (ValueError, TypeError) as exc:
        raise MalformedTranscript(f"Transcript is not valid JSON: {exc}") from exc
    return from_record(record)


def format_duration(session: Session) -> str:
    if session.ended_at is None:
        return "in progress"
    total = max(0, int((session.ended_at - session.started_at).total_seconds()))
    minutes, seconds = divmod(total, 60)
    return f"{minutes}m {seconds}s"


def render_as_text(session: Session) -> str:
    """Plain-text transcript: a metadata block then one line per message."""
    messages = session.committed_messages
    lines = [
        "DebateSim Transcript",
        "",
        f"Topic: {session.topic}",
        f"Your position: {session.human_side.value}",
        f"AI position: {session.ai_side.value}",
        f"Duration: {format_duration(session)}",
        f"Messages: {len(messages)}",
        "",
    ]
    for msg in messages:
        time_str = msg.created_at.astimezone(timezone.utc).strftime("%H:%M:%S")
        lines.append(f"[{time_str}] {_SENDER_LABELS[msg.sender]}: {msg.content}")
    return "\n".join(lines) + "\n"
