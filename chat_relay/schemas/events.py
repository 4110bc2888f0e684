"""
Typed events exchanged over the relay websocket.

Inbound frames are JSON objects ``{"messageType": ..., "data": ...}``.
Several payloads are double-encoded: ``data`` is itself a JSON string
(for example a reaction carries ``"[3, \\"👍\\"]"``). Outbound frames use
the same envelope with either ``data`` (a JSON string) or ``dataArray``.

Message indexes and emojis are opaque to the server. They are modelled as
``OpaqueValue`` and passed through verbatim without validation.
"""

import json
from enum import StrEnum
from typing import Annotated, Callable, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    StrictStr,
    TypeAdapter,
    ValidationError,
)

from chat_relay.constants import JSON_SEPARATORS
from chat_relay.exceptions import MalformedFrameError, UnknownEventKindError

# Any JSON value the server relays without looking inside
OpaqueValue = JsonValue


class EventKind(StrEnum):
    REGISTER = "register"
    MESSAGE = "message"
    REACTION = "reaction"
    READ_RECEIPT = "readReceipt"
    USERS = "users"


class InboundEnvelope(BaseModel):
    """Raw inbound frame before it is interpreted by kind."""

    model_config = ConfigDict(frozen=True)

    message_type: str = Field(alias="messageType")
    data: JsonValue = None


class RegisterEvent(BaseModel):
    kind: Literal[EventKind.REGISTER] = EventKind.REGISTER
    nickname: StrictStr


class ChatMessageEvent(BaseModel):
    kind: Literal[EventKind.MESSAGE] = EventKind.MESSAGE
    content: StrictStr


class ReactionEvent(BaseModel):
    kind: Literal[EventKind.REACTION] = EventKind.REACTION
    message_index: OpaqueValue
    emoji: OpaqueValue


class ReadReceiptEvent(BaseModel):
    kind: Literal[EventKind.READ_RECEIPT] = EventKind.READ_RECEIPT
    message_index: OpaqueValue


InboundEvent = Annotated[
    RegisterEvent | ChatMessageEvent | ReactionEvent | ReadReceiptEvent,
    Field(discriminator="kind"),
]

_reaction_payload = TypeAdapter(tuple[OpaqueValue, OpaqueValue])


def _build_register(data: JsonValue) -> RegisterEvent:
    return RegisterEvent(nickname=data)


def _build_message(data: JsonValue) -> ChatMessageEvent:
    return ChatMessageEvent(content=data)


def _build_reaction(data: JsonValue) -> ReactionEvent:
    if not isinstance(data, str):
        raise MalformedFrameError(
            "Reaction data must be a JSON-encoded [messageIndex, emoji] string"
        )
    message_index, emoji = _reaction_payload.validate_json(data)
    return ReactionEvent(message_index=message_index, emoji=emoji)


def _build_read_receipt(data: JsonValue) -> ReadReceiptEvent:
    return ReadReceiptEvent(message_index=data)


_INBOUND_BUILDERS: dict[EventKind, Callable[[JsonValue], InboundEvent]] = {
    EventKind.REGISTER: _build_register,
    EventKind.MESSAGE: _build_message,
    EventKind.REACTION: _build_reaction,
    EventKind.READ_RECEIPT: _build_read_receipt,
}


def parse_frame(raw: str | bytes) -> InboundEvent:
    """
    Decode one inbound websocket frame into a typed event.

    Args:
        raw: Frame contents. Binary frames are decoded as UTF-8.

    Returns:
        The typed inbound event.

    Raises:
        MalformedFrameError: The frame is not UTF-8, not a JSON envelope,
            or its payload does not fit its event kind.
        UnknownEventKindError: ``messageType`` names no inbound event kind.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFrameError("Frame is not valid UTF-8") from e

    try:
        envelope = InboundEnvelope.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedFrameError(
            f"Invalid envelope: {e.error_count()} validation error(s)"
        ) from e

    try:
        kind = EventKind(envelope.message_type)
    except ValueError:
        raise UnknownEventKindError(envelope.message_type) from None

    builder = _INBOUND_BUILDERS.get(kind)
    if builder is None:
        # "users" is outbound only
        raise UnknownEventKindError(envelope.message_type)

    try:
        return builder(envelope.data)
    except ValidationError as e:
        raise MalformedFrameError(f"Invalid {kind} payload") from e


class MessagePayload(BaseModel):
    sender: str = Field(serialization_alias="from")
    message: str
    time: int


class ReactionPayload(BaseModel):
    message_index: OpaqueValue = Field(serialization_alias="messageIndex")
    emoji: OpaqueValue
    sender: str | None = Field(serialization_alias="from")


class ReadReceiptPayload(BaseModel):
    message_index: OpaqueValue = Field(serialization_alias="messageIndex")
    user: str | None


class OutboundEnvelope(BaseModel):
    """
    Frame broadcast identically to every open connection.

    Exactly one of ``data`` and ``data_array`` is set. ``data`` holds the
    nested payload as a compact JSON string.
    """

    model_config = ConfigDict(frozen=True)

    message_type: EventKind = Field(serialization_alias="messageType")
    data: str | None = None
    data_array: list[str] | None = Field(
        default=None, serialization_alias="dataArray"
    )

    @classmethod
    def users(cls, nicknames: list[str]) -> "OutboundEnvelope":
        return cls(message_type=EventKind.USERS, data_array=list(nicknames))

    @classmethod
    def message(cls, payload: MessagePayload) -> "OutboundEnvelope":
        return cls(message_type=EventKind.MESSAGE, data=_encode(payload))

    @classmethod
    def reaction(cls, payload: ReactionPayload) -> "OutboundEnvelope":
        return cls(message_type=EventKind.REACTION, data=_encode(payload))

    @classmethod
    def read_receipt(cls, payload: ReadReceiptPayload) -> "OutboundEnvelope":
        return cls(message_type=EventKind.READ_RECEIPT, data=_encode(payload))

    def to_text(self) -> str:
        """Serialize the envelope to the text frame sent on the wire."""
        return json.dumps(
            self.model_dump(mode="json", by_alias=True, exclude_none=True),
            separators=JSON_SEPARATORS,
            ensure_ascii=False,
        )


def _encode(payload: BaseModel) -> str:
    return json.dumps(
        payload.model_dump(mode="json", by_alias=True),
        separators=JSON_SEPARATORS,
        ensure_ascii=False,
    )
