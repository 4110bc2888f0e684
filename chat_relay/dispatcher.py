"""
Event dispatcher for inbound relay frames.

Every frame is parsed into a typed event, handled according to its kind and
answered with a broadcast to all open connections. Bad frames are logged and
dropped; they never close the connection or reach other clients.
"""

import time
from typing import Callable

from fastapi import WebSocket

from chat_relay.exceptions import MalformedFrameError, UnknownEventKindError
from chat_relay.logging import logger
from chat_relay.managers.connection_manager import ConnectionManager
from chat_relay.registry import ConnectionRegistry
from chat_relay.schemas.events import (
    ChatMessageEvent,
    EventKind,
    InboundEvent,
    MessagePayload,
    OutboundEnvelope,
    ReactionEvent,
    ReactionPayload,
    ReadReceiptEvent,
    ReadReceiptPayload,
    RegisterEvent,
    parse_frame,
)
from chat_relay.utils.metrics import ws_frames_dropped_total, ws_frames_received_total

EventHandler = Callable[[WebSocket, InboundEvent], None]


def unix_millis() -> int:
    """Current wall-clock time in unix milliseconds."""
    return time.time_ns() // 1_000_000


class EventDispatcher:
    """
    Routes inbound events to their handlers.

    The dispatcher owns no state of its own beyond the message clock. The
    registry and connection manager are passed in so that independent
    dispatchers can run side by side.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        connections: ConnectionManager,
        clock: Callable[[], int] = unix_millis,
    ) -> None:
        self.registry = registry
        self.connections = connections
        self._clock = clock
        self._last_time = 0
        self._handlers: dict[EventKind, EventHandler] = {
            EventKind.REGISTER: self.on_register,
            EventKind.MESSAGE: self.on_message,
            EventKind.REACTION: self.on_reaction,
            EventKind.READ_RECEIPT: self.on_read_receipt,
        }

    def _now(self) -> int:
        # Message times never go backwards, even if the wall clock does
        self._last_time = max(self._last_time, self._clock())
        return self._last_time

    async def handle_frame(self, websocket: WebSocket, raw: str | bytes) -> None:
        """
        Handle one inbound frame from ``websocket``.

        Args:
            websocket: The connection the frame arrived on.
            raw: Frame contents as received from the transport.
        """
        ws_frames_received_total.inc()

        try:
            event = parse_frame(raw)
        except UnknownEventKindError as e:
            logger.debug(f"Ignoring frame with unknown kind {e.message_type!r}")
            ws_frames_dropped_total.labels(reason="unknown_kind").inc()
            return
        except MalformedFrameError as e:
            logger.warning(f"Error in message: {e}")
            ws_frames_dropped_total.labels(reason="malformed").inc()
            return

        self._handlers[event.kind](websocket, event)

    def announce_users(self) -> None:
        """Broadcast the current nickname list to everyone."""
        self.connections.broadcast(
            OutboundEnvelope.users(self.registry.current_nicknames())
        )

    def on_register(
        self, websocket: WebSocket, event: RegisterEvent
    ) -> None:
        self.registry.register(websocket, event.nickname)
        self.announce_users()

    def on_message(
        self, websocket: WebSocket, event: ChatMessageEvent
    ) -> None:
        sender = self.registry.find_by_handle(websocket)
        if sender is None:
            logger.debug(
                f"Dropping message from unregistered connection ({id(websocket)})"
            )
            ws_frames_dropped_total.labels(reason="unregistered_sender").inc()
            return

        self.connections.broadcast(
            OutboundEnvelope.message(
                MessagePayload(
                    sender=sender.nickname,
                    message=event.content,
                    time=self._now(),
                )
            )
        )

    def on_reaction(
        self, websocket: WebSocket, event: ReactionEvent
    ) -> None:
        sender = self.registry.find_by_handle(websocket)
        self.connections.broadcast(
            OutboundEnvelope.reaction(
                ReactionPayload(
                    message_index=event.message_index,
                    emoji=event.emoji,
                    sender=sender.nickname if sender else None,
                )
            )
        )

    def on_read_receipt(
        self, websocket: WebSocket, event: ReadReceiptEvent
    ) -> None:
        sender = self.registry.find_by_handle(websocket)
        self.connections.broadcast(
            OutboundEnvelope.read_receipt(
                ReadReceiptPayload(
                    message_index=event.message_index,
                    user=sender.nickname if sender else None,
                )
            )
        )
