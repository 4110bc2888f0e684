import uuid
from typing import Any

from fastapi import APIRouter
from starlette.endpoints import WebSocketEndpoint
from starlette.websockets import WebSocket

from chat_relay.logging import clear_log_context, logger, set_log_context
from chat_relay.settings import app_settings
from chat_relay.state import RelayState
from chat_relay.utils.metrics import ws_connections_active, ws_connections_total

router = APIRouter()


class RelayEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    Websocket endpoint relaying chat events between all connected clients.

    The endpoint only tracks the transport: it adds the websocket to the
    connection manager on connect and removes it on disconnect. Everything
    a frame means is decided by the dispatcher, and the nickname registry
    is reconciled later by the liveness sweep.
    """

    encoding = None  # Accept both text and binary frames

    @property
    def relay(self) -> RelayState:
        return self.scope["app"].state.relay

    async def decode(
        self, websocket: WebSocket, message: dict[str, Any]
    ) -> str | bytes:
        """
        Return the raw frame payload without interpreting it.

        Decoding and parsing happen in the dispatcher so that a bad frame
        is dropped instead of closing the connection.
        """
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def on_connect(self, websocket: WebSocket) -> None:
        await super().on_connect(websocket)

        self.connection_id = str(uuid.uuid4())
        set_log_context(connection_id=self.connection_id[:8])

        self.relay.connections.connect(self.connection_id, websocket)
        ws_connections_total.inc()
        ws_connections_active.inc()
        logger.info("ws connected")

    async def on_receive(self, websocket: WebSocket, data: str | bytes) -> None:
        logger.debug(f"Received frame: {data!r}")
        await self.relay.dispatcher.handle_frame(websocket, data)

    async def on_disconnect(self, websocket: WebSocket, close_code: int) -> None:
        await super().on_disconnect(websocket, close_code)

        if hasattr(self, "connection_id"):
            self.relay.connections.disconnect(self.connection_id)
            ws_connections_active.dec()

        logger.info(f"ws disconnected with code {close_code}")
        clear_log_context()


router.add_websocket_route(app_settings.WS_PATH, RelayEndpoint)
