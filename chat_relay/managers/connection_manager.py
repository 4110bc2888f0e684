import asyncio

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from chat_relay.constants import OUTBOX_DRAIN_TIMEOUT_SECONDS
from chat_relay.logging import logger
from chat_relay.schemas.events import OutboundEnvelope
from chat_relay.utils.metrics import (
    broadcast_send_failures_total,
    broadcasts_total,
)


def is_open(websocket: WebSocket) -> bool:
    """
    Check whether a websocket can still be written to.

    Args:
        websocket: The websocket to check.

    Returns:
        True if both sides of the connection are in the CONNECTED state.
    """
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


class ConnectionManager:
    """
    Manager for open websocket transports.

    Tracks every accepted websocket, registered or not, keyed by a
    per-connection id. This is the transport-level view of who is
    connected; the nickname registry is reconciled against it by the
    liveness sweep.

    Each connection gets an outbox queue drained by its own writer task.
    Broadcasting only enqueues, so a slow or hung peer never holds up the
    connection whose frame triggered the broadcast, while every peer still
    receives frames in broadcast order.
    """

    def __init__(self) -> None:
        """
        Initializes a new instance of the `ConnectionManager` class.

        The `connections` attribute maps connection ids to websockets in
        the order they were accepted. Outboxes and writer tasks are created
        on the first broadcast a connection receives.
        """
        self.connections: dict[str, WebSocket] = {}
        self.outboxes: dict[str, asyncio.Queue[str]] = {}
        self.writers: dict[str, asyncio.Task[None]] = {}

    def connect(self, connection_id: str, websocket: WebSocket) -> None:
        """
        Adds an accepted websocket.

        Args:
            connection_id: Unique identifier for this connection.
            websocket: The accepted websocket.
        """
        self.connections[connection_id] = websocket
        logger.debug(
            f"websocket object ({id(websocket)}) added to active connections "
            f"with id {connection_id}"
        )

    def disconnect(self, connection_id: str) -> None:
        """
        Removes a websocket by connection id.

        Frames still waiting in its outbox are discarded and its writer
        task is cancelled.

        Args:
            connection_id: The id of the connection to remove.
        """
        if connection_id not in self.connections:
            return

        websocket = self.connections.pop(connection_id)

        outbox = self.outboxes.pop(connection_id, None)
        if outbox is not None:
            _discard_pending(outbox)

        writer = self.writers.pop(connection_id, None)
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()

        logger.debug(
            f"websocket object ({id(websocket)}) removed from active connections "
            f"for id {connection_id}"
        )

    def live_handles(self) -> list[WebSocket]:
        """Websockets that are tracked and still open."""
        return [ws for ws in self.connections.values() if is_open(ws)]

    def broadcast(self, message: OutboundEnvelope) -> int:
        """
        Queues the same frame for every open connection.

        The frame is serialized once. Delivery happens in the background
        writer tasks; send failures are handled there and never reach the
        caller. Must be called from the running event loop.

        Args:
            message: The outbound frame to deliver.

        Returns:
            Number of connections the frame was queued for.
        """
        broadcasts_total.labels(message_type=message.message_type.value).inc()

        text = message.to_text()
        queued = 0
        for connection_id, websocket in list(self.connections.items()):
            if not is_open(websocket):
                continue
            self._outbox(connection_id, websocket).put_nowait(text)
            queued += 1
        return queued

    async def drain(self) -> None:
        """Wait until every frame queued so far has been handled."""
        await asyncio.gather(
            *[outbox.join() for outbox in list(self.outboxes.values())]
        )

    async def shutdown(self) -> None:
        """
        Flush outboxes for a bounded time, then cancel all writer tasks.
        """
        try:
            await asyncio.wait_for(self.drain(), OUTBOX_DRAIN_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Timed out flushing outboxes during shutdown")

        writers = list(self.writers.values())
        for writer in writers:
            writer.cancel()
        await asyncio.gather(*writers, return_exceptions=True)

    def _outbox(
        self, connection_id: str, websocket: WebSocket
    ) -> asyncio.Queue[str]:
        outbox = self.outboxes.get(connection_id)
        if outbox is None:
            outbox = self.outboxes[connection_id] = asyncio.Queue()
            writer = asyncio.create_task(
                self._write(connection_id, websocket, outbox)
            )
            writer.add_done_callback(
                lambda task: self._writer_done(connection_id, task)
            )
            self.writers[connection_id] = writer
        return outbox

    async def _write(
        self,
        connection_id: str,
        websocket: WebSocket,
        outbox: asyncio.Queue[str],
    ) -> None:
        while True:
            text = await outbox.get()
            try:
                if not is_open(websocket):
                    continue
                await websocket.send_text(text)
            except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
                # WebSocketDisconnect: Client disconnected
                # ConnectionError: Network errors
                # RuntimeError: WebSocket in invalid state
                logger.warning(
                    f"Failed to send to connection {id(websocket)} "
                    f"(id: {connection_id}): {e}"
                )
                await self._drop(connection_id, websocket)
                return
            except Exception as e:
                logger.warning(
                    f"Unexpected error sending to connection {id(websocket)} "
                    f"(id: {connection_id}): {e}"
                )
                await self._drop(connection_id, websocket)
                return
            finally:
                outbox.task_done()

    async def _drop(self, connection_id: str, websocket: WebSocket) -> None:
        broadcast_send_failures_total.inc()
        self.disconnect(connection_id)
        try:
            await websocket.close()
        except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
            logger.debug(
                f"Closing failed connection {id(websocket)} raised: {e}"
            )

    def _writer_done(self, connection_id: str, task: asyncio.Task[None]) -> None:
        if self.writers.get(connection_id) is task:
            del self.writers[connection_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Writer for connection {connection_id} failed: "
                f"{task.exception()}"
            )


def _discard_pending(outbox: asyncio.Queue[str]) -> None:
    while not outbox.empty():
        outbox.get_nowait()
        outbox.task_done()
