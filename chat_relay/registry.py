"""Registry of connections that have registered a nickname."""

from collections.abc import Collection
from dataclasses import dataclass

from fastapi import WebSocket

from chat_relay.logging import logger


@dataclass
class Connection:
    """A live transport session together with its registered nickname."""

    handle: WebSocket
    nickname: str


class ConnectionRegistry:
    """
    Ordered collection of registered connections.

    Entries are kept in registration order, which is the order clients see
    in the ``users`` broadcast. Connections that never sent ``register`` are
    not tracked here. Nicknames are not unique.

    None of the operations raise: absence is reported as ``None`` or an
    empty result.
    """

    def __init__(self) -> None:
        self.connections: list[Connection] = []

    def __len__(self) -> int:
        return len(self.connections)

    def register(self, handle: WebSocket, nickname: str) -> Connection:
        """
        Register a nickname for a connection.

        A connection registering a second time is renamed in place and
        keeps its position in the list.

        Args:
            handle: The websocket the ``register`` event arrived on.
            nickname: Display name chosen by the client.

        Returns:
            The registry entry for ``handle``.
        """
        connection = self.find_by_handle(handle)
        if connection is not None:
            logger.info(
                f'Connection ({id(handle)}) renamed from "{connection.nickname}" to "{nickname}"'
            )
            connection.nickname = nickname
            return connection

        connection = Connection(handle=handle, nickname=nickname)
        self.connections.append(connection)
        logger.info(f'Connection ({id(handle)}) registered as "{nickname}"')
        return connection

    def find_by_handle(self, handle: WebSocket) -> Connection | None:
        """
        Look up the registry entry of a websocket.

        Args:
            handle: The websocket to look up.

        Returns:
            The first matching entry, or None if the websocket never
            registered or was already pruned.
        """
        for connection in self.connections:
            if connection.handle is handle:
                return connection
        return None

    def current_nicknames(self) -> list[str]:
        """Nicknames in registration order, duplicates included."""
        return [connection.nickname for connection in self.connections]

    def prune(self, live_handles: Collection[WebSocket]) -> bool:
        """
        Drop every entry whose websocket is not in ``live_handles``.

        Args:
            live_handles: Websockets the transport layer still considers open.

        Returns:
            True if at least one entry was removed.
        """
        live_ids = {id(handle) for handle in live_handles}
        kept = [c for c in self.connections if id(c.handle) in live_ids]
        removed = len(self.connections) - len(kept)
        if not removed:
            return False

        self.connections = kept
        logger.info(f"Pruned {removed} closed connection(s) from registry")
        return True
