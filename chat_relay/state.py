"""Relay state owned by one application instance."""

from dataclasses import dataclass, field

from chat_relay.dispatcher import EventDispatcher
from chat_relay.managers.connection_manager import ConnectionManager
from chat_relay.registry import ConnectionRegistry


@dataclass
class RelayState:
    """
    The registry, transport set and dispatcher of one relay.

    Created by the application factory and stored on ``app.state.relay``.
    """

    registry: ConnectionRegistry = field(default_factory=ConnectionRegistry)
    connections: ConnectionManager = field(default_factory=ConnectionManager)
    dispatcher: EventDispatcher = field(init=False)

    def __post_init__(self) -> None:
        self.dispatcher = EventDispatcher(self.registry, self.connections)
