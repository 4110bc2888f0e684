"""
Pytest configuration and fixtures for testing.

This module provides fresh relay components for every test so that no
registry state leaks between tests.
"""

import pytest

from chat_relay.dispatcher import EventDispatcher
from chat_relay.managers.connection_manager import ConnectionManager
from chat_relay.registry import ConnectionRegistry
from chat_relay.state import RelayState
from tests.mocks.websocket_mocks import create_mock_websocket


class FakeClock:
    """Controllable millisecond clock for message timestamps."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    """
    Provides a fake clock starting at a fixed unix millisecond time.

    Returns:
        FakeClock: Clock whose `now` attribute can be changed by tests
    """
    return FakeClock()


@pytest.fixture
def registry():
    """Provides an empty ConnectionRegistry."""
    return ConnectionRegistry()


@pytest.fixture
def connection_manager():
    """Provides an empty ConnectionManager."""
    return ConnectionManager()


@pytest.fixture
def dispatcher(registry, connection_manager, clock):
    """
    Provides an EventDispatcher wired to the registry and manager fixtures.

    Returns:
        EventDispatcher: Dispatcher using the fake clock
    """
    return EventDispatcher(registry, connection_manager, clock=clock)


@pytest.fixture
def relay_state():
    """Provides a fresh RelayState."""
    return RelayState()


@pytest.fixture
def connect(connection_manager):
    """
    Factory fixture opening mock websockets on the connection manager.

    Returns:
        Callable[[str], MagicMock]: Creates and connects a websocket under
        the given connection id
    """

    def _connect(connection_id: str):
        websocket = create_mock_websocket()
        connection_manager.connect(connection_id, websocket)
        return websocket

    return _connect
