"""
Centralized mock objects for testing.

This package provides reusable mock factories for relay tests.
"""

from tests.mocks.websocket_mocks import (
    close_mock_websocket,
    create_mock_connection_manager,
    create_mock_websocket,
    sent_frames,
)

__all__ = [
    "close_mock_websocket",
    "create_mock_connection_manager",
    "create_mock_websocket",
    "sent_frames",
]
