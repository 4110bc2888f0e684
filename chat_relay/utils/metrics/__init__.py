"""
Prometheus metrics definitions.

All metrics are re-exported here:

    from chat_relay.utils.metrics import broadcasts_total
"""

from chat_relay.utils.metrics.relay import (
    broadcast_send_failures_total,
    broadcasts_total,
    registry_prunes_total,
    ws_connections_active,
    ws_connections_total,
    ws_frames_dropped_total,
    ws_frames_received_total,
)

__all__ = [
    "ws_connections_active",
    "ws_connections_total",
    "ws_frames_received_total",
    "ws_frames_dropped_total",
    "broadcasts_total",
    "broadcast_send_failures_total",
    "registry_prunes_total",
]
