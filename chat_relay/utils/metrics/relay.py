"""
Prometheus metrics for the relay.

Tracks transport connections, inbound frames, broadcasts and registry
pruning by the liveness sweep.
"""

from chat_relay.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
)

# Connection metrics
ws_connections_active = _get_or_create_gauge(
    "relay_ws_connections_active", "Number of open websocket connections"
)

ws_connections_total = _get_or_create_counter(
    "relay_ws_connections_total", "Total websocket connections accepted"
)

# Inbound frame metrics
ws_frames_received_total = _get_or_create_counter(
    "relay_ws_frames_received_total", "Total inbound websocket frames"
)

ws_frames_dropped_total = _get_or_create_counter(
    "relay_ws_frames_dropped_total",
    "Inbound frames dropped without a broadcast",
    ["reason"],  # malformed, unknown_kind, unregistered_sender
)

# Outbound metrics
broadcasts_total = _get_or_create_counter(
    "relay_broadcasts_total",
    "Total broadcasts by event kind",
    ["message_type"],
)

broadcast_send_failures_total = _get_or_create_counter(
    "relay_broadcast_send_failures_total",
    "Per-peer sends that failed during a broadcast",
)

# Registry metrics
registry_prunes_total = _get_or_create_counter(
    "relay_registry_prunes_total",
    "Liveness sweeps that removed at least one registered connection",
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
