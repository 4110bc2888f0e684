"""
Application-level constants for hardcoded protocol behavior.

These values define the wire protocol and internal timing and are not
meant to be overridden via environment variables. For configurable values
(port, sweep interval, log level), see chat_relay/settings.py.
"""

# ============================================================================
# Wire Protocol
# ============================================================================

# Compact separators matching what browser clients produce with JSON.stringify
JSON_SEPARATORS = (",", ":")


# ============================================================================
# Background Task Behavior
# ============================================================================

# Backoff delay (seconds) when the liveness sweep hits an unexpected error
TASK_ERROR_BACKOFF_SECONDS = 1

# Time (seconds) allowed at shutdown for queued broadcast frames to be sent
OUTBOX_DRAIN_TIMEOUT_SECONDS = 1


# ============================================================================
# Logging
# ============================================================================

# Upper bound for a single structured log line
MAX_LOG_SIZE_BYTES = 256 * 1024
