"""
Custom exception classes for the relay.

None of these ever reach a client: the dispatcher catches them, logs the
offending frame and keeps the connection open.
"""


class RelayError(Exception):
    """Base class for relay errors."""

    pass


class MalformedFrameError(RelayError):
    """
    Inbound frame could not be decoded.

    Raised for invalid UTF-8, invalid JSON, an envelope of the wrong shape,
    or a payload that does not match its event kind.
    """

    pass


class UnknownEventKindError(RelayError):
    """
    Inbound frame carries a ``messageType`` the relay does not handle.
    """

    def __init__(self, message_type: str):
        self.message_type = message_type
        super().__init__(f"Unknown event kind: {message_type!r}")
