"""Relay exceptions."""


class RelayError(Exception):
    """Base class for relay errors."""


class ConnectionClosed(RelayError):
    """The peer went away or the transport failed."""

    def __init__(self, code: int = 1000, reason: str = ""):
        super().__init__(f"connection closed ({code}){': ' + reason if reason else ''}")
        self.code = code
        self.reason = reason


class QueueClosed(RelayError):
    """An outbound queue was used after it was closed."""


class EncodingError(RelayError):
    """An outbound payload could not be serialized."""


class GroupClosed(RelayError):
    """A request was submitted to a group that has been stopped."""
