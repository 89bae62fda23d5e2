"""Exceptions raised by the bridge."""


class BridgeError(Exception):
    """Base class for all bridge errors."""


class RemoteError(BridgeError):
    """An operation failed on the host.

    Only the textual description crosses the boundary: the original
    exception type is not preserved, just its message and stack.
    """

    def __init__(self, message: str, stack: str | None = None):
        super().__init__(message)
        self.message = message
        self.stack = stack

    def __str__(self) -> str:
        return self.message


class ProtocolError(BridgeError):
    """A frame or Result did not have the expected wire shape."""


class MarshalingError(BridgeError):
    """A value could not be represented on the wire."""


class ChannelNotFoundError(BridgeError, LookupError):
    """No handler is bound to the requested channel."""

    def __init__(self, channel: str):
        super().__init__(f"No handler registered for channel: {channel}")
        self.channel = channel


class BridgeNotExposedError(BridgeError, LookupError):
    """The invoke primitive has not been published in this context."""

    def __init__(self, key: str):
        super().__init__(f"IPC bridge not exposed under key {key!r}")
        self.key = key


class InvalidChannelNameError(BridgeError, ValueError):
    """An API or operation name cannot be used in a channel name."""
