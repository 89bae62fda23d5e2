"""Per-process bridge state.

A BridgeContext is created once at process start and passed explicitly to
registration, exposure and proxy creation in place of ambient globals. It
holds the process role, the host-side channel table and the namespace the
client looks the invoke primitive up in.
"""

import threading
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from ipc_bridge.config import BridgeConfig
from ipc_bridge.errors import ChannelNotFoundError

# A bound channel handler: takes positional args, returns a wire Result mapping
ChannelHandler = Callable[..., Awaitable[dict[str, Any]]]


class Role(Enum):
    HOST = "host"
    CLIENT = "client"


class HandlerRegistry:
    """Channel -> handler table owned by the host.

    Lookups and swaps happen under one lock, so a re-registration never
    exposes a channel with zero or two handlers. Invocations that already
    resolved a handler keep running against it.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, ChannelHandler] = {}
        self._lock = threading.Lock()

    def replace(self, channel: str, handler: ChannelHandler) -> ChannelHandler | None:
        """Remove any existing handler and bind ``handler`` in one step."""
        with self._lock:
            previous = self._handlers.get(channel)
            self._handlers[channel] = handler
        return previous

    def get(self, channel: str) -> ChannelHandler:
        with self._lock:
            handler = self._handlers.get(channel)
        if handler is None:
            raise ChannelNotFoundError(channel)
        return handler

    def channels(self) -> list[str]:
        with self._lock:
            return sorted(self._handlers)

    def __contains__(self, channel: object) -> bool:
        with self._lock:
            return channel in self._handlers

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    async def dispatch(self, channel: str, args: list[Any]) -> dict[str, Any]:
        """Run the handler bound to ``channel``.

        Raises:
            ChannelNotFoundError: If no handler is bound.
        """
        handler = self.get(channel)
        return await handler(*args)


class BridgeContext:
    """Explicit bridge state for one execution context."""

    def __init__(self, role: Role | str, config: BridgeConfig | None = None):
        self.role = Role(role)
        self.config = config or BridgeConfig()
        self.registry = HandlerRegistry()
        # Client-visible namespace the invoke primitive is published into
        self.globals: dict[str, Any] = {}

    @classmethod
    def host(cls, config: BridgeConfig | None = None) -> "BridgeContext":
        return cls(Role.HOST, config)

    @classmethod
    def client(cls, config: BridgeConfig | None = None) -> "BridgeContext":
        return cls(Role.CLIENT, config)

    @property
    def is_host(self) -> bool:
        return self.role is Role.HOST

    @property
    def bridge_key(self) -> str:
        return self.config.bridge_key

    def __repr__(self) -> str:
        return f"BridgeContext(role={self.role.value!r}, channels={len(self.registry)})"
