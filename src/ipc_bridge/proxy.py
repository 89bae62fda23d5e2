"""Client-side proxies for host API groups.

A proxy only remembers an API name. Every attribute read produces a
RemoteMethod for ``"{api_name}:{attribute}"``; awaiting a call on it
resolves to the host operation's return value or raises RemoteError::

    math = create_proxy(client_context, "MathApi")
    await math.add(2, 3)  # 5

Passing ``interface=`` binds the proxy to a known API definition, limiting
attributes to its declared operations so typos fail at attribute access
instead of at the host.
"""

from typing import Any, TypeVar, cast, overload

from ipc_bridge.context import BridgeContext
from ipc_bridge.errors import BridgeNotExposedError, RemoteError
from ipc_bridge.protocol import IPCFailure, channel_name, result_from_dict, validate_name
from ipc_bridge.registrar import channels_for

T = TypeVar("T")


class RemoteMethod:
    """Callable stand-in for one host operation."""

    __slots__ = ("_context", "_bridge_key", "channel")

    def __init__(self, context: BridgeContext, channel: str, bridge_key: str):
        self._context = context
        self._bridge_key = bridge_key
        self.channel = channel

    async def __call__(self, *args: Any) -> Any:
        invoke = self._context.globals.get(self._bridge_key)
        if invoke is None:
            raise BridgeNotExposedError(self._bridge_key)

        result = result_from_dict(await invoke(self.channel, list(args)))
        if isinstance(result, IPCFailure):
            raise RemoteError(result.error.message, result.error.stack)
        return result.data

    def __repr__(self) -> str:
        return f"<RemoteMethod {self.channel}>"


class IPCProxy:
    """Dynamic stand-in for a host API group."""

    __slots__ = ("_context", "_api_name", "_bridge_key", "_channels")

    def __init__(
        self,
        context: BridgeContext,
        api_name: str,
        bridge_key: str | None = None,
        channels: dict[str, str] | None = None,
    ):
        self._context = context
        self._api_name = validate_name(api_name, "API name")
        self._bridge_key = bridge_key or context.bridge_key
        self._channels = channels

    def __getattr__(self, name: str) -> RemoteMethod:
        # Keep dunder lookups (copy, pickle, await) from turning into calls
        if name.startswith("_"):
            raise AttributeError(name)
        if self._channels is None:
            channel = channel_name(self._api_name, name)
        elif name in self._channels:
            channel = self._channels[name]
        else:
            raise AttributeError(f"{self._api_name} has no operation {name!r}")
        return RemoteMethod(self._context, channel, self._bridge_key)

    def __dir__(self) -> list[str]:
        return sorted(self._channels) if self._channels is not None else []

    def __repr__(self) -> str:
        return f"<IPCProxy {self._api_name}>"


@overload
def create_proxy(
    context: BridgeContext,
    api_name: str,
    *,
    bridge_key: str | None = None,
) -> Any: ...


@overload
def create_proxy(
    context: BridgeContext,
    api_name: str | None = None,
    *,
    interface: type[T],
    bridge_key: str | None = None,
) -> T: ...


def create_proxy(
    context: BridgeContext,
    api_name: str | None = None,
    *,
    interface: type | None = None,
    bridge_key: str | None = None,
) -> Any:
    """Create a proxy for the API group ``api_name``.

    Args:
        context: The client context holding the published invoke primitive.
        api_name: Channel namespace. Defaults to ``interface.__name__``.
        interface: Optional API definition whose operations the proxy exposes.
        bridge_key: Override for the key the primitive is published under.
    """
    if interface is None:
        if api_name is None:
            raise TypeError("create_proxy() requires api_name or interface")
        return IPCProxy(context, api_name, bridge_key)

    name = api_name or interface.__name__
    proxy = IPCProxy(context, name, bridge_key, channels_for(interface, name))
    return cast(Any, proxy)
