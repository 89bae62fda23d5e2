"""Transport exposure.

The client context never talks to the host directly. It looks up a single
invoke primitive, published by expose_bridge() under the context's bridge
key, and that primitive relays ``(channel, args)`` to whatever Transport
carries messages across the boundary.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from ipc_bridge.context import BridgeContext
from ipc_bridge.protocol import copy_across, encode_result, result_from_dict

logger = logging.getLogger(__name__)

# Signature of the published primitive
InvokeFn = Callable[[str, Sequence[Any]], Awaitable[dict[str, Any]]]


@runtime_checkable
class Transport(Protocol):
    """Carries one invocation to the host and returns its wire Result."""

    async def invoke(self, channel: str, args: list[Any]) -> dict[str, Any]:
        """Deliver an invocation.

        Raises:
            ChannelNotFoundError: If the host has no handler for ``channel``.
            MarshalingError: If ``args`` cannot be represented on the wire.
        """
        ...


class LocalTransport:
    """In-process transport to a host context.

    Arguments and Results are copied through JSON on the way in and out, so
    neither side can hand the other a live reference.
    """

    def __init__(self, host: BridgeContext):
        self._host = host

    async def invoke(self, channel: str, args: list[Any]) -> dict[str, Any]:
        wire_args = copy_across(list(args))
        raw = await self._host.registry.dispatch(channel, wire_args)
        return encode_result(result_from_dict(raw))


def expose_bridge(
    context: BridgeContext, transport: Transport, key: str | None = None
) -> InvokeFn:
    """Publish the invoke primitive into the client-visible namespace.

    Must run before any proxy created on ``context`` is called.

    Args:
        context: The client context to publish into.
        transport: Carrier for invocations.
        key: Name to publish under; defaults to ``context.bridge_key``.

    Returns:
        The published primitive.
    """
    bridge_key = key or context.bridge_key

    async def invoke(channel: str, args: Sequence[Any] = ()) -> dict[str, Any]:
        return await transport.invoke(channel, list(args))

    context.globals[bridge_key] = invoke
    logger.debug("Exposed IPC bridge", extra={"key": bridge_key})
    return invoke
