"""Host-side registration of API definitions.

An API definition is a class whose public ``async def`` methods are its
operations. Registering it creates one instance and binds every operation
to the channel ``"{api_name}:{operation}"``::

    class MathApi:
        async def add(self, a, b):
            return a + b

    register_api(host_context, MathApi)  # binds "MathApi:add"

Handlers never raise: the outcome of each call is normalized into a wire
Result mapping.
"""

import inspect
import logging
import traceback
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ipc_bridge.context import BridgeContext, ChannelHandler
from ipc_bridge.protocol import IPCFailure, IPCSuccess, channel_name, validate_name

logger = logging.getLogger(__name__)

ApiT = TypeVar("ApiT", bound=type)


def _unwrap(member: Any) -> Any:
    if isinstance(member, (staticmethod, classmethod)):
        return member.__func__
    return member


def discover_operations(api_cls: type) -> list[str]:
    """List the operation names of an API definition in definition order.

    Private names (constructor, dunder and ``_``-prefixed members) and
    non-callable attributes such as properties and constants are skipped.
    Static and class methods count only when they are ``async def``.

    Raises:
        TypeError: If a public callable is not an ``async def``.
    """
    seen: set[str] = set()
    operations: list[str] = []
    not_async: list[str] = []

    for klass in api_cls.__mro__:
        if klass is object:
            continue
        for name, member in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if name.startswith("_"):
                continue
            func = _unwrap(member)
            if isinstance(func, property) or not callable(func):
                continue
            # Sync static/class helpers such as factories are not operations
            is_static = isinstance(member, (staticmethod, classmethod))
            if is_static and not inspect.iscoroutinefunction(func):
                continue
            if inspect.iscoroutinefunction(func):
                operations.append(name)
            else:
                not_async.append(name)

    if not_async:
        raise TypeError(
            f"{api_cls.__name__} exposes non-async operations: {', '.join(not_async)}"
        )
    return operations


def channels_for(api_cls: type, name: str | None = None) -> dict[str, str]:
    """Map each operation of ``api_cls`` to its channel name."""
    api_name = validate_name(name or api_cls.__name__, "API name")
    return {op: channel_name(api_name, op) for op in discover_operations(api_cls)}


def _make_handler(
    channel: str,
    method: Callable[..., Awaitable[Any]],
    include_stack: bool = True,
) -> ChannelHandler:
    async def handler(*args: Any) -> dict[str, Any]:
        try:
            data = await method(*args)
        except Exception as e:
            logger.exception("IPC handler error", extra={"channel": channel})
            stack = "".join(traceback.format_exception(e)) if include_stack else None
            return IPCFailure.from_message(str(e), stack).to_dict()
        return IPCSuccess(data).to_dict()

    handler.__name__ = f"handle_{channel.replace(':', '_')}"
    return handler


def register_api(
    context: BridgeContext, api_cls: type, *, name: str | None = None
) -> list[str]:
    """Register every operation of an API definition on the host.

    Safe to call repeatedly for the same definition: each channel's previous
    handler is replaced, never duplicated. Outside the host context this is
    a no-op.

    Args:
        context: Bridge context of the current process.
        api_cls: The API definition class, constructible without arguments.
        name: Channel namespace; defaults to the class name.

    Returns:
        The bound channel names (empty outside the host context).

    Raises:
        TypeError: If an operation is not async.
        InvalidChannelNameError: If a name contains the channel delimiter.
    """
    if not context.is_host:
        logger.debug("Skipping registration of %s outside host context", api_cls.__name__)
        return []

    # Validate everything before binding anything
    channels = channels_for(api_cls, name)
    instance = api_cls()

    for operation, channel in channels.items():
        handler = _make_handler(
            channel,
            getattr(instance, operation),
            include_stack=context.config.include_stack,
        )
        if context.registry.replace(channel, handler) is not None:
            logger.debug("Replaced handler for %s", channel)

    logger.debug("Registered %d IPC operations for %s", len(channels), name or api_cls.__name__)
    return list(channels.values())


def define_api(
    context: BridgeContext, *, name: str | None = None
) -> Callable[[ApiT], ApiT]:
    """Class decorator form of register_api.

    Example:
        @define_api(host_context)
        class UserApi:
            async def get_user(self, user_id): ...
    """

    def decorator(api_cls: ApiT) -> ApiT:
        register_api(context, api_cls, name=name)
        return api_cls

    return decorator
