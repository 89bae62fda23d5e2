"""Wire protocol for the IPC bridge.

Channels are addressed as ``"{api_name}:{operation}"``. Every invocation
produces exactly one Result mapping:

- success: ``{"ok": true, "data": <value>}``
- failure: ``{"ok": false, "error": {"message": str, "stack"?: str}}``

The socket transport wraps invocations and Results in length-prefixed JSON
frames carrying a correlation ``id``.
"""

import asyncio
import json
import struct
from dataclasses import dataclass, field
from typing import Any

from ipc_bridge.errors import InvalidChannelNameError, MarshalingError, ProtocolError

CHANNEL_DELIMITER = ":"
DEFAULT_BRIDGE_KEY = "__ipcInvoke"
DEFAULT_MAX_MESSAGE_SIZE = 10 * 1024 * 1024  # 10MB
UNKNOWN_ERROR_MESSAGE = "Unknown error"

_HEADER = struct.Struct("!I")
FRAME_HEADER_SIZE = _HEADER.size


# Routing error codes carried by response frames
class ErrorCode:
    INVALID_REQUEST = "invalid_request"
    CHANNEL_NOT_FOUND = "channel_not_found"
    INTERNAL_ERROR = "internal_error"


def validate_name(name: str, kind: str = "name") -> str:
    """Reject names that cannot be embedded in a channel."""
    if not isinstance(name, str) or not name:
        raise InvalidChannelNameError(f"Empty {kind}")
    if CHANNEL_DELIMITER in name:
        raise InvalidChannelNameError(
            f"{kind.capitalize()} {name!r} must not contain {CHANNEL_DELIMITER!r}"
        )
    return name


def channel_name(api_name: str, operation: str) -> str:
    """Build the channel for one operation of an API group."""
    validate_name(api_name, "API name")
    validate_name(operation, "operation name")
    return f"{api_name}{CHANNEL_DELIMITER}{operation}"


def parse_channel(channel: str) -> tuple[str, str]:
    """Split a channel into ``(api_name, operation)``."""
    api_name, sep, operation = channel.partition(CHANNEL_DELIMITER)
    if not sep or not api_name or not operation or CHANNEL_DELIMITER in operation:
        raise InvalidChannelNameError(f"Malformed channel: {channel!r}")
    return api_name, operation


@dataclass(frozen=True)
class ErrorInfo:
    """Normalized description of an exception raised on the host."""

    message: str
    stack: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"message": self.message}
        if self.stack is not None:
            d["stack"] = self.stack
        return d

    @classmethod
    def from_dict(cls, data: Any) -> "ErrorInfo":
        if not isinstance(data, dict):
            raise ProtocolError(f"Error payload must be an object, got {data!r}")
        message = data.get("message")
        stack = data.get("stack")
        return cls(
            message=message if isinstance(message, str) and message else UNKNOWN_ERROR_MESSAGE,
            stack=stack if isinstance(stack, str) else None,
        )


@dataclass(frozen=True)
class IPCSuccess:
    data: Any = None
    ok: bool = field(default=True, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "data": self.data}


@dataclass(frozen=True)
class IPCFailure:
    error: ErrorInfo
    ok: bool = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.error.to_dict()}

    @classmethod
    def from_message(cls, message: str | None, stack: str | None = None) -> "IPCFailure":
        return cls(ErrorInfo(message=message or UNKNOWN_ERROR_MESSAGE, stack=stack))


IPCResult = IPCSuccess | IPCFailure


def result_from_dict(data: Any) -> IPCResult:
    """Parse a wire Result, enforcing that exactly one arm is populated."""
    if not isinstance(data, dict):
        raise ProtocolError(f"Result must be an object, got {type(data).__name__}")

    ok = data.get("ok")
    has_data = "data" in data
    has_error = "error" in data

    if ok is True and has_data and not has_error:
        return IPCSuccess(data["data"])
    if ok is False and has_error and not has_data:
        return IPCFailure(ErrorInfo.from_dict(data["error"]))
    raise ProtocolError(f"Malformed result: {data!r}")


def dumps(value: Any) -> str:
    """Serialize a value to JSON, raising MarshalingError when impossible."""
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise MarshalingError(f"Value is not serializable: {e}") from e


def copy_across(value: Any) -> Any:
    """Return a detached copy of ``value`` as it would arrive on the other side."""
    return json.loads(dumps(value))


def encode_result(result: IPCResult) -> dict[str, Any]:
    """Produce a wire-safe Result mapping.

    A success whose payload cannot be serialized is turned into a failure so
    the caller still receives exactly one Result.
    """
    payload = result.to_dict()
    try:
        return copy_across(payload)
    except MarshalingError as e:
        return IPCFailure.from_message(f"Result is not serializable: {e.__cause__}").to_dict()


@dataclass
class InvocationRequest:
    """One invocation frame: a channel plus positional arguments."""

    channel: str
    args: list[Any] = field(default_factory=list)
    id: int | str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "channel": self.channel, "args": self.args}

    def to_bytes(self) -> bytes:
        return frame(dumps(self.to_dict()).encode())

    @classmethod
    def from_dict(cls, data: Any) -> "InvocationRequest":
        if not isinstance(data, dict):
            raise ProtocolError("Request must be an object")
        channel = data.get("channel")
        args = data.get("args", [])
        if not isinstance(channel, str) or not channel:
            raise ProtocolError("Missing channel")
        if not isinstance(args, list):
            raise ProtocolError("Args must be a list")
        return cls(channel=channel, args=args, id=data.get("id"))


@dataclass
class InvocationResponse:
    """Response frame: either a Result or a routing error, never both."""

    id: int | str | None
    result: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id}
        if self.error_code is not None:
            d["error"] = {"code": self.error_code, "message": self.error_message or ""}
        else:
            d["result"] = self.result
        return d

    def to_bytes(self) -> bytes:
        return frame(dumps(self.to_dict()).encode())

    @classmethod
    def routing_error(
        cls, id: int | str | None, code: str, message: str
    ) -> "InvocationResponse":
        return cls(id=id, error_code=code, error_message=message)

    @classmethod
    def from_dict(cls, data: Any) -> "InvocationResponse":
        if not isinstance(data, dict):
            raise ProtocolError("Response must be an object")
        if "error" in data:
            err = data["error"]
            if not isinstance(err, dict):
                raise ProtocolError(f"Error payload must be an object, got {err!r}")
            return cls(
                id=data.get("id"),
                error_code=err.get("code", ErrorCode.INTERNAL_ERROR),
                error_message=err.get("message", UNKNOWN_ERROR_MESSAGE),
            )
        return cls(id=data.get("id"), result=data.get("result"))


def frame(payload: bytes) -> bytes:
    """Prefix a payload with its 4-byte big-endian length."""
    return _HEADER.pack(len(payload)) + payload


async def read_message(
    reader: asyncio.StreamReader, max_size: int = DEFAULT_MAX_MESSAGE_SIZE
) -> bytes | None:
    """Read a length-prefixed message from an async reader.

    Returns None if connection closed.
    """
    try:
        length_bytes = await reader.readexactly(_HEADER.size)
    except asyncio.IncompleteReadError:
        return None

    length = _HEADER.unpack(length_bytes)[0]
    if length > max_size:
        raise ValueError(f"Message too large: {length}")

    try:
        return await reader.readexactly(length)
    except asyncio.IncompleteReadError:
        return None
