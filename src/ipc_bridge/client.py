"""Client end of the Unix socket transport."""

import asyncio
import contextlib
import itertools
import json
import logging
from pathlib import Path
from typing import Any

from ipc_bridge.config import BridgeConfig
from ipc_bridge.errors import ChannelNotFoundError, ProtocolError
from ipc_bridge.protocol import (
    DEFAULT_MAX_MESSAGE_SIZE,
    FRAME_HEADER_SIZE,
    ErrorCode,
    InvocationRequest,
    InvocationResponse,
    read_message,
)

logger = logging.getLogger(__name__)


class SocketTransport:
    """Transport that relays invocations to an IPCServer.

    One connection carries any number of concurrent invocations; responses
    are matched to callers by request id, in whatever order they arrive.
    """

    def __init__(
        self,
        socket_path: Path | str | None = None,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
    ):
        self._socket_path = Path(socket_path or BridgeConfig().socket_path)
        self._max_message_size = max_message_size
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._pending: dict[int, asyncio.Future[InvocationResponse]] = {}
        self._ids = itertools.count(1)
        self._connect_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "SocketTransport":
        return cls(config.socket_path, config.max_message_size)

    @property
    def socket_path(self) -> Path:
        return self._socket_path

    @property
    def is_connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self) -> None:
        """Open the connection if it is not already open.

        Raises:
            ConnectionError: If the socket is missing or refuses connections.
        """
        async with self._connect_lock:
            if self.is_connected:
                return
            if not self._socket_path.exists():
                raise ConnectionError(f"IPC socket not found: {self._socket_path}")
            self._reader, self._writer = await asyncio.open_unix_connection(
                str(self._socket_path)
            )
            self._read_task = asyncio.create_task(self._read_loop(self._reader))
            logger.debug("Connected to IPC host", extra={"socket": str(self._socket_path)})

    async def invoke(self, channel: str, args: list[Any]) -> dict[str, Any]:
        """Send one invocation and wait for its Result.

        Raises:
            MarshalingError: If ``args`` are not serializable (nothing is sent).
            ValueError: If the request frame exceeds the message size limit
                (nothing is sent).
            ChannelNotFoundError: If the host has no handler for ``channel``.
            ConnectionError: If the connection fails before a response arrives.
        """
        request_id = next(self._ids)
        payload = InvocationRequest(channel=channel, args=list(args), id=request_id).to_bytes()
        if len(payload) - FRAME_HEADER_SIZE > self._max_message_size:
            raise ValueError(f"Message too large: {len(payload) - FRAME_HEADER_SIZE}")

        await self.connect()
        assert self._writer is not None

        future: asyncio.Future[InvocationResponse] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            if self._read_task is None or self._read_task.done():
                raise ConnectionError("Connection closed by host")
            async with self._write_lock:
                self._writer.write(payload)
                await self._writer.drain()
            response = await future
        finally:
            self._pending.pop(request_id, None)

        if response.error_code == ErrorCode.CHANNEL_NOT_FOUND:
            raise ChannelNotFoundError(channel)
        if response.error_code is not None:
            raise ProtocolError(f"{response.error_code}: {response.error_message}")
        if response.result is None:
            raise ProtocolError(f"Response for {channel} carried no result")
        return response.result

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        error: Exception = ConnectionError("Connection closed by host")
        try:
            while True:
                data = await read_message(reader, self._max_message_size)
                if data is None:
                    break
                response = InvocationResponse.from_dict(json.loads(data))
                future = self._pending.get(response.id)  # type: ignore[arg-type]
                if future is None:
                    logger.warning(
                        "Dropping IPC response with unknown id: %s (%s)",
                        response.id,
                        response.error_message or "no error",
                    )
                    continue
                if not future.done():
                    future.set_result(response)
        except (ValueError, ProtocolError) as e:
            logger.warning("Malformed IPC response, closing connection: %s", e)
            error = ConnectionError(f"Malformed response from host: {e}")
        except ConnectionError as e:
            error = e
        finally:
            self._fail_pending(error)
            if self._writer is not None:
                self._writer.close()

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def close(self) -> None:
        """Close the connection, failing any invocation still in flight."""
        if self._read_task is not None:
            self._read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._read_task
            self._read_task = None
        if self._writer is not None:
            self._writer.close()
            with contextlib.suppress(ConnectionError):
                await self._writer.wait_closed()
            self._writer = None
            self._reader = None
        self._fail_pending(ConnectionError("Transport closed"))

    async def __aenter__(self) -> "SocketTransport":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
