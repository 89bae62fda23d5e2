"""Unix domain socket endpoint for a host context."""

import asyncio
import json
import logging
from pathlib import Path

from ipc_bridge.context import BridgeContext
from ipc_bridge.errors import ChannelNotFoundError, ProtocolError
from ipc_bridge.protocol import (
    DEFAULT_MAX_MESSAGE_SIZE,
    ErrorCode,
    InvocationRequest,
    InvocationResponse,
    encode_result,
    read_message,
    result_from_dict,
)

logger = logging.getLogger(__name__)


class IPCServer:
    """Serves a host context's channels over a Unix domain socket.

    Each request frame is dispatched in its own task, so a slow operation
    never holds up other channels. Responses are written as they complete
    and carry the request id for correlation.
    """

    def __init__(
        self,
        context: BridgeContext,
        socket_path: Path | None = None,
        max_message_size: int | None = None,
    ):
        """Initialize IPC server.

        Args:
            context: Host context whose registry is served.
            socket_path: Path to the Unix domain socket.
                Defaults to ``context.config.socket_path``.
            max_message_size: Largest accepted frame in bytes.
        """
        if not context.is_host:
            raise ValueError("IPCServer requires a host context")
        self._context = context
        self._socket_path = Path(socket_path or context.config.socket_path)
        self._max_message_size = (
            max_message_size or context.config.max_message_size or DEFAULT_MAX_MESSAGE_SIZE
        )
        self._server: asyncio.Server | None = None
        self._connections: dict[asyncio.StreamWriter, set[asyncio.Task[None]]] = {}
        self._running = False

    async def start(self) -> None:
        """Start the IPC server."""
        self._socket_path.parent.mkdir(parents=True, exist_ok=True)

        # Remove stale socket
        self._socket_path.unlink(missing_ok=True)

        self._server = await asyncio.start_unix_server(
            self._handle_connection,
            path=str(self._socket_path),
        )

        # Owner only
        self._socket_path.chmod(0o600)

        self._running = True
        logger.info("IPC server started", extra={"socket": str(self._socket_path)})

    async def stop(self) -> None:
        """Stop the IPC server."""
        self._running = False

        if self._server:
            self._server.close()
            for writer, tasks in list(self._connections.items()):
                for task in list(tasks):
                    task.cancel()
                writer.close()
            await self._server.wait_closed()
            self._server = None

        self._socket_path.unlink(missing_ok=True)

        logger.info("IPC server stopped")

    async def __aenter__(self) -> "IPCServer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        await self._server.serve_forever()

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Handle a client connection."""
        write_lock = asyncio.Lock()
        tasks: set[asyncio.Task[None]] = set()
        self._connections[writer] = tasks

        async def respond(data: bytes) -> None:
            response = await self._process_request(data)
            async with write_lock:
                writer.write(response.to_bytes())
                await writer.drain()

        try:
            while self._running:
                data = await read_message(reader, self._max_message_size)
                if data is None:
                    break
                task = asyncio.create_task(respond(data))
                tasks.add(task)
                task.add_done_callback(tasks.discard)
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
        except ValueError:
            logger.warning("Dropping connection after oversized frame")
        except ConnectionError:
            logger.debug("IPC connection closed")
        except Exception:
            logger.exception("Error handling IPC connection")
        finally:
            self._connections.pop(writer, None)
            for task in list(tasks):
                task.cancel()
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    async def _process_request(self, data: bytes) -> InvocationResponse:
        """Process a single invocation frame."""
        payload = None
        try:
            payload = json.loads(data)
            request = InvocationRequest.from_dict(payload)
        except (json.JSONDecodeError, UnicodeDecodeError, ProtocolError) as e:
            logger.warning("Malformed IPC request: %s", e)
            request_id = payload.get("id") if isinstance(payload, dict) else None
            return InvocationResponse.routing_error(
                request_id, ErrorCode.INVALID_REQUEST, f"Invalid request: {e}"
            )

        try:
            raw = await self._context.registry.dispatch(request.channel, request.args)
        except ChannelNotFoundError as e:
            return InvocationResponse.routing_error(
                request.id, ErrorCode.CHANNEL_NOT_FOUND, str(e)
            )
        except Exception as e:
            logger.exception("IPC dispatch error", extra={"channel": request.channel})
            return InvocationResponse.routing_error(
                request.id, ErrorCode.INTERNAL_ERROR, str(e)
            )

        try:
            result = encode_result(result_from_dict(raw))
        except ProtocolError as e:
            logger.exception("Handler produced malformed result", extra={"channel": request.channel})
            return InvocationResponse.routing_error(
                request.id, ErrorCode.INTERNAL_ERROR, str(e)
            )
        return InvocationResponse(id=request.id, result=result)

    @property
    def socket_path(self) -> Path:
        """Get the socket path."""
        return self._socket_path

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running
