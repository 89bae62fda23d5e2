"""Typed RPC bridge between a privileged host context and a restricted client.

Host side:
- BridgeContext.host(): explicit per-process state
- register_api / define_api: bind an API definition's async operations
- IPCServer: serve the bound channels on a Unix socket

Client side:
- BridgeContext.client(): explicit per-process state
- expose_bridge: publish the invoke primitive over a Transport
- create_proxy: dynamic stand-in whose calls resolve or raise RemoteError

Protocol:
- IPCSuccess, IPCFailure, ErrorInfo: the wire Result
- channel_name: ``"{api_name}:{operation}"``
"""

from ipc_bridge.client import SocketTransport
from ipc_bridge.config import BridgeConfig, load_config
from ipc_bridge.context import BridgeContext, HandlerRegistry, Role
from ipc_bridge.errors import (
    BridgeError,
    BridgeNotExposedError,
    ChannelNotFoundError,
    InvalidChannelNameError,
    MarshalingError,
    ProtocolError,
    RemoteError,
)
from ipc_bridge.protocol import (
    DEFAULT_BRIDGE_KEY,
    ErrorInfo,
    IPCFailure,
    IPCResult,
    IPCSuccess,
    channel_name,
    parse_channel,
    result_from_dict,
)
from ipc_bridge.proxy import IPCProxy, RemoteMethod, create_proxy
from ipc_bridge.registrar import channels_for, define_api, discover_operations, register_api
from ipc_bridge.server import IPCServer
from ipc_bridge.transport import LocalTransport, Transport, expose_bridge

__all__ = [
    # Context
    "BridgeConfig",
    "BridgeContext",
    "HandlerRegistry",
    "Role",
    "load_config",
    # Host
    "IPCServer",
    "channels_for",
    "define_api",
    "discover_operations",
    "register_api",
    # Client
    "IPCProxy",
    "LocalTransport",
    "RemoteMethod",
    "SocketTransport",
    "Transport",
    "create_proxy",
    "expose_bridge",
    # Protocol
    "DEFAULT_BRIDGE_KEY",
    "ErrorInfo",
    "IPCFailure",
    "IPCResult",
    "IPCSuccess",
    "channel_name",
    "parse_channel",
    "result_from_dict",
    # Errors
    "BridgeError",
    "BridgeNotExposedError",
    "ChannelNotFoundError",
    "InvalidChannelNameError",
    "MarshalingError",
    "ProtocolError",
    "RemoteError",
]
