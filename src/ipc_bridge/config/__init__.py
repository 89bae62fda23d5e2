"""Configuration module."""

from ipc_bridge.config.loader import load_config
from ipc_bridge.config.models import BridgeConfig
from ipc_bridge.config.paths import get_bridge_home, get_config_path, get_socket_path

__all__ = [
    "BridgeConfig",
    "get_bridge_home",
    "get_config_path",
    "get_socket_path",
    "load_config",
]
