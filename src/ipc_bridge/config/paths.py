"""Centralized path management for the bridge.

Runtime state (config, sockets) lives under a single base directory which
can be overridden with the IPC_BRIDGE_HOME environment variable.

Default location: ~/.ipc-bridge
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "IPC_BRIDGE_HOME"


@lru_cache(maxsize=1)
def get_bridge_home() -> Path:
    """Get the base directory for all bridge state.

    Resolution order:
    1. IPC_BRIDGE_HOME environment variable (if set)
    2. ~/.ipc-bridge
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".ipc-bridge"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_bridge_home() / "config.toml"


def get_socket_path() -> Path:
    """Get the default host socket path."""
    return get_bridge_home() / "bridge.sock"
