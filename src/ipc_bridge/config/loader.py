"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from ipc_bridge.config.models import BridgeConfig
from ipc_bridge.config.paths import get_config_path

# Environment variables that override file values
ENV_OVERRIDES = {
    "IPC_BRIDGE_KEY": "bridge_key",
    "IPC_BRIDGE_SOCKET": "socket_path",
    "IPC_BRIDGE_LOG_LEVEL": "log_level",
}


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("ipc-bridge.toml"),  # Current directory
        get_config_path(),  # ~/.ipc-bridge/config.toml (or IPC_BRIDGE_HOME)
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value
    return config


def load_config(path: Path | None = None) -> BridgeConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default
            locations and falls back to defaults when none exists.

    Returns:
        Validated BridgeConfig instance.

    Raises:
        FileNotFoundError: If an explicit config file does not exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
        pydantic.ValidationError: If a value is invalid.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in _get_default_config_paths():
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)

    return BridgeConfig.model_validate(_apply_env_overrides(raw_config))
