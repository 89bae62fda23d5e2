"""Configuration models using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ipc_bridge.config.paths import get_socket_path
from ipc_bridge.protocol import DEFAULT_BRIDGE_KEY, DEFAULT_MAX_MESSAGE_SIZE


class BridgeConfig(BaseModel):
    """Root configuration model."""

    # Key under which the invoke primitive is published on the client side
    bridge_key: str = DEFAULT_BRIDGE_KEY
    socket_path: Path = Field(default_factory=get_socket_path)
    max_message_size: int = Field(default=DEFAULT_MAX_MESSAGE_SIZE, gt=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # When false, failure Results carry only the message
    include_stack: bool = True

    @field_validator("bridge_key")
    @classmethod
    def _non_empty_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("bridge_key must not be empty")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("socket_path")
    @classmethod
    def _expand_socket(cls, value: Path) -> Path:
        return value.expanduser()
