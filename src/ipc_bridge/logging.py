"""Centralized logging configuration for the bridge.

Entry points (CLI, embedding applications) should call configure_logging()
early. Library modules only ever create module loggers.

Logging Levels:
- DEBUG: Handler binding, connection open/close
- INFO: Server start/stop
- WARNING: Malformed frames, dropped connections
- ERROR: Handler failures (logged once per occurrence with the channel)
"""

import logging
import os

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ComponentFormatter(logging.Formatter):
    """Formatter that extracts component name from logger path.

    Converts full module paths to short component names:
    - ipc_bridge.registrar -> registrar
    - ipc_bridge.server -> server
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = record.name.split(".")
        if len(parts) >= 2 and parts[0] == "ipc_bridge":
            record.component = parts[1]
        else:
            record.component = parts[0]
        channel = getattr(record, "channel", None)
        record.channel_suffix = f" [{channel}]" if channel else ""
        return super().format(record)


def resolve_level(level: str | None = None) -> str:
    """Resolve a log level name, falling back to IPC_BRIDGE_LOG_LEVEL or INFO."""
    if level is None:
        level = os.environ.get("IPC_BRIDGE_LOG_LEVEL", "INFO")
    level = level.upper()
    if level not in LOG_LEVELS:
        level = "INFO"
    return level


def configure_logging(level: str | None = None, use_rich: bool = False) -> None:
    """Configure logging for the bridge.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
            If None, uses IPC_BRIDGE_LOG_LEVEL env var or INFO.
        use_rich: Use Rich handler for colorful output (serve mode).
    """
    log_level = getattr(logging, resolve_level(level))

    handler: logging.Handler
    if use_rich:
        from rich.logging import RichHandler

        handler = RichHandler(
            rich_tracebacks=False,
            show_path=False,
            show_time=True,
            markup=False,
        )
        handler.setFormatter(
            ComponentFormatter("%(component)s | %(message)s%(channel_suffix)s")
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            ComponentFormatter(
                "%(asctime)s | %(levelname)-8s | %(component)s | %(message)s%(channel_suffix)s",
                datefmt="%H:%M:%S",
            )
        )

    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    # asyncio debug chatter is not useful at INFO
    logging.getLogger("asyncio").setLevel(logging.WARNING)
