"""Main CLI application."""

import asyncio
import importlib
import json
from pathlib import Path
from typing import Annotated, Any

import typer

from ipc_bridge.cli.console import console, dim, error, success

app = typer.Typer(
    name="ipc-bridge",
    help="Typed RPC bridge between a host and a client context",
    no_args_is_help=True,
)


def load_api(target: str) -> type:
    """Import an API definition from a ``module:Class`` reference."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"Expected MODULE:CLASS, got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import {module_name}: {e}") from e
    api_cls = getattr(module, attr, None)
    if not isinstance(api_cls, type):
        raise typer.BadParameter(f"{target} is not a class")
    return api_cls


def parse_arg(raw: str) -> Any:
    """Parse a CLI argument as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


SocketOption = Annotated[
    Path | None,
    typer.Option(
        "--socket",
        "-s",
        help="Path to the host socket (default: $IPC_BRIDGE_HOME/bridge.sock)",
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to configuration file"),
]


@app.command()
def serve(
    apis: Annotated[
        list[str],
        typer.Argument(help="API definitions to register, as MODULE:CLASS"),
    ],
    socket: SocketOption = None,
    config: ConfigOption = None,
) -> None:
    """Register API definitions and serve them on a Unix socket."""
    from ipc_bridge.config import load_config
    from ipc_bridge.context import BridgeContext
    from ipc_bridge.logging import configure_logging
    from ipc_bridge.registrar import register_api
    from ipc_bridge.server import IPCServer

    bridge_config = load_config(config)
    configure_logging(bridge_config.log_level, use_rich=True)

    context = BridgeContext.host(bridge_config)
    for target in apis:
        try:
            channels = register_api(context, load_api(target))
        except (TypeError, ValueError) as e:
            error(str(e))
            raise typer.Exit(1) from None
        dim(f"{target}: {len(channels)} operations")

    server = IPCServer(context, socket)

    async def run_server() -> None:
        async with server:
            success(f"Serving {len(context.registry)} channels on {server.socket_path}")
            await server.serve_forever()

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        console.print("\nShutting down")


@app.command()
def call(
    channel: Annotated[str, typer.Argument(help="Channel, as ApiName:operation")],
    args: Annotated[
        list[str] | None,
        typer.Argument(help="Arguments, each parsed as JSON"),
    ] = None,
    socket: SocketOption = None,
    config: ConfigOption = None,
) -> None:
    """Invoke one host operation and print its result as JSON."""
    from ipc_bridge.client import SocketTransport
    from ipc_bridge.config import load_config
    from ipc_bridge.context import BridgeContext
    from ipc_bridge.errors import BridgeError
    from ipc_bridge.protocol import parse_channel
    from ipc_bridge.proxy import create_proxy
    from ipc_bridge.transport import expose_bridge

    try:
        api_name, operation = parse_channel(channel)
    except ValueError as e:
        error(str(e))
        raise typer.Exit(1) from None

    bridge_config = load_config(config)
    if socket is not None:
        bridge_config = bridge_config.model_copy(update={"socket_path": socket})
    values = [parse_arg(raw) for raw in args or []]

    async def run_call() -> Any:
        context = BridgeContext.client(bridge_config)
        async with SocketTransport.from_config(bridge_config) as transport:
            expose_bridge(context, transport)
            proxy = create_proxy(context, api_name)
            return await getattr(proxy, operation)(*values)

    try:
        result = asyncio.run(run_call())
    except (BridgeError, ConnectionError) as e:
        error(f"{type(e).__name__}: {e}")
        raise typer.Exit(1) from None

    typer.echo(json.dumps(result, indent=2))


@app.command()
def channels(
    api: Annotated[str, typer.Argument(help="API definition, as MODULE:CLASS")],
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Channel namespace (default: class name)"),
    ] = None,
) -> None:
    """List the channels an API definition binds."""
    from ipc_bridge.registrar import channels_for

    try:
        mapping = channels_for(load_api(api), name)
    except (TypeError, ValueError) as e:
        error(str(e))
        raise typer.Exit(1) from None

    for channel in mapping.values():
        typer.echo(channel)


@app.command("config")
def config_command(
    action: Annotated[str, typer.Argument(help="Action: show, validate")] = "show",
    path: Annotated[
        Path | None,
        typer.Option("--path", "-p", help="Path to config file"),
    ] = None,
) -> None:
    """Show or validate the effective configuration."""
    import tomllib

    from pydantic import ValidationError

    from ipc_bridge.config import load_config

    if action not in ("show", "validate"):
        error(f"Unknown action: {action}")
        raise typer.Exit(1)

    try:
        bridge_config = load_config(path)
    except FileNotFoundError as e:
        error(str(e))
        raise typer.Exit(1) from None
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        error(f"Configuration validation failed:\n{e}")
        raise typer.Exit(1) from None

    if action == "validate":
        success("Configuration is valid")
        return

    typer.echo(bridge_config.model_dump_json(indent=2))


def main() -> None:
    app()
