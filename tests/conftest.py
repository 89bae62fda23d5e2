"""Shared test fixtures."""

import pytest

from ipc_bridge.context import BridgeContext
from ipc_bridge.registrar import register_api
from ipc_bridge.transport import LocalTransport, expose_bridge
from sample_apis import CountingApi, MathApi, UserApi


@pytest.fixture(autouse=True)
def _reset_counting_api():
    CountingApi.instances = 0
    yield
    CountingApi.instances = 0


@pytest.fixture
def host_context() -> BridgeContext:
    """Host context with MathApi and UserApi registered."""
    context = BridgeContext.host()
    register_api(context, MathApi)
    register_api(context, UserApi)
    return context


@pytest.fixture
def client_context(host_context: BridgeContext) -> BridgeContext:
    """Client context bridged in-process to ``host_context``."""
    context = BridgeContext.client()
    expose_bridge(context, LocalTransport(host_context))
    return context


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
