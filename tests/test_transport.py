"""Tests for transport exposure."""

import pytest

from ipc_bridge.config import BridgeConfig
from ipc_bridge.context import BridgeContext
from ipc_bridge.errors import ChannelNotFoundError
from ipc_bridge.proxy import create_proxy
from ipc_bridge.transport import LocalTransport, Transport, expose_bridge


class RecordingTransport:
    def __init__(self):
        self.calls = []

    async def invoke(self, channel, args):
        self.calls.append((channel, args))
        return {"ok": True, "data": len(self.calls)}


class TestExposeBridge:
    def test_publishes_under_default_key(self):
        context = BridgeContext.client()
        invoke = expose_bridge(context, RecordingTransport())

        assert context.globals == {"__ipcInvoke": invoke}

    def test_publishes_under_explicit_key(self):
        context = BridgeContext.client()
        expose_bridge(context, RecordingTransport(), key="__bridge")

        assert list(context.globals) == ["__bridge"]

    def test_publishes_under_configured_key(self):
        context = BridgeContext.client(BridgeConfig(bridge_key="__fromConfig"))
        expose_bridge(context, RecordingTransport())

        assert "__fromConfig" in context.globals

    @pytest.mark.asyncio
    async def test_relays_without_transformation(self):
        context = BridgeContext.client()
        transport = RecordingTransport()
        invoke = expose_bridge(context, transport)

        first = await invoke("Api:op", ("a", 1))
        second = await invoke("Api:other", [])

        assert first == {"ok": True, "data": 1}
        assert second == {"ok": True, "data": 2}
        assert transport.calls == [("Api:op", ["a", 1]), ("Api:other", [])]

    @pytest.mark.asyncio
    async def test_re_exposure_replaces_primitive(self):
        context = BridgeContext.client()
        old, new = RecordingTransport(), RecordingTransport()
        expose_bridge(context, old)
        expose_bridge(context, new)

        await create_proxy(context, "Api").op()

        assert old.calls == []
        assert new.calls == [("Api:op", [])]

    def test_transports_satisfy_protocol(self, host_context):
        assert isinstance(LocalTransport(host_context), Transport)
        assert isinstance(RecordingTransport(), Transport)


class TestLocalTransport:
    @pytest.mark.asyncio
    async def test_returns_wire_result(self, host_context):
        transport = LocalTransport(host_context)
        assert await transport.invoke("MathApi:add", [2, 3]) == {"ok": True, "data": 5}

    @pytest.mark.asyncio
    async def test_unknown_channel(self, host_context):
        transport = LocalTransport(host_context)
        with pytest.raises(ChannelNotFoundError):
            await transport.invoke("MathApi:subtract", [1, 2])

    @pytest.mark.asyncio
    async def test_result_is_detached_from_host(self, host_context):
        transport = LocalTransport(host_context)
        result = await transport.invoke("UserApi:getUser", [4])
        result["data"]["name"] = "changed"

        again = await transport.invoke("UserApi:getUser", [4])
        assert again["data"]["name"] == "user-4"
