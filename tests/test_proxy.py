"""Tests for client-side proxies."""

import asyncio
import copy

import pytest

from ipc_bridge.context import BridgeContext
from ipc_bridge.errors import (
    BridgeNotExposedError,
    ChannelNotFoundError,
    MarshalingError,
    ProtocolError,
    RemoteError,
)
from ipc_bridge.proxy import IPCProxy, RemoteMethod, create_proxy
from sample_apis import MathApi, UserApi


def _recording_context(result: dict | None = None) -> tuple[BridgeContext, list]:
    """Client context whose published primitive records every invocation."""
    context = BridgeContext.client()
    calls: list = []

    async def invoke(channel, args):
        calls.append((channel, args))
        return result or {"ok": True, "data": None}

    context.globals[context.bridge_key] = invoke
    return context, calls


class TestMathScenario:
    @pytest.mark.asyncio
    async def test_add_resolves_to_sum(self, client_context):
        math = create_proxy(client_context, "MathApi")
        assert await math.add(2, 3) == 5

    @pytest.mark.asyncio
    async def test_fail_raises_with_message(self, client_context):
        math = create_proxy(client_context, "MathApi")

        with pytest.raises(RemoteError) as exc_info:
            await math.fail()

        assert str(exc_info.value) == "boom"
        assert exc_info.value.message == "boom"
        assert "RuntimeError: boom" in exc_info.value.stack

    @pytest.mark.asyncio
    async def test_error_without_message_becomes_unknown_error(self, client_context):
        math = create_proxy(client_context, "MathApi")

        with pytest.raises(RemoteError, match="^Unknown error$"):
            await math.fail_without_message()


class TestDispatch:
    @pytest.mark.asyncio
    async def test_channel_derivation(self):
        context, calls = _recording_context()
        users = create_proxy(context, "UserApi")

        await users.getUser(1)

        assert calls == [("UserApi:getUser", [1])]

    @pytest.mark.asyncio
    async def test_arguments_are_forwarded_in_order(self):
        context, calls = _recording_context()
        proxy = create_proxy(context, "Api")

        await proxy.op("a", 2, [3], {"four": 4})

        assert calls == [("Api:op", ["a", 2, [3], {"four": 4}])]

    @pytest.mark.asyncio
    async def test_any_attribute_yields_a_callable(self):
        context, calls = _recording_context()
        proxy = create_proxy(context, "Api")

        method = proxy.doesNotExistAnywhere
        assert isinstance(method, RemoteMethod)
        assert method.channel == "Api:doesNotExistAnywhere"
        assert calls == []

    def test_repeated_reads_are_independent(self):
        context, _ = _recording_context()
        proxy = create_proxy(context, "Api")

        first, second = proxy.op, proxy.op
        assert first is not second
        assert first.channel == second.channel == "Api:op"

    def test_private_attributes_are_not_operations(self):
        context, _ = _recording_context()
        proxy = create_proxy(context, "Api")

        with pytest.raises(AttributeError):
            proxy._secret
        with pytest.raises(AttributeError):
            proxy.__await__

    def test_proxy_survives_copy(self):
        context, _ = _recording_context()
        proxy = create_proxy(context, "Api")
        assert isinstance(copy.copy(proxy), IPCProxy)

    @pytest.mark.asyncio
    async def test_unknown_operation_fails_at_call_time(self, client_context):
        math = create_proxy(client_context, "MathApi")
        method = math.subtract

        with pytest.raises(ChannelNotFoundError):
            await method(5, 3)

    @pytest.mark.asyncio
    async def test_call_before_exposure_is_a_lookup_error(self):
        proxy = create_proxy(BridgeContext.client(), "MathApi")

        with pytest.raises(BridgeNotExposedError) as exc_info:
            await proxy.add(1, 2)

        assert isinstance(exc_info.value, LookupError)
        assert exc_info.value.key == "__ipcInvoke"

    @pytest.mark.asyncio
    async def test_custom_bridge_key(self):
        context = BridgeContext.client()

        async def invoke(channel, args):
            return {"ok": True, "data": channel}

        context.globals["__customInvoke"] = invoke
        proxy = create_proxy(context, "Api", bridge_key="__customInvoke")

        assert await proxy.op() == "Api:op"

    @pytest.mark.asyncio
    async def test_malformed_result_is_a_protocol_error(self):
        context, _ = _recording_context({"ok": True, "data": 1, "error": {}})
        proxy = create_proxy(context, "Api")

        with pytest.raises(ProtocolError):
            await proxy.op()

    @pytest.mark.asyncio
    async def test_failure_result_never_resolves(self):
        context, _ = _recording_context({"ok": False, "error": {"message": "nope"}})
        proxy = create_proxy(context, "Api")

        with pytest.raises(RemoteError, match="nope") as exc_info:
            await proxy.op()
        assert exc_info.value.stack is None

    def test_requires_name_or_interface(self):
        with pytest.raises(TypeError):
            create_proxy(BridgeContext.client())


class TestMarshaling:
    @pytest.mark.asyncio
    async def test_unserializable_argument(self, client_context):
        math = create_proxy(client_context, "MathApi")

        with pytest.raises(MarshalingError):
            await math.add(lambda: 1, 2)

    @pytest.mark.asyncio
    async def test_unserializable_return_value(self, client_context):
        math = create_proxy(client_context, "MathApi")

        with pytest.raises(RemoteError, match="not serializable"):
            await math.make_unserializable()

    @pytest.mark.asyncio
    async def test_arguments_are_copied_across_the_boundary(self, client_context):
        users = create_proxy(client_context, "UserApi")
        tags = ["client"]

        result = await users.appendTag(tags)

        assert result == ["client", "host"]
        assert tags == ["client"]


class TestInterfaceProxy:
    @pytest.mark.asyncio
    async def test_calls_declared_operations(self, client_context):
        math = create_proxy(client_context, interface=MathApi)
        assert await math.add(2, 3) == 5

    def test_undeclared_operation_fails_at_attribute_access(self, client_context):
        math = create_proxy(client_context, interface=MathApi)

        with pytest.raises(AttributeError, match="subtract"):
            math.subtract

    def test_dir_lists_operations(self, client_context):
        users = create_proxy(client_context, interface=UserApi)
        assert dir(users) == ["appendTag", "getUser"]

    @pytest.mark.asyncio
    async def test_name_override(self):
        context, calls = _recording_context()
        users = create_proxy(context, "Users", interface=UserApi)

        await users.getUser(3)

        assert calls == [("Users:getUser", [3])]


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_calls_complete_independently(self, client_context):
        math = create_proxy(client_context, "MathApi")
        completed: list[str] = []

        async def run(value, delay):
            result = await math.slow_echo(value, delay)
            completed.append(result)
            return result

        results = await asyncio.gather(run("slow", 0.05), run("fast", 0))

        assert results == ["slow", "fast"]
        assert completed == ["fast", "slow"]

    @pytest.mark.asyncio
    async def test_calls_across_groups(self, client_context):
        math = create_proxy(client_context, "MathApi")
        users = create_proxy(client_context, "UserApi")

        total, user, failure = await asyncio.gather(
            math.add(1, 2),
            users.getUser(9),
            math.fail(),
            return_exceptions=True,
        )

        assert total == 3
        assert user == {"id": 9, "name": "user-9"}
        assert isinstance(failure, RemoteError)
