"""
Tests for the workflow function registry
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from workflow_interpreter.functions import (
    FunctionDefinition,
    FunctionRegistry,
    FunctionResult,
    HandlerContext,
)


class TestBuiltinFunctions:
    """Tests for the built-in functions."""

    @pytest.mark.asyncio
    async def test_hello_world(self):
        result = await FunctionRegistry().call("hello_world", {"name": "Ada"})
        assert result.success
        assert result.data["message"] == "Hello, Ada!"
        assert "timestamp" in result.data

    @pytest.mark.asyncio
    async def test_hello_world_default_name(self):
        result = await FunctionRegistry().call("hello_world", {})
        assert result.data["message"] == "Hello, World!"

    @pytest.mark.asyncio
    async def test_add_numbers(self):
        result = await FunctionRegistry().call("add_numbers", {"a": 2, "b": "3"})
        assert result.data == {"a": 2, "b": 3, "sum": 5, "operation": "2 + 3 = 5"}

    @pytest.mark.asyncio
    async def test_add_numbers_wrapped_values(self):
        result = await FunctionRegistry().call(
            "add_numbers", {"a": {"type": "number", "value": 1.5}, "b": {"value": 1}}
        )
        assert result.data["sum"] == 2.5

    @pytest.mark.asyncio
    async def test_add_numbers_invalid(self):
        result = await FunctionRegistry().call("add_numbers", {"a": "x", "b": 1})
        assert not result.success
        assert "valid numbers" in result.error

    @pytest.mark.asyncio
    async def test_get_object(self):
        tool_caller = MagicMock()
        tool_caller.call_tool = AsyncMock(return_value={"id": 4, "title": "T"})

        result = await FunctionRegistry().call(
            "get_object", {"object_id": "4"}, HandlerContext(tool_caller=tool_caller)
        )

        assert result.success
        assert result.data == {"id": 4, "title": "T"}
        tool_caller.call_tool.assert_awaited_once_with("get_object", {"object_id": 4})

    @pytest.mark.asyncio
    async def test_get_object_not_found(self):
        tool_caller = MagicMock()
        tool_caller.call_tool = AsyncMock(return_value=None)

        result = await FunctionRegistry().call(
            "get_object", {"object_id": 9}, HandlerContext(tool_caller=tool_caller)
        )

        assert result.error == "Object with ID 9 not found"

    @pytest.mark.asyncio
    async def test_get_object_invalid_id(self):
        result = await FunctionRegistry().call(
            "get_object", {"object_id": 0}, HandlerContext(tool_caller=MagicMock())
        )
        assert not result.success
        assert "object_id" in result.error

    @pytest.mark.asyncio
    async def test_get_object_without_tool_caller(self):
        result = await FunctionRegistry().call("get_object", {"object_id": 1})
        assert result.error == "ToolCaller not available in handler context"


class TestFunctionRegistry:
    """Tests for FunctionRegistry."""

    def test_builtins_registered(self):
        registry = FunctionRegistry()
        names = [d.name for d in registry.get_definitions()]
        assert names == ["hello_world", "add_numbers", "get_object"]

    def test_without_builtins(self):
        assert FunctionRegistry(include_builtins=False).get_definitions() == []

    @pytest.mark.asyncio
    async def test_register_custom(self):
        async def double(params, context):
            return FunctionResult(success=True, data=params["n"] * 2)

        registry = FunctionRegistry(include_builtins=False)
        registry.register(double, FunctionDefinition(name="double", description="Doubles n"))

        assert registry.has("double")
        assert (await registry.call("double", {"n": 4})).data == 8
        assert registry.get_definition("double").to_dict() == {
            "name": "double",
            "description": "Doubles n",
            "parameters": [],
        }

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_failure(self):
        async def broken(params, context):
            raise RuntimeError("kaboom")

        registry = FunctionRegistry(include_builtins=False)
        registry.register(broken, FunctionDefinition(name="broken", description=""))

        result = await registry.call("broken", {})

        assert not result.success
        assert result.error == "kaboom"

    @pytest.mark.asyncio
    async def test_unknown_function(self):
        result = await FunctionRegistry().call("nope", {})
        assert result.error == "Function 'nope' not found in registry"
