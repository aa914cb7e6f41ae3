"""
Tests for individual step executors
"""

import pytest
from unittest.mock import AsyncMock

from config.types import InterpreterSettings
from workflow_interpreter.context import StepStatus
from workflow_interpreter.definition import StepDefinition
from workflow_interpreter.engine import WorkflowEngine
from workflow_interpreter.errors import (
    MissingCollaboratorError,
    MissingRequiredFieldError,
    StateSaveFailedError,
    StepExecutionError,
    ToolCallFailedError,
)
from workflow_interpreter.steps.base import AGENT_INSTRUCTIONS


async def run_step(engine, context, config):
    """Build a step from config and run it against the context."""
    step = engine.create_step(StepDefinition.from_dict(config))
    return await step.run(context)


class TestBasicSteps:
    """Tests for log, set_variable and return."""

    @pytest.mark.asyncio
    async def test_log_appends_interpolated_message(self, engine, context):
        result = await run_step(
            engine, context, {"name": "log", "type": "log", "message": "Task {{input.task_id}}"}
        )
        assert context.logs == ["Task 7"]
        assert result.status == StepStatus.COMPLETED
        assert result.output == "Task 7"

    @pytest.mark.asyncio
    async def test_log_keeps_unresolved_reference(self, engine, context):
        await run_step(engine, context, {"name": "log", "type": "log", "message": "{{missing}}"})
        assert context.logs == ["{{missing}}"]

    @pytest.mark.asyncio
    async def test_log_requires_message(self, engine, context):
        with pytest.raises(MissingRequiredFieldError, match="log step requires a message"):
            await run_step(engine, context, {"name": "log", "type": "log"})
        assert context.get_step_status("log") == StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_set_variable_preserves_type(self, engine, context):
        await run_step(
            engine,
            context,
            {"name": "set", "type": "set_variable", "variableName": "copy", "value": "{{user}}"},
        )
        assert context.variables["copy"] == {"name": "Ada", "tags": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_set_variable_allows_falsy_values(self, engine, context):
        await run_step(
            engine,
            context,
            {"name": "set", "type": "set_variable", "variableName": "empty", "value": ""},
        )
        assert context.variables["empty"] == ""

    @pytest.mark.asyncio
    async def test_set_variable_requires_name(self, engine, context):
        with pytest.raises(MissingRequiredFieldError, match="variableName"):
            await run_step(engine, context, {"name": "set", "type": "set_variable", "value": 1})

    @pytest.mark.asyncio
    async def test_return_sets_result(self, engine, context):
        await run_step(
            engine, context, {"name": "ret", "type": "return", "value": {"n": "{{count}}"}}
        )
        assert context.has_result
        assert context.result == {"n": 42}
        assert not context.suspended

    @pytest.mark.asyncio
    async def test_set_variable_explicit_null(self, engine, context):
        await run_step(
            engine,
            context,
            {"name": "set", "type": "set_variable", "variableName": "cleared", "value": None},
        )
        assert "cleared" in context.variables
        assert context.variables["cleared"] is None

    @pytest.mark.asyncio
    async def test_set_variable_requires_value(self, engine, context):
        with pytest.raises(MissingRequiredFieldError, match="value"):
            await run_step(
                engine, context, {"name": "set", "type": "set_variable", "variableName": "x"}
            )

    @pytest.mark.asyncio
    async def test_return_explicit_null(self, engine, context):
        await run_step(engine, context, {"name": "ret", "type": "return", "value": None})
        assert context.has_result
        assert context.result is None

    @pytest.mark.asyncio
    async def test_return_requires_value(self, engine, context):
        with pytest.raises(MissingRequiredFieldError, match="value"):
            await run_step(engine, context, {"name": "ret", "type": "return"})


class TestCallSteps:
    """Tests for call_tool and call_function."""

    @pytest.mark.asyncio
    async def test_call_tool(self, engine, context, tool_caller):
        tool_caller.call_tool.return_value = {"id": 7, "stage": "todo"}

        result = await run_step(
            engine,
            context,
            {
                "name": "get_task",
                "type": "call_tool",
                "tool_name": "get_object",
                "parameters": {"object_id": "{{input.task_id}}"},
                "result_variable": "task",
            },
        )

        tool_caller.call_tool.assert_awaited_once_with("get_object", {"object_id": 7})
        assert context.variables["task"] == {"id": 7, "stage": "todo"}
        assert result.output == {"id": 7, "stage": "todo"}

    @pytest.mark.asyncio
    async def test_call_tool_failure_wrapped(self, engine, context, tool_caller):
        tool_caller.call_tool.side_effect = RuntimeError("boom")

        with pytest.raises(ToolCallFailedError) as exc_info:
            await run_step(
                engine, context, {"name": "call", "type": "call_tool", "tool_name": "broken"}
            )

        assert str(exc_info.value) == "Tool 'broken' execution failed: boom"
        assert exc_info.value.step_name == "call"
        failed = context.get_step_result("call")
        assert failed.status == StepStatus.FAILED
        assert "boom" in failed.error

    @pytest.mark.asyncio
    async def test_call_tool_without_tool_caller(self, context):
        with pytest.raises(MissingCollaboratorError):
            await run_step(
                WorkflowEngine(), context, {"name": "call", "type": "call_tool", "tool_name": "x"}
            )

    @pytest.mark.asyncio
    async def test_call_function_builtin(self, engine, context, tool_caller):
        await run_step(
            engine,
            context,
            {
                "name": "add",
                "type": "call_function",
                "function_name": "add_numbers",
                "parameters": {"a": "{{count}}", "b": 8},
                "result_variable": "total",
            },
        )
        assert context.variables["total"]["sum"] == 50
        tool_caller.call_tool.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_call_function_failure(self, engine, context):
        with pytest.raises(ToolCallFailedError, match="must be valid numbers"):
            await run_step(
                engine,
                context,
                {"name": "add", "type": "call_function", "function_name": "add_numbers"},
            )

    @pytest.mark.asyncio
    async def test_call_function_falls_back_to_tool(self, engine, context, tool_caller):
        await run_step(
            engine,
            context,
            {"name": "f", "type": "call_function", "function_name": "custom", "parameters": {"x": 1}},
        )
        tool_caller.call_tool.assert_awaited_once_with("custom", {"x": 1})

    @pytest.mark.asyncio
    async def test_call_function_not_found(self, context):
        with pytest.raises(ToolCallFailedError, match="Function not found in registry"):
            await run_step(
                WorkflowEngine(),
                context,
                {"name": "f", "type": "call_function", "function_name": "custom"},
            )


class TestControlFlowSteps:
    """Tests for conditional and switch."""

    @pytest.mark.asyncio
    async def test_conditional_then_branch(self, engine, context):
        result = await run_step(
            engine,
            context,
            {
                "name": "check",
                "type": "conditional",
                "condition": "{{count}} == 42",
                "then": [{"name": "yes", "type": "log", "message": "then"}],
                "else": [{"name": "no", "type": "log", "message": "else"}],
            },
        )
        assert context.logs == ["then"]
        assert result.output == {"condition": True, "branch": "then"}

    @pytest.mark.asyncio
    async def test_conditional_else_branch(self, engine, context):
        await run_step(
            engine,
            context,
            {
                "name": "check",
                "type": "conditional",
                "condition": "{{missing}}",
                "then": [{"name": "yes", "type": "log", "message": "then"}],
                "else": [{"name": "no", "type": "log", "message": "else"}],
            },
        )
        assert context.logs == ["else"]
        assert context.get_step_status("yes") == StepStatus.PENDING

    @pytest.mark.asyncio
    async def test_conditional_nested_return_stops_branch(self, engine, context):
        await run_step(
            engine,
            context,
            {
                "name": "check",
                "type": "conditional",
                "condition": "true",
                "then": [
                    {"name": "ret", "type": "return", "value": "early"},
                    {"name": "after", "type": "log", "message": "unreachable"},
                ],
            },
        )
        assert context.result == "early"
        assert context.logs == []

    @pytest.mark.asyncio
    async def test_switch_matches_case(self, engine, context):
        context.variables["stage"] = "b"
        result = await run_step(
            engine,
            context,
            {
                "name": "route",
                "type": "switch",
                "switch_value": "{{stage}}",
                "cases": {
                    "a": [{"name": "log_a", "type": "log", "message": "A"}],
                    "b": [{"name": "log_b", "type": "log", "message": "B"}],
                },
                "default_case": [{"name": "log_d", "type": "log", "message": "D"}],
            },
        )
        assert context.logs == ["B"]
        assert result.output == {"value": "b", "matched_case": "b"}

    @pytest.mark.asyncio
    async def test_switch_numeric_value_matches_string_key(self, engine, context):
        await run_step(
            engine,
            context,
            {
                "name": "route",
                "type": "switch",
                "switch_value": "{{count}}",
                "cases": {"42": [{"name": "hit", "type": "log", "message": "hit"}]},
            },
        )
        assert context.logs == ["hit"]

    @pytest.mark.asyncio
    async def test_switch_default_case(self, engine, context):
        context.variables["stage"] = "z"
        result = await run_step(
            engine,
            context,
            {
                "name": "route",
                "type": "switch",
                "switch_value": "{{stage}}",
                "cases": {"a": [{"name": "log_a", "type": "log", "message": "A"}]},
                "default_case": [{"name": "log_d", "type": "log", "message": "D"}],
            },
        )
        assert context.logs == ["D"]
        assert result.output["matched_case"] == "default"

    @pytest.mark.asyncio
    async def test_switch_no_match_no_default(self, engine, context):
        context.variables["stage"] = "z"
        result = await run_step(
            engine,
            context,
            {
                "name": "route",
                "type": "switch",
                "switch_value": "{{stage}}",
                "cases": {
                    "a": [{"name": "log_a", "type": "log", "message": "A"}],
                    "b": [{"name": "log_b", "type": "log", "message": "B"}],
                },
            },
        )
        assert context.logs == []
        assert result.status == StepStatus.COMPLETED
        assert result.output == {"value": "z", "matched_case": None}


class TestStateSteps:
    """Tests for load_state and save_state."""

    @pytest.mark.asyncio
    async def test_save_then_load(self, engine, context, state_store):
        await run_step(
            engine,
            context,
            {"name": "save", "type": "save_state", "key": "task:{{input.task_id}}", "value": "{{user}}"},
        )
        assert await state_store.get("task:7") == {"name": "Ada", "tags": ["a", "b"]}

        await run_step(
            engine,
            context,
            {"name": "load", "type": "load_state", "key": "task:7", "result_variable": "loaded"},
        )
        assert context.variables["loaded"] == {"name": "Ada", "tags": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_load_missing_uses_default(self, engine, context):
        await run_step(
            engine,
            context,
            {
                "name": "load",
                "type": "load_state",
                "key": "absent",
                "default_value": "{{count}}",
                "result_variable": "loaded",
            },
        )
        assert context.variables["loaded"] == 42

    @pytest.mark.asyncio
    async def test_load_store_error_uses_default(self, engine, context, state_store):
        state_store.get = AsyncMock(side_effect=RuntimeError("down"))
        await run_step(
            engine,
            context,
            {
                "name": "load",
                "type": "load_state",
                "key": "k",
                "default_value": [],
                "result_variable": "loaded",
            },
        )
        assert context.variables["loaded"] == []

    @pytest.mark.asyncio
    async def test_save_failure_raises(self, engine, context, state_store):
        state_store.set = AsyncMock(side_effect=RuntimeError("disk full"))
        with pytest.raises(StateSaveFailedError, match="disk full"):
            await run_step(
                engine, context, {"name": "save", "type": "save_state", "key": "k", "value": 1}
            )

    @pytest.mark.asyncio
    async def test_state_steps_require_store(self, context):
        with pytest.raises(MissingCollaboratorError, match="StateStore"):
            await run_step(
                WorkflowEngine(),
                context,
                {"name": "save", "type": "save_state", "key": "k", "value": 1},
            )


class TestAgentSteps:
    """Tests for agent and load_object."""

    @pytest.mark.asyncio
    async def test_agent_suspends_with_instructions(self, engine, context):
        context.current_step = 2
        result = await run_step(
            engine,
            context,
            {"name": "plan", "type": "agent", "instructions": ["Plan task {{input.task_id}}"]},
        )

        assert context.suspended
        payload = context.result
        assert payload["type"] == AGENT_INSTRUCTIONS
        assert payload["step"] == "plan"
        assert payload["current_step"] == 2
        assert payload["instructions"] == ["Plan task 7"]
        assert payload["sampling_result"] is None
        assert result.status == StepStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_agent_with_sampling(self, tool_caller, sampling_gateway, context):
        engine = WorkflowEngine(
            tool_caller=tool_caller,
            sampling_gateway=sampling_gateway,
            settings=InterpreterSettings(sampling_max_tokens=50, sampling_system_prompt="Be brief"),
        )
        await run_step(
            engine,
            context,
            {
                "name": "plan",
                "type": "agent",
                "instructions": ["one", "two"],
                "result_variable": "draft",
            },
        )

        sampling_gateway.request_completion.assert_awaited_once_with(
            "one\ntwo", system_prompt="Be brief", max_tokens=50, model=None
        )
        assert context.variables["draft"] == "sampled answer"
        assert context.result["sampling_result"] == "sampled answer"

    @pytest.mark.asyncio
    async def test_agent_sampling_uses_configured_model(self, sampling_gateway, context):
        engine = WorkflowEngine(
            sampling_gateway=sampling_gateway,
            settings=InterpreterSettings(sampling_model="gpt-4o-mini"),
        )
        await run_step(engine, context, {"name": "plan", "type": "agent", "instructions": "x"})

        assert sampling_gateway.request_completion.await_args.kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_agent_sampling_disabled(self, sampling_gateway, context):
        engine = WorkflowEngine(
            sampling_gateway=sampling_gateway,
            settings=InterpreterSettings(sampling_enabled=False),
        )
        await run_step(engine, context, {"name": "plan", "type": "agent", "instructions": "x"})
        sampling_gateway.request_completion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_agent_sampling_failure_still_completes(self, sampling_gateway, context):
        sampling_gateway.request_completion.side_effect = RuntimeError("no model")
        engine = WorkflowEngine(sampling_gateway=sampling_gateway)

        result = await run_step(
            engine, context, {"name": "plan", "type": "agent", "instructions": "x"}
        )

        assert result.status == StepStatus.COMPLETED
        assert result.output["sampling_result"] is None

    @pytest.mark.asyncio
    async def test_load_object(self, engine, context, schema_provider):
        result = await run_step(
            engine,
            context,
            {
                "name": "fill",
                "type": "load_object",
                "template_id": 1,
                "property_keys": ["Title", "Description"],
                "instructions": ["Fill in task {{input.task_id}}"],
            },
        )

        schema_provider.get_properties.assert_awaited_once_with(1)
        payload = context.result
        assert [s["key"] for s in payload["property_schemas"]] == ["Title", "Description"]
        assert payload["instructions"][0] == "Fill in task 7"
        assert "Provide a value for 'Title' (text): Task title" in payload["instructions"]
        assert payload["template_id"] == 1
        assert result.status == StepStatus.COMPLETED


class TestCreateObjectStep:
    """Tests for create_object."""

    @pytest.mark.asyncio
    async def test_all_resolved_creates_object(self, engine, context, tool_caller):
        tool_caller.call_tool.return_value = {"id": 99}

        await run_step(
            engine,
            context,
            {
                "name": "create",
                "type": "create_object",
                "template_id": 1,
                "properties": {"Title": "{{input.title}}", "Stage": "draft"},
                "result_variable": "created",
            },
        )

        tool_caller.call_tool.assert_awaited_once_with(
            "create_object",
            {"template_id": 1, "properties": {"Title": "Write docs", "Stage": "draft"}},
        )
        assert context.variables["created"] == {"id": 99}
        assert not context.has_result

    @pytest.mark.asyncio
    async def test_unresolved_properties_suspend(self, engine, context, tool_caller):
        await run_step(
            engine,
            context,
            {
                "name": "create",
                "type": "create_object",
                "template_id": 1,
                "properties": {
                    "Title": "{{input.title}}",
                    "Stage": "{{missing}}",
                    "Description": None,
                },
            },
        )

        tool_caller.call_tool.assert_not_awaited()
        payload = context.result
        assert context.suspended
        assert payload["action"] == "create_object"
        assert [s["key"] for s in payload["property_schemas"]] == ["Stage", "Description"]
        assert payload["prefilled_values"] == {"Title": "Write docs"}

    @pytest.mark.asyncio
    async def test_unknown_property(self, engine, context):
        with pytest.raises(StepExecutionError, match="no properties named: Color"):
            await run_step(
                engine,
                context,
                {
                    "name": "create",
                    "type": "create_object",
                    "template_id": 1,
                    "properties": {"Color": "red"},
                },
            )

    @pytest.mark.asyncio
    async def test_requires_schema_provider(self, context):
        with pytest.raises(MissingCollaboratorError, match="SchemaProvider"):
            await run_step(
                WorkflowEngine(),
                context,
                {
                    "name": "create",
                    "type": "create_object",
                    "template_id": 1,
                    "properties": {"Title": "x"},
                },
            )
