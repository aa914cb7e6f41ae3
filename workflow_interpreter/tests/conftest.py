"""
Shared fixtures for workflow interpreter tests.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from workflow_interpreter.context import ExecutionContext
from workflow_interpreter.engine import WorkflowEngine
from workflow_interpreter.interfaces import SamplingGateway, SchemaProvider, ToolCaller
from workflow_interpreter.state_store import InMemoryStateStore


TASK_PROPERTIES = [
    {"key": "Title", "type": "text", "description": "Task title", "step_type": "property"},
    {"key": "Stage", "type": "text", "description": "Task stage", "step_type": "property"},
    {"key": "Description", "type": "text", "description": "Details", "step_type": None},
    {"key": "log_start", "type": "text", "description": "", "step_type": "log"},
]


@pytest.fixture
def tool_caller():
    """Mock ToolCaller returning a canned result."""
    caller = MagicMock(spec=ToolCaller)
    caller.call_tool = AsyncMock(return_value={"ok": True})
    return caller


@pytest.fixture
def schema_provider():
    """Mock SchemaProvider serving the task template's properties."""
    provider = MagicMock(spec=SchemaProvider)
    provider.get_properties = AsyncMock(return_value=list(TASK_PROPERTIES))
    provider.get_template = AsyncMock(return_value=None)
    return provider


@pytest.fixture
def state_store():
    return InMemoryStateStore()


@pytest.fixture
def sampling_gateway():
    gateway = MagicMock(spec=SamplingGateway)
    gateway.request_completion = AsyncMock(return_value="sampled answer")
    return gateway


@pytest.fixture
def engine(tool_caller, schema_provider, state_store):
    """Engine wired with every collaborator except sampling."""
    return WorkflowEngine(
        tool_caller=tool_caller,
        schema_provider=schema_provider,
        state_store=state_store,
    )


@pytest.fixture
def context():
    """Context with a few inputs, variables and a prior step result."""
    ctx = ExecutionContext(
        inputs={"task_id": 7, "title": "Write docs"},
        variables={"count": 42, "user": {"name": "Ada", "tags": ["a", "b"]}, "flag": True},
        workflow_name="test",
    )
    return ctx
