"""
Workflow Interpreter

Embeddable interpreter for declarative workflows: ordered, typed steps over
a shared variable context, with template interpolation, schema-validated
inputs, control flow, and pausing for external agents.

Example:
    workflow = WorkflowDefinition.from_yaml(yaml_str)
    engine = WorkflowEngine(tool_caller=my_tools)
    outcome = await engine.run(workflow, inputs={"task_id": 7})
"""

from .context import ExecutionContext, StepResult, StepStatus
from .definition import InputParameter, InputSchema, StepDefinition, WorkflowDefinition
from .engine import (
    Completed,
    Failed,
    RunOutcome,
    RunStatus,
    Suspended,
    WorkflowEngine,
    WorkflowRunResult,
)
from .errors import (
    InputValidationError,
    InvalidWorkflowError,
    MissingCollaboratorError,
    MissingInputError,
    MissingRequiredFieldError,
    StateSaveFailedError,
    StepExecutionError,
    ToolCallFailedError,
    TypeMismatchError,
    UnknownStepReferenceError,
    UnknownStepTypeError,
    WorkflowError,
)
from .functions import FunctionDefinition, FunctionRegistry, FunctionResult
from .interfaces import SamplingGateway, SchemaProvider, StateStore, ToolCaller
from .loader import WorkflowLoader
from .state_store import InMemoryStateStore

__all__ = [
    # Definitions
    "WorkflowDefinition",
    "StepDefinition",
    "InputSchema",
    "InputParameter",
    # Execution
    "WorkflowEngine",
    "ExecutionContext",
    "StepResult",
    "StepStatus",
    "RunStatus",
    "RunOutcome",
    "Completed",
    "Suspended",
    "Failed",
    "WorkflowRunResult",
    # Collaborators
    "ToolCaller",
    "SchemaProvider",
    "StateStore",
    "SamplingGateway",
    "InMemoryStateStore",
    "WorkflowLoader",
    "FunctionRegistry",
    "FunctionDefinition",
    "FunctionResult",
    # Errors
    "WorkflowError",
    "InputValidationError",
    "MissingInputError",
    "TypeMismatchError",
    "InvalidWorkflowError",
    "UnknownStepTypeError",
    "UnknownStepReferenceError",
    "StepExecutionError",
    "MissingRequiredFieldError",
    "ToolCallFailedError",
    "StateSaveFailedError",
    "MissingCollaboratorError",
]
