"""
Workflow Engine

Run workflow steps sequentially against an execution context, with support
for pausing at agent steps and resuming from a saved step index, including
inside a conditional or switch branch.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type, Union

from config.types import InterpreterSettings

from .context import ExecutionContext, StepResult
from .definition import (
    AgentStepDefinition,
    CallFunctionStepDefinition,
    CallToolStepDefinition,
    ConditionalStepDefinition,
    CreateObjectStepDefinition,
    LoadObjectStepDefinition,
    LoadStateStepDefinition,
    LogStepDefinition,
    ReturnStepDefinition,
    SaveStateStepDefinition,
    SetVariableStepDefinition,
    StepDefinition,
    SwitchStepDefinition,
    WorkflowDefinition,
)
from .errors import StepExecutionError, UnknownStepTypeError
from .functions import FunctionRegistry
from .interfaces import SamplingGateway, SchemaProvider, StateStore, ToolCaller
from .state_store import InMemoryStateStore
from .steps import (
    AgentStep,
    BaseStep,
    CallFunctionStep,
    CallToolStep,
    ConditionalStep,
    CreateObjectStep,
    LoadObjectStep,
    LoadStateStep,
    LogStep,
    ReturnStep,
    SaveStateStep,
    SetVariableStep,
    SwitchStep,
)
from .validation import validate_inputs, validate_step_references


STEP_EXECUTORS: Dict[Type[StepDefinition], Type[BaseStep]] = {
    LogStepDefinition: LogStep,
    SetVariableStepDefinition: SetVariableStep,
    CallToolStepDefinition: CallToolStep,
    CallFunctionStepDefinition: CallFunctionStep,
    ConditionalStepDefinition: ConditionalStep,
    SwitchStepDefinition: SwitchStep,
    ReturnStepDefinition: ReturnStep,
    CreateObjectStepDefinition: CreateObjectStep,
    LoadObjectStepDefinition: LoadObjectStep,
    AgentStepDefinition: AgentStep,
    LoadStateStepDefinition: LoadStateStep,
    SaveStateStepDefinition: SaveStateStep,
}


class RunStatus(str, Enum):
    """Workflow run status."""

    COMPLETED = "completed"
    SUSPENDED = "suspended"
    FAILED = "failed"


@dataclass
class RunOutcome:
    """Result of a workflow run. The context is the run's final state."""

    workflow_name: str
    context: ExecutionContext

    status: ClassVar[RunStatus]

    @property
    def variables(self) -> Dict[str, Any]:
        return self.context.variables

    @property
    def step_results(self) -> List[StepResult]:
        return self.context.step_results

    @property
    def logs(self) -> List[str]:
        return self.context.logs

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "workflow_name": self.workflow_name,
            "status": self.status.value,
            "current_step": self.context.current_step,
            "logs": list(self.context.logs),
            **self.context.snapshot(),
        }


@dataclass
class Completed(RunOutcome):
    """The run reached a return step or the end of the workflow."""

    value: Any = None
    returned: bool = False

    status: ClassVar[RunStatus] = RunStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"result": self.value, "returned": self.returned})
        return data


@dataclass
class Suspended(RunOutcome):
    """The run paused so an external agent can act before it resumes."""

    at_step: int = 0
    resume_step: int = 0
    payload: Dict[str, Any] = field(default_factory=dict)
    saved_variables: Dict[str, Any] = field(default_factory=dict)
    saved_step_results: List[Dict[str, Any]] = field(default_factory=list)
    saved_logs: List[str] = field(default_factory=list)
    resume_path: List[Dict[str, Any]] = field(default_factory=list)

    status: ClassVar[RunStatus] = RunStatus.SUSPENDED

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "at_step": self.at_step,
                "resume_step": self.resume_step,
                "resume_path": self.resume_path,
                "result": self.payload,
            }
        )
        return data


@dataclass
class Failed(RunOutcome):
    """A step failed and the run was aborted."""

    error: Optional[StepExecutionError] = None
    failed_step: Optional[str] = None

    status: ClassVar[RunStatus] = RunStatus.FAILED

    def raise_error(self):
        """Re-raise the error that aborted the run."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"error": str(self.error) if self.error else None, "failed_step": self.failed_step})
        return data


WorkflowRunResult = Union[Completed, Suspended, Failed]


class WorkflowEngine:
    """
    Workflow execution engine.

    Executes one workflow invocation at a time per call. The engine holds no
    state between calls: a paused run is resumed by calling ``run`` again
    with the saved variables and step results and an explicit start step.
    """

    def __init__(
        self,
        tool_caller: Optional[ToolCaller] = None,
        schema_provider: Optional[SchemaProvider] = None,
        state_store: Optional[StateStore] = None,
        sampling_gateway: Optional[SamplingGateway] = None,
        function_registry: Optional[FunctionRegistry] = None,
        settings: Optional[InterpreterSettings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize workflow engine.

        Args:
            tool_caller: Used by call_tool, call_function and create_object
            schema_provider: Used by create_object and load_object
            state_store: Used by load_state and save_state
            sampling_gateway: Optional LLM used by agent and load_object
            function_registry: Functions for call_function (built-ins if omitted)
            settings: Interpreter settings (model defaults if omitted)
            logger: Logger for engine and step messages
        """
        self.tool_caller = tool_caller
        self.schema_provider = schema_provider
        self.state_store = state_store
        self.sampling_gateway = sampling_gateway
        self.function_registry = function_registry or FunctionRegistry()
        self.settings = settings or InterpreterSettings()
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(
        cls, settings: InterpreterSettings, **collaborators: Any
    ) -> "WorkflowEngine":
        """
        Create an engine configured from interpreter settings.

        When no state store is given, an InMemoryStateStore using the
        settings' ``state_ttl_seconds`` is created.

        Example:
            engine = WorkflowEngine.from_settings(
                env_manager.load().get_interpreter_settings(),
                tool_caller=my_tools,
            )
        """
        if collaborators.get("state_store") is None:
            collaborators["state_store"] = InMemoryStateStore.from_settings(settings)
        return cls(settings=settings, **collaborators)

    async def run(
        self,
        workflow: WorkflowDefinition,
        inputs: Optional[Dict[str, Any]] = None,
        start_step: int = 0,
        variables: Optional[Dict[str, Any]] = None,
        step_results: Optional[List[Union[StepResult, Dict[str, Any]]]] = None,
        logs: Optional[List[str]] = None,
        resume_path: Optional[List[Dict[str, Any]]] = None,
    ) -> WorkflowRunResult:
        """
        Run a workflow, fresh or from a resume point.

        Inputs and step references are validated before any step runs, on
        resume as well as on a fresh start.

        Args:
            workflow: Workflow definition
            inputs: Caller-supplied inputs
            start_step: Index of the first top-level step to execute
            variables: Saved variables when resuming
            step_results: Saved step results when resuming
            logs: Saved log lines when resuming
            resume_path: Branch frames to re-enter inside the step at
                start_step, as returned in Suspended.resume_path

        Returns:
            Completed, Suspended or Failed outcome

        Raises:
            InvalidWorkflowError: If the workflow definition is invalid
            InputValidationError: If inputs do not match the input schema
            UnknownStepReferenceError: If a step references a later or unknown step
            ValueError: If start_step or resume_path does not fit the workflow
        """
        workflow.raise_if_invalid()

        inputs = validate_inputs(workflow.input_schema, dict(inputs or {}))
        validate_step_references(workflow.steps)

        if not 0 <= start_step <= len(workflow.steps):
            raise ValueError(
                f"start_step {start_step} out of range for workflow "
                f"'{workflow.name}' with {len(workflow.steps)} steps"
            )
        if resume_path:
            self._check_resume_path(workflow, start_step, resume_path)

        context = ExecutionContext(
            inputs=inputs,
            variables=variables,
            step_results=step_results,
            logs=logs,
            workflow_name=workflow.name,
            resume_path=resume_path,
        )

        if start_step or resume_path:
            self.logger.info(f"Resuming workflow '{workflow.name}' from step {start_step}")
        else:
            self.logger.info(f"Starting workflow '{workflow.name}'")

        try:
            for index in range(start_step, len(workflow.steps)):
                context.current_step = index
                await self.create_step(workflow.steps[index]).run(context)
                if context.has_result:
                    break
        except StepExecutionError as e:
            self.logger.error(f"Workflow '{workflow.name}' failed: {e}", exc_info=True)
            return Failed(
                workflow_name=workflow.name,
                context=context,
                error=e,
                failed_step=e.step_name,
            )

        return self._build_outcome(workflow, context)

    async def resume(
        self,
        workflow: WorkflowDefinition,
        inputs: Optional[Dict[str, Any]],
        start_step: int,
        variables: Dict[str, Any],
        step_results: List[Union[StepResult, Dict[str, Any]]],
        logs: Optional[List[str]] = None,
        resume_path: Optional[List[Dict[str, Any]]] = None,
    ) -> WorkflowRunResult:
        """Resume a run from a saved (variables, step_results) snapshot."""
        return await self.run(
            workflow,
            inputs,
            start_step=start_step,
            variables=variables,
            step_results=step_results,
            logs=logs,
            resume_path=resume_path,
        )

    async def resume_from_payload(
        self,
        workflow: WorkflowDefinition,
        payload: Dict[str, Any],
        inputs: Optional[Dict[str, Any]] = None,
    ) -> WorkflowRunResult:
        """
        Resume a run from the payload a previous run paused with.

        Raises:
            ValueError: If the payload has no resume information or belongs
                to another workflow
        """
        resume = payload.get("resume")
        if not resume:
            raise ValueError("Payload has no resume information")
        if resume.get("workflow") not in (None, workflow.name):
            raise ValueError(
                f"Workflow mismatch: payload is for '{resume['workflow']}', "
                f"but trying to resume '{workflow.name}'"
            )

        return await self.resume(
            workflow,
            inputs,
            start_step=resume["start_step"],
            variables=resume.get("variables", {}),
            step_results=resume.get("step_results", []),
            logs=resume.get("logs"),
            resume_path=resume.get("path"),
        )

    async def execute_sequence(
        self,
        steps: List[StepDefinition],
        context: ExecutionContext,
        branch: Optional[str] = None,
        start_index: int = 0,
    ):
        """
        Execute a nested step sequence, stopping once a result is set.

        Args:
            steps: Steps of a conditional branch or switch case
            context: Execution context
            branch: Name of the branch the steps belong to
            start_index: Index of the first step to run, when resuming
        """
        for index in range(start_index, len(steps)):
            context.position.append({"branch": branch, "index": index})
            try:
                await self.create_step(steps[index]).run(context)
            finally:
                context.position.pop()
            if context.has_result:
                break

    def create_step(self, definition: StepDefinition) -> BaseStep:
        """
        Create step executor from definition.

        Raises:
            UnknownStepTypeError: If no executor handles the definition
        """
        executor = STEP_EXECUTORS.get(type(definition))
        if executor is None:
            raise UnknownStepTypeError(definition.type, definition.name)
        return executor(definition, self)

    def _check_resume_path(
        self,
        workflow: WorkflowDefinition,
        start_step: int,
        resume_path: List[Dict[str, Any]],
    ):
        """Raise ValueError unless every frame names a branch of the step it enters."""
        if start_step >= len(workflow.steps):
            raise ValueError(f"resume_path given but start_step {start_step} is past the last step")

        container = workflow.steps[start_step]
        for depth, frame in enumerate(resume_path):
            try:
                steps = container.branch_steps(frame["branch"])
                index = int(frame["index"])
            except (AttributeError, KeyError, TypeError) as e:
                raise ValueError(f"Malformed resume_path frame {frame!r}") from e
            if not 0 <= index <= len(steps):
                raise ValueError(
                    f"resume_path index {index} out of range for branch "
                    f"'{frame['branch']}' of step '{container.name}'"
                )
            if depth < len(resume_path) - 1:
                if index >= len(steps):
                    raise ValueError(
                        f"resume_path continues past the end of branch '{frame['branch']}'"
                    )
                container = steps[index]

    def _build_outcome(
        self, workflow: WorkflowDefinition, context: ExecutionContext
    ) -> WorkflowRunResult:
        if context.suspended:
            if context.suspended_path:
                # re-enter the containing step, after the step that paused
                resume_step = context.current_step
                resume_path = [dict(frame) for frame in context.suspended_path]
                resume_path[-1]["index"] += 1
            else:
                resume_step = context.current_step + 1
                resume_path = []

            snapshot = context.snapshot()
            payload = context.result
            if isinstance(payload, dict):
                payload["resume"] = {
                    "workflow": workflow.name,
                    "start_step": resume_step,
                    "path": resume_path,
                    **snapshot,
                }

            self.logger.info(
                f"Workflow '{workflow.name}' suspended at step {context.current_step}"
            )
            return Suspended(
                workflow_name=workflow.name,
                context=context,
                at_step=context.current_step,
                resume_step=resume_step,
                payload=payload,
                saved_variables=snapshot["variables"],
                saved_step_results=snapshot["step_results"],
                saved_logs=snapshot["logs"],
                resume_path=resume_path,
            )

        self.logger.info(f"Workflow '{workflow.name}' completed")
        return Completed(
            workflow_name=workflow.name,
            context=context,
            value=context.result,
            returned=context.has_result,
        )
