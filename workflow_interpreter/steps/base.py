"""
Base Step

Abstract base class for all step executors.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..context import ExecutionContext, StepResult, StepStatus
from ..definition import MISSING, StepDefinition
from ..errors import MissingCollaboratorError, MissingRequiredFieldError, StepExecutionError
from ..interpolation import format_value, interpolate, interpolate_string

if TYPE_CHECKING:
    from ..engine import WorkflowEngine


AGENT_INSTRUCTIONS = "agent_instructions"


class BaseStep(ABC):
    """
    Abstract base class for step executors.

    A step executor wraps one step definition. ``run`` records exactly one
    StepResult for the step, ``completed`` or ``failed``, and re-raises
    failures as StepExecutionError so the engine can abort the run.
    """

    def __init__(self, definition: StepDefinition, engine: "WorkflowEngine"):
        """
        Initialize step.

        Args:
            definition: Step definition from the workflow
            engine: Engine providing collaborators and nested execution
        """
        self.definition = definition
        self.engine = engine
        self.step_name = definition.name
        self.step_type = definition.type
        self.logger = engine.logger

    @abstractmethod
    async def execute(self, context: ExecutionContext) -> Any:
        """
        Execute the step.

        Args:
            context: Workflow execution context

        Returns:
            Step output, recorded in the step's StepResult

        Raises:
            Exception: If step execution fails
        """
        pass

    async def run(self, context: ExecutionContext) -> StepResult:
        """
        Execute the step and record its result.

        Raises:
            StepExecutionError: If the step fails
        """
        self.logger.debug(f"Executing step '{self.step_name}' ({self.step_type})")
        try:
            output = await self.execute(context)
        except StepExecutionError as e:
            if e.step_name is None:
                e.step_name = self.step_name
                e.step_type = self.step_type
            self._record_failure(context, e)
            raise
        except Exception as e:
            self._record_failure(context, e)
            raise StepExecutionError(
                f"Step '{self.step_name}' failed: {e}", self.step_name, self.step_type
            ) from e

        result = StepResult(
            step=self.step_name,
            type=self.step_type,
            status=StepStatus.COMPLETED,
            output=output,
        )
        context.record(result)
        return result

    def _record_failure(self, context: ExecutionContext, error: Exception):
        context.record(
            StepResult(
                step=self.step_name,
                type=self.step_type,
                status=StepStatus.FAILED,
                error=str(error),
            )
        )

    def require(self, value: Any, field: str) -> Any:
        """Return a required definition field, failing if it is missing or empty."""
        if value is None or value == "" or value == [] or value == {}:
            raise MissingRequiredFieldError(self.step_type, field, self.step_name)
        return value

    def require_value(self, value: Any, field: str = "value") -> Any:
        """Fail only if the field was left out; null and empty values are legitimate."""
        if value is MISSING:
            raise MissingRequiredFieldError(self.step_type, field, self.step_name)
        return value

    def require_collaborator(self, collaborator: Any, name: str) -> Any:
        if collaborator is None:
            raise MissingCollaboratorError(name, self.step_type, self.step_name)
        return collaborator

    def interpolate(self, value: Any, context: ExecutionContext) -> Any:
        return interpolate(value, context)

    def interpolate_text(self, value: Any, context: ExecutionContext) -> str:
        """Interpolate into a string, rendering structured values as text."""
        if isinstance(value, str):
            return interpolate_string(value, context)
        return format_value(self.interpolate(value, context))

    def interpolate_instructions(
        self, instructions: List[Any], context: ExecutionContext
    ) -> List[str]:
        return [self.interpolate_text(line, context) for line in instructions]

    async def request_sampling(self, instructions: List[str]) -> Optional[str]:
        """
        Ask the sampling gateway for a response to the given instructions.

        Sampling is optional: a missing gateway, disabled sampling or a failed
        request all yield None.
        """
        gateway = self.engine.sampling_gateway
        settings = self.engine.settings
        if gateway is None or not settings.sampling_enabled:
            return None

        try:
            return await gateway.request_completion(
                "\n".join(instructions),
                system_prompt=settings.sampling_system_prompt,
                max_tokens=settings.sampling_max_tokens,
                model=settings.sampling_model,
            )
        except Exception as e:
            self.logger.warning(f"Sampling failed for step '{self.step_name}': {e}")
            return None

    def build_agent_payload(
        self,
        context: ExecutionContext,
        instructions: List[str],
        **extra: Any,
    ) -> Dict[str, Any]:
        """
        Build the payload returned to the caller when the run pauses.

        The engine adds a ``resume`` block once the step has been recorded.
        """
        payload = {
            "type": AGENT_INSTRUCTIONS,
            "workflow": context.workflow_name,
            "step": self.step_name,
            "step_type": self.step_type,
            "current_step": context.current_step,
            "instructions": instructions,
            "message": (
                "Follow the instructions, then resume the workflow "
                "with the 'resume' information of this payload."
            ),
        }
        payload.update(extra)
        return payload

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.step_name}', type='{self.step_type}')"
