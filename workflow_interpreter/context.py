"""
Execution Context

Mutable state threaded through one workflow run: variables, validated
inputs, logs, the append-only step result history and the stop signal.
"""

from copy import deepcopy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union


INPUT_STEP_NAME = "input"

_UNSET = object()


class StepStatus(str, Enum):
    """Status of a workflow step."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """Result of a step execution. Never mutated once recorded."""

    step: str
    type: str
    status: StepStatus
    output: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "step": self.step,
            "type": self.type,
            "status": self.status.value,
        }
        if self.output is not None:
            result["output"] = deepcopy(self.output)
        if self.error is not None:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepResult":
        """Create from dictionary."""
        return cls(
            step=data.get("step") or data.get("name", ""),
            type=data.get("type", ""),
            status=StepStatus(data.get("status", StepStatus.COMPLETED.value)),
            output=data.get("output"),
            error=data.get("error"),
        )


class ExecutionContext:
    """
    Workflow execution context.

    Owned by the engine for the duration of a run. Steps read it and append
    to it but never replace its collections.
    """

    def __init__(
        self,
        inputs: Optional[Dict[str, Any]] = None,
        variables: Optional[Dict[str, Any]] = None,
        step_results: Optional[List[Union[StepResult, Dict[str, Any]]]] = None,
        logs: Optional[List[str]] = None,
        workflow_name: Optional[str] = None,
        resume_path: Optional[List[Dict[str, Any]]] = None,
    ):
        """
        Initialize execution context.

        Args:
            inputs: Validated workflow inputs
            variables: Previously saved variables (for resume)
            step_results: Previously saved step results (for resume)
            logs: Previously accumulated log lines
            workflow_name: Name of the workflow being run
            resume_path: Branch frames to re-enter when resuming inside a
                conditional or switch, outermost first
        """
        self.inputs: Dict[str, Any] = inputs if inputs is not None else {}
        self.variables: Dict[str, Any] = dict(variables or {})
        self.logs: List[str] = list(logs or [])
        self.step_results: List[StepResult] = [
            r if isinstance(r, StepResult) else StepResult.from_dict(r)
            for r in (step_results or [])
        ]
        self.workflow_name = workflow_name
        self.current_step = 0
        self.suspended = False
        self._result: Any = _UNSET

        # {"branch", "index"} frames of the nested sequences being executed
        self.position: List[Dict[str, Any]] = []
        self.suspended_path: List[Dict[str, Any]] = []
        self.resume_path: List[Dict[str, Any]] = [dict(frame) for frame in (resume_path or [])]

        if not self.step_results:
            self.seed_input_result()

    def seed_input_result(self):
        """Record the synthetic 'input' entry so steps.input.<field> resolves."""
        self.step_results.append(
            StepResult(
                step=INPUT_STEP_NAME,
                type=INPUT_STEP_NAME,
                status=StepStatus.COMPLETED,
                output=self.inputs,
            )
        )

    @property
    def has_result(self) -> bool:
        return self._result is not _UNSET

    @property
    def result(self) -> Any:
        return None if self._result is _UNSET else self._result

    def set_result(self, value: Any):
        """Set the run's return value, stopping the run."""
        self._result = value

    def suspend(self, payload: Dict[str, Any]):
        """Hand control back to an external agent with the given payload."""
        self._result = payload
        self.suspended = True
        self.suspended_path = [dict(frame) for frame in self.position]

    def pop_resume_frame(self) -> Optional[Dict[str, Any]]:
        """Take the next branch frame to re-enter, if the run is resuming inside one."""
        return self.resume_path.pop(0) if self.resume_path else None

    def record(self, result: StepResult):
        self.step_results.append(result)

    def get_step_result(self, name: str) -> Optional[StepResult]:
        """Get the most recent result recorded for a step."""
        for result in reversed(self.step_results):
            if result.step == name:
                return result
        return None

    def get_step_status(self, name: str) -> StepStatus:
        result = self.get_step_result(name)
        return result.status if result else StepStatus.PENDING

    def snapshot(self) -> Dict[str, Any]:
        """
        Capture the state needed to resume this run later.

        Returns:
            Dictionary with deep-copied variables, step results and logs
        """
        return {
            "variables": deepcopy(self.variables),
            "step_results": [result.to_dict() for result in self.step_results],
            "logs": list(self.logs),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        data = self.snapshot()
        data.update(
            {
                "workflow_name": self.workflow_name,
                "inputs": deepcopy(self.inputs),
                "current_step": self.current_step,
                "suspended": self.suspended,
            }
        )
        if self.has_result:
            data["result"] = deepcopy(self._result)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionContext":
        """Create context from dictionary."""
        context = cls(
            inputs=data.get("inputs", {}),
            variables=data.get("variables", {}),
            step_results=data.get("step_results"),
            logs=data.get("logs", []),
            workflow_name=data.get("workflow_name"),
        )
        context.current_step = data.get("current_step", 0)
        context.suspended = data.get("suspended", False)
        if "result" in data:
            context._result = data["result"]
        return context

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(workflow={self.workflow_name}, "
            f"current_step={self.current_step}, "
            f"steps={len(self.step_results)})"
        )
