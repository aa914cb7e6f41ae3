"""Exceptions raised by the workflow interpreter."""

from typing import Any, Dict, List, Optional


class WorkflowError(Exception):
    """Base exception for all workflow interpreter errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InputValidationError(WorkflowError, ValueError):
    """Raised when caller-supplied inputs do not match the input schema."""

    def __init__(self, message: str, field: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.field = field


class MissingInputError(InputValidationError):
    """Raised when a required input field is not provided."""

    def __init__(self, field: str):
        super().__init__(f"Missing required input field: {field}", field)


class TypeMismatchError(InputValidationError):
    """Raised when an input field has the wrong type."""

    def __init__(self, field: str, expected: str, actual: Any = None):
        super().__init__(
            f"Input field '{field}' must be a {expected}",
            field,
            {"expected": expected, "actual": type(actual).__name__},
        )
        self.expected = expected


class InvalidWorkflowError(WorkflowError, ValueError):
    """Raised when a workflow definition is structurally invalid."""

    def __init__(self, errors: List[str]):
        super().__init__(f"Invalid workflow: {', '.join(errors)}", {"errors": errors})
        self.errors = errors


class UnknownStepTypeError(WorkflowError, ValueError):
    """Raised when a step definition names a kind the interpreter does not know."""

    def __init__(self, step_type: Any, step_name: Optional[str] = None):
        message = f"Unknown step type: {step_type}"
        if step_name:
            message += f" (step '{step_name}')"
        super().__init__(message)
        self.step_type = step_type
        self.step_name = step_name


class UnknownStepReferenceError(WorkflowError, ValueError):
    """Raised when a step references a step that is not defined before it."""

    def __init__(self, step_name: str, reference: str):
        super().__init__(
            f"Step '{step_name}' references unknown or later step '{reference}'",
            {"step": step_name, "reference": reference},
        )
        self.step_name = step_name
        self.reference = reference


class StepExecutionError(WorkflowError):
    """Raised when a step fails while executing."""

    def __init__(
        self,
        message: str,
        step_name: Optional[str] = None,
        step_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.step_name = step_name
        self.step_type = step_type


class MissingRequiredFieldError(StepExecutionError):
    """Raised when a step lacks a field its kind requires."""

    def __init__(self, step_type: str, field: str, step_name: Optional[str] = None):
        super().__init__(f"{step_type} step requires a {field}", step_name, step_type)
        self.field = field


class ToolCallFailedError(StepExecutionError):
    """Raised when an external tool or workflow function fails."""

    def __init__(
        self,
        tool_name: str,
        reason: str,
        step_name: Optional[str] = None,
        step_type: Optional[str] = None,
    ):
        super().__init__(
            f"Tool '{tool_name}' execution failed: {reason}",
            step_name,
            step_type,
            {"tool_name": tool_name},
        )
        self.tool_name = tool_name


class StateSaveFailedError(StepExecutionError):
    """Raised when a value cannot be written to the state store."""

    def __init__(self, key: str, reason: str, step_name: Optional[str] = None):
        super().__init__(
            f"Failed to save state '{key}': {reason}",
            step_name,
            "save_state",
            {"key": key},
        )
        self.key = key


class MissingCollaboratorError(StepExecutionError):
    """Raised when a step needs an external collaborator the engine was not given."""

    def __init__(self, collaborator: str, step_type: str, step_name: Optional[str] = None):
        super().__init__(
            f"{collaborator} is required to execute {step_type} steps",
            step_name,
            step_type,
        )
        self.collaborator = collaborator
