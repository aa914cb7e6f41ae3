"""
Workflow validation.

Input schema validation/coercion and the static step reference check. Both
run before any step executes so a failure has no side effects.
"""

import logging
import re
from typing import Any, Dict, Iterable, Set

from .context import INPUT_STEP_NAME
from .definition import InputSchema, LogStepDefinition, StepDefinition
from .errors import MissingInputError, TypeMismatchError, UnknownStepReferenceError
from .interpolation import find_references


logger = logging.getLogger(__name__)

STEP_REFERENCE_PATTERN = re.compile(r"^steps\.([^.\s]+)\.")


def _matches_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "object":
        return isinstance(value, dict)
    return True


def validate_inputs(schema: InputSchema, inputs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and normalize inputs in place.

    A scalar supplied for an array parameter is wrapped in a one-element list.
    Optional parameters with a default are filled in when omitted. Fields not
    declared in the schema pass through untouched.

    Args:
        schema: Workflow input schema
        inputs: Caller-supplied inputs, mutated in place

    Returns:
        The same inputs dictionary

    Raises:
        MissingInputError: If a required field is absent
        TypeMismatchError: If a field has the wrong type
    """
    for name, param in schema.parameters.items():
        if name not in inputs:
            if param.required:
                raise MissingInputError(name)
            if param.default is not None:
                inputs[name] = param.default
            continue

        value = inputs[name]
        if value is None and not param.required:
            continue

        if param.type == "array":
            if isinstance(value, tuple):
                inputs[name] = list(value)
            elif not isinstance(value, list):
                logger.debug(f"Wrapping scalar input '{name}' in a list")
                inputs[name] = [value]
            continue

        if not _matches_type(value, param.type):
            raise TypeMismatchError(name, param.type, value)

    return inputs


def _referenced_steps(step: StepDefinition) -> Iterable[str]:
    for expression in find_references(step.reference_fields()):
        match = STEP_REFERENCE_PATTERN.match(expression)
        if match:
            yield match.group(1)


def _check_sequence(steps: Iterable[StepDefinition], available: Set[str]):
    for step in steps:
        if not isinstance(step, LogStepDefinition):
            for referenced in _referenced_steps(step):
                if referenced not in available:
                    raise UnknownStepReferenceError(step.name, referenced)

        for sequence in step.child_sequences():
            _check_sequence(sequence, available)

        available.add(step.name)


def validate_step_references(steps: Iterable[StepDefinition]):
    """
    Check that every steps.<name> reference names a step defined earlier.

    Nested sequences are checked in place, so a branch step may reference the
    steps before it in the same branch. Log messages are free text and are not
    checked.

    Args:
        steps: Top-level step sequence

    Raises:
        UnknownStepReferenceError: On the first dangling or forward reference
    """
    _check_sequence(steps, {INPUT_STEP_NAME})
