"""
Basic Steps

log, set_variable and return.
"""

from typing import Any

from ..context import ExecutionContext
from .base import BaseStep


class LogStep(BaseStep):
    """Append an interpolated message to the run's logs."""

    async def execute(self, context: ExecutionContext) -> Any:
        message = self.require(self.definition.message, "message")
        message = self.interpolate_text(message, context)
        context.logs.append(message)
        self.logger.info(f"[Workflow {self.step_name}] {message}")
        return message


class SetVariableStep(BaseStep):
    """Store an interpolated value under a variable name."""

    async def execute(self, context: ExecutionContext) -> Any:
        name = self.require(self.definition.variable_name, "variableName")
        value = self.interpolate(self.require_value(self.definition.value), context)
        context.variables[name] = value
        return value


class ReturnStep(BaseStep):
    """Set the run's result, ending the workflow."""

    async def execute(self, context: ExecutionContext) -> Any:
        value = self.interpolate(self.require_value(self.definition.value), context)
        context.set_result(value)
        return value
