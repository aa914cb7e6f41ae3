"""
Call Steps

Invoke an external tool (call_tool) or a registered workflow function
(call_function) with interpolated parameters.
"""

import json
from typing import Any, Dict

from ..context import ExecutionContext
from ..errors import StepExecutionError, ToolCallFailedError
from ..functions import HandlerContext
from .base import BaseStep


def _preview(value: Any) -> str:
    try:
        return json.dumps(value, default=str)[:500]
    except (TypeError, ValueError):
        return repr(value)[:500]


class CallToolStep(BaseStep):
    """Call a tool through the engine's ToolCaller."""

    async def execute(self, context: ExecutionContext) -> Any:
        tool_caller = self.require_collaborator(self.engine.tool_caller, "ToolCaller")
        tool_name = self.require(self.definition.tool_name, "toolName")
        parameters = self.interpolate(self.definition.parameters or {}, context)

        self.logger.info(f"[Workflow {self.step_name}] Calling tool: {tool_name}")
        self.logger.debug(f"[Workflow {self.step_name}] Parameters: {_preview(parameters)}")

        try:
            result = await tool_caller.call_tool(tool_name, parameters)
        except StepExecutionError:
            raise
        except Exception as e:
            raise ToolCallFailedError(tool_name, str(e), self.step_name, self.step_type) from e

        self.logger.debug(f"[Workflow {self.step_name}] Tool result: {_preview(result)}")

        if self.definition.result_variable:
            context.variables[self.definition.result_variable] = result
        return result


class CallFunctionStep(BaseStep):
    """
    Call a registered workflow function.

    Names not found in the function registry are forwarded to the ToolCaller
    when one is available.
    """

    async def execute(self, context: ExecutionContext) -> Any:
        function_name = self.require(self.definition.function_name, "functionName")
        parameters: Dict[str, Any] = self.interpolate(self.definition.parameters or {}, context)
        registry = self.engine.function_registry

        if registry.has(function_name):
            self.logger.info(f"[Workflow {self.step_name}] Calling function: {function_name}")
            outcome = await registry.call(
                function_name, parameters, HandlerContext(tool_caller=self.engine.tool_caller)
            )
            if not outcome.success:
                raise ToolCallFailedError(
                    function_name,
                    outcome.error or "Unknown error occurred",
                    self.step_name,
                    self.step_type,
                )
            result = outcome.data
        elif self.engine.tool_caller is not None:
            self.logger.info(
                f"[Workflow {self.step_name}] Function '{function_name}' not registered, "
                f"calling tool instead"
            )
            try:
                result = await self.engine.tool_caller.call_tool(function_name, parameters)
            except Exception as e:
                raise ToolCallFailedError(
                    function_name, str(e), self.step_name, self.step_type
                ) from e
        else:
            raise ToolCallFailedError(
                function_name,
                "Function not found in registry",
                self.step_name,
                self.step_type,
            )

        if self.definition.result_variable:
            context.variables[self.definition.result_variable] = result
        return result
