"""
Workflow Function Registry

In-process functions that call_function steps can invoke by name. A function
receives its interpolated parameters plus a handler context and reports
success or failure through a FunctionResult instead of raising.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .interfaces import ToolCaller


logger = logging.getLogger(__name__)


@dataclass
class FunctionResult:
    """Outcome of a workflow function call."""

    success: bool
    data: Any = None
    error: Optional[str] = None


@dataclass
class FunctionParameter:
    name: str
    type: str
    description: str = ""
    required: bool = False


@dataclass
class FunctionDefinition:
    """Function description used for discovery."""

    name: str
    description: str
    parameters: List[FunctionParameter] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [vars(param).copy() for param in self.parameters],
        }


@dataclass
class HandlerContext:
    """Collaborators available to function handlers."""

    tool_caller: Optional[ToolCaller] = None


WorkflowFunction = Callable[[Dict[str, Any], HandlerContext], Awaitable[FunctionResult]]


def _unwrap(param: Any) -> Any:
    """Accept both direct values and {"type": ..., "value": ...} wrappers."""
    if isinstance(param, dict) and "value" in param:
        return param["value"]
    return param


def _to_number(param: Any) -> Optional[float]:
    value = _unwrap(param)
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


async def hello_world(params: Dict[str, Any], context: HandlerContext) -> FunctionResult:
    name = params.get("name") or "World"
    return FunctionResult(
        success=True,
        data={
            "message": f"Hello, {name}!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


async def add_numbers(params: Dict[str, Any], context: HandlerContext) -> FunctionResult:
    a = _to_number(params.get("a"))
    b = _to_number(params.get("b"))

    if a is None or b is None or a != a or b != b:
        return FunctionResult(
            success=False,
            error="Both 'a' and 'b' parameters are required and must be valid numbers",
        )

    total = a + b
    a, b, total = (int(n) if n.is_integer() else n for n in (a, b, total))
    return FunctionResult(
        success=True,
        data={"a": a, "b": b, "sum": total, "operation": f"{a} + {b} = {total}"},
    )


async def get_object(params: Dict[str, Any], context: HandlerContext) -> FunctionResult:
    """Fetch an object by numeric ID through the get_object tool."""
    if context.tool_caller is None:
        return FunctionResult(success=False, error="ToolCaller not available in handler context")

    object_id = _to_number(params.get("object_id"))
    if object_id is None or object_id < 1 or not object_id.is_integer():
        return FunctionResult(
            success=False, error="Valid numeric object_id is required (must be >= 1)"
        )

    try:
        obj = await context.tool_caller.call_tool("get_object", {"object_id": int(object_id)})
    except Exception as e:
        return FunctionResult(success=False, error=f"Failed to retrieve object: {e}")

    if not obj:
        return FunctionResult(success=False, error=f"Object with ID {int(object_id)} not found")
    return FunctionResult(success=True, data=obj)


class FunctionRegistry:
    """Registry of workflow-callable functions."""

    def __init__(self, include_builtins: bool = True):
        self._functions: Dict[str, WorkflowFunction] = {}
        self._definitions: Dict[str, FunctionDefinition] = {}

        if include_builtins:
            self._register_builtins()

    def _register_builtins(self):
        self.register(
            hello_world,
            FunctionDefinition(
                name="hello_world",
                description="Returns a greeting message",
                parameters=[
                    FunctionParameter("name", "string", "Name to greet (defaults to 'World')")
                ],
            ),
        )
        self.register(
            add_numbers,
            FunctionDefinition(
                name="add_numbers",
                description="Adds two numbers together",
                parameters=[
                    FunctionParameter("a", "number", "First number", required=True),
                    FunctionParameter("b", "number", "Second number", required=True),
                ],
            ),
        )
        self.register(
            get_object,
            FunctionDefinition(
                name="get_object",
                description="Retrieves an object by its numeric ID",
                parameters=[
                    FunctionParameter(
                        "object_id", "number", "The numeric ID of the object", required=True
                    )
                ],
            ),
        )

    def register(self, fn: WorkflowFunction, definition: FunctionDefinition):
        """
        Register a function.

        Args:
            fn: Async handler taking (params, context)
            definition: Discovery metadata; its name is the lookup key
        """
        self._functions[definition.name] = fn
        self._definitions[definition.name] = definition

    def has(self, name: str) -> bool:
        return name in self._functions

    async def call(
        self, name: str, params: Dict[str, Any], context: Optional[HandlerContext] = None
    ) -> FunctionResult:
        """
        Call a registered function.

        Handler exceptions are reported as an unsuccessful FunctionResult.
        """
        fn = self._functions.get(name)
        if fn is None:
            return FunctionResult(success=False, error=f"Function '{name}' not found in registry")

        try:
            return await fn(params, context or HandlerContext())
        except Exception as e:
            logger.error(f"Workflow function '{name}' raised: {e}", exc_info=True)
            return FunctionResult(success=False, error=str(e) or "Unknown error occurred")

    def get_definition(self, name: str) -> Optional[FunctionDefinition]:
        return self._definitions.get(name)

    def get_definitions(self) -> List[FunctionDefinition]:
        return list(self._definitions.values())
