"""Interfaces for the interpreter's external collaborators.

The interpreter never talks to a database, transport or model directly. The
engine is given implementations of these interfaces and steps call into them.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


NON_STEP_TYPES = (None, "", "property")


def is_property_row(row: Dict[str, Any]) -> bool:
    """True for template rows that describe object properties rather than steps."""
    return row.get("step_type") in NON_STEP_TYPES


def property_schema(row: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a property row to what an agent needs to fill it in."""
    return {
        "key": row.get("key"),
        "type": row.get("type", "text"),
        "description": row.get("description") or "",
    }


class ToolCaller(ABC):
    """Invokes an external tool by name."""

    @abstractmethod
    async def call_tool(self, tool_name: str, parameters: Dict[str, Any]) -> Any:
        """Call a tool.

        Args:
            tool_name: Name of the tool to invoke
            parameters: Interpolated tool arguments

        Returns:
            Tool result
        """
        pass


class SchemaProvider(ABC):
    """Provides templates and their ordered property definitions."""

    @abstractmethod
    async def get_properties(self, template_id: Any) -> List[Dict[str, Any]]:
        """Get the property rows of a template.

        Each row has at least ``key``, ``type``, ``description`` and
        ``step_type``. Rows whose step_type is ``property`` (or missing)
        describe object properties; the rest are workflow steps.

        Args:
            template_id: Template identifier

        Returns:
            Property rows in their stored order
        """
        pass

    async def get_template(self, template_id: Any) -> Optional[Dict[str, Any]]:
        """Get a template row (``id``, ``name``, ``type``, ``description``, ``metadata``).

        Returns:
            Template row, or None if the provider does not know it
        """
        return None


class StateStore(ABC):
    """Key-value store backing load_state/save_state steps."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value, or None if the key is absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a value under a key."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key, returning True if it existed."""
        pass


class SamplingGateway(ABC):
    """Requests a completion from an LLM on behalf of agent steps."""

    @abstractmethod
    async def request_completion(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> Optional[str]:
        """Request a completion.

        Args:
            prompt: User prompt built from the step's instructions
            system_prompt: Optional system prompt
            max_tokens: Optional completion length limit
            model: Optional model name, overriding the gateway's default

        Returns:
            Completion text, or None if no response was obtained
        """
        pass
