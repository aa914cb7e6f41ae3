"""
State Steps

load_state and save_state read and write the engine's StateStore. Loading
degrades to a default value; saving failures abort the run.
"""

from typing import Any, Dict

from ..context import ExecutionContext
from ..errors import StateSaveFailedError
from .base import BaseStep


class LoadStateStep(BaseStep):
    """Load a value by key into a variable, falling back to defaultValue."""

    async def execute(self, context: ExecutionContext) -> Any:
        store = self.require_collaborator(self.engine.state_store, "StateStore")
        key = self.interpolate_text(self.require(self.definition.key, "key"), context)
        variable = self.require(self.definition.result_variable, "resultVariable")

        try:
            value = await store.get(key)
        except Exception as e:
            self.logger.warning(
                f"Failed to load state '{key}' in step '{self.step_name}', using default: {e}"
            )
            value = None

        if value is None:
            value = self.interpolate(self.definition.default_value, context)

        context.variables[variable] = value
        return value


class SaveStateStep(BaseStep):
    """Persist an interpolated value under an interpolated key."""

    async def execute(self, context: ExecutionContext) -> Dict[str, Any]:
        store = self.require_collaborator(self.engine.state_store, "StateStore")
        key = self.interpolate_text(self.require(self.definition.key, "key"), context)
        value = self.interpolate(self.require_value(self.definition.value), context)

        try:
            await store.set(key, value)
        except Exception as e:
            raise StateSaveFailedError(key, str(e), self.step_name) from e

        self.logger.debug(f"Saved state '{key}' in step '{self.step_name}'")
        return {"key": key, "value": value}
