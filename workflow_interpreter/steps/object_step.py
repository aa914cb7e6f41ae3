"""
Create Object Step

Fill a template's selected properties from literals and references. When
everything resolves the object is created straight away through the
ToolCaller; otherwise the run pauses and an agent is asked for the rest.
"""

from typing import Any, Dict, List

from ..context import ExecutionContext
from ..errors import StepExecutionError, ToolCallFailedError
from ..interfaces import is_property_row, property_schema
from ..interpolation import is_resolvable
from .agent_step import describe_properties
from .base import BaseStep


CREATE_OBJECT_TOOL = "create_object"


class CreateObjectStep(BaseStep):
    """
    Create an object of a template.

    Example:
        - name: create_task
          type: create_object
          template_id: 1
          properties:
            Title: "{{input.title}}"
            Stage: "draft"
            Description: null      # left for the agent
          result_variable: created_task
    """

    async def execute(self, context: ExecutionContext) -> Any:
        provider = self.require_collaborator(self.engine.schema_provider, "SchemaProvider")
        template_id = self.interpolate(
            self.require(self.definition.template_id, "templateId"), context
        )
        mappings: Dict[str, Any] = self.require(self.definition.properties, "properties")

        rows = await provider.get_properties(template_id)
        schemas = {row.get("key"): property_schema(row) for row in rows if is_property_row(row)}

        unknown = [key for key in mappings if key not in schemas]
        if unknown:
            raise StepExecutionError(
                f"Template {template_id} has no properties named: {', '.join(unknown)}",
                self.step_name,
                self.step_type,
            )

        prefilled: Dict[str, Any] = {}
        pending: List[str] = []
        for key, mapping in mappings.items():
            if mapping != "" and is_resolvable(mapping, context):
                prefilled[key] = self.interpolate(mapping, context)
            else:
                pending.append(key)

        if not pending:
            return await self._create(context, template_id, prefilled)

        pending_schemas = [schemas[key] for key in pending]
        instructions = self.interpolate_instructions(self.definition.instructions, context)
        instructions.append(
            f"Create an object of template {template_id} using the '{CREATE_OBJECT_TOOL}' tool."
        )
        instructions.extend(describe_properties(pending_schemas))

        self.logger.info(
            f"Create object step '{self.step_name}' needs agent input for: "
            f"{', '.join(pending)}"
        )
        context.suspend(
            self.build_agent_payload(
                context,
                instructions,
                action=CREATE_OBJECT_TOOL,
                template_id=template_id,
                property_schemas=pending_schemas,
                prefilled_values=prefilled,
            )
        )
        return {
            "template_id": template_id,
            "prefilled_values": prefilled,
            "pending_properties": pending,
        }

    async def _create(
        self, context: ExecutionContext, template_id: Any, properties: Dict[str, Any]
    ) -> Any:
        tool_caller = self.require_collaborator(self.engine.tool_caller, "ToolCaller")
        self.logger.info(
            f"Create object step '{self.step_name}' creating object of template {template_id}"
        )

        try:
            result = await tool_caller.call_tool(
                CREATE_OBJECT_TOOL, {"template_id": template_id, "properties": properties}
            )
        except Exception as e:
            raise ToolCallFailedError(
                CREATE_OBJECT_TOOL, str(e), self.step_name, self.step_type
            ) from e

        if self.definition.result_variable:
            context.variables[self.definition.result_variable] = result
        return result
