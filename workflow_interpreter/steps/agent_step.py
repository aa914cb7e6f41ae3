"""
Agent Steps

agent and load_object hand control back to an external agent. Both may ask
the sampling gateway for a response first, and both are recorded as
completed whether or not a response was obtained.
"""

from typing import Any, Dict, List

from ..context import ExecutionContext
from ..interfaces import is_property_row, property_schema
from .base import BaseStep


class AgentStep(BaseStep):
    """
    Pause the workflow with instructions for an agent.

    Example:
        - name: plan
          type: agent
          instructions:
            - "Review task {{input.task_id}}"
            - "Draft an implementation plan"
          result_variable: plan_draft
    """

    async def execute(self, context: ExecutionContext) -> Dict[str, Any]:
        instructions = self.interpolate_instructions(
            self.require(self.definition.instructions, "instructions"), context
        )

        sampling_result = None
        if self.definition.request_sampling:
            sampling_result = await self.request_sampling(instructions)

        if sampling_result is not None and self.definition.result_variable:
            context.variables[self.definition.result_variable] = sampling_result

        self.logger.info(
            f"Agent step '{self.step_name}' pausing workflow with "
            f"{len(instructions)} instruction(s)"
        )
        context.suspend(
            self.build_agent_payload(context, instructions, sampling_result=sampling_result)
        )
        return {"instructions": instructions, "sampling_result": sampling_result}


class LoadObjectStep(BaseStep):
    """Pause the workflow asking an agent to populate a template's properties."""

    async def execute(self, context: ExecutionContext) -> Dict[str, Any]:
        provider = self.require_collaborator(self.engine.schema_provider, "SchemaProvider")
        template_id = self.interpolate(
            self.require(self.definition.template_id, "templateId"), context
        )

        rows = await provider.get_properties(template_id)
        keys = self.definition.property_keys
        schemas = [
            property_schema(row)
            for row in rows
            if is_property_row(row) and (keys is None or row.get("key") in keys)
        ]

        instructions = self.interpolate_instructions(self.definition.instructions, context)
        instructions.extend(describe_properties(schemas))

        sampling_result = await self.request_sampling(instructions)

        self.logger.info(
            f"Load object step '{self.step_name}' pausing workflow for "
            f"{len(schemas)} propert(ies) of template {template_id}"
        )
        context.suspend(
            self.build_agent_payload(
                context,
                instructions,
                template_id=template_id,
                property_schemas=schemas,
                sampling_result=sampling_result,
            )
        )
        return {
            "template_id": template_id,
            "property_schemas": schemas,
            "sampling_result": sampling_result,
        }


def describe_properties(schemas: List[Dict[str, Any]]) -> List[str]:
    """Turn property schemas into one instruction line each."""
    lines = []
    for schema in schemas:
        line = f"Provide a value for '{schema['key']}' ({schema['type']})"
        if schema["description"]:
            line += f": {schema['description']}"
        lines.append(line)
    return lines
