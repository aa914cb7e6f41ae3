"""
Workflow Loader

Build workflow definitions from stored templates. A workflow template keeps
its steps as property rows with a step_type, a step_config and an
execution_order, next to an optional ``start`` row describing the workflow's
tool name and input parameters.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from .definition import InputSchema, StepDefinition, WorkflowDefinition
from .interfaces import SchemaProvider


logger = logging.getLogger(__name__)

WORKFLOW_TEMPLATE_TYPE = "workflow"
START_STEP_TYPE = "start"


def _config(row: Dict[str, Any]) -> Dict[str, Any]:
    config = row.get("step_config") or {}
    if isinstance(config, str):
        config = json.loads(config)
    return config


def _is_executable(row: Dict[str, Any]) -> bool:
    return row.get("step_type") not in (None, "", "property", START_STEP_TYPE)


class WorkflowLoader:
    """Loads WorkflowDefinitions through a SchemaProvider."""

    def __init__(self, schema_provider: SchemaProvider):
        self.schema_provider = schema_provider

    async def load(self, template_id: Any) -> Optional[WorkflowDefinition]:
        """
        Load a workflow definition from a template.

        Args:
            template_id: Workflow template identifier

        Returns:
            WorkflowDefinition, or None if the template does not exist

        Raises:
            ValueError: If the template is not a workflow template
            UnknownStepTypeError: If a step row has an unknown step_type
        """
        template = await self.schema_provider.get_template(template_id)
        if template is None:
            return None

        if template.get("type") != WORKFLOW_TEMPLATE_TYPE:
            raise ValueError(
                f"Template {template_id} is not a workflow (type: {template.get('type')})"
            )

        rows = await self.schema_provider.get_properties(template_id)
        logger.debug(f"Loaded {len(rows)} properties for template {template_id}")

        start = next((row for row in rows if row.get("step_type") == START_STEP_TYPE), None)
        if start is not None:
            name, description, input_schema = self._from_start_row(template, start)
        else:
            logger.warning(
                f"No start node found for workflow {template_id}, using template metadata"
            )
            name, description, input_schema = self._from_metadata(template)

        step_rows = sorted(
            (row for row in rows if _is_executable(row)),
            key=lambda row: row.get("execution_order") or 0,
        )
        steps = [self._build_step(row) for row in step_rows]

        logger.info(f"Loaded workflow '{name}' with {len(steps)} steps")
        return WorkflowDefinition(
            name=name,
            description=description or "",
            input_schema=input_schema,
            steps=steps,
        )

    def _from_start_row(self, template: Dict[str, Any], start: Dict[str, Any]):
        config = _config(start)
        name = config.get("tool_name") or "_".join(
            (template.get("name") or "").lower().split()
        )
        description = (
            config.get("tool_description")
            or config.get("display_description")
            or template.get("description")
        )
        parameters: List[Dict[str, Any]] = config.get("input_parameters") or []
        return name, description, InputSchema.from_parameter_list(parameters)

    def _from_metadata(self, template: Dict[str, Any]):
        metadata = template.get("metadata") or {}
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        name = metadata.get("mcp_tool_name") or template.get("name") or ""
        schema = metadata.get("input_schema")
        if isinstance(schema, str):
            schema = json.loads(schema)
        return name, template.get("description"), InputSchema.from_dict(schema)

    def _build_step(self, row: Dict[str, Any]) -> StepDefinition:
        data = dict(_config(row))
        data["name"] = row.get("key")
        data["type"] = row.get("step_type")
        return StepDefinition.from_dict(data)
