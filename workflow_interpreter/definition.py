"""
Workflow Definition

Parse, validate, and represent workflow definitions.

A workflow is a name, a description, an input schema and an ordered list of
typed steps. Each step kind is its own frozen dataclass so executors can be
dispatched on the definition class. Definitions are built from plain
dictionaries (as stored by the template loader) or from YAML documents.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Type

import yaml

from .errors import InvalidWorkflowError, UnknownStepTypeError


INPUT_TYPES = ("string", "number", "boolean", "array", "object")

THEN_BRANCH = "then"
ELSE_BRANCH = "else"
DEFAULT_BRANCH = "default_case"
CASE_BRANCH_PREFIX = "cases."


class _Missing:
    """Marker for a value field that was left out, as opposed to set to null."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in data.

    Step configuration arrives in snake_case from stored templates and in
    camelCase from nested branch definitions, so both spellings are accepted.
    """
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass(frozen=True)
class InputParameter:
    """Workflow input parameter definition."""

    name: str
    type: str = "string"
    required: bool = False
    default: Any = None
    description: str = ""

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "InputParameter":
        """Create from dictionary."""
        return cls(
            name=name,
            type=data.get("type", "string"),
            required=bool(data.get("required", False)),
            default=data.get("default"),
            description=data.get("description", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {"type": self.type, "description": self.description}
        if self.required:
            result["required"] = True
        if self.default is not None:
            result["default"] = self.default
        return result


@dataclass(frozen=True)
class InputSchema:
    """Set of named input parameters for a workflow."""

    parameters: Dict[str, InputParameter] = field(default_factory=dict)

    @property
    def required(self) -> List[str]:
        return [name for name, param in self.parameters.items() if param.required]

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InputSchema":
        """
        Create from either a JSON-schema style object or a parameter mapping.

        Accepted shapes:
        - {"type": "object", "properties": {...}, "required": [...]}
        - {"param": {"type": "string", "required": true}, ...}

        Args:
            data: Schema dictionary (may be None)

        Returns:
            InputSchema instance
        """
        if not data:
            return cls()

        if "properties" in data or data.get("type") == "object":
            required = set(data.get("required") or [])
            parameters = {}
            for name, prop in (data.get("properties") or {}).items():
                prop = dict(prop or {})
                prop["required"] = name in required or prop.get("required", False)
                parameters[name] = InputParameter.from_dict(name, prop)
            return cls(parameters=parameters)

        return cls(
            parameters={
                name: InputParameter.from_dict(name, prop or {})
                for name, prop in data.items()
            }
        )

    @classmethod
    def from_parameter_list(cls, parameters: List[Dict[str, Any]]) -> "InputSchema":
        """Build a schema from a list of {name, type, description, required} rows."""
        result = {}
        for param in parameters:
            if not param.get("name") or not param.get("type"):
                continue
            result[param["name"]] = InputParameter.from_dict(param["name"], param)
        return cls(parameters=result)

    def to_json_schema(self) -> Dict[str, Any]:
        """Convert to a JSON schema object."""
        return {
            "type": "object",
            "properties": {
                name: {
                    key: value
                    for key, value in param.to_dict().items()
                    if key != "required"
                }
                for name, param in self.parameters.items()
            },
            "required": self.required,
        }


@dataclass(frozen=True)
class StepDefinition(ABC):
    """Base class for workflow step definitions."""

    name: str

    type: ClassVar[str] = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepDefinition":
        """
        Create the step definition matching the dictionary's type.

        Args:
            data: Step definition dictionary

        Returns:
            StepDefinition subclass instance

        Raises:
            UnknownStepTypeError: If the type is not a known step kind
        """
        step_type = data.get("type")
        step_cls = STEP_DEFINITIONS.get(step_type)
        if step_cls is None:
            raise UnknownStepTypeError(step_type, data.get("name"))
        return step_cls._from_config(_pick(data, "name", "id", default=""), data)

    @classmethod
    @abstractmethod
    def _from_config(cls, name: str, data: Dict[str, Any]) -> "StepDefinition":
        """
        Build the step from its configuration.

        Args:
            name: Step name
            data: Step definition dictionary

        Returns:
            Instance of the concrete step class
        """
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {"name": self.name, "type": self.type}
        result.update(self._config_dict())
        return result

    def _config_dict(self) -> Dict[str, Any]:
        return {}

    def child_sequences(self) -> List[List["StepDefinition"]]:
        """Nested step sequences, in declaration order."""
        return []

    def branch_steps(self, branch: str) -> List["StepDefinition"]:
        """
        Get a nested sequence by branch name.

        Raises:
            ValueError: If the step has no such branch
        """
        raise ValueError(f"Step '{self.name}' has no branch '{branch}'")

    def reference_fields(self) -> List[Any]:
        """Structured field values that may hold cross-step references."""
        return []

    def get_all_step_names(self) -> List[str]:
        """Get this step's name plus the names of all nested steps."""
        names = [self.name]
        for sequence in self.child_sequences():
            for nested in sequence:
                names.extend(nested.get_all_step_names())
        return names


def _parse_steps(items: Optional[List[Dict[str, Any]]]) -> List[StepDefinition]:
    return [StepDefinition.from_dict(item) for item in (items or [])]


@dataclass(frozen=True)
class LogStepDefinition(StepDefinition):
    message: Optional[str] = None

    type: ClassVar[str] = "log"

    @classmethod
    def _from_config(cls, name, data):
        return cls(name=name, message=data.get("message"))

    def _config_dict(self):
        return {"message": self.message}


@dataclass(frozen=True)
class SetVariableStepDefinition(StepDefinition):
    variable_name: Optional[str] = None
    value: Any = MISSING

    type: ClassVar[str] = "set_variable"

    @classmethod
    def _from_config(cls, name, data):
        return cls(
            name=name,
            variable_name=_pick(data, "variable_name", "variableName"),
            value=data.get("value", MISSING),
        )

    def _config_dict(self):
        result = {"variable_name": self.variable_name}
        if self.value is not MISSING:
            result["value"] = self.value
        return result

    def reference_fields(self):
        return [self.value]


@dataclass(frozen=True)
class CallToolStepDefinition(StepDefinition):
    tool_name: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    result_variable: Optional[str] = None

    type: ClassVar[str] = "call_tool"

    @classmethod
    def _from_config(cls, name, data):
        return cls(
            name=name,
            tool_name=_pick(data, "tool_name", "toolName"),
            parameters=data.get("parameters") or {},
            result_variable=_pick(data, "result_variable", "resultVariable"),
        )

    def _config_dict(self):
        return {
            "tool_name": self.tool_name,
            "parameters": self.parameters,
            "result_variable": self.result_variable,
        }

    def reference_fields(self):
        return [self.parameters]


@dataclass(frozen=True)
class CallFunctionStepDefinition(StepDefinition):
    function_name: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    result_variable: Optional[str] = None

    type: ClassVar[str] = "call_function"

    @classmethod
    def _from_config(cls, name, data):
        return cls(
            name=name,
            function_name=_pick(
                data, "function_name", "functionName", "function_handler", "tool_name", "toolName"
            ),
            parameters=data.get("parameters") or {},
            result_variable=_pick(data, "result_variable", "resultVariable"),
        )

    def _config_dict(self):
        return {
            "function_name": self.function_name,
            "parameters": self.parameters,
            "result_variable": self.result_variable,
        }

    def reference_fields(self):
        return [self.parameters]


@dataclass(frozen=True)
class ConditionalStepDefinition(StepDefinition):
    condition: Optional[str] = None
    then_steps: List[StepDefinition] = field(default_factory=list)
    else_steps: List[StepDefinition] = field(default_factory=list)

    type: ClassVar[str] = "conditional"

    @classmethod
    def _from_config(cls, name, data):
        return cls(
            name=name,
            condition=data.get("condition"),
            then_steps=_parse_steps(data.get("then")),
            else_steps=_parse_steps(data.get("else")),
        )

    def _config_dict(self):
        result: Dict[str, Any] = {"condition": self.condition}
        if self.then_steps:
            result["then"] = [step.to_dict() for step in self.then_steps]
        if self.else_steps:
            result["else"] = [step.to_dict() for step in self.else_steps]
        return result

    def child_sequences(self):
        return [self.then_steps, self.else_steps]

    def branch_steps(self, branch):
        if branch == THEN_BRANCH:
            return self.then_steps
        if branch == ELSE_BRANCH:
            return self.else_steps
        return super().branch_steps(branch)

    def reference_fields(self):
        return [self.condition]


@dataclass(frozen=True)
class SwitchStepDefinition(StepDefinition):
    switch_value: Optional[str] = None
    cases: Dict[str, List[StepDefinition]] = field(default_factory=dict)
    default_case: Optional[List[StepDefinition]] = None

    type: ClassVar[str] = "switch"

    @classmethod
    def _from_config(cls, name, data):
        default_case = _pick(data, "default_case", "defaultCase")
        return cls(
            name=name,
            switch_value=_pick(data, "switch_value", "switchValue"),
            cases={
                str(key): _parse_steps(steps)
                for key, steps in (data.get("cases") or {}).items()
            },
            default_case=_parse_steps(default_case) if default_case is not None else None,
        )

    def _config_dict(self):
        result: Dict[str, Any] = {
            "switch_value": self.switch_value,
            "cases": {
                key: [step.to_dict() for step in steps]
                for key, steps in self.cases.items()
            },
        }
        if self.default_case is not None:
            result["default_case"] = [step.to_dict() for step in self.default_case]
        return result

    def child_sequences(self):
        sequences = list(self.cases.values())
        if self.default_case:
            sequences.append(self.default_case)
        return sequences

    def branch_steps(self, branch):
        if branch == DEFAULT_BRANCH and self.default_case is not None:
            return self.default_case
        if branch.startswith(CASE_BRANCH_PREFIX):
            key = branch[len(CASE_BRANCH_PREFIX):]
            if key in self.cases:
                return self.cases[key]
        return super().branch_steps(branch)

    def reference_fields(self):
        return [self.switch_value]


@dataclass(frozen=True)
class ReturnStepDefinition(StepDefinition):
    value: Any = MISSING

    type: ClassVar[str] = "return"

    @classmethod
    def _from_config(cls, name, data):
        return cls(name=name, value=_pick(data, "value", "return_value", default=MISSING))

    def _config_dict(self):
        return {} if self.value is MISSING else {"value": self.value}

    def reference_fields(self):
        return [self.value]


@dataclass(frozen=True)
class CreateObjectStepDefinition(StepDefinition):
    """
    Create an object of a template.

    ``properties`` maps each selected property key to either a literal, a
    ``{{reference}}`` to resolve, or None when an agent must supply it.
    """

    template_id: Any = None
    properties: Dict[str, Any] = field(default_factory=dict)
    instructions: List[str] = field(default_factory=list)
    result_variable: Optional[str] = None

    type: ClassVar[str] = "create_object"

    @classmethod
    def _from_config(cls, name, data):
        properties = _pick(data, "properties", "property_values", "propertyValues", default={})
        if isinstance(properties, list):
            properties = {key: None for key in properties}
        return cls(
            name=name,
            template_id=_pick(data, "template_id", "templateId"),
            properties=properties or {},
            instructions=list(data.get("instructions") or []),
            result_variable=_pick(data, "result_variable", "resultVariable"),
        )

    def _config_dict(self):
        return {
            "template_id": self.template_id,
            "properties": self.properties,
            "instructions": self.instructions,
            "result_variable": self.result_variable,
        }

    def reference_fields(self):
        return [self.template_id, self.properties, self.instructions]


@dataclass(frozen=True)
class LoadObjectStepDefinition(StepDefinition):
    template_id: Any = None
    property_keys: Optional[List[str]] = None
    instructions: List[str] = field(default_factory=list)

    type: ClassVar[str] = "load_object"

    @classmethod
    def _from_config(cls, name, data):
        keys = _pick(data, "property_keys", "propertyKeys", "property_ids")
        return cls(
            name=name,
            template_id=_pick(data, "template_id", "templateId"),
            property_keys=list(keys) if keys is not None else None,
            instructions=list(data.get("instructions") or []),
        )

    def _config_dict(self):
        return {
            "template_id": self.template_id,
            "property_keys": self.property_keys,
            "instructions": self.instructions,
        }

    def reference_fields(self):
        return [self.template_id, self.instructions]


@dataclass(frozen=True)
class AgentStepDefinition(StepDefinition):
    instructions: List[str] = field(default_factory=list)
    request_sampling: bool = True
    result_variable: Optional[str] = None

    type: ClassVar[str] = "agent"

    @classmethod
    def _from_config(cls, name, data):
        instructions = data.get("instructions") or []
        if isinstance(instructions, str):
            instructions = [instructions]
        return cls(
            name=name,
            instructions=list(instructions),
            request_sampling=bool(_pick(data, "request_sampling", "requestSampling", default=True)),
            result_variable=_pick(data, "result_variable", "resultVariable"),
        )

    def _config_dict(self):
        return {
            "instructions": self.instructions,
            "request_sampling": self.request_sampling,
            "result_variable": self.result_variable,
        }

    def reference_fields(self):
        return [self.instructions]


@dataclass(frozen=True)
class LoadStateStepDefinition(StepDefinition):
    key: Optional[str] = None
    default_value: Any = None
    result_variable: Optional[str] = None

    type: ClassVar[str] = "load_state"

    @classmethod
    def _from_config(cls, name, data):
        return cls(
            name=name,
            key=_pick(data, "key", "state_key", "stateKey"),
            default_value=_pick(data, "default_value", "defaultValue"),
            result_variable=_pick(data, "result_variable", "resultVariable"),
        )

    def _config_dict(self):
        return {
            "key": self.key,
            "default_value": self.default_value,
            "result_variable": self.result_variable,
        }

    def reference_fields(self):
        return [self.key, self.default_value]


@dataclass(frozen=True)
class SaveStateStepDefinition(StepDefinition):
    key: Optional[str] = None
    value: Any = MISSING

    type: ClassVar[str] = "save_state"

    @classmethod
    def _from_config(cls, name, data):
        return cls(
            name=name,
            key=_pick(data, "key", "state_key", "stateKey"),
            value=data.get("value", MISSING),
        )

    def _config_dict(self):
        result = {"key": self.key}
        if self.value is not MISSING:
            result["value"] = self.value
        return result

    def reference_fields(self):
        return [self.key, self.value]


STEP_DEFINITIONS: Dict[str, Type[StepDefinition]] = {
    step_cls.type: step_cls
    for step_cls in (
        LogStepDefinition,
        SetVariableStepDefinition,
        CallToolStepDefinition,
        CallFunctionStepDefinition,
        ConditionalStepDefinition,
        SwitchStepDefinition,
        ReturnStepDefinition,
        CreateObjectStepDefinition,
        LoadObjectStepDefinition,
        AgentStepDefinition,
        LoadStateStepDefinition,
        SaveStateStepDefinition,
    )
}


@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Workflow definition.

    Immutable once loaded. Step order is execution order.
    """

    name: str
    description: str = ""
    input_schema: InputSchema = field(default_factory=InputSchema)
    steps: List[StepDefinition] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowDefinition":
        """
        Create from dictionary.

        Args:
            data: Dictionary with name, description, inputSchema and steps

        Returns:
            WorkflowDefinition instance

        Raises:
            UnknownStepTypeError: If any step has an unknown type
        """
        schema = _pick(data, "input_schema", "inputSchema", "inputs")
        if isinstance(schema, str):
            schema = json.loads(schema)
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            input_schema=InputSchema.from_dict(schema),
            steps=_parse_steps(data.get("steps")),
        )

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "WorkflowDefinition":
        """
        Parse workflow from YAML string.

        Args:
            yaml_str: YAML document with a top-level 'workflow' key

        Returns:
            WorkflowDefinition instance

        Raises:
            ValueError: If YAML is invalid
        """
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}")

        if not data or "workflow" not in data:
            raise ValueError("YAML must contain 'workflow' key")

        return cls.from_dict(data["workflow"])

    @classmethod
    def from_file(cls, file_path: str) -> "WorkflowDefinition":
        """
        Load workflow from YAML file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If YAML is invalid
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Workflow file not found: {file_path}")

        with open(path, "r") as f:
            return cls.from_yaml(f.read())

    def validate(self) -> List[str]:
        """
        Validate workflow structure.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.name:
            errors.append("Workflow must have a name")

        all_names: List[str] = []
        for step in self.steps:
            all_names.extend(step.get_all_step_names())

        if any(not name for name in all_names):
            errors.append("Every step must have a name")

        seen = set()
        duplicates = []
        for name in all_names:
            if name and name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            errors.append(f"Duplicate step names found: {', '.join(duplicates)}")

        if "input" in seen:
            errors.append("Step name 'input' is reserved")

        for name, param in self.input_schema.parameters.items():
            if param.type not in INPUT_TYPES:
                errors.append(
                    f"Input '{name}' has invalid type '{param.type}'. "
                    f"Must be one of: {', '.join(INPUT_TYPES)}"
                )

        return errors

    def raise_if_invalid(self):
        errors = self.validate()
        if errors:
            raise InvalidWorkflowError(errors)

    def get_step(self, name: str) -> Optional[StepDefinition]:
        """Find a step by name, searching nested sequences too."""

        def _search(steps: List[StepDefinition]) -> Optional[StepDefinition]:
            for step in steps:
                if step.name == name:
                    return step
                for sequence in step.child_sequences():
                    found = _search(sequence)
                    if found:
                        return found
            return None

        return _search(self.steps)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema.to_json_schema(),
            "steps": [step.to_dict() for step in self.steps],
        }

    def __repr__(self) -> str:
        return f"WorkflowDefinition(name='{self.name}', steps={len(self.steps)})"
