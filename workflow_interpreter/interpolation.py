"""
Template Interpolation

Resolve {{path}} expressions against an execution context.

Path grammar, in resolution order:
- steps.<step>.<subpath>  output of the most recent result for <step>
- input.<field>           a validated input
- input                   all inputs
- logs                    accumulated log lines
- <name>.<subpath>        a workflow variable

A string that is exactly one expression resolves to the value itself, keeping
its type. Expressions embedded in longer strings are substituted as text, and
any that resolve to nothing are left in place verbatim.
"""

import json
import re
from typing import Any, List, Sequence

from .context import ExecutionContext


TEMPLATE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
WHOLE_TEMPLATE_PATTERN = re.compile(r"^\{\{([^}]+)\}\}$")


def _walk(value: Any, parts: Sequence[str]) -> Any:
    for part in parts:
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(part)
        elif isinstance(value, (list, tuple)) and part.lstrip("-").isdigit():
            index = int(part)
            value = value[index] if -len(value) <= index < len(value) else None
        else:
            return None
    return value


def resolve_path(path: str, context: ExecutionContext) -> Any:
    """
    Resolve a dotted path against the context.

    Args:
        path: Expression inside {{ }}, already stripped
        context: Execution context

    Returns:
        Resolved value, or None if any segment is missing
    """
    parts = path.split(".")

    if parts[0] == "steps" and len(parts) >= 2:
        result = context.get_step_result(parts[1])
        if result is None:
            return None
        return _walk(result.output, parts[2:])

    if parts[0] == "input":
        return _walk(context.inputs, parts[1:])

    if path == "logs":
        return context.logs

    return _walk(context.variables.get(parts[0]), parts[1:])


def format_value(value: Any) -> str:
    """Render a resolved value for substitution into a longer string."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def interpolate_string(template: str, context: ExecutionContext) -> str:
    """Substitute every {{path}} in a string, leaving unresolved ones as-is."""

    def _replace(match):
        value = resolve_path(match.group(1).strip(), context)
        return match.group(0) if value is None else format_value(value)

    return TEMPLATE_PATTERN.sub(_replace, template)


def interpolate(value: Any, context: ExecutionContext) -> Any:
    """
    Interpolate a string, list or dict recursively.

    Args:
        value: Template value
        context: Execution context

    Returns:
        A new value with every expression resolved
    """
    if isinstance(value, str):
        whole = WHOLE_TEMPLATE_PATTERN.match(value)
        if whole:
            return resolve_path(whole.group(1).strip(), context)
        return interpolate_string(value, context)

    if isinstance(value, list):
        return [interpolate(item, context) for item in value]

    if isinstance(value, dict):
        return {key: interpolate(item, context) for key, item in value.items()}

    return value


def is_resolvable(value: Any, context: ExecutionContext) -> bool:
    """Check whether a mapping value can be filled without an agent."""
    if value is None:
        return False
    if isinstance(value, str):
        return all(
            resolve_path(match.group(1).strip(), context) is not None
            for match in TEMPLATE_PATTERN.finditer(value)
        )
    if isinstance(value, list):
        return all(is_resolvable(item, context) for item in value)
    if isinstance(value, dict):
        return all(is_resolvable(item, context) for item in value.values())
    return True


def find_references(value: Any) -> List[str]:
    """Collect every {{path}} expression inside a nested value."""
    if isinstance(value, str):
        return [match.group(1).strip() for match in TEMPLATE_PATTERN.finditer(value)]
    if isinstance(value, list):
        return [ref for item in value for ref in find_references(item)]
    if isinstance(value, dict):
        return [ref for item in value.values() for ref in find_references(item)]
    return []


def parse_literal(text: str) -> Any:
    """Parse a condition operand into a string, number, boolean or None."""
    text = text.strip()

    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]

    if text == "true":
        return True
    if text == "false":
        return False
    if text == "null":
        return None

    try:
        number = float(text)
    except ValueError:
        return text
    return int(number) if number.is_integer() and "." not in text else number


def _loose_equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if left == right:
        return True
    if isinstance(left, str) != isinstance(right, str):
        try:
            return float(left) == float(right)
        except (TypeError, ValueError):
            return False
    return False


def evaluate_condition(condition: str, context: ExecutionContext) -> bool:
    """
    Evaluate a conditional step's condition.

    Supports "{{ref}} == value", "{{ref}} != value", "{{ref}}" (truthiness of
    the resolved value) and a bare literal such as "true" or "0".

    Args:
        condition: Condition expression
        context: Execution context

    Returns:
        True if the condition holds
    """
    match = TEMPLATE_PATTERN.search(condition)
    if not match:
        return bool(parse_literal(condition))

    left = resolve_path(match.group(1).strip(), context)

    if "==" in condition:
        right = parse_literal(condition.split("==", 1)[1])
        return _loose_equals(left, right)

    if "!=" in condition:
        right = parse_literal(condition.split("!=", 1)[1])
        return not _loose_equals(left, right)

    return bool(left)
