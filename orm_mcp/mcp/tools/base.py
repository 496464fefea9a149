"""
Helpers shared by the MCP tool definitions.
"""

import logging
from typing import Any

from ...browser.outcomes import OperationOutcome, Success

logger = logging.getLogger(__name__)

# Optional per-call deadline accepted by every tool
TIMEOUT_PROPERTY = {
    "type": "number",
    "description": "Give up after this many seconds (default: no deadline beyond the page timeouts)",
}


class InvalidToolArguments(ValueError):
    """Tool arguments do not match the tool's input schema."""


def build_input_schema(properties: dict[str, dict[str, Any]], required: list[str] | None = None) -> dict[str, Any]:
    """
    Build a JSON Schema for tool input.

    Args:
        properties: Dict of property name -> schema
        required: List of required property names

    Returns:
        JSON Schema dict
    """
    schema = {
        "type": "object",
        "properties": {**properties, "timeout": TIMEOUT_PROPERTY},
        "additionalProperties": False,
    }

    if required:
        schema["required"] = required

    return schema


_JSON_TYPES = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list,),
    "object": (dict,),
}


def validate_arguments(schema: dict[str, Any], arguments: Any) -> dict[str, Any]:
    """
    Check arguments against a flat object schema.

    Covers what the tool schemas use: required keys, unknown keys, primitive
    types, string arrays and enums.

    Raises:
        InvalidToolArguments: on the first mismatch
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise InvalidToolArguments("arguments must be an object")

    properties = schema.get("properties", {})
    missing = [name for name in schema.get("required", []) if arguments.get(name) is None]
    if missing:
        raise InvalidToolArguments(f"Missing required argument(s): {', '.join(missing)}")

    for name, value in arguments.items():
        prop = properties.get(name)
        if prop is None:
            if schema.get("additionalProperties", True) is False:
                raise InvalidToolArguments(f"Unknown argument: {name}")
            continue
        if value is None:
            continue

        expected = _JSON_TYPES.get(prop.get("type"))
        # bool is an int subclass; keep it out of numeric fields
        if expected and (not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected)):
            raise InvalidToolArguments(f"Argument '{name}' must be of type {prop['type']}")

        if prop.get("type") == "array":
            items = prop.get("items", {})
            item_type = _JSON_TYPES.get(items.get("type"))
            if item_type and not all(isinstance(item, item_type) for item in value):
                raise InvalidToolArguments(f"Argument '{name}' must be a list of {items['type']}")
            if "enum" in items and any(item not in items["enum"] for item in value):
                raise InvalidToolArguments(f"Argument '{name}' items must be one of: {', '.join(items['enum'])}")
        if "enum" in prop and value not in prop["enum"]:
            raise InvalidToolArguments(f"Argument '{name}' must be one of: {', '.join(map(str, prop['enum']))}")
        if "minimum" in prop and value < prop["minimum"]:
            raise InvalidToolArguments(f"Argument '{name}' must be at least {prop['minimum']}")

    return arguments


def to_jsonable(value: Any) -> Any:
    """Convert records returned by the client into JSON-ready structures."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value


def outcome_result(outcome: OperationOutcome, key: str | None = None) -> dict[str, Any]:
    """
    Turn an OperationOutcome into a tool result.

    Failures come back as {"error": {...}} so the server marks them isError.
    """
    if isinstance(outcome, Success):
        payload = to_jsonable(outcome.payload)
        if key is None:
            return payload
        return {key: payload, "count": len(payload)}

    return {"error": outcome.error.to_dict()}
