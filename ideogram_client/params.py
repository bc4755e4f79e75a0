"""Pre-flight validation of operation parameters.

Checks run before any image is loaded or request is built, so a bad option
never costs an upload or API credits.
"""

from typing import Any, Dict, Mapping

from .constants import OPERATION_CONSTRAINTS
from .errors import ParameterError

# Options whose full table is short enough to list in the error message
_LISTED_OPTIONS = {
    "aspect_ratio",
    "rendering_speed",
    "magic_prompt",
    "magic_prompt_option",
    "style_type",
    "describe_model_version",
}


def _as_int(name: str, value: Any, low: int, high: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = None
    if number is None or isinstance(value, bool) or not low <= number <= high:
        raise ParameterError(f"{name} must be between {low} and {high}", name)
    return number


def _check_option(name: str, value: Any, options) -> None:
    if value in options:
        return
    label = name.replace("_", " ")
    if name in _LISTED_OPTIONS:
        raise ParameterError(
            f"Invalid {label} '{value}'. Must be one of: {', '.join(options)}", name
        )
    raise ParameterError(
        f"Invalid {label} '{value}'. Must be one of the supported {label}s.", name
    )


def validate_operation_params(operation: str, params: Mapping[str, Any]) -> None:
    """Validate parameters against the constraints for ``operation``.

    Only parameters that are present (not ``None``) are checked, except for a
    required prompt or a required option.

    Args:
        operation: Key into ``OPERATION_CONSTRAINTS`` (e.g. ``generate-v3``)
        params: Snake-case parameter names as sent to the API

    Raises:
        ParameterError: On the first constraint violation
    """
    constraints: Dict[str, Dict[str, Any]] = OPERATION_CONSTRAINTS.get(operation)
    if constraints is None:
        raise ParameterError(f"Unknown operation: {operation}")

    for name, rule in constraints.items():
        value = params.get(name)

        if name == "prompt":
            if not rule.get("required"):
                continue
            if not value or not isinstance(value, str):
                raise ParameterError("Prompt is required and must be a string", name)
            if len(value) > rule["max_length"]:
                raise ParameterError(
                    f"Prompt exceeds maximum length of {rule['max_length']} characters",
                    name,
                )
            continue

        if value is None or value == "":
            if rule.get("required"):
                raise ParameterError(f"{name} is required", name)
            continue

        if "options" in rule:
            _check_option(name, value, rule["options"])
        elif "min" in rule:
            _as_int(name, value, rule["min"], rule["max"])
