"""
Errors raised by actions and the machinery that executes them.

Only NoAccessError has a dedicated HTTP status (403). Every other error that
escapes an action is reported as HTTP 500 with its message included in the
response body.
"""

from typing import Any, NoReturn

from pydantic import ValidationError


class ActionError(Exception):
    """Base class for errors raised by the action machinery."""


class NoAccessError(ActionError):
    """Raised when the request should be answered with HTTP 403 Forbidden instead."""


class UnsupportedMethodError(ActionError):
    """Raised when a request uses a method that actions cannot distill parameters from."""

    def __init__(self, method: str):
        super().__init__(f"Unsupported request method: {method}")
        self.method = method


class RequestValidationFailure(ActionError):
    """Raised when the distilled request parameters do not match the request schema."""


class ResponseValidationError(ActionError):
    """Raised when an action returns data that does not match its response schema."""


class MissingHandlerError(ActionError):
    """Raised when a data table API receives a request for a verb it does not implement."""


class RouteMismatchError(ActionError):
    """Raised when the route and the payload of a request disagree about the row being changed."""


def no_access() -> NoReturn:
    """
    Aborts execution of the rest of the action, and completes the API call with
    an HTTP 403 Forbidden response instead.
    """
    raise NoAccessError()


_EXPECTED_TYPES = {
    "string_type": "string",
    "int_type": "number",
    "int_parsing": "number",
    "int_from_float": "integer",
    "float_type": "number",
    "float_parsing": "number",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "dict_type": "object",
    "model_type": "object",
    "model_attributes_type": "object",
    "list_type": "array",
    "tuple_type": "array",
    "set_type": "array",
    "frozen_set_type": "array",
    "none_required": "null",
}


def describe_type(value: Any) -> str:
    """Name the JSON type of a value, as used in validation messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def describe_issue(error: dict[str, Any]) -> str:
    """
    Render a single pydantic error as a human readable message.

    Missing fields read "Required", unknown fields read "Unrecognized key(s)
    in object" and type errors describe the expected and the received type.
    """
    error_type = error["type"]
    if error_type == "missing":
        return "Required"

    if error_type == "extra_forbidden":
        return f"Unrecognized key(s) in object: '{error['loc'][-1]}'"

    expected = _EXPECTED_TYPES.get(error_type)
    if expected is not None:
        return f"Expected {expected}, received {describe_type(error.get('input'))}"

    return error["msg"]


def format_validation_issues(error: ValidationError, root: str) -> str:
    """
    Format every issue in a pydantic ValidationError.

    Args:
        error: The validation error
        root: Name of the validated object, prefixed to each path

    Returns:
        Comma separated issues, each of the form "(root/path/to/field): message"
    """
    issues = []
    for issue in error.errors(include_url=False):
        path = "/".join(str(component) for component in (root, *issue["loc"]))
        issues.append(f"({path}): {describe_issue(issue)}")

    return ", ".join(issues)
