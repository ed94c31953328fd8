"""
Distills the parameters of an incoming request into a single payload.

GET and HEAD requests carry their parameters in the URL's query string, where
dotted keys (`child.number=42`) describe nested objects. Requests with a body
(DELETE, POST and PUT) carry a JSON object that is used verbatim. Route
parameters are merged in last, and never override a parameter that was
already present.
"""

import json
import logging
from typing import Any, Iterable

from starlette.requests import Request

from .errors import RequestValidationFailure, UnsupportedMethodError, describe_type

logger = logging.getLogger(__name__)

# Route parameters as provided by the router. Catch-all segments yield a list.
RouteParams = dict[str, str | list[str]]

SEARCH_PARAM_METHODS = frozenset({"GET", "HEAD"})
BODY_METHODS = frozenset({"DELETE", "POST", "PUT"})
SUPPORTED_METHODS = SEARCH_PARAM_METHODS | BODY_METHODS


def expand_search_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """
    Expand query string items into a nested payload.

    Keys are split on dots, each component but the last naming an object. A
    parameter that would replace an existing value, or that would have to
    descend into a value that is not an object, is ignored with a warning.

    Args:
        items: (key, value) pairs in the order they appear in the URL

    Returns:
        The nested payload
    """
    payload: dict[str, Any] = {}

    for key, value in items:
        *path, prop = key.split(".")

        base = payload
        for component in path:
            if component not in base:
                base[component] = {}

            if not isinstance(base[component], dict):
                logger.warning(f"Ignoring property {key}: would override other parameters")
                break

            base = base[component]
        else:
            if prop in base:
                logger.warning(f"Ignoring property {key}: the parameter already exists")
                continue

            base[prop] = value

    return payload


async def read_json_body(request: Request) -> dict[str, Any]:
    """
    Read the request body as a JSON object. An empty body counts as an empty object.

    Raises:
        RequestValidationFailure: If the body is not a JSON object
    """
    body = await request.body()
    if not body.strip():
        return {}

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise RequestValidationFailure(f"(request): Invalid JSON in request body: {e}") from e

    if not isinstance(payload, dict):
        raise RequestValidationFailure(
            f"(request): Expected object, received {describe_type(payload)}"
        )

    return payload


def merge_route_params(payload: dict[str, Any], route_params: RouteParams | None) -> dict[str, Any]:
    """Add route parameters to the payload for keys it does not have yet."""
    if route_params:
        for key, value in route_params.items():
            if key in payload:
                continue
            payload[key] = value

    return payload


async def distill_request_params(
    request: Request,
    route_params: RouteParams | None = None,
) -> dict[str, Any]:
    """
    Distill the request parameters for the given request.

    Args:
        request: The incoming request
        route_params: Parameters captured from the request path, if any

    Returns:
        The request payload, prior to validation

    Raises:
        UnsupportedMethodError: If the request method cannot carry action parameters
        RequestValidationFailure: If a request body is present but not a JSON object
    """
    method = request.method.upper()

    if method in SEARCH_PARAM_METHODS:
        payload = expand_search_params(request.query_params.multi_items())
    elif method in BODY_METHODS:
        payload = await read_json_body(request)
    else:
        raise UnsupportedMethodError(method)

    return merge_route_params(payload, route_params)
