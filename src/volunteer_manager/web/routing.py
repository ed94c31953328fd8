"""
Mounting of actions and Data Table APIs on FastAPI routers.

Path parameters captured by the router become the route parameters of the
action. Catch-all parameters, declared with the `path` converter, are split
into a list of segments.
"""

import logging
from typing import Awaitable, Callable, Iterable, Sequence

from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import Response

from .actions.action import Action, InterfaceDefinition, dispatcher_for
from .actions.data_table import DataTableEndpoint
from .actions.distill import SUPPORTED_METHODS, RouteParams

logger = logging.getLogger(__name__)

RouteHandler = Callable[[Request, RouteParams | None], Awaitable[Response]]


def route_params_from(request: Request, catch_all: Iterable[str] = ()) -> RouteParams:
    """
    Collect the route parameters of a request.

    Args:
        request: The routed request
        catch_all: Names of parameters that capture any number of segments

    Returns:
        Parameter values, lists of segments for catch-all parameters
    """
    catch_all = set(catch_all)
    params: RouteParams = {}
    for key, value in request.path_params.items():
        if key in catch_all:
            params[key] = [segment for segment in str(value).split("/") if segment]
        else:
            params[key] = str(value)

    return params


def _endpoint(handler: RouteHandler, catch_all: Iterable[str] = ()) -> Callable[[Request], Awaitable[Response]]:
    catch_all = tuple(catch_all)

    async def endpoint(request: Request) -> Response:
        return await handler(request, route_params_from(request, catch_all))

    return endpoint


def mount_action(
    router: APIRouter,
    path: str,
    definition: InterfaceDefinition,
    action: Action,
    *,
    methods: Sequence[str] = ("POST",),
    catch_all: Iterable[str] = (),
    **route_kwargs,
) -> None:
    """
    Mount an action on the router.

    Args:
        router: Router to add the route to
        path: Route path, may contain path parameters
        definition: Request and response schema of the action
        action: The action to execute
        methods: HTTP methods the action responds to
        catch_all: Names of path parameters that capture multiple segments
        **route_kwargs: Passed on to APIRouter.add_api_route (tags, name, ...)

    Raises:
        ValueError: If a method cannot carry action parameters
    """
    methods = [method.upper() for method in methods]
    unsupported = sorted(set(methods) - SUPPORTED_METHODS)
    if unsupported:
        raise ValueError(f"Unsupported request method(s) for {path}: {', '.join(unsupported)}")

    async def handler(request: Request, params: RouteParams | None) -> Response:
        return await dispatcher_for(request).execute(request, definition, action, params)

    router.add_api_route(path, _endpoint(handler, catch_all), methods=methods, **route_kwargs)
    logger.debug(f"Mounted action {path} ({', '.join(methods)})")


def mount_data_table(
    router: APIRouter,
    path: str,
    endpoint: DataTableEndpoint,
    **route_kwargs,
) -> None:
    """
    Mount a Data Table API on the router, at `path` and at `path/{id}`.

    Args:
        router: Router to add the routes to
        path: Route path of the table, may contain path parameters
        endpoint: Endpoint created by create_data_table_api()
        **route_kwargs: Passed on to APIRouter.add_api_route (tags, ...)
    """
    for method, handler in endpoint.handlers().items():
        router.add_api_route(path, _endpoint(handler), methods=[method], **route_kwargs)
        router.add_api_route(
            f"{path}/{{id:path}}",
            _endpoint(handler, catch_all=("id",)),
            methods=[method],
            **route_kwargs,
        )

    logger.debug(f"Mounted data table {endpoint.row_model.__name__} at {path}")
