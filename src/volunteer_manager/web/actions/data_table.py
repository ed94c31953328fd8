"""
Data Table APIs: declarative CRUD endpoints for a single tabular resource.

An implementation of DataTableApi provides the verbs it supports. The
endpoint created by create_data_table_api() maps those onto HTTP methods:

    GET    /endpoint        list, with optional pagination and sort
    GET    /endpoint/:id    get
    POST   /endpoint        create
    PUT    /endpoint        reorder
    PUT    /endpoint/:id    update
    DELETE /endpoint/:id    delete

Each verb is executed as an action, so request and response validation as
well as the error envelope are shared with every other action. The optional
access_check hook runs before each verb, and the optional write_log hook runs
after each successful mutation.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Annotated, Any, Awaitable, Callable, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    create_model,
)
from starlette.requests import Request
from starlette.responses import Response

from ...utils.logging import StructuredLogger
from ..models.api_models import Pagination, SuccessResponse, envelope
from .action import Action, ActionContext, ActionDispatcher, InterfaceDefinition, dispatcher_for
from .distill import RouteParams
from .errors import MissingHandlerError, RouteMismatchError

Verb = Literal["create", "delete", "get", "list", "reorder", "update"]

Mutation = Literal["Created", "Deleted", "Reordered", "Updated"]

MUTATION_LABELS: dict[str, Mutation] = {
    "create": "Created",
    "delete": "Deleted",
    "reorder": "Reordered",
    "update": "Updated",
}

ROW_VERBS = frozenset({"delete", "get", "update"})

VERB_METHODS: dict[str, str] = {
    "create": "POST",
    "delete": "DELETE",
    "get": "GET",
    "list": "GET",
    "reorder": "PUT",
    "update": "PUT",
}


def _unwrap_route_segment(value: Any) -> Any:
    # Catch-all route segments arrive as a list; /endpoint/12 yields ["12"]
    if isinstance(value, list) and len(value) == 1:
        return value[0]
    return value


def _null_from_query(value: Any) -> Any:
    # Query strings cannot carry null, an empty value or "null" stands in for it
    if value in ("", "null"):
        return None
    return value


RowId = Annotated[int, BeforeValidator(_unwrap_route_segment)]

SortDirection = Annotated[Literal["asc", "desc"] | None, BeforeValidator(_null_from_query)]


class DataTableApi(ABC):
    """
    Interface implemented by each Data Table API.

    Only list() is required. The other verbs and hooks are optional, and are
    provided by defining a method of the same name:

        async def create(self, request, context) -> dict
        async def get(self, request, context) -> dict
        async def update(self, request, context) -> dict
        async def reorder(self, request, context) -> dict
        async def delete(self, request, context) -> dict

        def access_check(self, request, verb, context) -> None
        def write_log(self, request, mutation, context) -> None

    The hooks may be either regular functions or coroutines. An access check
    denies the call by raising, usually through no_access().
    """

    create: Callable[[Any, ActionContext], Awaitable[Any]] | None = None
    get: Callable[[Any, ActionContext], Awaitable[Any]] | None = None
    update: Callable[[Any, ActionContext], Awaitable[Any]] | None = None
    reorder: Callable[[Any, ActionContext], Awaitable[Any]] | None = None
    delete: Callable[[Any, ActionContext], Awaitable[Any]] | None = None

    access_check: Callable[[Any, Verb, ActionContext], Any] | None = None
    write_log: Callable[[Any, Mutation, ActionContext], Any] | None = None

    @abstractmethod
    async def list(self, request: Any, context: ActionContext) -> Any:
        """
        Retrieve the rows to display. The request includes the parameters
        necessary to support pagination and sorting.
        """


def row_keys(row_model: type[BaseModel]) -> tuple[str, ...]:
    """The keys of a row as seen by clients, preferring field aliases."""
    return tuple(info.alias or name for name, info in row_model.model_fields.items())


def with_id(row_model: type[BaseModel]) -> type[BaseModel]:
    """The row model, extended with a numeric `id` field when it does not declare one."""
    if "id" in row_model.model_fields:
        return row_model
    return create_model(f"{row_model.__name__}WithId", __base__=row_model, id=(int, ...))


def strict(model: type[BaseModel]) -> type[BaseModel]:
    """A variant of the model that rejects unknown keys."""
    return type(
        model.__name__,
        (model,),
        {"model_config": ConfigDict(extra="forbid"), "__module__": model.__module__},
    )


def verb_definition(
    name: str,
    context_model: type[BaseModel] | None,
    request_fields: dict[str, Any],
    success_fields: dict[str, Any],
) -> InterfaceDefinition:
    """
    Build the interface definition of a single verb.

    Args:
        name: Prefix for the generated model names
        context_model: Caller supplied context merged into the request
        request_fields: Fields specific to the verb's request
        success_fields: Fields of the verb's success response, besides `success`

    Returns:
        Definition whose response is the success/error envelope
    """
    request = create_model(f"{name}Request", __base__=context_model or BaseModel, **request_fields)
    success = create_model(f"{name}Response", __base__=SuccessResponse, **success_fields)
    return InterfaceDefinition(request=request, response=envelope(success))


def _succeeded(response: Any) -> bool:
    if isinstance(response, dict):
        return response.get("success") is True
    return getattr(response, "success", None) is True


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class DataTableEndpoint:
    """
    Route handlers for a single Data Table API, one per HTTP method.

    Handlers have the signature `(request, params) -> Response`, where params
    are the route parameters captured for the request. The `id` route
    parameter selects between the row level and the table level verbs.
    """

    def __init__(
        self,
        row_model: type[BaseModel],
        context_model: type[BaseModel] | None,
        implementation: DataTableApi,
        *,
        dispatcher: ActionDispatcher | None = None,
    ):
        """
        Initialize the endpoint.

        Args:
            row_model: Model of an individual row this API deals with
            context_model: Model of the context each request is scoped to, or None
            implementation: Implementation of the verbs
            dispatcher: Dispatcher to execute with (defaults to the application's)

        Raises:
            ValueError: If the row model declares no fields
        """
        keys = row_keys(row_model)
        if not keys:
            raise ValueError(f"Row model {row_model.__name__} must declare at least one field")

        self.row_model = row_model
        self.context_model = context_model
        self.implementation = implementation
        self.dispatcher = dispatcher

        name = row_model.__name__
        row = with_id(row_model)
        strict_row = strict(row_model)
        strict_row_with_id = strict(row)

        sort_model = create_model(
            f"{name}Sort",
            field=(Literal[keys], ...),
            sort=(SortDirection, ...),
        )

        self.definitions: dict[str, InterfaceDefinition] = {
            "list": verb_definition(
                f"{name}List",
                context_model,
                {"pagination": (Pagination | None, None), "sort": (sort_model | None, None)},
                {"row_count": (int, Field(alias="rowCount")), "rows": (list[strict_row], ...)},
            ),
            "create": verb_definition(
                f"{name}Create",
                context_model,
                {},
                {"row": (strict_row_with_id, ...)},
            ),
            "get": verb_definition(
                f"{name}Get",
                context_model,
                {"id": (RowId, ...)},
                {"row": (strict_row_with_id, ...)},
            ),
            "update": verb_definition(
                f"{name}Update",
                context_model,
                {"id": (RowId, ...), "row": (row, ...)},
                {},
            ),
            "reorder": verb_definition(
                f"{name}Reorder",
                context_model,
                {"order": (list[int], ...)},
                {},
            ),
            "delete": verb_definition(
                f"{name}Delete",
                context_model,
                {"id": (RowId, ...)},
                {},
            ),
        }

    async def _invoke(
        self,
        verb: str,
        request: Any,
        context: ActionContext,
        dispatcher: ActionDispatcher,
        params: RouteParams | None = None,
    ) -> Any:
        handler = getattr(self.implementation, verb, None)
        if handler is None:
            raise MissingHandlerError(
                f"Cannot handle {VERB_METHODS[verb]} requests without a {verb} handler"
            )

        # The route decides which row is addressed, never the payload
        route_id = _route_id(params) if verb in ROW_VERBS else None
        if route_id is not None and request.id != route_id:
            raise RouteMismatchError(
                f"Cannot {verb} row {request.id} through the route of row {route_id}"
            )

        if verb == "update" and request.row.id != request.id:
            raise RouteMismatchError(
                f"Cannot update row {request.row.id} through the route of row {request.id}"
            )

        access_check = getattr(self.implementation, "access_check", None)
        if access_check is not None:
            await _maybe_await(access_check(request, verb, context))

        response = await handler(request, context)

        mutation = MUTATION_LABELS.get(verb)
        if mutation is not None and _succeeded(response):
            await self._write_log(request, mutation, context, dispatcher)

        return response

    async def _write_log(
        self, request: Any, mutation: Mutation, context: ActionContext, dispatcher: ActionDispatcher
    ) -> None:
        write_log = getattr(self.implementation, "write_log", None)
        if write_log is None:
            return

        try:
            await _maybe_await(write_log(request, mutation, context))
        except Exception:
            if dispatcher.surface_write_log_errors:
                raise
            # The mutation has been committed, report it as such
            logger = StructuredLogger(__name__, table=self.row_model.__name__, mutation=mutation)
            logger.exception("Unable to write the log entry")

    def _action(
        self, verb: str, dispatcher: ActionDispatcher, params: RouteParams | None
    ) -> Action:
        async def action(request: Any, context: ActionContext) -> Any:
            return await self._invoke(verb, request, context, dispatcher, params)

        return action

    async def _execute(self, verb: str, request: Request, params: RouteParams | None) -> Response:
        dispatcher = self.dispatcher or dispatcher_for(request)
        return await dispatcher.execute(
            request, self.definitions[verb], self._action(verb, dispatcher, params), params
        )

    async def get(self, request: Request, params: RouteParams | None = None) -> Response:
        verb = "get" if _has_id(params) else "list"
        return await self._execute(verb, request, params)

    async def post(self, request: Request, params: RouteParams | None = None) -> Response:
        return await self._execute("create", request, params)

    async def put(self, request: Request, params: RouteParams | None = None) -> Response:
        verb = "update" if _has_id(params) else "reorder"
        return await self._execute(verb, request, params)

    async def delete(self, request: Request, params: RouteParams | None = None) -> Response:
        return await self._execute("delete", request, params)

    def handlers(self) -> dict[str, Callable[[Request, RouteParams | None], Awaitable[Response]]]:
        """Route handlers keyed by HTTP method."""
        return {
            "DELETE": self.delete,
            "GET": self.get,
            "POST": self.post,
            "PUT": self.put,
        }


def _has_id(params: RouteParams | None) -> bool:
    return bool(params) and params.get("id") not in (None, "", [])


_ROUTE_ID = TypeAdapter(RowId)


def _route_id(params: RouteParams | None) -> int | None:
    """
    The row id captured from the route, if any.

    Raises:
        RouteMismatchError: If the route does not address a single numeric row
    """
    if not _has_id(params):
        return None

    try:
        return _ROUTE_ID.validate_python(params["id"])
    except ValidationError as e:
        raise RouteMismatchError(f"Invalid row route: {params['id']!r}") from e


def create_data_table_api(
    row_model: type[BaseModel],
    context_model: type[BaseModel] | None,
    implementation: DataTableApi,
    *,
    dispatcher: ActionDispatcher | None = None,
) -> DataTableEndpoint:
    """
    Creates the route handlers for a Data Table API.

    Args:
        row_model: Model of an individual row this API will deal with
        context_model: Model of the context used by the implementation, None to omit
        implementation: Implementation of the Data Table API specific to this type
        dispatcher: Dispatcher to execute with (defaults to the application's)

    Returns:
        Endpoint providing handlers for the DELETE, GET, POST and PUT methods
    """
    return DataTableEndpoint(row_model, context_model, implementation, dispatcher=dispatcher)
