"""
Typed actions executed on top of Starlette requests.

An action is an asynchronous function that receives a validated request object
and an ActionContext, and returns a response object. Both the request and the
response are validated against an InterfaceDefinition. Failures are thrown as
exceptions and converted into a uniform JSON envelope:

- 200 with the validated response on success
- 403 with {"success": false} when the action called no_access()
- 500 with {"success": false, "error": "..."} for everything else
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Awaitable, Callable

from fastapi.encoders import jsonable_encoder
from pydantic import TypeAdapter, ValidationError
from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ...auth.identity import AnonymousIdentityResolver, IdentityResolver
from ...config import ActionsConfig
from ...auth.user import User
from ...utils.logging import StructuredLogger, running_under_pytest
from .distill import RouteParams, distill_request_params
from .errors import (
    NoAccessError,
    RequestValidationFailure,
    ResponseValidationError,
    format_validation_issues,
)


@dataclass
class ActionContext:
    """
    Additional properties made available to actions that allow them to use or
    manipulate lasting state, such as understanding who the signed in user is
    and getting or setting headers.
    """

    # Origin of the server to which the request has been issued (https://example.com).
    origin: str

    # Request headers. Contents are provided by the client, thus unverified.
    request_headers: Headers

    # Response headers. Appended to the resulting response when the action succeeds.
    response_headers: MutableHeaders = field(default_factory=MutableHeaders)

    # IP address of the computer that issued the request, when known.
    ip: str | None = None

    # The user for whom the request is being made, if any.
    user: User | None = None


Action = Callable[[Any, ActionContext], Awaitable[Any]]

ResponseValidationErrorHandler = Callable[[ResponseValidationError], None]

_response_validation_error_handler: ResponseValidationErrorHandler | None = None


def set_response_validation_error_handler(handler: ResponseValidationErrorHandler | None) -> None:
    """
    Install a handler that is notified of every response validation failure,
    before the failure is turned into an HTTP 500 response. Pass None to remove it.
    """
    global _response_validation_error_handler
    _response_validation_error_handler = handler


@dataclass(frozen=True)
class InterfaceDefinition:
    """
    The request and response schema of a single action.

    The request type is typically a pydantic model; unknown request fields are
    ignored unless the model forbids them. The response type is anything
    pydantic can validate, and should forbid unknown fields.
    """

    request: Any
    response: Any

    @cached_property
    def request_adapter(self) -> TypeAdapter:
        return TypeAdapter(self.request)

    @cached_property
    def response_adapter(self) -> TypeAdapter:
        return TypeAdapter(self.response)

    def validate_request(self, payload: dict[str, Any]) -> Any:
        """
        Validate the distilled request payload.

        Raises:
            RequestValidationFailure: If the payload does not match the request schema
        """
        try:
            return self.request_adapter.validate_python(payload)
        except ValidationError as e:
            raise RequestValidationFailure(format_validation_issues(e, "request")) from e

    def validate_response(self, response: Any) -> Any:
        """
        Validate a value returned by an action and serialize it for the client.

        Models returned by the action are converted to plain data first, so that
        they are held to the same rules as dictionaries.

        Raises:
            ResponseValidationError: If the value does not match the response schema
        """
        try:
            validated = self.response_adapter.validate_python(jsonable_encoder(response))
        except ValidationError as e:
            error = ResponseValidationError(
                f"Action response validation failed ({format_validation_issues(e, 'response')})"
            )
            if _response_validation_error_handler is not None:
                _response_validation_error_handler(error)
            raise error from e

        return self.response_adapter.dump_python(
            validated, mode="json", by_alias=True, exclude_unset=True
        )


def create_response(status: int, payload: Any) -> Response:
    """Creates a JSON response for the given status and payload."""
    return JSONResponse(content=payload, status_code=status)


def get_client_ip(request: Request) -> str | None:
    """Best-effort IP address of the client, preferring the first forwarded hop."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return None


def get_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


class ActionDispatcher:
    """
    Executes actions for incoming requests.

    The dispatcher owns the identity resolver, so that tests and alternative
    deployments can decide who a request is made by without touching headers.
    """

    def __init__(
        self,
        identity_resolver: IdentityResolver | None = None,
        *,
        invalid_request_status: int = 500,
        log_errors: bool = True,
        surface_write_log_errors: bool = False,
    ):
        """
        Initialize the dispatcher.

        Args:
            identity_resolver: Resolves the user making each request (anonymous by default)
            invalid_request_status: Status code used when the request fails validation
            log_errors: Log exceptions thrown by actions (never under pytest)
            surface_write_log_errors: Whether data table APIs fail the request when
                writing the log entry for a completed mutation fails
        """
        self.identity_resolver = identity_resolver or AnonymousIdentityResolver()
        self.invalid_request_status = invalid_request_status
        self.log_errors = log_errors
        self.surface_write_log_errors = surface_write_log_errors

    @classmethod
    def from_config(
        cls, config: ActionsConfig, identity_resolver: IdentityResolver | None = None
    ) -> "ActionDispatcher":
        """Create a dispatcher following the [actions] configuration section."""
        return cls(
            identity_resolver,
            invalid_request_status=config.invalid_request_status,
            log_errors=config.log_errors,
            surface_write_log_errors=config.surface_write_log_errors,
        )

    async def execute(
        self,
        request: Request,
        definition: InterfaceDefinition,
        action: Action,
        route_params: RouteParams | None = None,
        *,
        user_for_testing: User | None = None,
    ) -> Response:
        """
        Execute the given action for the given request.

        Args:
            request: The incoming request
            definition: Request and response schema of the action
            action: The action to execute on the validated request
            route_params: Parameters captured from the request path, if any
            user_for_testing: Skips identity resolution in favour of this user

        Returns:
            The response to send to the client
        """
        try:
            try:
                payload = await distill_request_params(request, route_params)
                validated_request = definition.validate_request(payload)
            except RequestValidationFailure as e:
                return create_response(
                    self.invalid_request_status,
                    {
                        "success": False,
                        "error": f"The server was not able to validate the request. ({e})",
                    },
                )

            if user_for_testing is not None:
                user = user_for_testing
            else:
                user = await self.identity_resolver.resolve(request.headers)

            context = ActionContext(
                origin=get_origin(request),
                request_headers=request.headers,
                response_headers=MutableHeaders(),
                ip=get_client_ip(request),
                user=user,
            )

            result = await action(validated_request, context)

            response = create_response(200, definition.validate_response(result))
            for name, value in context.response_headers.items():
                response.headers.append(name, value)

            return response

        except NoAccessError:
            return create_response(403, {"success": False})

        except Exception as e:
            if self.log_errors and not running_under_pytest():
                logger = StructuredLogger(__name__, method=request.method, path=request.url.path)
                logger.exception(f"Action threw an exception: {e}")

            return create_response(
                500,
                {
                    "success": False,
                    "error": f"The server was not able to handle the request: {e}",
                },
            )


_default_dispatcher = ActionDispatcher()


def dispatcher_for(request: Request) -> ActionDispatcher:
    """The dispatcher installed on the application serving the request, or the default one."""
    app = request.scope.get("app")
    dispatcher = getattr(getattr(app, "state", None), "dispatcher", None)
    return dispatcher or _default_dispatcher


async def execute_action(
    request: Request,
    definition: InterfaceDefinition,
    action: Action,
    route_params: RouteParams | None = None,
    *,
    user_for_testing: User | None = None,
) -> Response:
    """
    Execute an action using the default dispatcher, which treats requests as anonymous
    unless a user is given for testing.
    """
    return await _default_dispatcher.execute(
        request, definition, action, route_params, user_for_testing=user_for_testing
    )
