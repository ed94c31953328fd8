"""
Typed actions and Data Table APIs.

Example:
    from pydantic import BaseModel, ConfigDict
    from volunteer_manager.web.actions import ActionContext, InterfaceDefinition, no_access

    class GreetRequest(BaseModel):
        name: str

    class GreetResponse(BaseModel):
        model_config = ConfigDict(extra="forbid")
        greeting: str

    GREET = InterfaceDefinition(request=GreetRequest, response=GreetResponse)

    async def greet(request: GreetRequest, context: ActionContext) -> dict:
        if context.user is None:
            no_access()
        return {"greeting": f"Hello, {request.name}!"}
"""

from .action import (
    Action,
    ActionContext,
    ActionDispatcher,
    InterfaceDefinition,
    dispatcher_for,
    execute_action,
    set_response_validation_error_handler,
)
from .data_table import DataTableApi, DataTableEndpoint, create_data_table_api
from .distill import SUPPORTED_METHODS, RouteParams
from .errors import (
    ActionError,
    MissingHandlerError,
    NoAccessError,
    RequestValidationFailure,
    ResponseValidationError,
    RouteMismatchError,
    UnsupportedMethodError,
    no_access,
)

__all__ = [
    "Action",
    "ActionContext",
    "ActionDispatcher",
    "ActionError",
    "DataTableApi",
    "DataTableEndpoint",
    "InterfaceDefinition",
    "MissingHandlerError",
    "NoAccessError",
    "RequestValidationFailure",
    "ResponseValidationError",
    "RouteMismatchError",
    "RouteParams",
    "SUPPORTED_METHODS",
    "UnsupportedMethodError",
    "create_data_table_api",
    "dispatcher_for",
    "execute_action",
    "no_access",
    "set_response_validation_error_handler",
]
