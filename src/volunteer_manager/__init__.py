"""
Volunteer Manager - typed actions and Data Table APIs for volunteer management.

Every endpoint is an action: an asynchronous function receiving a validated
request object, returning a response object that is validated before it is
sent. Data Table APIs build the create/list/update/delete endpoints of a
tabular resource on top of actions.

Example:
    from fastapi import APIRouter
    from pydantic import BaseModel

    from volunteer_manager import DataTableApi, create_app, create_data_table_api
    from volunteer_manager.auth.access import require_privilege
    from volunteer_manager.web.routing import mount_data_table

    class Hotel(BaseModel):
        id: int
        name: str

    class HotelApi(DataTableApi):
        def access_check(self, request, verb, context):
            require_privilege(context.user, "event-administrator")

        async def list(self, request, context):
            return {"success": True, "rowCount": 1, "rows": [{"id": 1, "name": "Hotel"}]}

    router = APIRouter()
    mount_data_table(router, "/admin/hotels", create_data_table_api(Hotel, None, HotelApi()))

    app = create_app(routers=[router])
"""

__version__ = "0.1.0"

from .config import PortalConfig, load_config
from .web.actions import (
    ActionContext,
    ActionDispatcher,
    DataTableApi,
    InterfaceDefinition,
    create_data_table_api,
    execute_action,
    no_access,
)
from .web.server import create_app

__all__ = [
    "__version__",
    "ActionContext",
    "ActionDispatcher",
    "DataTableApi",
    "InterfaceDefinition",
    "PortalConfig",
    "create_app",
    "create_data_table_api",
    "execute_action",
    "load_config",
    "no_access",
]
