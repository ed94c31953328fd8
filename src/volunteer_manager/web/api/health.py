"""
Health action.

Provides:
- GET /api/health - Liveness and version of the server
"""

from fastapi import APIRouter

from ... import __version__
from ..actions import ActionContext, InterfaceDefinition
from ..models.api_models import EmptyRequest, HealthResponse
from ..routing import mount_action

router = APIRouter(tags=["health"])

HEALTH = InterfaceDefinition(request=EmptyRequest, response=HealthResponse)


async def health(request: EmptyRequest, context: ActionContext) -> dict:
    context.response_headers["Cache-Control"] = "no-store"
    return {"success": True, "status": "ok", "version": __version__}


mount_action(router, "/health", HEALTH, health, methods=("GET", "HEAD"))
