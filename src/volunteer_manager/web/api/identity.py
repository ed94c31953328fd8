"""
Identity action.

Provides:
- GET /api/auth/identity - The user on whose behalf the request is made
"""

from fastapi import APIRouter

from ..actions import ActionContext, InterfaceDefinition
from ..models.api_models import EmptyRequest, IdentityResponse, IdentityUser
from ..routing import mount_action

router = APIRouter(tags=["auth"])

IDENTITY = InterfaceDefinition(request=EmptyRequest, response=IdentityResponse)


async def identity(request: EmptyRequest, context: ActionContext) -> IdentityResponse:
    """
    Describe the signed in user. Anonymous requests succeed as well, but
    without a `user`.
    """
    if context.user is None:
        return IdentityResponse()

    return IdentityResponse(
        user=IdentityUser(
            user_id=context.user.user_id,
            username=context.user.username,
            privileges=sorted(context.user.privileges),
        )
    )


mount_action(router, "/auth/identity", IDENTITY, identity, methods=("GET",))
