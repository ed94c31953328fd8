"""
Access checks usable from actions and data table access_check hooks.
"""

from ..web.actions.errors import no_access
from .user import User


def require_user(user: User | None) -> User:
    """Return the signed in user, or abort the action with HTTP 403."""
    if user is None:
        no_access()
    return user


def require_privilege(user: User | None, *privileges: str) -> User:
    """
    Abort the action with HTTP 403 unless the user holds one of the privileges.

    Usage in an access check:
        def access_check(self, request, verb, context):
            require_privilege(context.user, "event-administrator")

    Args:
        user: The user making the request, if any
        *privileges: Privileges that each grant access on their own

    Returns:
        The user, when access was granted
    """
    user = require_user(user)
    if not any(user.has_privilege(privilege) for privilege in privileges):
        no_access()
    return user
