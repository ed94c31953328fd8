"""
Identity and access for volunteer-manager actions.
"""

from .identity import (
    AnonymousIdentityResolver,
    ApiKeyIdentityResolver,
    IdentityResolver,
    StaticIdentityResolver,
    hash_key,
)
from .user import User

__all__ = [
    "AnonymousIdentityResolver",
    "ApiKeyIdentityResolver",
    "IdentityResolver",
    "StaticIdentityResolver",
    "User",
    "hash_key",
]
