"""
Identity resolution for incoming requests.

The action dispatcher receives an IdentityResolver when it is constructed,
and consults it once per request after the request has been validated.
Resolvers only ever look at the request headers, which are client provided
and thus unverified until a resolver vouches for them.
"""

import hashlib
import logging
from typing import Iterable, Protocol, runtime_checkable

from starlette.datastructures import Headers

from ..config import ApiKeyConfig
from .user import User

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"


def hash_key(raw_key: str) -> str:
    """
    Returns a SHA256 hash of the API key.
    """
    return hashlib.sha256(raw_key.encode()).hexdigest()


@runtime_checkable
class IdentityResolver(Protocol):
    """Resolves the user making a request, if any."""

    async def resolve(self, headers: Headers) -> User | None:
        """
        Resolve the user for a request.

        Args:
            headers: The request headers

        Returns:
            The user, or None for anonymous requests
        """
        ...


class AnonymousIdentityResolver:
    """Treats every request as anonymous."""

    async def resolve(self, headers: Headers) -> User | None:
        return None


class StaticIdentityResolver:
    """Resolves every request to the same user. Used by tests and local tooling."""

    def __init__(self, user: User | None):
        self.user = user

    async def resolve(self, headers: Headers) -> User | None:
        return self.user


class ApiKeyIdentityResolver:
    """
    Resolves users based on the X-API-Key request header.

    Keys are never stored in plain text, only their SHA256 hashes are known to
    the resolver. Unknown keys resolve to an anonymous request rather than an
    error, so that endpoints decide for themselves whether to deny access.
    """

    def __init__(self, users_by_hash: dict[str, User]):
        self._users_by_hash = dict(users_by_hash)

    @classmethod
    def from_config(cls, api_keys: Iterable[ApiKeyConfig]) -> "ApiKeyIdentityResolver":
        """
        Build a resolver from the [[api_keys]] configuration section.

        Args:
            api_keys: Configured API keys

        Returns:
            Resolver that knows about each of the configured keys
        """
        return cls(
            {
                key.key_hash: User(
                    user_id=key.user_id,
                    username=key.username,
                    privileges=frozenset(key.privileges),
                )
                for key in api_keys
            }
        )

    async def resolve(self, headers: Headers) -> User | None:
        raw_key = headers.get(API_KEY_HEADER)
        if not raw_key:
            return None

        user = self._users_by_hash.get(hash_key(raw_key))
        if user is None:
            logger.warning("Request carried an unknown API key")
        return user
