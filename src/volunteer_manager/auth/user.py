"""
User identity as seen by actions.
"""

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """The signed in user on whose behalf an action is executed."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    privileges: frozenset[str] = Field(default_factory=frozenset)

    def has_privilege(self, privilege: str) -> bool:
        return privilege in self.privileges
