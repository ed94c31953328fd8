"""
Pydantic models shared by API requests and responses.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator

# Response envelopes


class ErrorResponse(BaseModel):
    """
    Response sent when the operation could not be fulfilled. Deliberately
    minimal: unknown keys are ignored.
    """

    success: Literal[False]
    error: str | None = None


class SuccessResponse(BaseModel):
    """Base for successful responses. Strict: unknown keys are an error."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    success: Literal[True] = True


def _success_tag(value: Any) -> str:
    if isinstance(value, dict):
        success = value.get("success")
    else:
        success = getattr(value, "success", None)

    return "ok" if success is True else "error"


def envelope(success_model: type[SuccessResponse]) -> Any:
    """
    Tagged union of the given success model and ErrorResponse, discriminated
    on the boolean `success` field.
    """
    return Annotated[
        Union[
            Annotated[success_model, Tag("ok")],
            Annotated[ErrorResponse, Tag("error")],
        ],
        Discriminator(_success_tag),
    ]


# Data table models

PAGE_SIZES = (10, 25, 50, 100)


class Pagination(BaseModel):
    """Pagination applied to a row selection. Pages are zero-based."""

    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(ge=0)
    page_size: int = Field(alias="pageSize")

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v not in PAGE_SIZES:
            options = " | ".join(str(size) for size in PAGE_SIZES)
            raise ValueError(f"Invalid enum value. Expected {options}, received '{v}'")
        return v


# Built-in endpoint models


class EmptyRequest(BaseModel):
    """Request of actions that take no input."""


class HealthResponse(SuccessResponse):
    """Liveness of the server."""

    status: Literal["ok"]
    version: str


class IdentityUser(BaseModel):
    """Public view of the signed in user."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user_id: int = Field(alias="userId")
    username: str
    privileges: list[str] = Field(default_factory=list)


class IdentityResponse(SuccessResponse):
    """The user making the request, omitted for anonymous requests."""

    user: IdentityUser | None = None
