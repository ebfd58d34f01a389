"""Firm and firm membership models."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from intake_portal.models.identity import Role, UserProfile


class Firm(BaseModel):
    """A law firm using the portal."""

    id: str
    name: str
    domain: str | None = None
    slug: str | None = None
    created_at: datetime | None = None


class FirmCreateRequest(BaseModel):
    """Request body for creating a firm."""

    name: str = Field(min_length=1)
    domain: str = Field(min_length=1)

    @field_validator("domain")
    @classmethod
    def _lower_domain(cls, v: str) -> str:
        return v.strip().lower()


class FirmUpdateRequest(BaseModel):
    """Request body for renaming a firm or changing its domain."""

    name: str | None = Field(default=None, min_length=1)
    domain: str | None = Field(default=None, min_length=1)

    @field_validator("domain")
    @classmethod
    def _lower_domain(cls, v: str | None) -> str | None:
        return v.strip().lower() if v is not None else None


class FirmUser(UserProfile):
    """A firm member with their saved and submitted form counts."""

    saved_forms_count: int = 0
    submitted_forms_count: int = 0


class UserAssignmentRequest(BaseModel):
    """Request body for placing a user in a firm with a role.

    ``firm_id`` of None detaches the user from any firm.
    """

    firm_id: str | None = None
    role: Role = Role.USER
