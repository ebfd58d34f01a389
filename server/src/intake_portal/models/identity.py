"""Identity and profile models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Role held on a user profile (not on the identity itself)."""

    USER = "user"
    FIRM_ADMIN = "firm_admin"
    SITE_ADMIN = "site_admin"


class Identity(BaseModel):
    """Authenticated identity issued by the auth provider."""

    user_id: str
    email: str | None = None


class UserProfile(BaseModel):
    """Profile row for a user. At most one per user id."""

    id: str | None = None
    user_id: str
    role: Role = Role.USER
    firm_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str | None:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None


class RequestContext(BaseModel):
    """Per-request caller context.

    Built once per request and passed down explicitly. ``identity`` is None
    for anonymous callers; ``profile`` is None until resolved or when the
    user has no profile.
    """

    model_config = ConfigDict(frozen=True)

    identity: Identity | None = None
    profile: UserProfile | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.identity is None

    @property
    def user_id(self) -> str | None:
        return self.identity.user_id if self.identity else None

    @property
    def role(self) -> Role | None:
        return self.profile.role if self.profile else None
