"""Firm and firm user administration.

Firm admins manage the members of their own firm. Site admins additionally
create and edit firms and place any user in a firm with a role.
"""

import asyncio
import logging

from intake_portal.db.client import DatabaseClient
from intake_portal.exceptions import (
    FirmNotFoundError,
    InvalidAssignmentError,
    PermissionDeniedError,
    ProfileNotFoundError,
)
from intake_portal.models.firm import Firm, FirmUser
from intake_portal.models.identity import RequestContext, Role, UserProfile

logger = logging.getLogger(__name__)


def can_administer_firm(ctx: RequestContext, firm_id: str) -> bool:
    """site_admin administers every firm; firm_admin only their own."""
    if ctx.profile is None:
        return False
    if ctx.profile.role == Role.SITE_ADMIN:
        return True
    return ctx.profile.role == Role.FIRM_ADMIN and ctx.profile.firm_id == firm_id


def _require_site_admin(ctx: RequestContext, action: str) -> None:
    if ctx.role != Role.SITE_ADMIN:
        raise PermissionDeniedError(action, "site admins only")


class FirmAdmin:
    """Manages firms and their users."""

    def __init__(self, db: DatabaseClient) -> None:
        self.db = db

    # -------------------------------------------------------------------------
    # Firm members
    # -------------------------------------------------------------------------

    async def list_firm_users(self, ctx: RequestContext, firm_id: str) -> list[FirmUser]:
        """List a firm's users with their saved and submitted form counts.

        Site admins are not shown as firm members.
        """
        if not can_administer_firm(ctx, firm_id):
            raise PermissionDeniedError("administer firm", firm_id)

        profiles = [
            p for p in await self.db.list_firm_profiles(firm_id)
            if p.role != Role.SITE_ADMIN
        ]
        return list(await asyncio.gather(*(self._with_counts(p) for p in profiles)))

    async def _with_counts(self, profile: UserProfile) -> FirmUser:
        saved, submitted = await asyncio.gather(
            self.db.count_drafts(profile.user_id),
            self.db.count_forms(profile.user_id),
        )
        return FirmUser(
            **profile.model_dump(),
            saved_forms_count=saved,
            submitted_forms_count=submitted,
        )

    async def remove_user_from_firm(
        self,
        ctx: RequestContext,
        firm_id: str,
        user_id: str,
    ) -> UserProfile:
        """Detach a user from a firm, demoting them to ``user``."""
        if not can_administer_firm(ctx, firm_id):
            raise PermissionDeniedError("administer firm", firm_id)
        if ctx.user_id == user_id:
            raise PermissionDeniedError("remove yourself from a firm")

        profile = await self.db.clear_user_firm(user_id, firm_id)
        if profile is None:
            raise ProfileNotFoundError(user_id)

        logger.info(f"Removed user {user_id} from firm {firm_id}")
        return profile

    # -------------------------------------------------------------------------
    # Site administration
    # -------------------------------------------------------------------------

    async def list_firms(self, ctx: RequestContext) -> list[Firm]:
        _require_site_admin(ctx, "list firms")
        return await self.db.list_firms()

    async def create_firm(self, ctx: RequestContext, name: str, domain: str) -> Firm:
        """Create a firm. The domain is stored lowercase."""
        _require_site_admin(ctx, "create firms")
        firm = await self.db.insert_firm(name.strip(), domain.strip().lower())
        logger.info(f"Created firm {firm.id} ({firm.name})")
        return firm

    async def update_firm(
        self,
        ctx: RequestContext,
        firm_id: str,
        name: str | None = None,
        domain: str | None = None,
    ) -> Firm:
        """Rename a firm or change its domain."""
        _require_site_admin(ctx, "edit firms")

        fields: dict[str, str] = {}
        if name is not None:
            fields["name"] = name.strip()
        if domain is not None:
            fields["domain"] = domain.strip().lower()
        if not fields:
            firm = await self.db.get_firm(firm_id)
        else:
            firm = await self.db.update_firm(firm_id, fields)

        if firm is None:
            raise FirmNotFoundError(firm_id)
        return firm

    async def list_users(self, ctx: RequestContext) -> list[UserProfile]:
        _require_site_admin(ctx, "list users")
        return await self.db.list_profiles()

    async def assign_user(
        self,
        ctx: RequestContext,
        user_id: str,
        firm_id: str | None,
        role: Role,
    ) -> UserProfile:
        """Place a user in a firm with a role.

        Only ``user`` and ``firm_admin`` can be assigned, and a firm_admin
        must belong to a firm.

        Raises:
            PermissionDeniedError: If the caller is not a site admin
            InvalidAssignmentError: If the role/firm combination is not allowed
            FirmNotFoundError: If the firm does not exist
            ProfileNotFoundError: If the user has no profile
        """
        _require_site_admin(ctx, "assign users")

        if role == Role.SITE_ADMIN:
            raise InvalidAssignmentError("The site_admin role cannot be assigned")
        if role == Role.FIRM_ADMIN and firm_id is None:
            raise InvalidAssignmentError("A firm_admin must belong to a firm")
        if ctx.user_id == user_id:
            raise InvalidAssignmentError("Site admins cannot reassign themselves")

        if firm_id is not None and await self.db.get_firm(firm_id) is None:
            raise FirmNotFoundError(firm_id)

        profile = await self.db.set_user_firm(user_id, firm_id, role)
        if profile is None:
            raise ProfileNotFoundError(user_id)

        logger.info(f"Assigned user {user_id} to firm {firm_id} as {role.value}")
        return profile
