"""Supabase database client for profiles, forms and the audit trail."""

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from supabase import create_client, Client

from intake_portal.config import get_settings
from intake_portal.models.audit import AuditEntry, parse_audit_entry
from intake_portal.models.firm import Firm
from intake_portal.models.form import FormDraft, FormSnapshot, FormStatus, FormType
from intake_portal.models.identity import Role, UserProfile

logger = logging.getLogger(__name__)

PROFILES_TABLE = "user_profiles"
FORMS_TABLE = "forms"
AUDIT_TABLE = "form_audit_trail"
FIRMS_TABLE = "firms"
DRAFTS_TABLE = "form_drafts"


class DatabaseClient:
    """Client for Supabase database operations.

    Row-level security is enforced by the database; this client does not
    filter rows by firm on its own.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self.client: Client = create_client(
            settings.supabase_url,
            settings.supabase_key,
        )

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def get_user_profile(self, user_id: str) -> UserProfile | None:
        """Look up the profile for a user.

        Args:
            user_id: The auth provider's user id

        Returns:
            UserProfile if found, None otherwise
        """
        result = (
            self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .execute()
        )
        if result.data and len(result.data) > 0:
            return UserProfile(**result.data[0])
        return None

    async def get_user_role(self, user_id: str) -> Role | None:
        """Look up only the role for a user.

        Returns:
            The profile's role, or None when the user has no profile
        """
        result = (
            self.client.table(PROFILES_TABLE)
            .select("role")
            .eq("user_id", user_id)
            .execute()
        )
        if result.data and len(result.data) > 0:
            return Role(result.data[0]["role"])
        return None

    async def list_firm_profiles(self, firm_id: str) -> list[UserProfile]:
        """List all profiles affiliated with a firm."""
        result = (
            self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("firm_id", firm_id)
            .order("created_at")
            .execute()
        )
        return [UserProfile(**row) for row in result.data]

    async def clear_user_firm(self, user_id: str, firm_id: str) -> UserProfile | None:
        """Detach a user from a firm and demote them to ``user``.

        Returns:
            The updated profile, or None if the user was not in that firm
        """
        result = (
            self.client.table(PROFILES_TABLE)
            .update({
                "firm_id": None,
                "role": Role.USER.value,
                "updated_at": datetime.now(UTC).isoformat(),
            })
            .eq("user_id", user_id)
            .eq("firm_id", firm_id)
            .execute()
        )
        if result.data:
            return UserProfile(**result.data[0])
        return None

    async def list_profiles(self) -> list[UserProfile]:
        """List every profile, newest first."""
        result = (
            self.client.table(PROFILES_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [UserProfile(**row) for row in result.data]

    async def set_user_firm(
        self,
        user_id: str,
        firm_id: str | None,
        role: Role,
    ) -> UserProfile | None:
        """Place a user in a firm (or none) with a role.

        Returns:
            The updated profile, or None if the user has no profile
        """
        result = (
            self.client.table(PROFILES_TABLE)
            .update({
                "firm_id": firm_id,
                "role": role.value,
                "updated_at": datetime.now(UTC).isoformat(),
            })
            .eq("user_id", user_id)
            .execute()
        )
        if result.data:
            return UserProfile(**result.data[0])
        return None

    # -------------------------------------------------------------------------
    # Firms
    # -------------------------------------------------------------------------

    async def get_firm_name(self, firm_id: str) -> str | None:
        result = (
            self.client.table(FIRMS_TABLE)
            .select("name")
            .eq("id", firm_id)
            .execute()
        )
        if result.data and len(result.data) > 0:
            return result.data[0].get("name")
        return None

    async def get_firm(self, firm_id: str) -> Firm | None:
        result = (
            self.client.table(FIRMS_TABLE)
            .select("*")
            .eq("id", firm_id)
            .execute()
        )
        if result.data and len(result.data) > 0:
            return Firm(**result.data[0])
        return None

    async def list_firms(self) -> list[Firm]:
        """List all firms, newest first."""
        result = (
            self.client.table(FIRMS_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [Firm(**row) for row in result.data]

    async def insert_firm(self, name: str, domain: str) -> Firm:
        """Create a firm."""
        result = (
            self.client.table(FIRMS_TABLE)
            .insert({"name": name, "domain": domain})
            .execute()
        )
        firm = Firm(**result.data[0])
        logger.debug(f"Inserted firm {firm.id} ({domain})")
        return firm

    async def update_firm(self, firm_id: str, fields: dict[str, Any]) -> Firm | None:
        """Update a firm's name or domain.

        Returns:
            The updated firm, or None if not found
        """
        result = (
            self.client.table(FIRMS_TABLE)
            .update(fields)
            .eq("id", firm_id)
            .execute()
        )
        if result.data:
            return Firm(**result.data[0])
        return None

    # -------------------------------------------------------------------------
    # Forms
    # -------------------------------------------------------------------------

    async def get_form(self, form_type: FormType, form_id: str) -> FormSnapshot | None:
        """Load the live snapshot of a form.

        Args:
            form_type: The form type
            form_id: The form id

        Returns:
            FormSnapshot if found (and visible to the caller), None otherwise
        """
        result = (
            self.client.table(FORMS_TABLE)
            .select("*")
            .eq("id", form_id)
            .eq("form_type", form_type.value)
            .execute()
        )
        if result.data and len(result.data) > 0:
            return FormSnapshot(**result.data[0])
        return None

    async def insert_form(
        self,
        form_type: FormType,
        submitted_by: str,
        firm_id: str | None,
        data: dict[str, Any],
    ) -> FormSnapshot:
        """Insert a new form at version 1."""
        row = {
            "form_type": form_type.value,
            "version": 1,
            "submitted_by": submitted_by,
            "firm_id": firm_id,
            "status": FormStatus.SUBMITTED.value,
            "data": data,
        }
        result = self.client.table(FORMS_TABLE).insert(row).execute()
        snapshot = FormSnapshot(**result.data[0])
        logger.debug(f"Inserted {form_type.value} form {snapshot.form_id}")
        return snapshot

    async def update_form_if_version(
        self,
        form_type: FormType,
        form_id: str,
        expected_version: int,
        data: dict[str, Any],
        new_version: int | None = None,
    ) -> FormSnapshot | None:
        """Replace a form's data only if it is still at ``expected_version``.

        Args:
            form_type: The form type
            form_id: The form id
            expected_version: Version the caller read
            data: The full new data mapping
            new_version: Version to write; defaults to ``expected_version + 1``

        Returns:
            The updated snapshot, or None if no row was at ``expected_version``
        """
        if new_version is None:
            new_version = expected_version + 1

        result = (
            self.client.table(FORMS_TABLE)
            .update({
                "data": data,
                "version": new_version,
                "updated_at": datetime.now(UTC).isoformat(),
            })
            .eq("id", form_id)
            .eq("form_type", form_type.value)
            .eq("version", expected_version)
            .execute()
        )
        if result.data:
            return FormSnapshot(**result.data[0])
        return None

    async def delete_form(self, form_type: FormType, form_id: str) -> FormSnapshot | None:
        """Delete a form.

        Returns:
            The deleted snapshot, or None if not found
        """
        result = (
            self.client.table(FORMS_TABLE)
            .delete()
            .eq("id", form_id)
            .eq("form_type", form_type.value)
            .execute()
        )
        if result.data:
            return FormSnapshot(**result.data[0])
        return None

    async def restore_form(self, form: FormSnapshot) -> FormSnapshot:
        """Re-insert a deleted form with its original id and version."""
        row = form.model_dump(mode="json", exclude={"form_id"}, exclude_none=True)
        row["id"] = form.form_id
        result = self.client.table(FORMS_TABLE).insert(row).execute()
        return FormSnapshot(**result.data[0])

    async def list_forms(
        self,
        form_type: FormType | None = None,
        firm_id: str | None = None,
        submitted_by: str | None = None,
    ) -> list[FormSnapshot]:
        """List forms, most recently updated first.

        Args:
            form_type: Only this form type
            firm_id: Only forms of this firm
            submitted_by: Only forms this user submitted
        """
        query = self.client.table(FORMS_TABLE).select("*")
        if form_type is not None:
            query = query.eq("form_type", form_type.value)
        if firm_id is not None:
            query = query.eq("firm_id", firm_id)
        if submitted_by is not None:
            query = query.eq("submitted_by", submitted_by)
        result = query.order("updated_at", desc=True).execute()
        return [FormSnapshot(**row) for row in result.data]

    async def count_forms(self, submitted_by: str) -> int:
        """Number of forms a user has submitted."""
        result = (
            self.client.table(FORMS_TABLE)
            .select("id", count="exact")
            .eq("submitted_by", submitted_by)
            .execute()
        )
        return result.count or 0

    # -------------------------------------------------------------------------
    # Drafts
    # -------------------------------------------------------------------------

    async def insert_draft(
        self,
        form_type: FormType,
        submitted_by: str,
        firm_id: str | None,
        data: dict[str, Any],
    ) -> FormDraft:
        """Save a new draft."""
        row = {
            "form_type": form_type.value,
            "submitted_by": submitted_by,
            "firm_id": firm_id,
            "status": "draft",
            "data": data,
        }
        result = self.client.table(DRAFTS_TABLE).insert(row).execute()
        draft = FormDraft(**result.data[0])
        logger.debug(f"Saved {form_type.value} draft {draft.draft_id}")
        return draft

    async def get_draft(self, form_type: FormType, draft_id: str) -> FormDraft | None:
        result = (
            self.client.table(DRAFTS_TABLE)
            .select("*")
            .eq("id", draft_id)
            .eq("form_type", form_type.value)
            .execute()
        )
        if result.data and len(result.data) > 0:
            return FormDraft(**result.data[0])
        return None

    async def get_latest_draft(
        self,
        form_type: FormType,
        submitted_by: str,
    ) -> FormDraft | None:
        """The user's most recently updated draft of a form type."""
        result = (
            self.client.table(DRAFTS_TABLE)
            .select("*")
            .eq("form_type", form_type.value)
            .eq("submitted_by", submitted_by)
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        if result.data and len(result.data) > 0:
            return FormDraft(**result.data[0])
        return None

    async def update_draft(
        self,
        form_type: FormType,
        draft_id: str,
        data: dict[str, Any],
    ) -> FormDraft | None:
        """Replace a draft's data.

        Returns:
            The updated draft, or None if not found
        """
        result = (
            self.client.table(DRAFTS_TABLE)
            .update({
                "data": data,
                "updated_at": datetime.now(UTC).isoformat(),
            })
            .eq("id", draft_id)
            .eq("form_type", form_type.value)
            .execute()
        )
        if result.data:
            return FormDraft(**result.data[0])
        return None

    async def delete_drafts(self, form_type: FormType, submitted_by: str) -> int:
        """Delete a user's drafts of a form type.

        Returns:
            Number of drafts deleted
        """
        result = (
            self.client.table(DRAFTS_TABLE)
            .delete()
            .eq("form_type", form_type.value)
            .eq("submitted_by", submitted_by)
            .execute()
        )
        return len(result.data)

    async def count_drafts(self, submitted_by: str) -> int:
        """Number of drafts a user has saved."""
        result = (
            self.client.table(DRAFTS_TABLE)
            .select("id", count="exact")
            .eq("submitted_by", submitted_by)
            .execute()
        )
        return result.count or 0

    # -------------------------------------------------------------------------
    # Audit trail
    # -------------------------------------------------------------------------

    async def insert_audit_entry(self, row: dict[str, Any]) -> dict[str, Any] | None:
        """Append one audit row.

        Returns:
            The stored row, or None if the insert returned nothing
        """
        result = self.client.table(AUDIT_TABLE).insert(row).execute()
        if result.data:
            return result.data[0]
        return None

    async def list_audit_entries(
        self,
        form_id: str,
        form_type: FormType,
    ) -> list[AuditEntry]:
        """List the audit trail of a form, newest first.

        Rows that fail to parse are skipped with a warning.
        """
        result = (
            self.client.table(AUDIT_TABLE)
            .select("*, user_profiles(first_name, last_name)")
            .eq("form_id", form_id)
            .eq("form_type", form_type.value)
            .order("created_at", desc=True)
            .execute()
        )

        entries: list[AuditEntry] = []
        for row in result.data:
            try:
                entries.append(parse_audit_entry(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed audit row {row.get('id')}: {e}")
        return entries

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        """Check database connectivity and return health status.

        Returns:
            Dict with:
                - healthy: bool - whether the database is reachable
                - latency_ms: float - query latency in milliseconds
                - error: str | None - error message if unhealthy
        """
        import time

        start = time.perf_counter()
        try:
            self.client.table(PROFILES_TABLE).select("id").limit(1).execute()
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "healthy": True,
                "latency_ms": round(latency_ms, 2),
                "error": None,
            }
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Database health check failed: {e}")

            return {
                "healthy": False,
                "latency_ms": round(latency_ms, 2),
                "error": str(e),
            }
