"""Audit log writer and trail reader.

Writes are all-or-nothing from the caller's point of view: any failure to
persist an entry raises AuditWriteError so the triggering mutation can be
reported as failed.
"""

import logging
from datetime import UTC, datetime

from pydantic import ValidationError

from intake_portal.db.client import DatabaseClient
from intake_portal.exceptions import AuditWriteError
from intake_portal.models.audit import (
    AuditAction,
    AuditEntry,
    DeletedEntry,
    DeletedMetadata,
    FieldChange,
    SubmittedEntry,
    SubmittedMetadata,
    UpdatedEntry,
    UpdatedMetadata,
    parse_audit_entry,
)
from intake_portal.models.form import FormType
from intake_portal.models.identity import Role

logger = logging.getLogger(__name__)


class AuditLog:
    """Append-only audit trail for forms."""

    def __init__(self, db: DatabaseClient) -> None:
        self.db = db

    async def _resolve_role(self, actor_id: str) -> Role | None:
        try:
            return await self.db.get_user_role(actor_id)
        except Exception as e:
            logger.warning(f"Could not resolve role for {actor_id}, recording without it: {e}")
            return None

    async def record(
        self,
        action: AuditAction,
        actor_id: str,
        form_id: str,
        form_type: FormType,
        version: int | None,
        previous_version: int | None = None,
        field_changes: list[FieldChange] | None = None,
        firm_id: str | None = None,
        reason: str | None = None,
        changes_unavailable: bool = False,
    ) -> AuditEntry:
        """Append an audit entry for a form mutation.

        The actor's role is looked up here rather than taken from the caller.

        Args:
            action: What happened to the form
            actor_id: User id of whoever performed the action
            form_id: The form id
            form_type: The form type
            version: Form version after the action
            previous_version: Version before an update; defaults to ``version - 1``
            field_changes: Diff for an update
            firm_id: Firm owning the form
            reason: Optional reason for a deletion
            changes_unavailable: True when the diff could not be computed

        Returns:
            The stored entry

        Raises:
            AuditWriteError: If the entry is invalid or could not be stored
        """
        common = {
            "form_id": form_id,
            "form_type": form_type,
            "submitted_by": actor_id,
            "firm_id": firm_id,
        }

        try:
            if action == AuditAction.SUBMITTED:
                entry: AuditEntry = SubmittedEntry(
                    **common,
                    metadata=SubmittedMetadata(
                        version=version or 1,
                        timestamp=datetime.now(UTC),
                    ),
                )
            elif action == AuditAction.UPDATED:
                if version is None:
                    raise AuditWriteError(form_id, action.value, "update requires a version")
                entry = UpdatedEntry(
                    **common,
                    metadata=UpdatedMetadata(
                        version=version,
                        previous_version=(
                            previous_version if previous_version is not None else version - 1
                        ),
                        field_changes=field_changes or [],
                        updated_by_role=await self._resolve_role(actor_id),
                        changes_unavailable=changes_unavailable,
                    ),
                )
            else:
                entry = DeletedEntry(
                    **common,
                    metadata=DeletedMetadata(
                        version=version,
                        deleted_by_role=await self._resolve_role(actor_id),
                        reason=reason,
                    ),
                )
        except ValidationError as e:
            raise AuditWriteError(form_id, action.value, str(e)) from e

        # created_at is assigned by the store
        row = entry.model_dump(
            mode="json", by_alias=True, exclude={"id", "actor_name", "created_at"}
        )

        try:
            stored = await self.db.insert_audit_entry(row)
        except Exception as e:
            logger.error(f"Audit insert failed for {action.value} on form {form_id}: {e}")
            raise AuditWriteError(form_id, action.value, str(e)) from e

        if stored is None:
            raise AuditWriteError(form_id, action.value, "insert returned no row")

        logger.info(
            f"Recorded {action.value} audit entry for {form_type.value} form {form_id}"
            f" (version {version})"
        )
        try:
            return parse_audit_entry(stored)
        except ValidationError:
            # The row is stored; fall back to what was written
            return entry

    async def history(self, form_id: str, form_type: FormType) -> list[AuditEntry]:
        """Read a form's audit trail, newest first.

        Entries sharing a timestamp are ordered by higher version first.
        """
        entries = await self.db.list_audit_entries(form_id, form_type)
        return sorted(
            entries,
            key=lambda e: (e.created_at, e.version or 0),
            reverse=True,
        )
