"""Form mutations paired with their audit entries.

Every submit, update and delete writes exactly one audit entry. A mutation
whose audit entry cannot be written is undone and the AuditWriteError
propagates to the caller. Drafts are saved outside the audit trail.
"""

import logging
from typing import Any

from intake_portal.db.client import DatabaseClient
from intake_portal.exceptions import (
    AuditWriteError,
    ConfirmationMismatchError,
    DiffError,
    DraftNotFoundError,
    FormNotFoundError,
    PermissionDeniedError,
    VersionConflictError,
)
from intake_portal.manager.audit_log import AuditLog
from intake_portal.manager.change_diff import diff
from intake_portal.models.audit import AuditAction, FieldChange, FormHistory
from intake_portal.models.form import FormDraft, FormSnapshot, FormType
from intake_portal.models.identity import RequestContext, Role, UserProfile
from intake_portal.models.notification import FormNotification, NotificationType
from intake_portal.services.notifier import FormNotifier

logger = logging.getLogger(__name__)


def can_edit(profile: UserProfile | None, form: FormSnapshot) -> bool:
    """Whether a profile may edit a form.

    site_admin: any form. firm_admin: forms of their firm. user: forms they
    submitted within their firm.
    """
    if profile is None:
        return False
    if profile.role == Role.SITE_ADMIN:
        return True
    same_firm = profile.firm_id is not None and profile.firm_id == form.firm_id
    if profile.role == Role.FIRM_ADMIN:
        return same_firm
    return same_firm and form.submitted_by == profile.user_id


def can_delete(ctx: RequestContext, form: FormSnapshot) -> bool:
    """Only the submitter or a site_admin may delete a form."""
    if ctx.user_id is None:
        return False
    return ctx.user_id == form.submitted_by or ctx.role == Role.SITE_ADMIN


class FormService:
    """Submits, updates and deletes forms with an audit trail."""

    def __init__(
        self,
        db: DatabaseClient,
        audit_log: AuditLog,
        notifier: FormNotifier | None = None,
    ) -> None:
        self.db = db
        self.audit_log = audit_log
        self.notifier = notifier

    async def get(self, form_type: FormType, form_id: str) -> FormSnapshot:
        form = await self.db.get_form(form_type, form_id)
        if form is None:
            raise FormNotFoundError(form_type.value, form_id)
        return form

    async def submit(
        self,
        ctx: RequestContext,
        form_type: FormType,
        data: dict[str, Any],
    ) -> FormSnapshot:
        """Insert a new form at version 1 and record its submission."""
        if ctx.identity is None or ctx.profile is None:
            raise PermissionDeniedError("submit forms", "no profile")

        form = await self.db.insert_form(
            form_type=form_type,
            submitted_by=ctx.identity.user_id,
            firm_id=ctx.profile.firm_id,
            data=data,
        )

        try:
            await self.audit_log.record(
                AuditAction.SUBMITTED,
                actor_id=ctx.identity.user_id,
                form_id=form.form_id,
                form_type=form_type,
                version=form.version,
                firm_id=form.firm_id,
            )
        except AuditWriteError:
            logger.error(f"Rolling back submission of form {form.form_id}: audit write failed")
            try:
                await self.db.delete_form(form_type, form.form_id)
            except Exception as e:
                logger.error(f"Rollback of form {form.form_id} failed: {e}")
            raise

        await self._notify(ctx, form, NotificationType.FORM_SUBMITTED)
        return form

    async def update(
        self,
        ctx: RequestContext,
        form_type: FormType,
        form_id: str,
        data: dict[str, Any],
        expected_version: int | None = None,
    ) -> FormSnapshot:
        """Replace a form's data, bump its version and record the diff.

        Raises:
            FormNotFoundError: If the form does not exist
            PermissionDeniedError: If the caller may not edit it
            VersionConflictError: If the form moved past the version read
            AuditWriteError: If the update could not be audited (the form
                is restored to its previous state)
        """
        current = await self.get(form_type, form_id)

        if not can_edit(ctx.profile, current):
            raise PermissionDeniedError("edit form", form_id)

        if expected_version is not None and expected_version != current.version:
            raise VersionConflictError(form_id, expected_version)

        changes_unavailable = False
        try:
            changes = diff(current.data, data, form_type)
        except DiffError as e:
            logger.warning(f"Diff unavailable for form {form_id} v{current.version}: {e}")
            changes = []
            changes_unavailable = True

        updated = await self.db.update_form_if_version(
            form_type, form_id, current.version, data
        )
        if updated is None:
            raise VersionConflictError(form_id, current.version)

        try:
            await self.audit_log.record(
                AuditAction.UPDATED,
                actor_id=ctx.user_id or "",
                form_id=form_id,
                form_type=form_type,
                version=updated.version,
                previous_version=current.version,
                field_changes=changes,
                firm_id=current.firm_id,
                changes_unavailable=changes_unavailable,
            )
        except AuditWriteError:
            logger.error(
                f"Restoring form {form_id} to v{current.version}: audit write failed"
            )
            restored = await self.db.update_form_if_version(
                form_type,
                form_id,
                updated.version,
                current.data,
                new_version=current.version,
            )
            if restored is None:
                logger.error(f"Could not restore form {form_id}; it changed again")
            raise

        await self._notify(ctx, updated, NotificationType.FORM_UPDATED, changes)
        return updated

    async def delete(
        self,
        ctx: RequestContext,
        form_type: FormType,
        form_id: str,
        last_name_confirmation: str,
        reason: str | None = None,
    ) -> None:
        """Delete a form and record the deletion.

        The caller confirms by typing the plaintiff's last name. If the
        deletion cannot be audited the deleted row is put back. The
        submitter's drafts of the same form type are cleared afterwards.
        """
        current = await self.get(form_type, form_id)

        if not can_delete(ctx, current):
            raise PermissionDeniedError("delete form", form_id)

        expected = (current.last_name or "").strip().lower()
        if last_name_confirmation.strip().lower() != expected:
            raise ConfirmationMismatchError()

        deleted = await self.db.delete_form(form_type, form_id)
        if deleted is None:
            logger.warning(f"Form {form_id} vanished before it could be deleted")
            raise FormNotFoundError(form_type.value, form_id)

        try:
            await self.audit_log.record(
                AuditAction.DELETED,
                actor_id=ctx.user_id or "",
                form_id=form_id,
                form_type=form_type,
                version=deleted.version,
                firm_id=deleted.firm_id,
                reason=reason,
            )
        except AuditWriteError:
            logger.error(f"Restoring deleted form {form_id}: audit write failed")
            try:
                await self.db.restore_form(deleted)
            except Exception as e:
                logger.error(f"Restore of form {form_id} failed: {e}")
            raise

        logger.info(f"Deleted {form_type.value} form {form_id}")

        try:
            cleared = await self.db.delete_drafts(form_type, deleted.submitted_by)
            if cleared:
                logger.info(f"Cleared {cleared} {form_type.value} draft(s) of {deleted.submitted_by}")
        except Exception as e:
            logger.warning(f"Could not clear drafts after deleting form {form_id}: {e}")

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    async def list_forms(
        self,
        ctx: RequestContext,
        form_type: FormType | None = None,
        firm_id: str | None = None,
    ) -> list[FormSnapshot]:
        """List forms visible to the caller, most recently updated first.

        Site admins see every firm's forms (optionally narrowed to one firm).
        Everyone else sees only their own firm's forms.
        """
        if ctx.profile is None:
            raise PermissionDeniedError("list forms", "no profile")

        if ctx.profile.role != Role.SITE_ADMIN:
            own_firm = ctx.profile.firm_id
            if own_firm is None:
                raise PermissionDeniedError("list forms", "not affiliated with a firm")
            if firm_id is not None and firm_id != own_firm:
                raise PermissionDeniedError("list forms of firm", firm_id)
            firm_id = own_firm

        return await self.db.list_forms(form_type=form_type, firm_id=firm_id)

    async def list_user_forms(
        self,
        ctx: RequestContext,
        form_type: FormType | None = None,
    ) -> list[FormSnapshot]:
        """Forms the caller submitted."""
        if ctx.user_id is None:
            raise PermissionDeniedError("list forms", "not signed in")
        return await self.db.list_forms(form_type=form_type, submitted_by=ctx.user_id)

    # -------------------------------------------------------------------------
    # Drafts
    # -------------------------------------------------------------------------

    async def save_draft(
        self,
        ctx: RequestContext,
        form_type: FormType,
        data: dict[str, Any],
    ) -> FormDraft:
        """Save a new draft. Drafts are not versioned or audited."""
        if ctx.identity is None or ctx.profile is None:
            raise PermissionDeniedError("save drafts", "no profile")
        return await self.db.insert_draft(
            form_type=form_type,
            submitted_by=ctx.identity.user_id,
            firm_id=ctx.profile.firm_id,
            data=data,
        )

    async def get_draft(self, ctx: RequestContext, form_type: FormType) -> FormDraft | None:
        """The caller's most recent draft of a form type, if any."""
        if ctx.user_id is None:
            return None
        return await self.db.get_latest_draft(form_type, ctx.user_id)

    async def update_draft(
        self,
        ctx: RequestContext,
        form_type: FormType,
        draft_id: str,
        data: dict[str, Any],
    ) -> FormDraft:
        """Replace the data of one of the caller's drafts."""
        draft = await self.db.get_draft(form_type, draft_id)
        if draft is None:
            raise DraftNotFoundError(form_type.value, draft_id)
        if draft.submitted_by != ctx.user_id:
            raise PermissionDeniedError("edit draft", draft_id)

        updated = await self.db.update_draft(form_type, draft_id, data)
        if updated is None:
            raise DraftNotFoundError(form_type.value, draft_id)
        return updated

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    async def history(self, form_type: FormType, form_id: str) -> FormHistory:
        """Audit history for display; unavailable rather than failing on read errors."""
        try:
            entries = await self.audit_log.history(form_id, form_type)
        except Exception as e:
            logger.warning(f"Audit history unavailable for form {form_id}: {e}")
            return FormHistory(form_id=form_id, form_type=form_type, available=False)
        return FormHistory(form_id=form_id, form_type=form_type, entries=entries)

    async def _notify(
        self,
        ctx: RequestContext,
        form: FormSnapshot,
        notification_type: NotificationType,
        changes: list[FieldChange] | None = None,
    ) -> None:
        if self.notifier is None:
            return

        try:
            firm_name = await self.db.get_firm_name(form.firm_id) if form.firm_id else None
            submitter = (ctx.profile.full_name if ctx.profile else None) or (
                ctx.identity.email if ctx.identity else None
            )
            notification = FormNotification(
                type=notification_type,
                form_id=form.form_id,
                form_type=form.form_type,
                version=form.version,
                plaintiff_name=form.plaintiff_name,
                submitter_name=submitter or "Unknown user",
                firm_name=firm_name,
                field_changes=changes or [],
            )
            result = await self.notifier.send(notification)
            if not result.success:
                logger.warning(
                    f"Notification for form {form.form_id} not sent: {result.error_message}"
                )
        except Exception as e:
            logger.exception(f"Error notifying about form {form.form_id}: {e}")
