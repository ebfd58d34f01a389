"""FastAPI routes for forms, drafts, audit history, firms and users."""

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Response, status

from intake_portal import __version__
from intake_portal.api.auth import Auth, get_db_client
from intake_portal.exceptions import (
    AuditWriteError,
    ConfirmationMismatchError,
    DraftNotFoundError,
    FirmNotFoundError,
    FormNotFoundError,
    IntakePortalError,
    InvalidAssignmentError,
    PermissionDeniedError,
    ProfileNotFoundError,
    VersionConflictError,
)
from intake_portal.manager.audit_log import AuditLog
from intake_portal.manager.firm_admin import FirmAdmin
from intake_portal.manager.form_service import FormService
from intake_portal.models.audit import FormHistory
from intake_portal.models.firm import (
    Firm,
    FirmCreateRequest,
    FirmUpdateRequest,
    FirmUser,
    UserAssignmentRequest,
)
from intake_portal.models.form import (
    DraftSaveRequest,
    FormDeleteRequest,
    FormDraft,
    FormSnapshot,
    FormSubmitRequest,
    FormType,
    FormUpdateRequest,
)
from intake_portal.models.identity import UserProfile
from intake_portal.services.notifier import FormNotifier

logger = logging.getLogger(__name__)

router = APIRouter()

# Dependency injection
_form_service: FormService | None = None
_firm_admin: FirmAdmin | None = None


def get_form_service() -> FormService:
    """Get or create form service instance."""
    global _form_service
    if _form_service is None:
        db = get_db_client()
        _form_service = FormService(
            db=db,
            audit_log=AuditLog(db),
            notifier=FormNotifier(),
        )
    return _form_service


def get_firm_admin() -> FirmAdmin:
    """Get or create firm admin instance."""
    global _firm_admin
    if _firm_admin is None:
        _firm_admin = FirmAdmin(get_db_client())
    return _firm_admin


Forms = Annotated[FormService, Depends(get_form_service)]
Firms = Annotated[FirmAdmin, Depends(get_firm_admin)]

_ERROR_STATUS: dict[type[IntakePortalError], int] = {
    FormNotFoundError: status.HTTP_404_NOT_FOUND,
    DraftNotFoundError: status.HTTP_404_NOT_FOUND,
    FirmNotFoundError: status.HTTP_404_NOT_FOUND,
    ProfileNotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    ConfirmationMismatchError: status.HTTP_400_BAD_REQUEST,
    InvalidAssignmentError: status.HTTP_400_BAD_REQUEST,
    VersionConflictError: status.HTTP_409_CONFLICT,
    AuditWriteError: status.HTTP_502_BAD_GATEWAY,
}


def _raise_http(error: IntakePortalError) -> NoReturn:
    """Re-raise a domain error as the matching HTTPException."""
    status_code = _ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    raise HTTPException(status_code=status_code, detail=str(error)) from error


@router.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": __version__,
    }


@router.get("/health/database")
async def database_health() -> dict:
    """Database connectivity check."""
    return await get_db_client().health_check()


# -------------------------------------------------------------------------
# Forms
# -------------------------------------------------------------------------


@router.get("/api/forms", response_model=list[FormSnapshot])
async def list_forms(
    ctx: Auth,
    forms: Forms,
    form_type: FormType | None = None,
    firm_id: str | None = None,
) -> list[FormSnapshot]:
    """List the forms of the caller's firm (any firm for site admins)."""
    try:
        return await forms.list_forms(ctx, form_type=form_type, firm_id=firm_id)
    except IntakePortalError as e:
        _raise_http(e)


@router.get("/api/forms/mine", response_model=list[FormSnapshot])
async def list_my_forms(
    ctx: Auth,
    forms: Forms,
    form_type: FormType | None = None,
) -> list[FormSnapshot]:
    """List the forms the caller submitted."""
    try:
        return await forms.list_user_forms(ctx, form_type=form_type)
    except IntakePortalError as e:
        _raise_http(e)


@router.post(
    "/api/forms/{form_type}",
    response_model=FormSnapshot,
    status_code=status.HTTP_201_CREATED,
)
async def submit_form(
    form_type: FormType,
    request: FormSubmitRequest,
    ctx: Auth,
    forms: Forms,
) -> FormSnapshot:
    """Submit a new form."""
    try:
        return await forms.submit(ctx, form_type, request.data)
    except IntakePortalError as e:
        _raise_http(e)


@router.get("/api/forms/{form_type}/{form_id}", response_model=FormSnapshot)
async def get_form(
    form_type: FormType,
    form_id: str,
    ctx: Auth,
    forms: Forms,
) -> FormSnapshot:
    """Get the live snapshot of a form."""
    try:
        return await forms.get(form_type, form_id)
    except IntakePortalError as e:
        _raise_http(e)


@router.put("/api/forms/{form_type}/{form_id}", response_model=FormSnapshot)
async def update_form(
    form_type: FormType,
    form_id: str,
    request: FormUpdateRequest,
    ctx: Auth,
    forms: Forms,
) -> FormSnapshot:
    """Update a form, recording the field-level changes."""
    try:
        return await forms.update(
            ctx,
            form_type,
            form_id,
            request.data,
            expected_version=request.expected_version,
        )
    except IntakePortalError as e:
        _raise_http(e)


@router.delete(
    "/api/forms/{form_type}/{form_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_form(
    form_type: FormType,
    form_id: str,
    request: FormDeleteRequest,
    ctx: Auth,
    forms: Forms,
) -> Response:
    """Delete a form after last-name confirmation."""
    try:
        await forms.delete(
            ctx,
            form_type,
            form_id,
            request.last_name_confirmation,
            reason=request.reason,
        )
    except IntakePortalError as e:
        _raise_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/forms/{form_type}/{form_id}/history", response_model=FormHistory)
async def form_history(
    form_type: FormType,
    form_id: str,
    ctx: Auth,
    forms: Forms,
) -> FormHistory:
    """Audit history of a form, newest first."""
    return await forms.history(form_type, form_id)


# -------------------------------------------------------------------------
# Drafts
# -------------------------------------------------------------------------


@router.post(
    "/api/drafts/{form_type}",
    response_model=FormDraft,
    status_code=status.HTTP_201_CREATED,
)
async def save_draft(
    form_type: FormType,
    request: DraftSaveRequest,
    ctx: Auth,
    forms: Forms,
) -> FormDraft:
    """Save a form for later without submitting it."""
    try:
        return await forms.save_draft(ctx, form_type, request.data)
    except IntakePortalError as e:
        _raise_http(e)


@router.get("/api/drafts/{form_type}", response_model=FormDraft)
async def get_draft(
    form_type: FormType,
    ctx: Auth,
    forms: Forms,
) -> FormDraft:
    """The caller's most recent draft of a form type."""
    draft = await forms.get_draft(ctx, form_type)
    if draft is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No draft saved")
    return draft


@router.put("/api/drafts/{form_type}/{draft_id}", response_model=FormDraft)
async def update_draft(
    form_type: FormType,
    draft_id: str,
    request: DraftSaveRequest,
    ctx: Auth,
    forms: Forms,
) -> FormDraft:
    """Replace a draft's data."""
    try:
        return await forms.update_draft(ctx, form_type, draft_id, request.data)
    except IntakePortalError as e:
        _raise_http(e)


# -------------------------------------------------------------------------
# Firms and users
# -------------------------------------------------------------------------


@router.get("/api/firms", response_model=list[Firm])
async def list_firms(ctx: Auth, firms: Firms) -> list[Firm]:
    """List all firms."""
    try:
        return await firms.list_firms(ctx)
    except IntakePortalError as e:
        _raise_http(e)


@router.post("/api/firms", response_model=Firm, status_code=status.HTTP_201_CREATED)
async def create_firm(request: FirmCreateRequest, ctx: Auth, firms: Firms) -> Firm:
    """Create a firm."""
    try:
        return await firms.create_firm(ctx, request.name, request.domain)
    except IntakePortalError as e:
        _raise_http(e)


@router.patch("/api/firms/{firm_id}", response_model=Firm)
async def update_firm(
    firm_id: str,
    request: FirmUpdateRequest,
    ctx: Auth,
    firms: Firms,
) -> Firm:
    """Rename a firm or change its domain."""
    try:
        return await firms.update_firm(ctx, firm_id, name=request.name, domain=request.domain)
    except IntakePortalError as e:
        _raise_http(e)


@router.get("/api/firms/{firm_id}/users", response_model=list[FirmUser])
async def list_firm_users(
    firm_id: str,
    ctx: Auth,
    firms: Firms,
) -> list[FirmUser]:
    """List the users of a firm with their form counts."""
    try:
        return await firms.list_firm_users(ctx, firm_id)
    except IntakePortalError as e:
        _raise_http(e)


@router.delete(
    "/api/firms/{firm_id}/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_firm_user(
    firm_id: str,
    user_id: str,
    ctx: Auth,
    firms: Firms,
) -> Response:
    """Remove a user from a firm."""
    try:
        await firms.remove_user_from_firm(ctx, firm_id, user_id)
    except IntakePortalError as e:
        _raise_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/users", response_model=list[UserProfile])
async def list_users(ctx: Auth, firms: Firms) -> list[UserProfile]:
    """List every user profile."""
    try:
        return await firms.list_users(ctx)
    except IntakePortalError as e:
        _raise_http(e)


@router.put("/api/users/{user_id}/assignment", response_model=UserProfile)
async def assign_user(
    user_id: str,
    request: UserAssignmentRequest,
    ctx: Auth,
    firms: Firms,
) -> UserProfile:
    """Place a user in a firm with a role."""
    try:
        return await firms.assign_user(ctx, user_id, request.firm_id, request.role)
    except IntakePortalError as e:
        _raise_http(e)
