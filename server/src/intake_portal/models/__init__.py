"""Pydantic models for the Intake Portal - the contracts."""

from intake_portal.models.access import (
    Access,
    Allow,
    Decision,
    Forbidden,
    Public,
    RedirectTo,
    RequireAuth,
    RequireRole,
    RouteRule,
)
from intake_portal.models.audit import (
    AuditAction,
    AuditEntry,
    DeletedEntry,
    DeletedMetadata,
    FieldChange,
    FormHistory,
    SubmittedEntry,
    SubmittedMetadata,
    UpdatedEntry,
    UpdatedMetadata,
    parse_audit_entry,
)
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
    FormStatus,
    FormSubmitRequest,
    FormType,
    FormUpdateRequest,
)
from intake_portal.models.identity import Identity, RequestContext, Role, UserProfile
from intake_portal.models.notification import (
    FormNotification,
    NotificationResult,
    NotificationType,
)

__all__ = [
    "Access",
    "Allow",
    "AuditAction",
    "AuditEntry",
    "Decision",
    "DraftSaveRequest",
    "DeletedEntry",
    "DeletedMetadata",
    "FieldChange",
    "Firm",
    "FirmCreateRequest",
    "FirmUpdateRequest",
    "FirmUser",
    "Forbidden",
    "FormDeleteRequest",
    "FormDraft",
    "FormHistory",
    "FormNotification",
    "FormSnapshot",
    "FormStatus",
    "FormSubmitRequest",
    "FormType",
    "FormUpdateRequest",
    "Identity",
    "NotificationResult",
    "NotificationType",
    "Public",
    "RedirectTo",
    "RequestContext",
    "RequireAuth",
    "RequireRole",
    "Role",
    "RouteRule",
    "SubmittedEntry",
    "SubmittedMetadata",
    "UpdatedEntry",
    "UpdatedMetadata",
    "UserAssignmentRequest",
    "UserProfile",
    "parse_audit_entry",
]
