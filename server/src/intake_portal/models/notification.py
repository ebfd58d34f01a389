"""Form notification models."""

from datetime import datetime, UTC
from enum import Enum

from pydantic import BaseModel, Field

from intake_portal.models.audit import FieldChange
from intake_portal.models.form import FormType


class NotificationType(str, Enum):
    """Types of form notifications."""

    FORM_SUBMITTED = "form_submitted"
    FORM_UPDATED = "form_updated"


class FormNotification(BaseModel):
    """A form event to be emailed to the intake recipients."""

    type: NotificationType
    form_id: str
    form_type: FormType
    version: int = 1
    plaintiff_name: str
    submitter_name: str
    firm_name: str | None = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    field_changes: list[FieldChange] = Field(default_factory=list)


class NotificationResult(BaseModel):
    """Result of sending a notification."""

    type: NotificationType
    form_id: str
    success: bool
    sent_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    error_message: str | None = None
    external_id: str | None = None  # Message ID from the email service
