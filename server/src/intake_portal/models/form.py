"""Form snapshot and request models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class FormType(str, Enum):
    """Supported intake form types."""

    PERSONAL_INJURY = "personal_injury"
    WRONGFUL_DEATH = "wrongful_death"
    WRONGFUL_TERMINATION = "wrongful_termination"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class FormStatus(str, Enum):
    """Lifecycle status of a submitted form."""

    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


class FormSnapshot(BaseModel):
    """The live state of a form at one version."""

    model_config = ConfigDict(populate_by_name=True)

    form_id: str = Field(validation_alias=AliasChoices("id", "form_id"))
    form_type: FormType
    version: int = Field(default=1, ge=1)
    submitted_by: str
    firm_id: str | None = None
    status: FormStatus = FormStatus.SUBMITTED
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def last_name(self) -> str | None:
        value = self.data.get("last_name")
        return value if isinstance(value, str) else None

    @property
    def plaintiff_name(self) -> str:
        parts = [self.data.get("first_name"), self.data.get("last_name")]
        name = " ".join(p for p in parts if isinstance(p, str) and p)
        return name or "Unknown"


class FormSubmitRequest(BaseModel):
    """Request body for submitting a new form."""

    data: dict[str, Any]


class FormUpdateRequest(BaseModel):
    """Request body for updating a form.

    ``expected_version`` lets a client assert the version it edited; when
    omitted the server uses the version it reads.
    """

    data: dict[str, Any]
    expected_version: int | None = Field(default=None, ge=1)


class FormDeleteRequest(BaseModel):
    """Request body for deleting a form."""

    last_name_confirmation: str
    reason: str | None = None


class FormDraft(BaseModel):
    """An unsubmitted, saved-for-later form."""

    model_config = ConfigDict(populate_by_name=True)

    draft_id: str = Field(validation_alias=AliasChoices("id", "draft_id"))
    form_type: FormType
    submitted_by: str
    firm_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, v: Any) -> Any:
        return {} if v is None else v


class DraftSaveRequest(BaseModel):
    """Request body for saving or updating a draft."""

    data: dict[str, Any]
