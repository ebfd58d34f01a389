"""Audit trail models.

Each entry's metadata shape is fixed by its ``action_type``:

  submitted: {version, timestamp?}
  updated:   {version, previous_version, field_changes, updated_by_role?, changes_unavailable}
  deleted:   {version?, deleted_by_role?, reason?}

Entries are parsed through a discriminated union so that a ``submitted``
entry can never carry field changes and an ``updated`` entry always does.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    model_validator,
)

from intake_portal.models.form import FormType
from intake_portal.models.identity import Role


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""

    SUBMITTED = "submitted"
    UPDATED = "updated"
    DELETED = "deleted"


class FieldChange(BaseModel):
    """One differing field between two consecutive snapshots."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    field: str  # Display label
    old_value: str | None = Field(default=None, alias="oldValue")
    new_value: str | None = Field(default=None, alias="newValue")
    key: str | None = None  # Machine key, when known


class SubmittedMetadata(BaseModel):
    """Metadata for a first submission."""

    model_config = ConfigDict(extra="ignore")

    version: int = Field(default=1, ge=1)
    timestamp: datetime | None = None


class UpdatedMetadata(BaseModel):
    """Metadata for an update; ``previous_version`` is always ``version - 1``."""

    model_config = ConfigDict(extra="ignore")

    version: int = Field(ge=2)
    previous_version: int = Field(ge=1)
    field_changes: list[FieldChange] = Field(default_factory=list)
    updated_by_role: Role | None = None
    changes_unavailable: bool = False

    @model_validator(mode="after")
    def _consecutive_versions(self) -> "UpdatedMetadata":
        if self.previous_version != self.version - 1:
            raise ValueError(
                f"previous_version must be {self.version - 1}, got {self.previous_version}"
            )
        return self


class DeletedMetadata(BaseModel):
    """Metadata for a deletion."""

    model_config = ConfigDict(extra="ignore")

    version: int | None = Field(default=None, ge=1)
    deleted_by_role: Role | None = None
    reason: str | None = None


class _AuditEntryBase(BaseModel):
    id: str | None = None
    form_id: str
    form_type: FormType
    submitted_by: str  # Actor user id
    firm_id: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    actor_name: str | None = None  # From the joined profile, display only

    @model_validator(mode="before")
    @classmethod
    def _flatten_actor(cls, data: Any) -> Any:
        # Rows read with a user_profiles join carry the actor's name nested
        if isinstance(data, dict) and isinstance(data.get("user_profiles"), dict):
            data = dict(data)
            profile = data.pop("user_profiles")
            parts = [profile.get("first_name"), profile.get("last_name")]
            name = " ".join(p for p in parts if p)
            data.setdefault("actor_name", name or None)
        return data

    @property
    def version(self) -> int | None:
        return self.metadata.version  # type: ignore[attr-defined]


class SubmittedEntry(_AuditEntryBase):
    action_type: Literal["submitted"] = "submitted"
    metadata: SubmittedMetadata = Field(default_factory=SubmittedMetadata)


class UpdatedEntry(_AuditEntryBase):
    action_type: Literal["updated"] = "updated"
    metadata: UpdatedMetadata


class DeletedEntry(_AuditEntryBase):
    action_type: Literal["deleted"] = "deleted"
    metadata: DeletedMetadata = Field(default_factory=DeletedMetadata)


AuditEntry = Annotated[
    Union[SubmittedEntry, UpdatedEntry, DeletedEntry],
    Field(discriminator="action_type"),
]

_audit_entry_adapter: TypeAdapter[AuditEntry] = TypeAdapter(AuditEntry)


def parse_audit_entry(row: dict[str, Any]) -> AuditEntry:
    """Parse a stored audit row into its typed variant."""
    return _audit_entry_adapter.validate_python(row)


class FormHistory(BaseModel):
    """Audit history for display, newest first.

    ``available`` is False when the trail could not be read; callers hide
    the history panel instead of failing.
    """

    form_id: str
    form_type: FormType
    available: bool = True
    entries: list[AuditEntry] = Field(default_factory=list)
