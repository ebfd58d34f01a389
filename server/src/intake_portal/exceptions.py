"""Custom exceptions for the Intake Portal."""


class IntakePortalError(Exception):
    """Base class for errors raised by the form and audit services."""


class FormNotFoundError(IntakePortalError):
    """Raised when a form does not exist (or is not visible to the caller)."""

    def __init__(self, form_type: str, form_id: str) -> None:
        self.form_type = form_type
        self.form_id = form_id
        super().__init__(f"Form not found: {form_type}/{form_id}")


class ProfileNotFoundError(IntakePortalError):
    """Raised when a user profile does not exist."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User profile not found: {user_id}")


class PermissionDeniedError(IntakePortalError):
    """Raised when the caller's profile does not permit the action."""

    def __init__(self, action: str, detail: str | None = None) -> None:
        self.action = action
        self.detail = detail
        message = f"Not permitted to {action}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConfirmationMismatchError(IntakePortalError):
    """Raised when a delete confirmation does not match the form."""

    def __init__(self) -> None:
        super().__init__("Last name confirmation does not match")


class VersionConflictError(IntakePortalError):
    """Raised when a form changed between read and write."""

    def __init__(self, form_id: str, expected_version: int) -> None:
        self.form_id = form_id
        self.expected_version = expected_version
        super().__init__(
            f"Form {form_id} is no longer at version {expected_version}; "
            "reload and reapply your changes"
        )


class AuditWriteError(IntakePortalError):
    """Raised when an audit entry could not be persisted.

    The mutation that triggered the entry must be treated as failed.
    """

    def __init__(self, form_id: str, action: str, detail: str) -> None:
        self.form_id = form_id
        self.action = action
        self.detail = detail
        super().__init__(f"Failed to record {action} audit entry for form {form_id}: {detail}")


class DiffError(IntakePortalError):
    """Raised when a snapshot cannot be compared."""


class DraftNotFoundError(IntakePortalError):
    """Raised when a draft does not exist."""

    def __init__(self, form_type: str, draft_id: str) -> None:
        self.form_type = form_type
        self.draft_id = draft_id
        super().__init__(f"Draft not found: {form_type}/{draft_id}")


class FirmNotFoundError(IntakePortalError):
    """Raised when a firm does not exist."""

    def __init__(self, firm_id: str) -> None:
        self.firm_id = firm_id
        super().__init__(f"Firm not found: {firm_id}")


class InvalidAssignmentError(IntakePortalError):
    """Raised when a firm/role assignment is not allowed."""
