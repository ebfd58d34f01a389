"""Intake Portal - access control and change tracking for law-firm intake forms."""

__version__ = "0.1.0"

from intake_portal.exceptions import (
    AuditWriteError,
    IntakePortalError,
    VersionConflictError,
)

__all__ = [
    "__version__",
    "AuditWriteError",
    "IntakePortalError",
    "VersionConflictError",
]
