"""Route authorization, change tracking and form services."""

from intake_portal.manager.audit_log import AuditLog
from intake_portal.manager.change_diff import apply_changes, diff
from intake_portal.manager.firm_admin import FirmAdmin
from intake_portal.manager.form_service import FormService
from intake_portal.manager.route_guard import ROUTE_RULES, authorize, is_excluded_path

__all__ = [
    "AuditLog",
    "FirmAdmin",
    "FormService",
    "ROUTE_RULES",
    "apply_changes",
    "authorize",
    "diff",
    "is_excluded_path",
]
