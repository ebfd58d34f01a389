"""Services for the Intake Portal."""

from intake_portal.services.notifier import FormNotifier

__all__ = ["FormNotifier"]
