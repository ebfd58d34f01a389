"""Form notification service.

Emails the intake inbox when a form is submitted or updated, using the
Resend HTTP API. Sending is best-effort: failures are logged and returned
as an unsuccessful NotificationResult, never raised.
"""

import logging
from zoneinfo import ZoneInfo

import httpx

from intake_portal.config import Settings, get_settings
from intake_portal.models.notification import (
    FormNotification,
    NotificationResult,
    NotificationType,
)

logger = logging.getLogger(__name__)


# Default timeout for HTTP requests
DEFAULT_TIMEOUT = 10.0

RESEND_API_URL = "https://api.resend.com/emails"


class FormNotifier:
    """Send form notifications via Resend."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize from settings.

        Args:
            settings: Application settings. If the Resend API key is unset,
                sending will fail with a "not configured" result.
        """
        self._settings = settings or get_settings()
        self._api_key = self._settings.resend_api_key

    def _make_result(
        self,
        notification: FormNotification,
        success: bool,
        error_message: str | None = None,
        external_id: str | None = None,
    ) -> NotificationResult:
        """Create a NotificationResult."""
        return NotificationResult(
            type=notification.type,
            form_id=notification.form_id,
            success=success,
            error_message=error_message,
            external_id=external_id,
        )

    async def send(self, notification: FormNotification) -> NotificationResult:
        """Send a form notification email."""
        if not self._api_key:
            return self._make_result(
                notification,
                success=False,
                error_message="Email service not configured",
            )

        if not self._settings.notification_recipients:
            return self._make_result(
                notification,
                success=False,
                error_message="No notification recipients configured",
            )

        payload = {
            "from": self._settings.notification_from,
            "to": self._settings.notification_recipients,
            "subject": self.format_subject(notification),
            "text": self.format_body(notification),
        }

        try:
            async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                response = await client.post(
                    RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )

                if response.status_code in (200, 201):
                    data = response.json()
                    logger.info(
                        f"Sent {notification.type.value} email for form {notification.form_id}"
                    )
                    return self._make_result(
                        notification,
                        success=True,
                        external_id=data.get("id"),
                    )
                else:
                    return self._make_result(
                        notification,
                        success=False,
                        error_message=f"Resend API error: {response.status_code}",
                    )

        except httpx.TimeoutException:
            return self._make_result(
                notification,
                success=False,
                error_message="Email request timed out",
            )
        except Exception as e:
            logger.exception("Form notification failed")
            return self._make_result(
                notification,
                success=False,
                error_message=str(e),
            )

    def format_subject(self, notification: FormNotification) -> str:
        form_name = notification.form_type.display_name
        if notification.type == NotificationType.FORM_UPDATED:
            return f"{form_name} Form Updated - Version {notification.version}"
        return f"New {form_name} Form Submission"

    def format_body(self, notification: FormNotification) -> str:
        """Plain-text email body."""
        verb = "updated" if notification.type == NotificationType.FORM_UPDATED else "submitted"
        timestamp = notification.occurred_at.astimezone(
            ZoneInfo(self._settings.notification_timezone)
        ).strftime("%m/%d/%Y, %I:%M %p %Z")
        firm = notification.firm_name or "Unknown Firm"

        lines = [
            f"{notification.submitter_name} from {firm} {verb} a "
            f"{notification.form_type.display_name} regarding "
            f"{notification.plaintiff_name} at {timestamp}",
        ]

        if notification.type == NotificationType.FORM_UPDATED:
            lines += [
                "",
                f"Version: {notification.version} "
                f"(previous version: {notification.version - 1})",
                "",
                "Changes made:",
            ]
            if notification.field_changes:
                lines += [
                    f'• {c.field}: "{c.old_value or ""}" → "{c.new_value or ""}"'
                    for c in notification.field_changes
                ]
            else:
                lines.append("No field changes recorded")

        lines += ["", f"View the form: {self.form_url(notification)}"]
        return "\n".join(lines)

    def form_url(self, notification: FormNotification) -> str:
        slug = notification.form_type.value.replace("_", "-")
        return f"{self._settings.site_url.rstrip('/')}/forms/{slug}/{notification.form_id}"
