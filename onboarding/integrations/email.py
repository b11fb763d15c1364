"""
Transactional email through the Resend HTTP API.

Every send attempt, successful or not, is written to the email log. When no
API key is configured the send is skipped with a warning.
"""

import html
import logging
from typing import Any, Dict, Optional

import aiohttp

from config import settings as app_settings
from ..database.repositories import EmailLogRepository, get_email_log_repository

logger = logging.getLogger(__name__)


def _wrap(content: str) -> str:
    """Branded HTML shell shared by all onboarding emails."""
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="margin:0;padding:20px;background:#f9fafb;font-family:-apple-system,'Segoe UI',Roboto,sans-serif;">
  <div style="max-width:600px;margin:0 auto;">
    <div style="background:#00c9e3;padding:24px 32px;border-radius:8px 8px 0 0;">
      <h1 style="color:white;margin:0;font-size:20px;">PS Property Management</h1>
      <p style="color:rgba(255,255,255,0.8);margin:4px 0 0;font-size:13px;">Community Onboarding Portal</p>
    </div>
    <div style="padding:32px;border:1px solid #e5e7eb;border-top:none;border-radius:0 0 8px 8px;background:white;">
      {content}
    </div>
  </div>
</body>
</html>"""


class EmailClient:
    """Sends onboarding emails and records each attempt."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        from_address: str,
        from_name: str,
        dashboard_url: str,
        timeout_seconds: float = 10.0,
        email_log: Optional[EmailLogRepository] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.from_address = from_address
        self.from_name = from_name
        self.dashboard_url = dashboard_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.email_log = email_log or get_email_log_repository()

    @classmethod
    def from_settings(cls, settings=None, email_log: Optional[EmailLogRepository] = None) -> "EmailClient":
        settings = settings or app_settings
        return cls(
            api_key=settings.resend_api_key,
            api_url=settings.resend_api_url,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            dashboard_url=settings.portal_base_url,
            timeout_seconds=settings.email_timeout_seconds,
            email_log=email_log,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        template_type: str,
        project_id: Optional[str] = None,
        recipient_name: Optional[str] = None,
    ) -> Optional[str]:
        """
        Send one email.

        Returns:
            Provider message id, or None when skipped or failed
        """
        if not self.enabled:
            logger.warning(f"RESEND_API_KEY not set, skipping email to {to}")
            return None

        payload = {
            "from": f"{self.from_name} <{self.from_address}>",
            "to": [to],
            "subject": subject,
            "html": html_body,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        log_fields: Dict[str, Any] = {
            "template_type": template_type,
            "recipient_email": to,
            "recipient_name": recipient_name,
            "subject": subject,
            "project_id": project_id,
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.api_url, json=payload, headers=headers) as response:
                    data = await response.json(content_type=None)
                    data = data if isinstance(data, dict) else {}

                    if response.status >= 400:
                        logger.error(f"Resend API error: {response.status} - {data}")
                        await self.email_log.log(
                            status="failed",
                            provider_id=data.get("id"),
                            error_message=str(data),
                            **log_fields,
                        )
                        return None

                    message_id = data.get("id")
                    logger.info(f"Sent {template_type} email to {to}: {message_id}")
                    await self.email_log.log(status="sent", provider_id=message_id, **log_fields)
                    return message_id

        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}")
            await self.email_log.log(status="failed", error_message=str(e), **log_fields)
            return None

    async def send_staff_notification(
        self,
        to: str,
        project_name: str,
        action: str,
        details: Optional[str] = None,
        project_id: Optional[str] = None,
        staff_name: Optional[str] = None,
        template_type: str = "staff_notification",
    ) -> Optional[str]:
        """Notify staff (or a client contact) about project activity."""
        greeting = f"Hi {html.escape(staff_name)}," if staff_name else "Hi,"
        details_block = ""
        if details:
            details_block = (
                '<div style="background:#f9fafb;border-left:4px solid #00c9e3;padding:16px;margin:24px 0;">'
                f'<p style="color:#374151;margin:0;line-height:1.6;font-size:14px;">{html.escape(details)}</p>'
                "</div>"
            )

        content = (
            f'<h2 style="color:#111827;margin:0 0 16px;font-size:18px;">Project Activity: {html.escape(project_name)}</h2>'
            f'<p style="color:#374151;margin:0 0 16px;line-height:1.6;">{greeting}</p>'
            f'<p style="color:#374151;margin:0 0 16px;line-height:1.6;"><strong>{html.escape(action)}</strong></p>'
            f"{details_block}"
            f'<p style="color:#374151;margin:16px 0 0;font-size:14px;">'
            f'<a href="{self.dashboard_url}/projects" style="color:#00c9e3;text-decoration:none;">View in Dashboard</a></p>'
        )

        return await self.send(
            to=to,
            subject=f"[Onboarding] {action} - {project_name}",
            html_body=_wrap(content),
            template_type=template_type,
            project_id=project_id,
            recipient_name=staff_name,
        )
