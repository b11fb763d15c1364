"""Email log repository. Records every outbound send attempt."""

import logging
from typing import Optional, Dict, Any

from ..connection import get_database
from ..models import EmailLogDB

logger = logging.getLogger(__name__)


class EmailLogRepository:
    """Repository for outbound email history."""

    def __init__(self):
        self.db = get_database()

    async def log(
        self,
        template_type: str,
        recipient_email: str,
        subject: str,
        status: str,
        project_id: Optional[str] = None,
        recipient_name: Optional[str] = None,
        provider_id: Optional[str] = None,
        error_message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[EmailLogDB]:
        """Record a send attempt. Failures are logged, never raised."""
        async with self.db.session() as session:
            try:
                entry = EmailLogDB(
                    project_id=project_id,
                    template_type=template_type,
                    recipient_email=recipient_email,
                    recipient_name=recipient_name,
                    subject=subject,
                    provider_id=provider_id,
                    status=status,
                    error_message=error_message,
                    metadata_json=metadata,
                )
                session.add(entry)
                await session.flush()
                return entry

            except Exception as e:
                logger.error(f"Error writing email log for {recipient_email}: {e}")
                return None


# Singleton
_email_log_repository: Optional[EmailLogRepository] = None


def get_email_log_repository() -> EmailLogRepository:
    """Get the email log repository singleton."""
    global _email_log_repository
    if _email_log_repository is None:
        _email_log_repository = EmailLogRepository()
    return _email_log_repository
