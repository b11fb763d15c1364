"""Automation execution log repository. Entries are append-only."""

import logging
from typing import Optional, List, Dict, Any

from sqlalchemy import select

from ..connection import get_database
from ..models import AutomationLogDB, AutomationDB, ProjectDB
from ..exceptions import RecordOperationError

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 50
MAX_LOG_LIMIT = 200


class AutomationLogRepository:
    """Repository for automation execution history."""

    def __init__(self):
        self.db = get_database()

    async def create(
        self,
        automation_id: str,
        project_id: str,
        status: str,
        trigger_event: Optional[Dict[str, Any]] = None,
        action_result: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> AutomationLogDB:
        """Append one execution record."""
        async with self.db.session() as session:
            try:
                entry = AutomationLogDB(
                    automation_id=automation_id,
                    project_id=project_id,
                    trigger_event=trigger_event,
                    action_result=action_result,
                    status=status,
                    error_message=error_message,
                )
                session.add(entry)
                await session.flush()
                return entry

            except Exception as e:
                logger.error(f"Failed to write automation log for {automation_id}: {e}")
                raise RecordOperationError(f"Failed to write automation log: {e}")

    async def get_for_template(self, template_id: str, limit: int = DEFAULT_LOG_LIMIT) -> List[Dict[str, Any]]:
        """
        Newest-first execution history for a template's automations.

        Each entry carries the automation and project names alongside the
        raw log fields. limit is capped at MAX_LOG_LIMIT.
        """
        limit = max(1, min(limit or DEFAULT_LOG_LIMIT, MAX_LOG_LIMIT))

        async with self.db.session() as session:
            result = await session.execute(
                select(AutomationLogDB, AutomationDB.name, ProjectDB.name)
                .join(AutomationDB, AutomationLogDB.automation_id == AutomationDB.id)
                .outerjoin(ProjectDB, AutomationLogDB.project_id == ProjectDB.id)
                .where(AutomationDB.template_id == template_id)
                .order_by(AutomationLogDB.executed_at.desc())
                .limit(limit)
            )

            return [
                {
                    "id": entry.id,
                    "automation_id": entry.automation_id,
                    "automation_name": automation_name,
                    "project_id": entry.project_id,
                    "project_name": project_name,
                    "trigger_event": entry.trigger_event,
                    "action_result": entry.action_result,
                    "status": entry.status,
                    "error_message": entry.error_message,
                    "executed_at": entry.executed_at.isoformat() if entry.executed_at else None,
                }
                for entry, automation_name, project_name in result.all()
            ]


# Singleton
_automation_log_repository: Optional[AutomationLogRepository] = None


def get_automation_log_repository() -> AutomationLogRepository:
    """Get the automation log repository singleton."""
    global _automation_log_repository
    if _automation_log_repository is None:
        _automation_log_repository = AutomationLogRepository()
    return _automation_log_repository
