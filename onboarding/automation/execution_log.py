"""
Execution logger.

One append-only entry per logged rule outcome. A failed write is reported
through the application log and never interrupts dispatch.
"""

import logging
from typing import Any, Dict, Optional

from ..database.models import ExecutionStatusEnum
from ..database.repositories import AutomationLogRepository

logger = logging.getLogger(__name__)


class ExecutionLogger:
    """Writes automation outcomes to the execution log."""

    def __init__(self, log_repository: AutomationLogRepository):
        self.log_repository = log_repository

    async def record(
        self,
        automation_id: str,
        project_id: str,
        status: str,
        trigger_event: Dict[str, Any],
        action_result: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        try:
            await self.log_repository.create(
                automation_id=automation_id,
                project_id=project_id,
                status=status,
                trigger_event=trigger_event,
                action_result=action_result,
                error_message=error_message,
            )
        except Exception as e:
            logger.error(f"Failed to write execution log for automation {automation_id}: {e}")

    async def success(self, automation_id: str, project_id: str, trigger_event: Dict[str, Any],
                      action_result: Dict[str, Any]) -> None:
        await self.record(automation_id, project_id, ExecutionStatusEnum.SUCCESS.value,
                          trigger_event, action_result=action_result)

    async def skipped(self, automation_id: str, project_id: str, trigger_event: Dict[str, Any],
                      action_result: Dict[str, Any]) -> None:
        await self.record(automation_id, project_id, ExecutionStatusEnum.SKIPPED.value,
                          trigger_event, action_result=action_result)

    async def failed(self, automation_id: str, project_id: str, trigger_event: Dict[str, Any],
                     error_message: str) -> None:
        await self.record(automation_id, project_id, ExecutionStatusEnum.FAILED.value,
                          trigger_event, error_message=error_message)
