"""
Task repository.

Handles:
- Task lookups scoped to a project
- Stage membership queries used by stage progression
- Status changes (activate, complete) and portal note updates
"""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import TaskDB, TaskStatusEnum
from ..exceptions import (
    RecordConstraintError,
    RecordOperationError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for task operations."""

    def __init__(self):
        self.db = get_database()

    # ==================== QUERIES ====================

    async def get_by_id(self, project_id: str, task_id: str) -> Optional[TaskDB]:
        """Get a task, only if it belongs to project_id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskDB).where(
                    TaskDB.id == task_id,
                    TaskDB.project_id == project_id,
                )
            )
            return result.scalar_one_or_none()

    async def get_by_project(self, project_id: str) -> List[TaskDB]:
        """All tasks of a project in checklist order."""
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskDB)
                .where(TaskDB.project_id == project_id)
                .order_by(TaskDB.order_index)
            )
            return list(result.scalars().all())

    async def get_by_stage(self, project_id: str, stage_id: str) -> List[TaskDB]:
        """All tasks of one stage in checklist order."""
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskDB)
                .where(
                    TaskDB.project_id == project_id,
                    TaskDB.stage_id == stage_id,
                )
                .order_by(TaskDB.order_index)
            )
            return list(result.scalars().all())

    # ==================== UPDATES ====================

    async def update(self, project_id: str, task_id: str, updates: Dict[str, Any]) -> TaskDB:
        """Update a task scoped to its project."""
        async with self.db.session() as session:
            try:
                updates["updated_at"] = datetime.now()

                await session.execute(
                    update(TaskDB)
                    .where(
                        TaskDB.id == task_id,
                        TaskDB.project_id == project_id,
                    )
                    .values(**updates)
                )

                result = await session.execute(
                    select(TaskDB).where(
                        TaskDB.id == task_id,
                        TaskDB.project_id == project_id,
                    )
                )
                task = result.scalar_one_or_none()

                if not task:
                    raise RecordNotFoundError(f"Task {task_id} not found in project {project_id}")

                return task

            except RecordNotFoundError:
                raise

            except IntegrityError as e:
                logger.error(f"Constraint violation updating task {task_id}: {e}")
                raise RecordConstraintError(f"Cannot update task {task_id}: constraint violation")

            except Exception as e:
                logger.error(f"Task update failed for {task_id}: {e}", exc_info=True)
                raise RecordOperationError(f"Failed to update task {task_id}: {e}")

    async def activate(self, project_id: str, task_id: str) -> TaskDB:
        """Move a task to in_progress."""
        task = await self.update(project_id, task_id, {
            "status": TaskStatusEnum.IN_PROGRESS.value,
        })
        logger.info(f"Activated task {task_id}")
        return task

    async def complete(self, project_id: str, task_id: str, completed_by: str) -> TaskDB:
        """Mark a task completed by the given actor."""
        task = await self.update(project_id, task_id, {
            "status": TaskStatusEnum.COMPLETED.value,
            "completed_at": datetime.now(),
            "completed_by": completed_by,
        })
        logger.info(f"Completed task {task_id} (by {completed_by})")
        return task


# Singleton
_task_repository: Optional[TaskRepository] = None


def get_task_repository() -> TaskRepository:
    """Get the task repository singleton."""
    global _task_repository
    if _task_repository is None:
        _task_repository = TaskRepository()
    return _task_repository
