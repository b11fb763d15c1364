"""
Project repository.

Automations only read projects and change their lifecycle status; project
creation belongs to the staff dashboard.
"""

import logging
from typing import Optional
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import ProjectDB, ProjectStatusEnum
from ..exceptions import (
    RecordConstraintError,
    RecordOperationError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)


class ProjectRepository:
    """Repository for onboarding project operations."""

    def __init__(self):
        self.db = get_database()

    async def get_by_id(self, project_id: str) -> Optional[ProjectDB]:
        """Get project by id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ProjectDB).where(ProjectDB.id == project_id)
            )
            return result.scalar_one_or_none()

    async def update_status(self, project_id: str, status: str) -> ProjectDB:
        """
        Set the project status.

        Moving to active stamps started_at, moving to completed stamps
        completed_at.
        """
        now = datetime.now()
        values = {"status": status, "updated_at": now}
        if status == ProjectStatusEnum.ACTIVE.value:
            values["started_at"] = now
        elif status == ProjectStatusEnum.COMPLETED.value:
            values["completed_at"] = now

        async with self.db.session() as session:
            try:
                await session.execute(
                    update(ProjectDB)
                    .where(ProjectDB.id == project_id)
                    .values(**values)
                )

                result = await session.execute(
                    select(ProjectDB).where(ProjectDB.id == project_id)
                )
                project = result.scalar_one_or_none()

                if not project:
                    raise RecordNotFoundError(f"Project {project_id} not found")

                logger.info(f"Project {project_id} status -> {status}")
                return project

            except RecordNotFoundError:
                raise

            except IntegrityError as e:
                logger.error(f"Constraint violation updating project {project_id}: {e}")
                raise RecordConstraintError(f"Cannot update project {project_id}: constraint violation")

            except Exception as e:
                logger.error(f"Project status update failed for {project_id}: {e}", exc_info=True)
                raise RecordOperationError(f"Failed to update project {project_id}: {e}")


# Singleton
_project_repository: Optional[ProjectRepository] = None


def get_project_repository() -> ProjectRepository:
    """Get the project repository singleton."""
    global _project_repository
    if _project_repository is None:
        _project_repository = ProjectRepository()
    return _project_repository
