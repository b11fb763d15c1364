"""Stage repository."""

import logging
from typing import Optional, List
from datetime import datetime

from sqlalchemy import select, update

from ..connection import get_database
from ..models import StageDB, StageStatusEnum
from ..exceptions import RecordOperationError, RecordNotFoundError

logger = logging.getLogger(__name__)


class StageRepository:
    """Repository for project stage operations."""

    def __init__(self):
        self.db = get_database()

    async def get_by_id(self, project_id: str, stage_id: str) -> Optional[StageDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(StageDB).where(
                    StageDB.id == stage_id,
                    StageDB.project_id == project_id,
                )
            )
            return result.scalar_one_or_none()

    async def get_by_project(self, project_id: str) -> List[StageDB]:
        """All stages of a project in order."""
        async with self.db.session() as session:
            result = await session.execute(
                select(StageDB)
                .where(StageDB.project_id == project_id)
                .order_by(StageDB.order_index)
            )
            return list(result.scalars().all())

    async def get_first_pending(self, project_id: str) -> Optional[StageDB]:
        """Lowest order_index stage still pending."""
        async with self.db.session() as session:
            result = await session.execute(
                select(StageDB)
                .where(
                    StageDB.project_id == project_id,
                    StageDB.status == StageStatusEnum.PENDING.value,
                )
                .order_by(StageDB.order_index)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def update_status(self, project_id: str, stage_id: str, status: str) -> StageDB:
        """Set a stage's status."""
        async with self.db.session() as session:
            try:
                await session.execute(
                    update(StageDB)
                    .where(
                        StageDB.id == stage_id,
                        StageDB.project_id == project_id,
                    )
                    .values(status=status, updated_at=datetime.now())
                )

                result = await session.execute(
                    select(StageDB).where(
                        StageDB.id == stage_id,
                        StageDB.project_id == project_id,
                    )
                )
                stage = result.scalar_one_or_none()

                if not stage:
                    raise RecordNotFoundError(f"Stage {stage_id} not found in project {project_id}")

                logger.info(f"Stage {stage_id} status -> {status}")
                return stage

            except RecordNotFoundError:
                raise

            except Exception as e:
                logger.error(f"Stage status update failed for {stage_id}: {e}", exc_info=True)
                raise RecordOperationError(f"Failed to update stage {stage_id}: {e}")


# Singleton
_stage_repository: Optional[StageRepository] = None


def get_stage_repository() -> StageRepository:
    """Get the stage repository singleton."""
    global _stage_repository
    if _stage_repository is None:
        _stage_repository = StageRepository()
    return _stage_repository
