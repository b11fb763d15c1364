"""
Stage progression.

A stage is completed once every task referencing it is completed or
skipped; afterwards the first pending stage (by order_index) becomes active.
Only one stage is activated per advance.
"""

import logging
from typing import Optional, Tuple

from ..database.models import StageStatusEnum, TaskStatusEnum
from ..database.repositories import StageRepository, TaskRepository

logger = logging.getLogger(__name__)

DONE_TASK_STATUSES = (TaskStatusEnum.COMPLETED.value, TaskStatusEnum.SKIPPED.value)


class StageProgression:
    """Completes finished stages and activates the next one."""

    def __init__(self, tasks: TaskRepository, stages: StageRepository):
        self.tasks = tasks
        self.stages = stages

    async def complete_stage_if_done(self, project_id: str, task_id: str) -> Tuple[Optional[str], bool]:
        """
        Complete the stage of task_id when all its tasks are done.

        Returns:
            (stage_id, newly_completed). stage_id is None while the task has
            no stage or the stage still has open tasks. newly_completed is
            False when the stage had already been completed.
        """
        task = await self.tasks.get_by_id(project_id, task_id)
        if not task or not task.stage_id:
            return None, False

        stage_tasks = await self.tasks.get_by_stage(project_id, task.stage_id)
        if not stage_tasks or not all(t.status in DONE_TASK_STATUSES for t in stage_tasks):
            return None, False

        stage = await self.stages.get_by_id(project_id, task.stage_id)
        if stage is None:
            return None, False
        if stage.status == StageStatusEnum.COMPLETED.value:
            return stage.id, False

        await self.stages.update_status(project_id, stage.id, StageStatusEnum.COMPLETED.value)
        logger.info(f"Stage '{stage.name}' ({stage.id}) completed in project {project_id}")
        return stage.id, True

    async def activate_next_stage(self, project_id: str) -> Optional[str]:
        """Activate the first pending stage. Returns its id, if any."""
        stage = await self.stages.get_first_pending(project_id)
        if stage is None:
            return None

        await self.stages.update_status(project_id, stage.id, StageStatusEnum.ACTIVE.value)
        logger.info(f"Stage '{stage.name}' ({stage.id}) activated in project {project_id}")
        return stage.id
