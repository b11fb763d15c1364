"""Per-event snapshot of the project's tasks and stages."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..database.models import StageDB, TaskDB


@dataclass
class AutomationContext:
    """
    Tasks and stages of one project, loaded once per event.

    task / stage are the entities named by the event's correlation ids,
    when they exist. Actions update these objects in place after each write
    so later rules for the same event see the new state.
    """

    tasks: List[TaskDB] = field(default_factory=list)
    stages: List[StageDB] = field(default_factory=list)
    task: Optional[TaskDB] = None
    stage: Optional[StageDB] = None

    def find_task_by_title(self, title: str) -> Optional[TaskDB]:
        """First task (by order) with exactly this title."""
        return next((t for t in self.tasks if t.title == title), None)

    def find_stage_by_name(self, name: str) -> Optional[StageDB]:
        return next((s for s in self.stages if s.name == name), None)

    def task_by_id(self, task_id: Optional[str]) -> Optional[TaskDB]:
        if not task_id:
            return None
        return next((t for t in self.tasks if t.id == task_id), None)

    def stage_by_id(self, stage_id: Optional[str]) -> Optional[StageDB]:
        if not stage_id:
            return None
        return next((s for s in self.stages if s.id == stage_id), None)
