"""
Activity log repository.

The activity feed is informational, so a failed write is logged and
reported as None instead of failing the action that produced it.
"""

import logging
from typing import Optional, Dict, Any

from ..connection import get_database
from ..models import ActivityLogDB, ActorTypeEnum

logger = logging.getLogger(__name__)


class ActivityRepository:
    """Repository for the project activity feed."""

    def __init__(self):
        self.db = get_database()

    async def log(
        self,
        project_id: str,
        action: str,
        actor: Optional[str] = None,
        actor_type: str = ActorTypeEnum.SYSTEM.value,
        task_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityLogDB]:
        """Append an activity entry."""
        async with self.db.session() as session:
            try:
                entry = ActivityLogDB(
                    project_id=project_id,
                    task_id=task_id,
                    actor=actor,
                    actor_type=actor_type,
                    action=action,
                    details=details,
                )
                session.add(entry)
                await session.flush()

                logger.debug(f"Activity: {action} on project {project_id} by {actor or actor_type}")
                return entry

            except Exception as e:
                logger.error(f"Error writing activity log ({action}, project {project_id}): {e}")
                return None


# Singleton
_activity_repository: Optional[ActivityRepository] = None


def get_activity_repository() -> ActivityRepository:
    """Get the activity repository singleton."""
    global _activity_repository
    if _activity_repository is None:
        _activity_repository = ActivityRepository()
    return _activity_repository
