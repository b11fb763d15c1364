"""
Repository classes for database operations.

Each repository handles reads and writes for its entity type, scoped to the
owning project or template.
"""

from .projects import ProjectRepository, get_project_repository
from .tasks import TaskRepository, get_task_repository
from .stages import StageRepository, get_stage_repository
from .signatures import SignatureRepository, get_signature_repository, SIGNABLE_STATUSES
from .automations import AutomationRepository, get_automation_repository
from .automation_log import AutomationLogRepository, get_automation_log_repository
from .activity import ActivityRepository, get_activity_repository
from .email_log import EmailLogRepository, get_email_log_repository

__all__ = [
    "ProjectRepository",
    "get_project_repository",
    "TaskRepository",
    "get_task_repository",
    "StageRepository",
    "get_stage_repository",
    "SignatureRepository",
    "get_signature_repository",
    "SIGNABLE_STATUSES",
    "AutomationRepository",
    "get_automation_repository",
    "AutomationLogRepository",
    "get_automation_log_repository",
    "ActivityRepository",
    "get_activity_repository",
    "EmailLogRepository",
    "get_email_log_repository",
]
