"""
Action executor.

Each action performs a single record update (or one email send) against the
project a rule fired for, and reports what it did as an ActionResult.
Targets that are already in the requested state are skipped, not rewritten.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Type

from ..database.models import ProjectDB, StageStatusEnum, TaskStatusEnum, ProjectStatusEnum
from ..database.repositories import ProjectRepository, StageRepository, TaskRepository
from ..integrations.email import EmailClient
from ..models.automation import (
    ActionType,
    AutomationRule,
    ProjectStatusAction,
    SendEmailAction,
    StageNameAction,
    TaskTitleAction,
    TriggerEvent,
    TriggerType,
)
from .config import AutomationConfig
from .context import AutomationContext
from .errors import AutomationConfigError, AutomationTargetNotFoundError
from .results import ActionResult

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Performs the action of a matched rule."""

    def __init__(
        self,
        tasks: TaskRepository,
        stages: StageRepository,
        projects: ProjectRepository,
        email: EmailClient,
        config: AutomationConfig,
    ):
        self.tasks = tasks
        self.stages = stages
        self.projects = projects
        self.email = email
        self.config = config

        self._handlers: Dict[ActionType, Callable[..., Awaitable[ActionResult]]] = {
            ActionType.ACTIVATE_TASK: self._activate_task,
            ActionType.COMPLETE_TASK: self._complete_task,
            ActionType.ACTIVATE_STAGE: self._activate_stage,
            ActionType.COMPLETE_STAGE: self._complete_stage,
            ActionType.SEND_EMAIL: self._send_email,
            ActionType.UPDATE_PROJECT_STATUS: self._update_project_status,
        }

    async def execute(
        self,
        rule: AutomationRule,
        project: ProjectDB,
        context: AutomationContext,
    ) -> ActionResult:
        """
        Run the rule's action.

        Raises:
            AutomationConfigError: Config missing or of the wrong kind
            AutomationTargetNotFoundError: Named task/stage not in the project
        """
        handler = self._handlers.get(rule.action_type)
        if handler is None:
            raise AutomationConfigError(f"Unknown action type: {rule.action_type}")

        logger.debug(f"Running {rule.action_type.value} for automation '{rule.name}' on project {project.id}")
        return await handler(rule, project, context)

    @staticmethod
    def _config(rule: AutomationRule, expected: Type):
        if not isinstance(rule.action_config, expected):
            raise AutomationConfigError(
                f"action_config for {rule.action_type.value} must be {expected.__name__}"
            )
        return rule.action_config

    # ==================== TASK ACTIONS ====================

    def _find_task(self, context: AutomationContext, title: str):
        task = context.find_task_by_title(title)
        if task is None:
            raise AutomationTargetNotFoundError(f'Task "{title}" not found in project')
        return task

    async def _activate_task(self, rule, project, context) -> ActionResult:
        config: TaskTitleAction = self._config(rule, TaskTitleAction)
        action = rule.action_type.value
        task = self._find_task(context, config.task_title)

        if task.status in (TaskStatusEnum.COMPLETED.value, TaskStatusEnum.IN_PROGRESS.value):
            return ActionResult.skip(action, f"Task already {task.status}", task_id=task.id)

        await self.tasks.activate(project.id, task.id)
        task.status = TaskStatusEnum.IN_PROGRESS.value

        return ActionResult(action, data={"task_id": task.id, "task_title": task.title})

    async def _complete_task(self, rule, project, context) -> ActionResult:
        config: TaskTitleAction = self._config(rule, TaskTitleAction)
        action = rule.action_type.value
        task = self._find_task(context, config.task_title)

        if task.status == TaskStatusEnum.COMPLETED.value:
            return ActionResult.skip(action, "Task already completed", task_id=task.id)

        await self.tasks.complete(project.id, task.id, completed_by=self.config.actor)
        task.status = TaskStatusEnum.COMPLETED.value
        task.completed_at = datetime.now()
        task.completed_by = self.config.actor

        return ActionResult(
            action,
            data={"task_id": task.id, "task_title": task.title},
            emitted_events=[TriggerEvent(type=TriggerType.TASK_COMPLETED, task_id=task.id)],
        )

    # ==================== STAGE ACTIONS ====================

    def _find_stage(self, context: AutomationContext, name: str):
        stage = context.find_stage_by_name(name)
        if stage is None:
            raise AutomationTargetNotFoundError(f'Stage "{name}" not found in project')
        return stage

    async def _activate_stage(self, rule, project, context) -> ActionResult:
        config: StageNameAction = self._config(rule, StageNameAction)
        action = rule.action_type.value
        stage = self._find_stage(context, config.stage_name)

        if stage.status in (StageStatusEnum.ACTIVE.value, StageStatusEnum.COMPLETED.value):
            return ActionResult.skip(action, f"Stage already {stage.status}", stage_id=stage.id)

        await self.stages.update_status(project.id, stage.id, StageStatusEnum.ACTIVE.value)
        stage.status = StageStatusEnum.ACTIVE.value

        return ActionResult(action, data={"stage_id": stage.id, "stage_name": stage.name})

    async def _complete_stage(self, rule, project, context) -> ActionResult:
        config: StageNameAction = self._config(rule, StageNameAction)
        action = rule.action_type.value
        stage = self._find_stage(context, config.stage_name)

        if stage.status == StageStatusEnum.COMPLETED.value:
            return ActionResult.skip(action, "Stage already completed", stage_id=stage.id)

        await self.stages.update_status(project.id, stage.id, StageStatusEnum.COMPLETED.value)
        stage.status = StageStatusEnum.COMPLETED.value

        return ActionResult(
            action,
            data={"stage_id": stage.id, "stage_name": stage.name},
            emitted_events=[TriggerEvent(type=TriggerType.STAGE_COMPLETED, stage_id=stage.id)],
        )

    # ==================== EMAIL ====================

    async def _send_email(self, rule, project, context) -> ActionResult:
        config: SendEmailAction = self._config(rule, SendEmailAction)
        action = rule.action_type.value

        if config.recipient_type == "client":
            to = project.client_contact_email
            recipient_name = project.client_contact_name
        else:
            to = project.assigned_staff_email
            recipient_name = None

        if not to:
            return ActionResult.skip(action, f"No email address for {config.recipient_type}")

        subject = config.subject or f"Automation: {project.name}"
        message = config.message or f'An automation was triggered for project "{project.name}".'

        email_id = await self.email.send_staff_notification(
            to=to,
            project_name=project.name,
            action=subject,
            details=message,
            project_id=project.id,
            staff_name=recipient_name,
            template_type=config.template_type,
        )

        return ActionResult(action, data={
            "recipient_type": config.recipient_type,
            "to": to,
            "template_type": config.template_type,
            "email_id": email_id,
        })

    # ==================== PROJECT ====================

    async def _update_project_status(self, rule, project, context) -> ActionResult:
        config: ProjectStatusAction = self._config(rule, ProjectStatusAction)
        action = rule.action_type.value
        status = config.status.value

        previous_status = project.status
        await self.projects.update_status(project.id, status)

        now = datetime.now()
        project.status = status
        if status == ProjectStatusEnum.ACTIVE.value:
            project.started_at = now
        elif status == ProjectStatusEnum.COMPLETED.value:
            project.completed_at = now

        return ActionResult(action, data={"status": status, "previous_status": previous_status})
