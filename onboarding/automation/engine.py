"""
Automation engine.

Wires the dispatcher, executor, execution logger and stage progression to
the repositories and the email client, and exposes the operations the rest
of the application calls. The schedule_* helpers run the work in a
background task so the caller's request returns immediately.
"""

import asyncio
import logging
from typing import Optional

from ..database.repositories import (
    get_automation_log_repository,
    get_automation_repository,
    get_project_repository,
    get_stage_repository,
    get_task_repository,
)
from ..integrations.email import EmailClient
from ..models.automation import TriggerEvent, TriggerType
from ..utils.background_tasks import create_safe_task
from .actions import ActionExecutor
from .config import AutomationConfig
from .dispatcher import AutomationDispatcher
from .execution_log import ExecutionLogger
from .progression import StageProgression

logger = logging.getLogger(__name__)


class AutomationEngine:
    """Entry point for evaluating automations and advancing stages."""

    def __init__(self, dispatcher: AutomationDispatcher):
        self.dispatcher = dispatcher

    @classmethod
    def build(
        cls,
        config: Optional[AutomationConfig] = None,
        email: Optional[EmailClient] = None,
    ) -> "AutomationEngine":
        """Build an engine over the default repositories."""
        config = config or AutomationConfig.from_settings()
        email = email or EmailClient.from_settings()

        projects = get_project_repository()
        tasks = get_task_repository()
        stages = get_stage_repository()

        executor = ActionExecutor(
            tasks=tasks,
            stages=stages,
            projects=projects,
            email=email,
            config=config,
        )
        dispatcher = AutomationDispatcher(
            projects=projects,
            tasks=tasks,
            stages=stages,
            automations=get_automation_repository(),
            executor=executor,
            execution_log=ExecutionLogger(get_automation_log_repository()),
            progression=StageProgression(tasks, stages),
            config=config,
        )
        return cls(dispatcher)

    # ==================== AWAITABLE OPERATIONS ====================

    async def evaluate_automations(self, project_id: str, event: TriggerEvent) -> None:
        """Run matching automations for an event. Never raises."""
        await self.dispatcher.evaluate(project_id, event)

    async def check_and_advance_stages(self, project_id: str, task_id: str) -> None:
        """Complete the task's stage if it is done and activate the next one. Never raises."""
        await self.dispatcher.advance_stages(project_id, task_id)

    async def handle_task_completed(self, project_id: str, task_id: str) -> None:
        """task_completed automations, then the stage cascade, in one run."""
        event = TriggerEvent(type=TriggerType.TASK_COMPLETED, task_id=task_id)
        await self.dispatcher.evaluate(project_id, event, run_cascade=True)

    async def handle_signature_signed(
        self,
        project_id: str,
        signature_id: str,
        task_id: Optional[str] = None,
    ) -> None:
        """Stage cascade for the signed task, then signature_signed automations."""
        if task_id:
            await self.dispatcher.advance_stages(project_id, task_id)
        event = TriggerEvent(type=TriggerType.SIGNATURE_SIGNED, signature_id=signature_id)
        await self.dispatcher.evaluate(project_id, event)

    # ==================== BACKGROUND SCHEDULING ====================

    def schedule_automations(self, project_id: str, event: TriggerEvent) -> asyncio.Task:
        return create_safe_task(
            self.evaluate_automations(project_id, event),
            f"automations-{project_id}-{event.type.value}",
        )

    def schedule_task_completed(self, project_id: str, task_id: str) -> asyncio.Task:
        return create_safe_task(
            self.handle_task_completed(project_id, task_id),
            f"task-completed-{project_id}-{task_id}",
        )

    def schedule_signature_signed(
        self,
        project_id: str,
        signature_id: str,
        task_id: Optional[str] = None,
    ) -> asyncio.Task:
        return create_safe_task(
            self.handle_signature_signed(project_id, signature_id, task_id),
            f"signature-signed-{project_id}-{signature_id}",
        )


# Singleton
_automation_engine: Optional[AutomationEngine] = None


def init_automation_engine(
    config: Optional[AutomationConfig] = None,
    email: Optional[EmailClient] = None,
) -> AutomationEngine:
    """Build the engine singleton explicitly, e.g. at startup."""
    global _automation_engine
    _automation_engine = AutomationEngine.build(config=config, email=email)
    logger.info("Automation engine initialized")
    return _automation_engine


def get_automation_engine() -> AutomationEngine:
    """Get the automation engine singleton."""
    global _automation_engine
    if _automation_engine is None:
        _automation_engine = AutomationEngine.build()
    return _automation_engine
