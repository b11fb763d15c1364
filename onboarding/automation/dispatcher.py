"""
Automation dispatcher.

Evaluates a project's active rules against an event:
- Rules are loaded for (template, trigger type) in order_index order
- Each rule is isolated: a failure is logged and later rules still run
- Delayed rules are recorded as skipped; non-matching rules leave no trace

Events produced while dispatching (an automation completing a task or a
stage, or the stage cascade completing a stage) go onto a per-run work
queue drained by the same loop. A run never processes the same
(type, correlation id) twice and stops accepting events at
max_chain_events.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Set, Tuple

from pydantic import ValidationError

from ..database.models import AutomationDB, ProjectDB
from ..database.repositories import (
    AutomationRepository,
    ProjectRepository,
    StageRepository,
    TaskRepository,
)
from ..models.automation import AutomationRule, TriggerEvent, TriggerType
from ..models.validation import describe_validation_error
from .actions import ActionExecutor
from .config import AutomationConfig
from .context import AutomationContext
from .execution_log import ExecutionLogger
from .matcher import matches
from .progression import StageProgression

logger = logging.getLogger(__name__)


@dataclass
class QueuedEvent:
    event: TriggerEvent
    # Check whether the event's task finished its stage
    run_cascade: bool = False
    # Activate the next pending stage once the event's rules have run
    activate_next_stage: bool = False


class DispatchRun:
    """Bounded work queue for one dispatch, with cycle detection."""

    def __init__(self, max_events: int):
        self.max_events = max_events
        self.accepted = 0
        self._queue: Deque[QueuedEvent] = deque()
        self._seen: Set[Tuple[str, Optional[str]]] = set()
        # Stages whose queued stage_completed event will activate the next stage
        self.activating_stages: Set[str] = set()

    def push(self, event: TriggerEvent, run_cascade: bool = False, activate_next_stage: bool = False) -> bool:
        """Queue an event. Returns False when it was dropped."""
        key = event.key()
        if key in self._seen:
            logger.warning(f"Dropping repeated {key[0]} event for {key[1]}: automation cycle")
            return False
        if self.accepted >= self.max_events:
            logger.warning(
                f"Dropping {key[0]} event for {key[1]}: chain limit of {self.max_events} events reached"
            )
            return False

        self._seen.add(key)
        self._queue.append(QueuedEvent(event, run_cascade, activate_next_stage))
        self.accepted += 1
        if activate_next_stage and event.stage_id:
            self.activating_stages.add(event.stage_id)
        return True

    def pop(self) -> QueuedEvent:
        return self._queue.popleft()

    def __len__(self) -> int:
        return len(self._queue)


class AutomationDispatcher:
    """Runs matched automations for project events."""

    def __init__(
        self,
        projects: ProjectRepository,
        tasks: TaskRepository,
        stages: StageRepository,
        automations: AutomationRepository,
        executor: ActionExecutor,
        execution_log: ExecutionLogger,
        progression: StageProgression,
        config: AutomationConfig,
    ):
        self.projects = projects
        self.tasks = tasks
        self.stages = stages
        self.automations = automations
        self.executor = executor
        self.execution_log = execution_log
        self.progression = progression
        self.config = config

    # ==================== ENTRY POINTS ====================

    async def evaluate(self, project_id: str, event: TriggerEvent, run_cascade: bool = False) -> None:
        """
        Evaluate automations for an event. Never raises.

        With run_cascade, a task_completed event also checks whether its
        task finished a stage.
        """
        try:
            project = await self._load_project(project_id, event.type.value)
            if project is None:
                return

            run = DispatchRun(self.config.max_chain_events)
            run.push(event, run_cascade=run_cascade and event.type == TriggerType.TASK_COMPLETED)
            await self._drain(project, run)

        except Exception as e:
            logger.error(f"Automation dispatch failed for project {project_id} ({event.type.value}): {e}",
                         exc_info=True)

    async def advance_stages(self, project_id: str, task_id: str) -> None:
        """
        Stage cascade for a completed task. Never raises.

        Completes the task's stage when it is done, runs stage_completed
        automations, then activates the next pending stage.
        """
        try:
            project = await self._load_project(project_id, "stage cascade")
            if project is None:
                return

            run = DispatchRun(self.config.max_chain_events)
            await self._cascade(project, task_id, run)
            await self._drain(project, run)

        except Exception as e:
            logger.error(f"Stage cascade failed for project {project_id}, task {task_id}: {e}", exc_info=True)

    # ==================== RUN LOOP ====================

    async def _load_project(self, project_id: str, what: str) -> Optional[ProjectDB]:
        project = await self.projects.get_by_id(project_id)
        if project is None:
            logger.warning(f"Project {project_id} not found, skipping {what}")
        return project

    async def _drain(self, project: ProjectDB, run: DispatchRun) -> None:
        while len(run):
            item = run.pop()
            what = f"{item.event.type.value} event for project {project.id}"

            if project.template_id:
                try:
                    await self._dispatch_rules(project, item.event, run)
                except Exception as e:
                    logger.error(f"Error running automations for {what}: {e}", exc_info=True)

            if item.run_cascade and item.event.task_id:
                try:
                    await self._cascade(project, item.event.task_id, run)
                except Exception as e:
                    logger.error(f"Error checking stage completion for {what}: {e}", exc_info=True)

            if item.activate_next_stage:
                try:
                    await self.progression.activate_next_stage(project.id)
                except Exception as e:
                    logger.error(f"Error activating next stage for {what}: {e}", exc_info=True)

    async def _cascade(self, project: ProjectDB, task_id: str, run: DispatchRun) -> None:
        stage_id, newly_completed = await self.progression.complete_stage_if_done(project.id, task_id)
        if not stage_id:
            return

        if not newly_completed:
            # Completed earlier; activate unless this run already queued it
            if stage_id not in run.activating_stages:
                await self.progression.activate_next_stage(project.id)
            return

        queued = run.push(
            TriggerEvent(type=TriggerType.STAGE_COMPLETED, stage_id=stage_id),
            activate_next_stage=True,
        )
        if not queued:
            await self.progression.activate_next_stage(project.id)

    async def _dispatch_rules(self, project: ProjectDB, event: TriggerEvent, run: DispatchRun) -> None:
        rows = await self.automations.get_active_for_trigger(project.template_id, event.type.value)
        if not rows:
            return

        context = await self._load_context(project.id, event)
        payload = event.to_payload()

        logger.info(f"Evaluating {len(rows)} automation(s) for {event.type.value} on project {project.id}")
        for row in rows:
            await self._evaluate_rule(row, project, event, context, payload, run)

    async def _load_context(self, project_id: str, event: TriggerEvent) -> AutomationContext:
        tasks = await self.tasks.get_by_project(project_id)
        stages = await self.stages.get_by_project(project_id)
        context = AutomationContext(tasks=tasks, stages=stages)
        context.task = context.task_by_id(event.task_id)
        context.stage = context.stage_by_id(event.stage_id)
        return context

    async def _evaluate_rule(
        self,
        row: AutomationDB,
        project: ProjectDB,
        event: TriggerEvent,
        context: AutomationContext,
        payload: dict,
        run: DispatchRun,
    ) -> None:
        try:
            rule = AutomationRule.model_validate(row)
        except ValidationError as e:
            message = describe_validation_error(e)
            logger.error(f"Automation {row.id} has an invalid configuration: {message}")
            await self.execution_log.failed(row.id, project.id, payload, message)
            return

        if rule.delay_minutes > 0:
            # Fired later by an external sweep
            await self.execution_log.skipped(rule.id, project.id, payload, {
                "skipped": True,
                "reason": f"Delayed by {rule.delay_minutes} minutes",
            })
            return

        if not matches(rule, event, context):
            return

        try:
            result = await self.executor.execute(rule, project, context)
        except Exception as e:
            logger.error(f"Automation '{rule.name}' ({rule.id}) failed: {e}")
            await self.execution_log.failed(rule.id, project.id, payload, str(e))
            return

        if result.skipped:
            logger.info(f"Automation '{rule.name}' skipped: {result.reason}")
            await self.execution_log.skipped(rule.id, project.id, payload, result.to_dict())
            return

        logger.info(f"Automation '{rule.name}' executed: {rule.action_type.value}")
        await self.execution_log.success(rule.id, project.id, payload, result.to_dict())

        for emitted in result.emitted_events:
            run.push(emitted, run_cascade=emitted.type == TriggerType.TASK_COMPLETED)
