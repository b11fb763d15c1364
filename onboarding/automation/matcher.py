"""Decides whether a rule's trigger condition holds for an event."""

from ..models.automation import AutomationRule, TriggerEvent, TriggerType
from .context import AutomationContext


def matches(rule: AutomationRule, event: TriggerEvent, context: AutomationContext) -> bool:
    """
    True when the rule should fire for this event.

    Title, name and category comparisons are exact and case-sensitive. A
    condition that names a task or stage never matches when the event's
    task or stage is not in the context.
    """
    if event.type != rule.trigger_type:
        return False

    condition = rule.trigger_config

    if event.type == TriggerType.TASK_COMPLETED:
        if condition.task_title:
            return context.task is not None and context.task.title == condition.task_title
        if condition.task_category:
            return context.task is not None and context.task.category == condition.task_category
        return True

    if event.type == TriggerType.STAGE_COMPLETED:
        if condition.stage_name:
            return context.stage is not None and context.stage.name == condition.stage_name
        return True

    if event.type == TriggerType.FILE_UPLOADED:
        if condition.task_title:
            return context.task is not None and context.task.title == condition.task_title
        return True

    # project_created, signature_signed
    return True
