"""Errors raised while executing an automation action."""


class AutomationError(Exception):
    """Base exception for automation failures."""
    pass


class AutomationConfigError(AutomationError):
    """The rule's action config is missing or does not fit its action type."""
    pass


class AutomationTargetNotFoundError(AutomationError):
    """The task or stage named by the rule does not exist in the project."""
    pass
