"""
Automation engine for onboarding projects.

Rules attached to a project template react to project events (task or stage
completed, project created, file uploaded, signature signed) with one
action each, and every logged outcome lands in the execution log.
"""

from .config import AutomationConfig
from .context import AutomationContext
from .results import ActionResult
from .errors import AutomationError, AutomationConfigError, AutomationTargetNotFoundError
from .matcher import matches
from .actions import ActionExecutor
from .execution_log import ExecutionLogger
from .progression import StageProgression
from .dispatcher import AutomationDispatcher, DispatchRun
from .engine import AutomationEngine, get_automation_engine, init_automation_engine

__all__ = [
    "AutomationConfig",
    "AutomationContext",
    "ActionResult",
    "AutomationError",
    "AutomationConfigError",
    "AutomationTargetNotFoundError",
    "matches",
    "ActionExecutor",
    "ExecutionLogger",
    "StageProgression",
    "AutomationDispatcher",
    "DispatchRun",
    "AutomationEngine",
    "get_automation_engine",
    "init_automation_engine",
]
