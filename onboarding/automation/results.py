"""Structured outcome of one executed action."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models.automation import TriggerEvent


@dataclass
class ActionResult:
    """
    What an action did.

    A skipped result means the action found nothing to change (the target
    was already in the requested state, or no email address exists).
    emitted_events are follow-up events the dispatcher queues in the same
    run.
    """

    action: str
    data: Dict[str, Any] = field(default_factory=dict)
    skipped: bool = False
    reason: Optional[str] = None
    emitted_events: List[TriggerEvent] = field(default_factory=list)

    @classmethod
    def skip(cls, action: str, reason: str, **data: Any) -> "ActionResult":
        return cls(action=action, data=data, skipped=True, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"action": self.action, **self.data}
        if self.skipped:
            result["skipped"] = True
            result["reason"] = self.reason
        return result
