"""Engine configuration, built once at startup and passed in explicitly."""

from dataclasses import dataclass

from config import settings as app_settings


@dataclass(frozen=True)
class AutomationConfig:
    # Most events one dispatch run may process, root event included
    max_chain_events: int = 20
    # completed_by / actor label written by automation actions
    actor: str = "automation"

    @classmethod
    def from_settings(cls, settings=None) -> "AutomationConfig":
        settings = settings or app_settings
        return cls(
            max_chain_events=settings.automation_max_chain_events,
            actor=settings.automation_actor,
        )
