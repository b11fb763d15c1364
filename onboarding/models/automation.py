"""Automation rule and trigger event models.

Rules are stored with loosely-typed JSON configs, but every config is parsed
into a typed variant keyed by the rule's trigger_type / action_type. Parsing
happens when a rule is created or updated, so a rule that reaches the
dispatcher always carries the fields its action needs.
"""

from enum import Enum
from typing import Any, Dict, Literal, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class TriggerType(str, Enum):
    """Domain events that can start an automation."""
    TASK_COMPLETED = "task_completed"
    STAGE_COMPLETED = "stage_completed"
    PROJECT_CREATED = "project_created"
    FILE_UPLOADED = "file_uploaded"
    SIGNATURE_SIGNED = "signature_signed"


class ActionType(str, Enum):
    """The single mutation an automation performs."""
    ACTIVATE_TASK = "activate_task"
    COMPLETE_TASK = "complete_task"
    ACTIVATE_STAGE = "activate_stage"
    COMPLETE_STAGE = "complete_stage"
    SEND_EMAIL = "send_email"
    UPDATE_PROJECT_STATUS = "update_project_status"


class ProjectStatus(str, Enum):
    """Project lifecycle states."""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ============================================
# TRIGGER CONDITIONS
# ============================================

class _RuleConfig(BaseModel):
    """Base for typed trigger/action configs. Blank strings count as unset."""

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: value for key, value in data.items()
                if not (value is None or (isinstance(value, str) and not value.strip()))
            }
        return data

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    def is_empty(self) -> bool:
        return not self.to_dict()


class TaskCompletedCondition(_RuleConfig):
    task_title: Optional[str] = None
    task_category: Optional[str] = None


class StageCompletedCondition(_RuleConfig):
    stage_name: Optional[str] = None


class FileUploadedCondition(_RuleConfig):
    task_title: Optional[str] = None


class ProjectCreatedCondition(_RuleConfig):
    pass


class SignatureSignedCondition(_RuleConfig):
    pass


TriggerCondition = Union[
    TaskCompletedCondition,
    StageCompletedCondition,
    FileUploadedCondition,
    ProjectCreatedCondition,
    SignatureSignedCondition,
]

TRIGGER_CONDITIONS: Dict[TriggerType, Type[_RuleConfig]] = {
    TriggerType.TASK_COMPLETED: TaskCompletedCondition,
    TriggerType.STAGE_COMPLETED: StageCompletedCondition,
    TriggerType.FILE_UPLOADED: FileUploadedCondition,
    TriggerType.PROJECT_CREATED: ProjectCreatedCondition,
    TriggerType.SIGNATURE_SIGNED: SignatureSignedCondition,
}


# ============================================
# ACTION CONFIGS
# ============================================

class TaskTitleAction(_RuleConfig):
    """activate_task / complete_task target."""
    task_title: str = Field(..., max_length=500)


class StageNameAction(_RuleConfig):
    """activate_stage / complete_stage target."""
    stage_name: str = Field(..., max_length=255)


class SendEmailAction(_RuleConfig):
    recipient_type: Literal["client", "staff"] = "staff"
    subject: Optional[str] = Field(None, max_length=500)
    message: Optional[str] = Field(None, max_length=10000)
    template_type: str = "staff_notification"


class ProjectStatusAction(_RuleConfig):
    status: ProjectStatus


ActionConfig = Union[
    TaskTitleAction,
    StageNameAction,
    SendEmailAction,
    ProjectStatusAction,
]

ACTION_CONFIGS: Dict[ActionType, Type[_RuleConfig]] = {
    ActionType.ACTIVATE_TASK: TaskTitleAction,
    ActionType.COMPLETE_TASK: TaskTitleAction,
    ActionType.ACTIVATE_STAGE: StageNameAction,
    ActionType.COMPLETE_STAGE: StageNameAction,
    ActionType.SEND_EMAIL: SendEmailAction,
    ActionType.UPDATE_PROJECT_STATUS: ProjectStatusAction,
}


def _choices(enum_cls: Type[Enum]) -> str:
    return ", ".join(member.value for member in enum_cls)


def _describe_config_error(field: str, kind: str, exc: ValidationError) -> str:
    """Turn a nested config ValidationError into one readable sentence."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        if error["type"] == "missing":
            messages.append(f"{field}.{location} is required for {kind}")
        elif error["type"] == "extra_forbidden":
            messages.append(f"{field}.{location} is not supported for {kind}")
        else:
            messages.append(f"{field}.{location}: {error['msg']}")
    return "; ".join(messages)


def parse_trigger_config(trigger_type: TriggerType, raw: Any) -> _RuleConfig:
    """Parse a raw trigger_config into the variant for trigger_type."""
    condition_cls = TRIGGER_CONDITIONS[trigger_type]
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(exclude_none=True)
    try:
        return condition_cls.model_validate(raw or {})
    except ValidationError as e:
        raise ValueError(_describe_config_error("trigger_config", trigger_type.value, e))


def parse_action_config(action_type: ActionType, raw: Any) -> _RuleConfig:
    """Parse a raw action_config into the variant for action_type."""
    config_cls = ACTION_CONFIGS[action_type]
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(exclude_none=True)
    try:
        return config_cls.model_validate(raw or {})
    except ValidationError as e:
        raise ValueError(_describe_config_error("action_config", action_type.value, e))


# ============================================
# AUTOMATION RULE
# ============================================

class AutomationRule(BaseModel):
    """A validated trigger -> action rule."""

    id: Optional[str] = None
    template_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    is_active: bool = True

    trigger_type: TriggerType
    trigger_config: TriggerCondition
    action_type: ActionType
    action_config: ActionConfig

    delay_minutes: int = Field(0, ge=0)
    order_index: int = 0

    @model_validator(mode="before")
    @classmethod
    def parse_configs(cls, data: Any) -> Any:
        # Accept ORM rows as well as plain dicts
        if not isinstance(data, dict):
            data = {
                name: getattr(data, name)
                for name in cls.model_fields
                if hasattr(data, name)
            }
        else:
            data = dict(data)

        try:
            trigger_type = TriggerType(data.get("trigger_type"))
        except ValueError:
            raise ValueError(f"Invalid trigger_type. Must be one of: {_choices(TriggerType)}")
        try:
            action_type = ActionType(data.get("action_type"))
        except ValueError:
            raise ValueError(f"Invalid action_type. Must be one of: {_choices(ActionType)}")

        data["trigger_type"] = trigger_type
        data["action_type"] = action_type
        data["trigger_config"] = parse_trigger_config(trigger_type, data.get("trigger_config"))
        data["action_config"] = parse_action_config(action_type, data.get("action_config"))
        if data.get("delay_minutes") is None:
            data["delay_minutes"] = 0
        return data

    def to_record(self) -> Dict[str, Any]:
        """Column values for persisting this rule."""
        return {
            "name": self.name,
            "is_active": self.is_active,
            "trigger_type": self.trigger_type.value,
            "trigger_config": self.trigger_config.to_dict(),
            "action_type": self.action_type.value,
            "action_config": self.action_config.to_dict(),
            "delay_minutes": self.delay_minutes,
            "order_index": self.order_index,
        }


# ============================================
# TRIGGER EVENTS
# ============================================

CORRELATION_FIELDS = ("task_id", "stage_id", "file_id", "signature_id")

# The correlation id each event type must carry (None: carries nothing)
EVENT_CORRELATION_FIELD: Dict[TriggerType, Optional[str]] = {
    TriggerType.TASK_COMPLETED: "task_id",
    TriggerType.STAGE_COMPLETED: "stage_id",
    TriggerType.FILE_UPLOADED: "file_id",
    TriggerType.SIGNATURE_SIGNED: "signature_id",
    TriggerType.PROJECT_CREATED: None,
}


class TriggerEvent(BaseModel):
    """A domain occurrence that may cause automations to run."""

    type: TriggerType
    task_id: Optional[str] = None
    stage_id: Optional[str] = None
    file_id: Optional[str] = None
    signature_id: Optional[str] = None

    @model_validator(mode="after")
    def check_correlation_ids(self) -> "TriggerEvent":
        required = EVENT_CORRELATION_FIELD[self.type]
        if required and not getattr(self, required):
            raise ValueError(f"{required} is required for {self.type.value} events")

        allowed = {required} if required else set()
        # A file event may also name the task the file was uploaded against
        if self.type == TriggerType.FILE_UPLOADED:
            allowed.add("task_id")

        unexpected = [name for name in CORRELATION_FIELDS if getattr(self, name) and name not in allowed]
        if unexpected:
            raise ValueError(f"{', '.join(unexpected)} not allowed on {self.type.value} events")
        return self

    @property
    def correlation_id(self) -> Optional[str]:
        field = EVENT_CORRELATION_FIELD[self.type]
        return getattr(self, field) if field else None

    def key(self) -> Tuple[str, Optional[str]]:
        """Identity of the event inside one dispatch run."""
        return (self.type.value, self.correlation_id)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
