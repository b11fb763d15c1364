"""Pydantic models for automation rules, trigger events and portal payloads."""

from .automation import (
    TriggerType,
    ActionType,
    ProjectStatus,
    TaskCompletedCondition,
    StageCompletedCondition,
    FileUploadedCondition,
    ProjectCreatedCondition,
    SignatureSignedCondition,
    TaskTitleAction,
    StageNameAction,
    SendEmailAction,
    ProjectStatusAction,
    TRIGGER_CONDITIONS,
    ACTION_CONFIGS,
    AutomationRule,
    TriggerEvent,
)
from .signature import SignRequest, CONSENT_TEXT
from .validation import describe_validation_error

__all__ = [
    "TriggerType",
    "ActionType",
    "ProjectStatus",
    "TaskCompletedCondition",
    "StageCompletedCondition",
    "FileUploadedCondition",
    "ProjectCreatedCondition",
    "SignatureSignedCondition",
    "TaskTitleAction",
    "StageNameAction",
    "SendEmailAction",
    "ProjectStatusAction",
    "TRIGGER_CONDITIONS",
    "ACTION_CONFIGS",
    "AutomationRule",
    "TriggerEvent",
    "SignRequest",
    "CONSENT_TEXT",
    "describe_validation_error",
]
