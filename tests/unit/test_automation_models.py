"""
Unit tests for automation rule, trigger event and sign request models.
"""

import pytest
from pydantic import ValidationError

from onboarding.database.models import AutomationDB
from onboarding.models import (
    AutomationRule,
    ActionType,
    ProjectStatus,
    SendEmailAction,
    SignRequest,
    StageNameAction,
    TaskCompletedCondition,
    TaskTitleAction,
    TriggerEvent,
    TriggerType,
    describe_validation_error,
)


def _rule(**overrides):
    data = {
        "name": "Kickoff after W-9",
        "trigger_type": "task_completed",
        "trigger_config": {"task_title": "Submit W-9"},
        "action_type": "activate_task",
        "action_config": {"task_title": "Schedule Kickoff Call"},
    }
    data.update(overrides)
    return AutomationRule.model_validate(data)


# ============================================================
# AUTOMATION RULES
# ============================================================

class TestAutomationRule:
    """Typed config parsing at rule creation."""

    def test_configs_parse_into_typed_variants(self):
        rule = _rule()

        assert rule.trigger_type == TriggerType.TASK_COMPLETED
        assert rule.action_type == ActionType.ACTIVATE_TASK
        assert isinstance(rule.trigger_config, TaskCompletedCondition)
        assert rule.trigger_config.task_title == "Submit W-9"
        assert isinstance(rule.action_config, TaskTitleAction)
        assert rule.action_config.task_title == "Schedule Kickoff Call"
        assert rule.delay_minutes == 0

    def test_stage_actions_use_stage_name_config(self):
        rule = _rule(action_type="complete_stage", action_config={"stage_name": "Documents"})
        assert isinstance(rule.action_config, StageNameAction)

    def test_unknown_trigger_type_rejected(self):
        with pytest.raises(ValidationError, match="Invalid trigger_type"):
            _rule(trigger_type="invoice_paid")

    def test_unknown_action_type_rejected(self):
        with pytest.raises(ValidationError, match="Invalid action_type"):
            _rule(action_type="delete_project")

    def test_missing_required_action_field(self):
        with pytest.raises(ValidationError) as exc_info:
            _rule(action_config={})

        assert describe_validation_error(exc_info.value) == (
            "action_config.task_title is required for activate_task"
        )

    def test_unknown_config_key_rejected(self):
        with pytest.raises(ValidationError, match="trigger_config.stage_name is not supported"):
            _rule(trigger_config={"stage_name": "Documents"})

    def test_blank_condition_values_count_as_unset(self):
        rule = _rule(trigger_config={"task_title": "", "task_category": "  "})

        assert rule.trigger_config.is_empty()

    def test_absent_trigger_config_is_empty_condition(self):
        rule = _rule(trigger_config=None)

        assert rule.trigger_config.is_empty()

    def test_send_email_defaults(self):
        rule = _rule(action_type="send_email", action_config={})

        assert isinstance(rule.action_config, SendEmailAction)
        assert rule.action_config.recipient_type == "staff"
        assert rule.action_config.template_type == "staff_notification"
        assert rule.action_config.subject is None

    def test_send_email_rejects_unknown_recipient(self):
        with pytest.raises(ValidationError):
            _rule(action_type="send_email", action_config={"recipient_type": "board"})

    def test_project_status_must_be_lifecycle_state(self):
        rule = _rule(action_type="update_project_status", action_config={"status": "completed"})
        assert rule.action_config.status == ProjectStatus.COMPLETED

        with pytest.raises(ValidationError):
            _rule(action_type="update_project_status", action_config={"status": "archived"})

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            _rule(delay_minutes=-5)

    def test_parses_from_orm_row(self):
        row = AutomationDB(
            id="automation-1",
            template_id="template-1",
            name="Notify staff",
            is_active=True,
            trigger_type="stage_completed",
            trigger_config={"stage_name": "Documents"},
            action_type="send_email",
            action_config={"recipient_type": "staff", "subject": "Documents done"},
            delay_minutes=None,
            order_index=2,
        )

        rule = AutomationRule.model_validate(row)

        assert rule.id == "automation-1"
        assert rule.trigger_config.stage_name == "Documents"
        assert rule.action_config.subject == "Documents done"
        assert rule.delay_minutes == 0

    def test_to_record_stores_plain_json(self):
        record = _rule(action_type="update_project_status", action_config={"status": "active"}).to_record()

        assert record["trigger_type"] == "task_completed"
        assert record["trigger_config"] == {"task_title": "Submit W-9"}
        assert record["action_config"] == {"status": "active"}


# ============================================================
# TRIGGER EVENTS
# ============================================================

class TestTriggerEvent:
    """Correlation id rules per event type."""

    def test_task_completed_requires_task_id(self):
        with pytest.raises(ValidationError, match="task_id is required"):
            TriggerEvent(type=TriggerType.TASK_COMPLETED)

    def test_stage_completed_requires_stage_id(self):
        with pytest.raises(ValidationError, match="stage_id is required"):
            TriggerEvent(type="stage_completed")

    def test_unrelated_id_rejected(self):
        with pytest.raises(ValidationError, match="stage_id not allowed"):
            TriggerEvent(type="task_completed", task_id="task-1", stage_id="stage-1")

    def test_file_uploaded_may_name_its_task(self):
        event = TriggerEvent(type="file_uploaded", file_id="file-1", task_id="task-1")

        assert event.correlation_id == "file-1"
        assert event.key() == ("file_uploaded", "file-1")

    def test_project_created_carries_no_ids(self):
        event = TriggerEvent(type="project_created")

        assert event.key() == ("project_created", None)
        assert event.to_payload() == {"type": "project_created"}

    def test_payload_omits_unset_ids(self):
        event = TriggerEvent(type="signature_signed", signature_id="signature-9")

        assert event.to_payload() == {"type": "signature_signed", "signature_id": "signature-9"}


# ============================================================
# SIGN REQUESTS
# ============================================================

class TestSignRequest:
    """Signature payload validation."""

    def test_drawn_signature(self):
        request = SignRequest(
            signer_name="  Jordan Lee ",
            signature_type="draw",
            signature_data="data:image/png;base64,iVBORw0KGgo=",
            consent_given=True,
        )
        assert request.signer_name == "Jordan Lee"

    def test_typed_signature(self):
        request = SignRequest(
            signer_name="Jordan Lee",
            signature_type="type",
            typed_name="Jordan Lee",
            signer_email="jordan@sunsetridge.org",
            consent_given=True,
        )
        assert request.typed_name == "Jordan Lee"

    def test_blank_optional_fields_become_none(self):
        request = SignRequest(
            signer_name="Jordan Lee",
            signature_type="type",
            typed_name="Jordan Lee",
            signer_title="",
            initials="  ",
            initials_data="",
            consent_given=True,
        )
        assert request.signer_title is None
        assert request.initials is None
        assert request.initials_data is None

    def test_draw_requires_image(self):
        with pytest.raises(ValidationError, match="signature_data is required"):
            SignRequest(signer_name="Jordan Lee", signature_type="draw", consent_given=True)

    def test_type_requires_typed_name(self):
        with pytest.raises(ValidationError, match="typed_name is required"):
            SignRequest(signer_name="Jordan Lee", signature_type="type", typed_name="  ", consent_given=True)

    def test_methods_are_mutually_exclusive(self):
        with pytest.raises(ValidationError, match="typed_name is not allowed"):
            SignRequest(
                signer_name="Jordan Lee",
                signature_type="draw",
                signature_data="data:image/png;base64,AAAA",
                typed_name="Jordan Lee",
                consent_given=True,
            )

    def test_consent_required(self):
        with pytest.raises(ValidationError) as exc_info:
            SignRequest(signer_name="Jordan Lee", signature_type="type", typed_name="Jordan Lee")

        assert describe_validation_error(exc_info.value) == "Consent must be given to sign electronically"

    def test_signer_name_required(self):
        with pytest.raises(ValidationError):
            SignRequest(signer_name="   ", signature_type="type", typed_name="J", consent_given=True)

    def test_invalid_signer_email_rejected(self):
        with pytest.raises(ValidationError):
            SignRequest(
                signer_name="Jordan Lee",
                signature_type="type",
                typed_name="Jordan Lee",
                signer_email="not-an-email",
                consent_given=True,
            )

    def test_invalid_signature_type_rejected(self):
        with pytest.raises(ValidationError):
            SignRequest(signer_name="Jordan Lee", signature_type="stamp", consent_given=True)
