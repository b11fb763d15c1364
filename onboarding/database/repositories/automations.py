"""
Automation rule repository.

Handles:
- Active rule lookup for the dispatcher (template + trigger, in order)
- Rule management for staff: create, update, delete, list

Every write goes through AutomationRule so unknown trigger/action types and
malformed configs never reach the table.
"""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import AutomationDB
from ..exceptions import (
    RecordConstraintError,
    RecordOperationError,
    RecordNotFoundError,
    RecordValidationError,
)
from ...models.automation import AutomationRule
from ...models.validation import describe_validation_error

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name",
    "is_active",
    "trigger_type",
    "trigger_config",
    "action_type",
    "action_config",
    "delay_minutes",
    "order_index",
)


def _validate_rule(data: Dict[str, Any]) -> AutomationRule:
    try:
        return AutomationRule.model_validate(data)
    except ValidationError as e:
        raise RecordValidationError(describe_validation_error(e))


class AutomationRepository:
    """Repository for template automation rules."""

    def __init__(self):
        self.db = get_database()

    # ==================== DISPATCH LOOKUP ====================

    async def get_active_for_trigger(self, template_id: str, trigger_type: str) -> List[AutomationDB]:
        """Active rules of a template for one trigger type, by order_index."""
        async with self.db.session() as session:
            result = await session.execute(
                select(AutomationDB)
                .where(
                    AutomationDB.template_id == template_id,
                    AutomationDB.trigger_type == trigger_type,
                    AutomationDB.is_active.is_(True),
                )
                .order_by(AutomationDB.order_index)
            )
            return list(result.scalars().all())

    # ==================== MANAGEMENT ====================

    async def list_for_template(self, template_id: str) -> List[AutomationDB]:
        """All rules of a template, active or not."""
        async with self.db.session() as session:
            result = await session.execute(
                select(AutomationDB)
                .where(AutomationDB.template_id == template_id)
                .order_by(AutomationDB.order_index)
            )
            return list(result.scalars().all())

    async def get_by_id(self, template_id: str, automation_id: str) -> Optional[AutomationDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(AutomationDB).where(
                    AutomationDB.id == automation_id,
                    AutomationDB.template_id == template_id,
                )
            )
            return result.scalar_one_or_none()

    async def create(self, template_id: str, data: Dict[str, Any]) -> AutomationDB:
        """
        Create a rule for a template.

        Raises:
            RecordValidationError: Unknown types or a malformed config
        """
        explicit_order = data.get("order_index") is not None
        rule = _validate_rule({**data, "template_id": template_id})

        async with self.db.session() as session:
            try:
                record = rule.to_record()
                if not explicit_order:
                    result = await session.execute(
                        select(func.max(AutomationDB.order_index))
                        .where(AutomationDB.template_id == template_id)
                    )
                    max_order = result.scalar()
                    record["order_index"] = (max_order + 1) if max_order is not None else 0

                automation = AutomationDB(template_id=template_id, **record)
                session.add(automation)
                await session.flush()

                logger.info(
                    f"Created automation '{rule.name}' for template {template_id} "
                    f"({rule.trigger_type.value} -> {rule.action_type.value})"
                )
                return automation

            except IntegrityError as e:
                logger.error(f"Constraint violation creating automation: {e}")
                raise RecordConstraintError(f"Cannot create automation for template {template_id}")

            except Exception as e:
                logger.error(f"Automation creation failed: {e}", exc_info=True)
                raise RecordOperationError(f"Failed to create automation: {e}")

    async def update(self, template_id: str, automation_id: str, updates: Dict[str, Any]) -> AutomationDB:
        """
        Update the managed fields of a rule. The merged rule is re-validated.

        Raises:
            RecordValidationError: No updatable fields, or the result is invalid
            RecordNotFoundError: Unknown automation for this template
        """
        changes = {key: value for key, value in updates.items() if key in UPDATABLE_FIELDS}
        if not changes:
            raise RecordValidationError(
                f"No valid fields to update. Allowed: {', '.join(UPDATABLE_FIELDS)}"
            )

        async with self.db.session() as session:
            result = await session.execute(
                select(AutomationDB).where(
                    AutomationDB.id == automation_id,
                    AutomationDB.template_id == template_id,
                )
            )
            automation = result.scalar_one_or_none()
            if not automation:
                raise RecordNotFoundError("Automation not found")

            current = {field: getattr(automation, field) for field in UPDATABLE_FIELDS}
            # A new trigger/action type without a config starts from an empty config
            if "trigger_type" in changes and "trigger_config" not in changes:
                current["trigger_config"] = {}
            if "action_type" in changes and "action_config" not in changes:
                current["action_config"] = {}

            rule = _validate_rule({**current, **changes})

            for field, value in rule.to_record().items():
                setattr(automation, field, value)
            automation.updated_at = datetime.now()
            await session.flush()

            logger.info(f"Updated automation {automation_id}: {', '.join(sorted(changes))}")
            return automation

    async def delete(self, template_id: str, automation_id: str) -> bool:
        """Delete a rule. Returns False when nothing matched."""
        async with self.db.session() as session:
            result = await session.execute(
                delete(AutomationDB).where(
                    AutomationDB.id == automation_id,
                    AutomationDB.template_id == template_id,
                )
            )
            deleted = result.rowcount > 0
            if deleted:
                logger.info(f"Deleted automation {automation_id} from template {template_id}")
            return deleted


# Singleton
_automation_repository: Optional[AutomationRepository] = None


def get_automation_repository() -> AutomationRepository:
    """Get the automation repository singleton."""
    global _automation_repository
    if _automation_repository is None:
        _automation_repository = AutomationRepository()
    return _automation_repository
