"""
Client portal service.

Handles the two client actions that feed the automation engine:
- Signing a document (signature request -> signed)
- Completing a task or adding notes from the portal

Both validate and write synchronously, raising PortalError subclasses the
HTTP layer maps to responses. Automation follow-ups are scheduled in the
background and never affect the client's result.
"""

import ipaddress
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..automation.engine import AutomationEngine, get_automation_engine
from ..database.models import ActorTypeEnum, SignatureDB, TaskDB, TaskStatusEnum
from ..database.repositories import (
    ActivityRepository,
    SignatureRepository,
    TaskRepository,
    SIGNABLE_STATUSES,
    get_activity_repository,
    get_signature_repository,
    get_task_repository,
)
from ..models.signature import CONSENT_TEXT, SignRequest
from ..models.validation import describe_validation_error
from .errors import PortalNotFoundError, PortalValidationError, SignatureConflictError

logger = logging.getLogger(__name__)

CLIENT_ACTOR = "client"

# Statuses a client may complete a task from
CLIENT_COMPLETABLE_STATUSES = (
    TaskStatusEnum.PENDING.value,
    TaskStatusEnum.IN_PROGRESS.value,
    TaskStatusEnum.WAITING_CLIENT.value,
)


def client_ip(forwarded_for: Optional[str]) -> Optional[str]:
    """First address of an X-Forwarded-For value, if it is a valid IP."""
    if not forwarded_for:
        return None
    candidate = forwarded_for.split(",")[0].strip()
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        logger.debug(f"Ignoring unparseable client address: {candidate!r}")
        return None


class PortalService:
    """Client-facing task and signature operations."""

    def __init__(
        self,
        tasks: Optional[TaskRepository] = None,
        signatures: Optional[SignatureRepository] = None,
        activity: Optional[ActivityRepository] = None,
        engine: Optional[AutomationEngine] = None,
    ):
        self.tasks = tasks or get_task_repository()
        self.signatures = signatures or get_signature_repository()
        self.activity = activity or get_activity_repository()
        self._engine = engine

    @property
    def engine(self) -> AutomationEngine:
        if self._engine is None:
            self._engine = get_automation_engine()
        return self._engine

    # ==================== SIGNING ====================

    async def sign_signature(
        self,
        project_id: str,
        signature_id: str,
        payload: Dict[str, Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignatureDB:
        """
        Sign a pending, sent or viewed signature request.

        Args:
            payload: Sign form fields (see SignRequest)
            ip_address: Raw X-Forwarded-For / remote address value

        Raises:
            PortalNotFoundError: No such signature in the project
            SignatureConflictError: Already signed or declined
            PortalValidationError: Invalid payload or missing consent
        """
        signature = await self.signatures.get_by_id(project_id, signature_id)
        if signature is None:
            raise PortalNotFoundError("Signature not found")

        if signature.status not in SIGNABLE_STATUSES:
            raise SignatureConflictError(f"Signature has already been {signature.status}")

        try:
            request = SignRequest.model_validate(payload)
        except ValidationError as e:
            raise PortalValidationError(describe_validation_error(e))

        now = datetime.now()
        ip = client_ip(ip_address)

        values: Dict[str, Any] = {
            "signer_name": request.signer_name,
            "signature_type": request.signature_type,
            "signature_data": request.signature_data,
            "typed_name": request.typed_name,
            "consent_text": CONSENT_TEXT,
            "consent_given_at": now,
            "signed_at": now,
            "ip_address": ip,
            "user_agent": user_agent,
        }
        optional_fields = {
            "signer_email": request.signer_email,
            "signer_title": request.signer_title,
            "signer_company": request.signer_company,
            "initials": request.initials,
            "initials_data": request.initials_data,
        }
        values.update({key: value for key, value in optional_fields.items() if value is not None})

        signed = await self.signatures.mark_signed(
            project_id,
            signature_id,
            values,
            audit_data={
                "signer_name": request.signer_name,
                "signature_type": request.signature_type,
                "ip_address": ip,
                "user_agent": user_agent,
            },
            ip_address=ip,
            user_agent=user_agent,
        )
        if signed is None:
            raise SignatureConflictError("Signature is no longer available for signing")

        logger.info(f"Signature {signature_id} signed by {request.signer_name} ({request.signature_type})")

        if signature.task_id:
            await self._complete_signed_task(project_id, signature.task_id, signature_id, request.signer_name)

        await self.activity.log(
            project_id=project_id,
            action="document_signed",
            actor=request.signer_name,
            actor_type=ActorTypeEnum.CLIENT.value,
            task_id=signature.task_id,
            details={
                "signature_id": signature_id,
                "signature_type": request.signature_type,
                "document_id": signature.document_id,
            },
        )

        self.engine.schedule_signature_signed(project_id, signature_id, task_id=signature.task_id)
        return signed

    async def _complete_signed_task(self, project_id: str, task_id: str, signature_id: str, signer_name: str):
        """Complete the task a signature belongs to. Failures do not fail the signing."""
        try:
            task = await self.tasks.get_by_id(project_id, task_id)
            if task is None or task.status == TaskStatusEnum.COMPLETED.value:
                return

            await self.tasks.complete(project_id, task_id, completed_by=CLIENT_ACTOR)
            await self.activity.log(
                project_id=project_id,
                action="task_completed",
                actor=signer_name,
                actor_type=ActorTypeEnum.CLIENT.value,
                task_id=task_id,
                details={"reason": "document_signed", "signature_id": signature_id},
            )
        except Exception as e:
            logger.error(f"Could not complete task {task_id} for signature {signature_id}: {e}", exc_info=True)

    # ==================== TASKS ====================

    async def update_task(
        self,
        project_id: str,
        task_id: str,
        status: Optional[str] = None,
        client_notes: Optional[str] = None,
    ) -> TaskDB:
        """
        Apply a client's task update.

        Clients may only complete an external task, from pending,
        in_progress or waiting_client, and may set client_notes.

        Raises:
            PortalNotFoundError: Unknown or internal task
            PortalValidationError: Disallowed status or empty update
        """
        task = await self.tasks.get_by_id(project_id, task_id)
        if task is None or task.visibility != "external":
            raise PortalNotFoundError("Task not found or not accessible from portal")

        changes: Dict[str, Any] = {}
        completing = False

        if status is not None:
            if status != TaskStatusEnum.COMPLETED.value:
                raise PortalValidationError('Clients can only set status to "completed"')
            if task.status not in CLIENT_COMPLETABLE_STATUSES:
                raise PortalValidationError(f'Cannot mark task as completed from status "{task.status}"')
            changes["status"] = TaskStatusEnum.COMPLETED.value
            changes["completed_at"] = datetime.now()
            changes["completed_by"] = CLIENT_ACTOR
            completing = True

        if client_notes is not None:
            if not isinstance(client_notes, str):
                raise PortalValidationError("client_notes must be a string")
            changes["client_notes"] = client_notes

        if not changes:
            raise PortalValidationError("No valid updates provided. Allowed: status, client_notes")

        previous_status = task.status
        updated = await self.tasks.update(project_id, task_id, changes)

        if completing:
            logger.info(f"Client completed task {task_id} ('{task.title}') in project {project_id}")
            await self.activity.log(
                project_id=project_id,
                action="task_completed",
                actor=CLIENT_ACTOR,
                actor_type=ActorTypeEnum.CLIENT.value,
                task_id=task_id,
                details={"task_title": task.title, "previous_status": previous_status},
            )

        if "client_notes" in changes:
            await self.activity.log(
                project_id=project_id,
                action="task_notes_added",
                actor=CLIENT_ACTOR,
                actor_type=ActorTypeEnum.CLIENT.value,
                task_id=task_id,
                details={"task_title": task.title},
            )

        if completing:
            self.engine.schedule_task_completed(project_id, task_id)

        return updated


# Singleton
_portal_service: Optional[PortalService] = None


def get_portal_service() -> PortalService:
    """Get the portal service singleton."""
    global _portal_service
    if _portal_service is None:
        _portal_service = PortalService()
    return _portal_service
