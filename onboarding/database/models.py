"""
SQLAlchemy models for PostgreSQL database.

Schema includes:
- Onboarding projects (one per client engagement)
- Stages and tasks that make up a project's checklist
- E-signature requests and their audit trail
- Automation rules scoped to templates, plus their execution log
- Activity log and email log
"""

import uuid
from datetime import datetime, date
from typing import Optional, List
from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    Date,
    ForeignKey,
    JSON,
    Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
from sqlalchemy.sql import func
import enum


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# ==================== ENUMS ====================

class ProjectStatusEnum(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatusEnum(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    WAITING_CLIENT = "waiting_client"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class StageStatusEnum(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class SignatureStatusEnum(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    VIEWED = "viewed"
    SIGNED = "signed"
    DECLINED = "declined"


class ExecutionStatusEnum(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class ActorTypeEnum(str, enum.Enum):
    STAFF = "staff"
    CLIENT = "client"
    SYSTEM = "system"


# ==================== PROJECTS ====================

class ProjectDB(Base):
    """A client onboarding project, optionally instantiated from a template."""
    __tablename__ = "onboarding_projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    template_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Client contact
    client_company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    client_contact_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    client_contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    community_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    assigned_staff_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    public_token: Mapped[str] = mapped_column(String(64), unique=True, default=lambda: uuid.uuid4().hex)

    status: Mapped[str] = mapped_column(String(20), default=ProjectStatusEnum.DRAFT.value)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    stages: Mapped[List["StageDB"]] = relationship("StageDB", back_populates="project")
    tasks: Mapped[List["TaskDB"]] = relationship("TaskDB", back_populates="project")

    __table_args__ = (
        Index("idx_projects_status", "status"),
        Index("idx_projects_template", "template_id"),
    )


# ==================== STAGES ====================

class StageDB(Base):
    """Ordered phase of a project; tasks reference it by stage_id."""
    __tablename__ = "onboarding_stages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("onboarding_projects.id"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default=StageStatusEnum.PENDING.value)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    project: Mapped["ProjectDB"] = relationship("ProjectDB", back_populates="stages")

    __table_args__ = (
        Index("idx_stages_project_order", "project_id", "order_index"),
        Index("idx_stages_status", "status"),
    )


# ==================== TASKS ====================

class TaskDB(Base):
    """Checklist item of a project."""
    __tablename__ = "onboarding_tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("onboarding_projects.id"), nullable=False)
    stage_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("onboarding_stages.id"), nullable=True)

    # Core fields
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(30), default="documents")  # documents, setup, signatures, ...
    visibility: Mapped[str] = mapped_column(String(20), default="internal")  # internal, external
    assignee_type: Mapped[str] = mapped_column(String(20), default="staff")  # staff, client
    order_index: Mapped[int] = mapped_column(Integer, default=0)

    # Requirements
    requires_file_upload: Mapped[bool] = mapped_column(Boolean, default=False)
    requires_signature: Mapped[bool] = mapped_column(Boolean, default=False)

    # Status
    status: Mapped[str] = mapped_column(String(20), default=TaskStatusEnum.PENDING.value)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Notes
    client_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    staff_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    project: Mapped["ProjectDB"] = relationship("ProjectDB", back_populates="tasks")

    __table_args__ = (
        Index("idx_tasks_project_order", "project_id", "order_index"),
        Index("idx_tasks_stage", "stage_id"),
        Index("idx_tasks_status", "status"),
    )


# ==================== SIGNATURES ====================

class SignatureDB(Base):
    """E-signature request, optionally linked to a task and a document."""
    __tablename__ = "onboarding_signatures"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("onboarding_projects.id"), nullable=False)
    task_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("onboarding_tasks.id"), nullable=True)
    document_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Signer
    signer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    signer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    signer_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    signer_company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Captured signature
    signature_type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # draw, type
    signature_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # base64 PNG
    typed_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    initials: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    initials_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Capture metadata
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    consent_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    consent_given_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=SignatureStatusEnum.PENDING.value)
    requested_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    viewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    declined_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    decline_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    audit_entries: Mapped[List["SignatureAuditDB"]] = relationship(
        "SignatureAuditDB", back_populates="signature", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_signatures_project", "project_id"),
        Index("idx_signatures_task", "task_id"),
        Index("idx_signatures_status", "status"),
    )


class SignatureAuditDB(Base):
    """Append-only audit trail of signature events."""
    __tablename__ = "onboarding_signature_audit"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    signature_id: Mapped[str] = mapped_column(String(36), ForeignKey("onboarding_signatures.id"), nullable=False)

    event_type: Mapped[str] = mapped_column(String(30), nullable=False)
    event_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    signature: Mapped["SignatureDB"] = relationship("SignatureDB", back_populates="audit_entries")

    __table_args__ = (
        Index("idx_signature_audit_signature", "signature_id"),
    )


# ==================== AUTOMATIONS ====================

class AutomationDB(Base):
    """Trigger -> action rule scoped to a project template."""
    __tablename__ = "onboarding_automations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    template_id: Mapped[str] = mapped_column(String(36), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    trigger_type: Mapped[str] = mapped_column(String(30), nullable=False)
    trigger_config: Mapped[dict] = mapped_column(JSON, default=dict)
    action_type: Mapped[str] = mapped_column(String(30), nullable=False)
    action_config: Mapped[dict] = mapped_column(JSON, default=dict)

    delay_minutes: Mapped[int] = mapped_column(Integer, default=0)
    order_index: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_automations_lookup", "template_id", "trigger_type", "is_active"),
        Index("idx_automations_order", "template_id", "order_index"),
    )


class AutomationLogDB(Base):
    """Execution history for automations. Never updated once written."""
    __tablename__ = "onboarding_automation_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    automation_id: Mapped[str] = mapped_column(String(36), ForeignKey("onboarding_automations.id"), nullable=False)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("onboarding_projects.id"), nullable=False)

    trigger_event: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    action_result: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=ExecutionStatusEnum.SUCCESS.value)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    executed_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_automation_log_automation", "automation_id"),
        Index("idx_automation_log_executed", "executed_at"),
    )


# ==================== ACTIVITY & EMAIL LOGS ====================

class ActivityLogDB(Base):
    """Project activity feed shown to staff."""
    __tablename__ = "onboarding_activity_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("onboarding_projects.id"), nullable=False)
    task_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    actor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    actor_type: Mapped[str] = mapped_column(String(20), default=ActorTypeEnum.SYSTEM.value)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_activity_project", "project_id", "created_at"),
    )


class EmailLogDB(Base):
    """Every outbound email attempt."""
    __tablename__ = "onboarding_email_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    template_type: Mapped[str] = mapped_column(String(50), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    provider_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="sent")  # sent, failed
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    sent_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_email_log_project", "project_id"),
    )
