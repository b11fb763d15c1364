"""
PostgreSQL record store for client onboarding.

Handles:
- Projects, stages and tasks
- E-signature requests and their audit trail
- Template-scoped automation rules and their execution log
- Activity and email logs
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
)
from .models import (
    Base,
    ProjectDB,
    StageDB,
    TaskDB,
    SignatureDB,
    SignatureAuditDB,
    AutomationDB,
    AutomationLogDB,
    ActivityLogDB,
    EmailLogDB,
)
from .exceptions import (
    RecordStoreError,
    RecordStoreConnectionError,
    RecordConstraintError,
    RecordOperationError,
    RecordNotFoundError,
    RecordValidationError,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "Base",
    "ProjectDB",
    "StageDB",
    "TaskDB",
    "SignatureDB",
    "SignatureAuditDB",
    "AutomationDB",
    "AutomationLogDB",
    "ActivityLogDB",
    "EmailLogDB",
    "RecordStoreError",
    "RecordStoreConnectionError",
    "RecordConstraintError",
    "RecordOperationError",
    "RecordNotFoundError",
    "RecordValidationError",
]
