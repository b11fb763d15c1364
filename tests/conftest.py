"""
Pytest configuration and shared fixtures.

Engine and portal tests run against in-memory repositories that mirror the
SQLAlchemy repositories' interfaces. Every read returns a fresh ORM object,
as a real session would, so tests see exactly what was written.
"""

import itertools
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from onboarding.automation import (
    ActionExecutor,
    AutomationConfig,
    AutomationDispatcher,
    AutomationEngine,
    ExecutionLogger,
    StageProgression,
)
from onboarding.database.exceptions import RecordNotFoundError, RecordOperationError
from onboarding.database.models import (
    AutomationDB,
    ProjectDB,
    SignatureDB,
    StageDB,
    TaskDB,
)
from onboarding.database.repositories import SIGNABLE_STATUSES
from onboarding.services import PortalService

pytest_plugins = ('pytest_asyncio',)


# ============================================================
# IN-MEMORY RECORD STORE
# ============================================================

class FakeStore:
    """Rows kept as dicts, keyed by id."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.projects: Dict[str, Dict[str, Any]] = {}
        self.stages: Dict[str, Dict[str, Any]] = {}
        self.tasks: Dict[str, Dict[str, Any]] = {}
        self.signatures: Dict[str, Dict[str, Any]] = {}
        self.signature_audit: List[Dict[str, Any]] = []
        self.automations: Dict[str, Dict[str, Any]] = {}
        self.automation_log: List[Dict[str, Any]] = []
        self.activity: List[Dict[str, Any]] = []
        self.emails: List[Dict[str, Any]] = []
        # (table, id, values) for every update issued
        self.writes: List[tuple] = []

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def add_project(self, **fields) -> str:
        project_id = fields.pop("id", None) or self._next_id("project")
        data = {
            "id": project_id,
            "name": "Sunset Ridge HOA",
            "template_id": "template-1",
            "client_company_name": "Sunset Ridge HOA",
            "client_contact_name": "Jordan Lee",
            "client_contact_email": "jordan@sunsetridge.org",
            "community_name": "Sunset Ridge",
            "assigned_staff_email": "onboarding-staff@psprop.net",
            "public_token": f"token-{project_id}",
            "status": "active",
            "started_at": None,
            "completed_at": None,
        }
        data.update(fields)
        self.projects[project_id] = data
        return project_id

    def add_stage(self, project_id: str, name: str, status: str = "pending",
                  order_index: Optional[int] = None) -> str:
        stage_id = self._next_id("stage")
        if order_index is None:
            order_index = sum(1 for s in self.stages.values() if s["project_id"] == project_id)
        self.stages[stage_id] = {
            "id": stage_id,
            "project_id": project_id,
            "name": name,
            "description": None,
            "order_index": order_index,
            "status": status,
        }
        return stage_id

    def add_task(self, project_id: str, title: str, stage_id: Optional[str] = None,
                 status: str = "pending", category: str = "documents",
                 visibility: str = "external", order_index: Optional[int] = None) -> str:
        task_id = self._next_id("task")
        if order_index is None:
            order_index = sum(1 for t in self.tasks.values() if t["project_id"] == project_id)
        self.tasks[task_id] = {
            "id": task_id,
            "project_id": project_id,
            "stage_id": stage_id,
            "title": title,
            "description": None,
            "category": category,
            "visibility": visibility,
            "assignee_type": "client",
            "order_index": order_index,
            "requires_file_upload": False,
            "requires_signature": False,
            "status": status,
            "completed_at": None,
            "completed_by": None,
            "client_notes": None,
            "staff_notes": None,
            "due_date": None,
        }
        return task_id

    def add_signature(self, project_id: str, task_id: Optional[str] = None,
                      status: str = "sent", document_id: Optional[str] = "document-1") -> str:
        signature_id = self._next_id("signature")
        self.signatures[signature_id] = {
            "id": signature_id,
            "project_id": project_id,
            "task_id": task_id,
            "document_id": document_id,
            "signer_name": "Jordan Lee",
            "signer_email": "jordan@sunsetridge.org",
            "status": status,
        }
        return signature_id

    def add_automation(self, name: str, trigger_type: str, action_type: str,
                       trigger_config: Optional[Dict[str, Any]] = None,
                       action_config: Optional[Dict[str, Any]] = None,
                       template_id: str = "template-1", delay_minutes: int = 0,
                       order_index: Optional[int] = None, is_active: bool = True) -> str:
        automation_id = self._next_id("automation")
        if order_index is None:
            order_index = len(self.automations)
        self.automations[automation_id] = {
            "id": automation_id,
            "template_id": template_id,
            "name": name,
            "is_active": is_active,
            "trigger_type": trigger_type,
            "trigger_config": trigger_config or {},
            "action_type": action_type,
            "action_config": action_config or {},
            "delay_minutes": delay_minutes,
            "order_index": order_index,
        }
        return automation_id

    def log_for(self, automation_id: str) -> List[Dict[str, Any]]:
        return [entry for entry in self.automation_log if entry["automation_id"] == automation_id]

    def activity_actions(self) -> List[str]:
        return [entry["action"] for entry in self.activity]


class FakeProjectRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_by_id(self, project_id: str) -> Optional[ProjectDB]:
        data = self.store.projects.get(project_id)
        return ProjectDB(**data) if data else None

    async def update_status(self, project_id: str, status: str) -> ProjectDB:
        data = self.store.projects.get(project_id)
        if data is None:
            raise RecordNotFoundError(f"Project {project_id} not found")
        values = {"status": status}
        if status == "active":
            values["started_at"] = datetime.now()
        elif status == "completed":
            values["completed_at"] = datetime.now()
        data.update(values)
        self.store.writes.append(("projects", project_id, values))
        return ProjectDB(**data)


class FakeTaskRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def _rows(self, project_id: str) -> List[Dict[str, Any]]:
        rows = [t for t in self.store.tasks.values() if t["project_id"] == project_id]
        return sorted(rows, key=lambda t: t["order_index"])

    async def get_by_id(self, project_id: str, task_id: str) -> Optional[TaskDB]:
        data = self.store.tasks.get(task_id)
        if data is None or data["project_id"] != project_id:
            return None
        return TaskDB(**data)

    async def get_by_project(self, project_id: str) -> List[TaskDB]:
        return [TaskDB(**t) for t in self._rows(project_id)]

    async def get_by_stage(self, project_id: str, stage_id: str) -> List[TaskDB]:
        return [TaskDB(**t) for t in self._rows(project_id) if t["stage_id"] == stage_id]

    async def update(self, project_id: str, task_id: str, updates: Dict[str, Any]) -> TaskDB:
        data = self.store.tasks.get(task_id)
        if data is None or data["project_id"] != project_id:
            raise RecordNotFoundError(f"Task {task_id} not found in project {project_id}")
        data.update(updates)
        self.store.writes.append(("tasks", task_id, dict(updates)))
        return TaskDB(**data)

    async def activate(self, project_id: str, task_id: str) -> TaskDB:
        return await self.update(project_id, task_id, {"status": "in_progress"})

    async def complete(self, project_id: str, task_id: str, completed_by: str) -> TaskDB:
        return await self.update(project_id, task_id, {
            "status": "completed",
            "completed_at": datetime.now(),
            "completed_by": completed_by,
        })


class FakeStageRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def _rows(self, project_id: str) -> List[Dict[str, Any]]:
        rows = [s for s in self.store.stages.values() if s["project_id"] == project_id]
        return sorted(rows, key=lambda s: s["order_index"])

    async def get_by_id(self, project_id: str, stage_id: str) -> Optional[StageDB]:
        data = self.store.stages.get(stage_id)
        if data is None or data["project_id"] != project_id:
            return None
        return StageDB(**data)

    async def get_by_project(self, project_id: str) -> List[StageDB]:
        return [StageDB(**s) for s in self._rows(project_id)]

    async def get_first_pending(self, project_id: str) -> Optional[StageDB]:
        pending = [s for s in self._rows(project_id) if s["status"] == "pending"]
        return StageDB(**pending[0]) if pending else None

    async def update_status(self, project_id: str, stage_id: str, status: str) -> StageDB:
        data = self.store.stages.get(stage_id)
        if data is None or data["project_id"] != project_id:
            raise RecordNotFoundError(f"Stage {stage_id} not found in project {project_id}")
        data["status"] = status
        self.store.writes.append(("stages", stage_id, {"status": status}))
        return StageDB(**data)


class FakeAutomationRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_active_for_trigger(self, template_id: str, trigger_type: str) -> List[AutomationDB]:
        rows = [
            a for a in self.store.automations.values()
            if a["template_id"] == template_id and a["trigger_type"] == trigger_type and a["is_active"]
        ]
        return [AutomationDB(**a) for a in sorted(rows, key=lambda a: a["order_index"])]


class FakeAutomationLogRepository:
    def __init__(self, store: FakeStore):
        self.store = store
        self.fail = False

    async def create(self, **entry):
        if self.fail:
            raise RecordOperationError("log table unavailable")
        self.store.automation_log.append(entry)
        return entry


class FakeActivityRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def log(self, **entry):
        self.store.activity.append(entry)
        return entry


class FakeSignatureRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_by_id(self, project_id: str, signature_id: str) -> Optional[SignatureDB]:
        data = self.store.signatures.get(signature_id)
        if data is None or data["project_id"] != project_id:
            return None
        return SignatureDB(**data)

    async def mark_signed(self, project_id, signature_id, values, audit_data,
                          ip_address=None, user_agent=None) -> Optional[SignatureDB]:
        data = self.store.signatures.get(signature_id)
        if data is None or data["project_id"] != project_id or data["status"] not in SIGNABLE_STATUSES:
            return None
        data.update(values)
        data["status"] = "signed"
        self.store.signature_audit.append({
            "signature_id": signature_id,
            "event_type": "signed",
            "event_data": audit_data,
            "ip_address": ip_address,
            "user_agent": user_agent,
        })
        return SignatureDB(**data)


class FakeEmailClient:
    def __init__(self, store: FakeStore):
        self.store = store

    async def send_staff_notification(self, **kwargs) -> Optional[str]:
        self.store.emails.append(kwargs)
        return f"email-{len(self.store.emails)}"


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def store():
    """Empty in-memory record store."""
    return FakeStore()


@pytest.fixture
def repos(store):
    """In-memory repositories over the shared store."""
    return SimpleNamespace(
        projects=FakeProjectRepository(store),
        tasks=FakeTaskRepository(store),
        stages=FakeStageRepository(store),
        automations=FakeAutomationRepository(store),
        automation_log=FakeAutomationLogRepository(store),
        activity=FakeActivityRepository(store),
        signatures=FakeSignatureRepository(store),
        email=FakeEmailClient(store),
    )


@pytest.fixture
def automation_config():
    return AutomationConfig(max_chain_events=20, actor="automation")


@pytest.fixture
def engine(repos, automation_config):
    """AutomationEngine wired to the in-memory repositories."""
    executor = ActionExecutor(
        tasks=repos.tasks,
        stages=repos.stages,
        projects=repos.projects,
        email=repos.email,
        config=automation_config,
    )
    dispatcher = AutomationDispatcher(
        projects=repos.projects,
        tasks=repos.tasks,
        stages=repos.stages,
        automations=repos.automations,
        executor=executor,
        execution_log=ExecutionLogger(repos.automation_log),
        progression=StageProgression(repos.tasks, repos.stages),
        config=automation_config,
    )
    return AutomationEngine(dispatcher)


@pytest.fixture
def portal(repos, engine):
    """PortalService wired to the in-memory repositories and engine."""
    return PortalService(
        tasks=repos.tasks,
        signatures=repos.signatures,
        activity=repos.activity,
        engine=engine,
    )


@pytest.fixture
def mock_database():
    """Mock database with session context manager."""
    db = Mock()
    session = AsyncMock()

    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)

    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.add = Mock()

    db.session = Mock(return_value=session)

    return db, session
