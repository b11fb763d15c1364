"""
End-to-end onboarding flows through the portal and the automation engine.

Each test drives the client-facing entry points and checks the resulting
project state, execution log and activity feed.
"""

import pytest

from onboarding.models import TriggerEvent
from onboarding.utils import drain_background_tasks


@pytest.fixture
def onboarding_project(store):
    """Documents -> Agreements -> Launch, with a template of automations."""
    project_id = store.add_project(status="draft")
    documents = store.add_stage(project_id, "Documents", status="active")
    agreements = store.add_stage(project_id, "Agreements")
    launch = store.add_stage(project_id, "Launch")

    store.add_task(project_id, "Submit W-9", stage_id=documents)
    store.add_task(project_id, "Upload Insurance", stage_id=documents, status="in_progress")
    store.add_task(project_id, "Schedule Kickoff Call", stage_id=agreements, visibility="internal")
    store.add_task(project_id, "Sign Agreement", stage_id=agreements, status="waiting_client")
    store.add_task(project_id, "Go Live", stage_id=launch, visibility="internal")

    return project_id, documents, agreements, launch


def _task(store, title):
    return next(t for t in store.tasks.values() if t["title"] == title)


@pytest.mark.asyncio
async def test_project_created_activates_project(engine, store, onboarding_project):
    project_id = onboarding_project[0]
    start = store.add_automation("Start project", "project_created", "update_project_status",
                                 action_config={"status": "active"})
    welcome = store.add_automation("Welcome client", "project_created", "send_email",
                                   action_config={"recipient_type": "client", "subject": "Welcome aboard"})

    await engine.evaluate_automations(project_id, TriggerEvent(type="project_created"))

    assert store.projects[project_id]["status"] == "active"
    assert store.projects[project_id]["started_at"] is not None
    assert [e["status"] for e in store.log_for(start)] == ["success"]
    assert store.log_for(welcome)[0]["action_result"]["to"] == "jordan@sunsetridge.org"


@pytest.mark.asyncio
async def test_w9_completion_activates_kickoff_call(portal, store, onboarding_project):
    project_id = onboarding_project[0]
    rule = store.add_automation("Kickoff after W-9", "task_completed", "activate_task",
                                trigger_config={"task_title": "Submit W-9"},
                                action_config={"task_title": "Schedule Kickoff Call"})

    await portal.update_task(project_id, _task(store, "Submit W-9")["id"], status="completed")
    await drain_background_tasks()

    assert _task(store, "Schedule Kickoff Call")["status"] == "in_progress"
    (entry,) = store.log_for(rule)
    assert entry["status"] == "success"
    assert entry["action_result"]["task_title"] == "Schedule Kickoff Call"
    # Upload Insurance is still open, so Documents stays active
    assert store.stages[onboarding_project[1]]["status"] == "active"


@pytest.mark.asyncio
async def test_full_checklist_walkthrough(portal, engine, repos, store, onboarding_project):
    project_id, documents, agreements, launch = onboarding_project
    store.add_automation("Kickoff after W-9", "task_completed", "activate_task",
                         trigger_config={"task_title": "Submit W-9"},
                         action_config={"task_title": "Schedule Kickoff Call"})
    docs_done = store.add_automation("Notify staff: documents in", "stage_completed", "send_email",
                                     trigger_config={"stage_name": "Documents"},
                                     action_config={"subject": "Documents received"})
    close_kickoff = store.add_automation("Close kickoff on signing", "signature_signed", "complete_task",
                                         action_config={"task_title": "Schedule Kickoff Call"})
    finish = store.add_automation("Finish project", "stage_completed", "update_project_status",
                                  trigger_config={"stage_name": "Launch"},
                                  action_config={"status": "completed"})

    # Client finishes the document stage
    await portal.update_task(project_id, _task(store, "Submit W-9")["id"], status="completed")
    await drain_background_tasks()
    await portal.update_task(project_id, _task(store, "Upload Insurance")["id"], status="completed")
    await drain_background_tasks()

    assert store.stages[documents]["status"] == "completed"
    assert store.stages[agreements]["status"] == "active"
    assert [e["status"] for e in store.log_for(docs_done)] == ["success"]
    assert store.emails[0]["action"] == "Documents received"

    # Client signs the agreement; the automation closes the kickoff task
    signature_id = store.add_signature(project_id, task_id=_task(store, "Sign Agreement")["id"])
    await portal.sign_signature(project_id, signature_id, {
        "signer_name": "Jordan Lee",
        "signature_type": "type",
        "typed_name": "Jordan Lee",
        "consent_given": True,
    }, ip_address="198.51.100.20")
    await drain_background_tasks()

    assert _task(store, "Sign Agreement")["status"] == "completed"
    assert _task(store, "Schedule Kickoff Call")["completed_by"] == "automation"
    assert [e["status"] for e in store.log_for(close_kickoff)] == ["success"]
    assert store.stages[agreements]["status"] == "completed"
    assert store.stages[launch]["status"] == "active"

    # Staff finishes the launch stage
    await repos.tasks.complete(project_id, _task(store, "Go Live")["id"], completed_by="staff")
    await engine.handle_task_completed(project_id, _task(store, "Go Live")["id"])

    assert store.stages[launch]["status"] == "completed"
    assert [e["status"] for e in store.log_for(finish)] == ["success"]
    assert store.projects[project_id]["status"] == "completed"
    assert "document_signed" in store.activity_actions()
