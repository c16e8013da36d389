from fastapi.testclient import TestClient

from workflow_orchestrator.adapters.deterministic import DeterministicExecutor
from workflow_orchestrator.api.main import create_app
from workflow_orchestrator.config.settings import Settings
from workflow_orchestrator.events import EventBus
from workflow_orchestrator.runtime.schemas import ValidationResult
from workflow_orchestrator.storage.memory import InMemoryExecutionStorage


def _client(**overrides) -> TestClient:
    app = create_app(
        storage=InMemoryExecutionStorage(),
        settings_override=Settings(executor_mode="deterministic"),
        **overrides,
    )
    return TestClient(app)


def test_health_reports_executor_mode() -> None:
    response = _client().get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "service": "workflow-orchestrator",
        "executor_mode": "deterministic",
    }


def test_execution_run_approve_roundtrip() -> None:
    client = _client()

    create_resp = client.post("/executions", json={"input": "Write a short guide to composting"})
    assert create_resp.status_code == 200
    execution = create_resp.json()
    assert execution["status"] == "draft"
    execution_id = execution["execution_id"]

    run_resp = client.post(f"/executions/{execution_id}/run")
    assert run_resp.status_code == 200
    paused = run_resp.json()
    assert paused["status"] == "paused"

    workflow_resp = client.get(f"/workflows/{paused['workflow_id']}")
    assert workflow_resp.status_code == 200
    workflow = workflow_resp.json()
    assert workflow["name"].startswith("Workflow for: Write a short guide")
    worker_id = workflow["nodes"][0]["data"]["worker_id"]
    assert client.get(f"/workers/{worker_id}").status_code == 200

    resume_resp = client.post(f"/executions/{execution_id}/resume")
    assert resume_resp.status_code == 200
    assert resume_resp.json()["status"] == "completed"

    tasks = client.get(f"/executions/{execution_id}/tasks").json()
    assert [task["metadata"]["role"] for task in tasks] == [
        "planner",
        "orchestrator",
        "plan_task",
        "plan_task",
        "plan_task",
    ]
    assert all(task["status"] == "completed" for task in tasks)

    events = client.get(f"/executions/{execution_id}/events").json()
    types = {event["type"] for event in events}
    assert {"execution_update", "task_update", "agent_start", "agent_complete"} <= types


def test_invalid_transition_returns_conflict() -> None:
    client = _client()
    execution_id = client.post("/executions", json={"input": "Plan a picnic"}).json()["execution_id"]

    response = client.post(f"/executions/{execution_id}/resume")

    assert response.status_code == 409
    assert "Cannot resume" in response.json()["detail"]


def test_unknown_records_return_not_found() -> None:
    client = _client()

    assert client.get("/executions/missing").status_code == 404
    assert client.post("/executions/missing/run").status_code == 404
    assert client.get("/workers/missing").status_code == 404
    assert client.get("/workflows/missing").status_code == 404


def test_task_failure_returns_server_error_and_marks_execution_failed() -> None:
    class FailingPlanTasks(DeterministicExecutor):
        def execute(self, worker, task) -> str:
            if worker.worker_id.startswith("system-"):
                return super().execute(worker, task)
            raise RuntimeError("worker model offline")

    class AcceptAll:
        def validate(self, kind, original_input, output) -> ValidationResult:
            return ValidationResult(is_complete=True)

    events = EventBus()
    client = _client(executor=FailingPlanTasks(), validator=AcceptAll(), events=events)
    execution_id = client.post("/executions", json={"input": "Draft a budget"}).json()["execution_id"]
    client.post(f"/executions/{execution_id}/run")

    response = client.post(f"/executions/{execution_id}/resume")

    assert response.status_code == 500
    assert "worker model offline" in response.json()["detail"]
    execution = client.get(f"/executions/{execution_id}").json()
    assert execution["status"] == "failed"
    assert any(event.type == "agent_error" for event in events.history(execution_id))


def test_create_execution_requires_input() -> None:
    response = _client().post("/executions", json={"input": ""})

    assert response.status_code == 422
