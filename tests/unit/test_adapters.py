import io
import json
import time
from datetime import UTC, datetime
from urllib import error

import pytest

from workflow_orchestrator.adapters import llm as llm_module
from workflow_orchestrator.adapters.deterministic import DeterministicExecutor, build_plan
from workflow_orchestrator.adapters.gateway import ExecutorTimeoutError, GatewayExecutor
from workflow_orchestrator.adapters.llm import OpenAIChatExecutor
from workflow_orchestrator.adapters.registry import resolve_executor
from workflow_orchestrator.adapters.validator import LogicCheckValidator
from workflow_orchestrator.config.settings import Settings
from workflow_orchestrator.runtime.errors import OutputParseError
from workflow_orchestrator.runtime.parsing import parse_plan, parse_worker_roster
from workflow_orchestrator.runtime.system_workers import system_worker
from workflow_orchestrator.storage.models import TaskRecord, WorkerRecord


def _task(task_input: str = "hello") -> TaskRecord:
    now = datetime.now(UTC)
    return TaskRecord(
        task_id="t1",
        execution_id="e1",
        title="Greet",
        description="Say hello",
        input=task_input,
        status="pending",
        created_at=now,
        updated_at=now,
    )


def _worker(**overrides) -> WorkerRecord:
    values = {
        "worker_id": "w1",
        "name": "Greeter",
        "model": "gpt-4o-mini",
        "system_prompt": "You greet people.",
        "user_prompt_template": "Greet: {{input}}",
        "config": {"temperature": 0.3, "max_tokens": 200},
        "created_at": datetime.now(UTC),
    }
    values.update(overrides)
    return WorkerRecord(**values)


class _FakeResponse:
    def __init__(self, body: dict) -> None:
        self._body = json.dumps(body).encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *args) -> None:
        return None


def test_gateway_retries_then_succeeds() -> None:
    class Flaky:
        def __init__(self) -> None:
            self.calls = 0

        def execute(self, worker, task) -> str:
            self.calls += 1
            if self.calls < 2:
                raise RuntimeError("transient")
            return "ok"

    inner = Flaky()
    gateway = GatewayExecutor(inner, timeout_s=1.0, max_retries=2)

    assert gateway.execute(_worker(), _task()) == "ok"
    assert inner.calls == 2


def test_gateway_timeout_counts_as_failed_attempt() -> None:
    class Slow:
        def __init__(self) -> None:
            self.calls = 0

        def execute(self, worker, task) -> str:
            self.calls += 1
            time.sleep(0.2)
            return "too slow"

    inner = Slow()
    gateway = GatewayExecutor(inner, timeout_s=0.01, max_retries=1)

    with pytest.raises(ExecutorTimeoutError, match="timed out"):
        gateway.execute(_worker(), _task())
    time.sleep(0.05)
    assert inner.calls == 2


def test_gateway_reraises_last_error_without_retries() -> None:
    class Broken:
        def execute(self, worker, task) -> str:
            raise ValueError("bad request")

    with pytest.raises(ValueError, match="bad request"):
        GatewayExecutor(Broken(), timeout_s=1.0).execute(_worker(), _task())


def test_openai_executor_sends_rendered_prompt(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict = {}

    def fake_urlopen(req, timeout):
        captured["url"] = req.full_url
        captured["timeout"] = timeout
        captured["body"] = json.loads(req.data.decode("utf-8"))
        return _FakeResponse({"choices": [{"message": {"content": "Hello, Ada!"}}]})

    monkeypatch.setattr(llm_module.request, "urlopen", fake_urlopen)
    executor = OpenAIChatExecutor(api_key="sk-test", base_url="https://llm.example/v1/", timeout_s=5)

    output = executor.execute(_worker(), _task("Ada"))

    assert output == "Hello, Ada!"
    assert captured["url"] == "https://llm.example/v1/chat/completions"
    assert captured["timeout"] == 5
    body = captured["body"]
    assert body["model"] == "gpt-4o-mini"
    assert body["messages"][0] == {"role": "system", "content": "You greet people."}
    assert body["messages"][1] == {"role": "user", "content": "Greet: Ada"}
    assert body["temperature"] == 0.3
    assert body["max_tokens"] == 200


def test_openai_executor_rejects_empty_content(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        llm_module.request,
        "urlopen",
        lambda req, timeout: _FakeResponse({"choices": [{"message": {"content": "  "}}]}),
    )
    executor = OpenAIChatExecutor(api_key="sk-test")

    with pytest.raises(RuntimeError, match="No response received"):
        executor.execute(_worker(), _task())


def test_openai_executor_surfaces_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req, timeout):
        raise error.HTTPError(req.full_url, 429, "Too Many Requests", {}, io.BytesIO(b"rate limited"))

    monkeypatch.setattr(llm_module.request, "urlopen", fake_urlopen)
    executor = OpenAIChatExecutor(api_key="sk-test")

    with pytest.raises(RuntimeError, match="status 429"):
        executor.execute(_worker(), _task())


def test_openai_executor_requires_api_key() -> None:
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        OpenAIChatExecutor(api_key="")


def test_deterministic_plan_chains_single_clause_requests() -> None:
    plan = parse_plan(json.dumps(build_plan("Write a haiku about autumn")))

    assert [task.dependencies for task in plan.tasks] == [[], [0], [1]]


def test_deterministic_plan_fans_out_multi_clause_requests() -> None:
    plan = parse_plan(
        json.dumps(build_plan("Summarize the report. Draft a reply; then list open questions."))
    )

    assert len(plan.tasks) == 4
    assert [task.dependencies for task in plan.tasks[:3]] == [[], [], []]
    assert plan.tasks[3].dependencies == [0, 1, 2]


def test_deterministic_executor_staffs_one_worker_per_task() -> None:
    executor = DeterministicExecutor()
    planner = system_worker("planner", model="gpt-4o-mini")
    orchestrator = system_worker("orchestrator", model="gpt-4o-mini")
    raw_plan = executor.execute(planner, _task("Write a haiku about autumn"))
    roster_input = json.dumps({"original_request": "x", "plan": json.loads(raw_plan)})

    roster = parse_worker_roster(executor.execute(orchestrator, _task(roster_input)))

    assert len(roster.workers) == 3
    assert all("{{input}}" in (spec.user_prompt_template or "") for spec in roster.workers)


def test_deterministic_executor_echoes_generated_workers() -> None:
    output = DeterministicExecutor().execute(_worker(), _task("Ada"))

    assert output == "[Greeter] Completed: Greet: Ada"


def test_logic_check_validator_sends_typed_payload() -> None:
    class RecordingExecutor:
        def __init__(self) -> None:
            self.seen: list[tuple[WorkerRecord, TaskRecord]] = []

        def execute(self, worker, task) -> str:
            self.seen.append((worker, task))
            return '```json\n{"is_complete": false, "feedback": "too short", "missing_items": ["intro"]}\n```'

    executor = RecordingExecutor()
    verdict = LogicCheckValidator(executor, model="gpt-4o").validate("task", "write intro", "hi")

    assert verdict.is_complete is False
    assert verdict.missing_items == ["intro"]
    worker, task = executor.seen[0]
    assert worker.worker_id == "system-logic-checker"
    assert worker.model == "gpt-4o"
    assert json.loads(task.input) == {"type": "task", "original_input": "write intro", "output": "hi"}


def test_logic_check_validator_rejects_malformed_verdict() -> None:
    class Garbage:
        def execute(self, worker, task) -> str:
            return "I think it is fine"

    with pytest.raises(OutputParseError):
        LogicCheckValidator(Garbage()).validate("plan", "request", "{}")


def test_deterministic_logic_check_rejects_empty_output() -> None:
    verdict = LogicCheckValidator(DeterministicExecutor()).validate("task", "request", "   ")

    assert verdict.is_complete is False


def test_resolve_executor_defaults_to_deterministic() -> None:
    resolution = resolve_executor(Settings(executor_mode="deterministic"))

    assert resolution.effective_mode == "deterministic"
    assert resolution.fallback_reason is None
    assert isinstance(resolution.executor, GatewayExecutor)
    assert isinstance(resolution.executor.inner, DeterministicExecutor)


def test_resolve_executor_falls_back_without_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("WORKFLOW_ORCHESTRATOR_OPENAI_API_KEY", raising=False)

    resolution = resolve_executor(Settings(executor_mode="llm", openai_api_key=""))

    assert resolution.requested_mode == "llm"
    assert resolution.effective_mode == "deterministic"
    assert "OPENAI_API_KEY" in (resolution.fallback_reason or "")


def test_resolve_executor_falls_back_for_unknown_provider() -> None:
    resolution = resolve_executor(
        Settings(executor_mode="llm", llm_provider="acme", openai_api_key="sk-test")
    )

    assert resolution.effective_mode == "deterministic"
    assert "unsupported executor provider" in (resolution.fallback_reason or "")


def test_resolve_executor_uses_openai_with_key() -> None:
    resolution = resolve_executor(
        Settings(executor_mode="deterministic", openai_api_key="sk-test", executor_max_retries=1),
        mode="llm",
    )

    assert resolution.effective_mode == "llm"
    assert isinstance(resolution.executor.inner, OpenAIChatExecutor)
    assert resolution.executor.max_retries == 1


def test_logic_checks_use_distinct_task_ids() -> None:
    class RecordingExecutor:
        def __init__(self) -> None:
            self.task_ids: list[str] = []

        def execute(self, worker, task) -> str:
            self.task_ids.append(task.task_id)
            return '{"is_complete": true}'

    executor = RecordingExecutor()
    validator = LogicCheckValidator(executor)

    validator.validate("task", "first request", "first output")
    validator.validate("task", "second request", "second output")

    assert len(set(executor.task_ids)) == 2
    assert all(task_id.startswith("logic-check-task-") for task_id in executor.task_ids)
