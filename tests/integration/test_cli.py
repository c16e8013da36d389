import pytest

from workflow_orchestrator import cli
from workflow_orchestrator.config.settings import get_settings


@pytest.fixture(autouse=True)
def _deterministic_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("WORKFLOW_ORCHESTRATOR_EXECUTOR_MODE", "deterministic")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_cli_stops_at_approval_gate(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["Write a limerick about databases"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Executor mode: deterministic" in output
    assert "[0] Analyze the request" in output
    assert "--approve" in output
    assert "Results:" not in output


def test_cli_approve_runs_all_tasks(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["Write a limerick about databases", "--approve"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Results:" in output
    assert output.count("(completed, attempts=1)") == 3


def test_cli_reports_llm_fallback(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("WORKFLOW_ORCHESTRATOR_OPENAI_API_KEY", "")

    exit_code = cli.main(["Plan a garden", "--mode", "llm"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Executor mode: deterministic" in output
    assert "Fallback: OPENAI_API_KEY is missing" in output
