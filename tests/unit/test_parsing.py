import pytest

from workflow_orchestrator.runtime.errors import OutputParseError
from workflow_orchestrator.runtime.parsing import (
    extract_json_object,
    parse_plan,
    parse_validation_result,
    parse_worker_roster,
    strip_code_fences,
)


def test_strip_code_fences_removes_markdown_wrapper() -> None:
    text = '```json\n{"a": 1}\n```'

    assert strip_code_fences(text) == '{"a": 1}'


def test_extract_json_object_recovers_object_from_prose() -> None:
    text = 'Here is the plan you asked for: {"overall_strategy": "x", "tasks": []} Thanks!'

    assert extract_json_object(text, context="planner") == {"overall_strategy": "x", "tasks": []}


def test_extract_json_object_rejects_empty_and_non_object() -> None:
    with pytest.raises(OutputParseError, match="content is empty"):
        extract_json_object("   ", context="planner")
    with pytest.raises(OutputParseError, match="expected a JSON object"):
        extract_json_object("[1, 2, 3]", context="planner")
    with pytest.raises(OutputParseError, match="not valid JSON"):
        extract_json_object("no json here", context="planner")


def test_parse_plan_accepts_fenced_output_and_null_dependencies() -> None:
    raw = """```json
    {
      "overall_strategy": "Research then write",
      "tasks": [
        {"title": "Research", "description": "Collect facts", "dependencies": null},
        {"title": "Write", "description": "Draft the post", "dependencies": [0],
         "estimated_complexity": "medium", "extra": "ignored"}
      ]
    }
    ```"""

    plan = parse_plan(raw)

    assert plan.overall_strategy == "Research then write"
    assert [task.dependencies for task in plan.tasks] == [[], [0]]
    assert plan.tasks[1].estimated_complexity == "medium"


def test_parse_plan_rejects_missing_tasks() -> None:
    with pytest.raises(OutputParseError) as exc_info:
        parse_plan('{"overall_strategy": "nothing to do", "tasks": []}')

    assert "Failed to parse planner output" in str(exc_info.value)
    assert "tasks" in str(exc_info.value)


def test_parse_worker_roster_accepts_agents_alias() -> None:
    raw = (
        '{"agents": [{"name": "Researcher", "system_prompt": "You research.", '
        '"user_prompt_template": "Research: {{input}}", "config": null}]}'
    )

    roster = parse_worker_roster(raw)

    assert roster.workers[0].name == "Researcher"
    assert roster.workers[0].config == {}
    assert roster.workers[0].model is None


def test_parse_validation_result_defaults() -> None:
    verdict = parse_validation_result('{"is_complete": false}')

    assert verdict.is_complete is False
    assert verdict.feedback == ""
    assert verdict.missing_items == []


def test_parse_validation_result_requires_verdict() -> None:
    with pytest.raises(OutputParseError, match="logic check"):
        parse_validation_result('{"feedback": "looks fine"}')
