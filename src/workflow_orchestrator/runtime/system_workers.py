"""Fixed workers that plan, staff and check every execution."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from workflow_orchestrator.storage.models import WorkerRecord

SystemRole = Literal["planner", "orchestrator", "logic_checker"]

PLANNER_ID = "system-task-planner"
ORCHESTRATOR_ID = "system-orchestrator"
LOGIC_CHECKER_ID = "system-logic-checker"

_PLANNER_PROMPT = (
    "You are a task planner. Break the user's request into a small set of concrete, "
    "self-contained sub-tasks that together fully satisfy it. "
    "Return JSON only, with keys 'overall_strategy' (string) and 'tasks' (array). "
    "Each task has 'title', 'description', 'estimated_complexity' (low|medium|high) and "
    "'dependencies': zero-based indices of earlier tasks whose output it needs. "
    "Never create circular dependencies."
)

_ORCHESTRATOR_PROMPT = (
    "You are an orchestrator that staffs a plan. You receive JSON with "
    "'original_request' and 'plan'. Design exactly one specialized worker per plan task, "
    "in the same order as the tasks. Return JSON only with key 'workers': an array of "
    "objects with 'name', 'system_prompt', 'user_prompt_template' (must contain the "
    "literal placeholder {{input}}), 'model' and 'config' (object, may set temperature "
    "and max_tokens)."
)

_LOGIC_CHECKER_PROMPT = (
    "You are a strict reviewer. You receive JSON with 'type' (plan or task), "
    "'original_input' and 'output'. Decide whether the output completely and correctly "
    "addresses the original input. Return JSON only with keys 'is_complete' (boolean), "
    "'feedback' (string) and 'missing_items' (array of strings)."
)

_DEFINITIONS: dict[SystemRole, tuple[str, str, str]] = {
    "planner": (PLANNER_ID, "Task Planner", _PLANNER_PROMPT),
    "orchestrator": (ORCHESTRATOR_ID, "Orchestrator", _ORCHESTRATOR_PROMPT),
    "logic_checker": (LOGIC_CHECKER_ID, "Logic Checker", _LOGIC_CHECKER_PROMPT),
}

_EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


def system_worker(role: SystemRole, *, model: str) -> WorkerRecord:
    worker_id, name, prompt = _DEFINITIONS[role]
    return WorkerRecord(
        worker_id=worker_id,
        name=name,
        model=model,
        system_prompt=prompt,
        user_prompt_template=None,
        config={"temperature": 0},
        created_at=_EPOCH,
    )
