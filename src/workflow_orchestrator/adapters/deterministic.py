"""Offline executor that answers every worker without calling a model."""

from __future__ import annotations

import json
import re
from typing import Any

from workflow_orchestrator.adapters.base import render_user_prompt
from workflow_orchestrator.runtime.system_workers import (
    LOGIC_CHECKER_ID,
    ORCHESTRATOR_ID,
    PLANNER_ID,
)
from workflow_orchestrator.storage.models import TaskRecord, WorkerRecord

MAX_CLAUSE_TASKS = 5
_CLAUSE_SPLIT = re.compile(r"(?<=[.!?;])\s+|\s+and then\s+", flags=re.IGNORECASE)


class DeterministicExecutor:
    def execute(self, worker: WorkerRecord, task: TaskRecord) -> str:
        if worker.worker_id == PLANNER_ID:
            return json.dumps(build_plan(task.input))
        if worker.worker_id == ORCHESTRATOR_ID:
            return json.dumps(build_roster(task.input))
        if worker.worker_id == LOGIC_CHECKER_ID:
            return json.dumps(check_output(task.input))
        prompt = render_user_prompt(worker, task.input)
        return f"[{worker.name}] Completed: {prompt.strip()}"


def build_plan(request: str) -> dict[str, Any]:
    """Split the request into clauses; a single clause becomes a three-step chain."""
    clauses = _clauses(request)
    if len(clauses) < 2:
        subject = request.strip()
        tasks = [
            _task("Analyze the request", f"Identify what is being asked: {subject}", [], "low"),
            _task("Produce the result", f"Carry out the request: {subject}", [0], "medium"),
            _task("Review and finalize", f"Check the result against the request: {subject}", [1], "low"),
        ]
        return {"overall_strategy": "Analyze, produce, then review.", "tasks": tasks}

    tasks = [
        _task(f"Step {index + 1}", clause, [], "medium")
        for index, clause in enumerate(clauses[:MAX_CLAUSE_TASKS])
    ]
    tasks.append(
        _task(
            "Combine results",
            f"Merge the outputs of every step into one answer for: {request.strip()}",
            list(range(len(tasks))),
            "low",
        )
    )
    return {
        "overall_strategy": "Handle each part of the request independently, then combine.",
        "tasks": tasks,
    }


def build_roster(orchestrator_input: str) -> dict[str, Any]:
    payload = json.loads(orchestrator_input)
    plan_tasks = payload.get("plan", {}).get("tasks", [])
    workers = [
        {
            "name": f"{task['title']} Specialist",
            "system_prompt": f"You complete one task: {task['description']}",
            "user_prompt_template": f"Task: {task['title']}\n\n{{{{input}}}}",
            "config": {"temperature": 0.2},
        }
        for task in plan_tasks
    ]
    return {"workers": workers}


def check_output(checker_input: str) -> dict[str, Any]:
    payload = json.loads(checker_input)
    output = str(payload.get("output") or "")
    if output.strip():
        return {"is_complete": True, "feedback": "Output addresses the request.", "missing_items": []}
    return {"is_complete": False, "feedback": "Output is empty.", "missing_items": ["output"]}


def _clauses(request: str) -> list[str]:
    return [part.strip() for part in _CLAUSE_SPLIT.split(request) if part and part.strip()]


def _task(title: str, description: str, dependencies: list[int], complexity: str) -> dict[str, Any]:
    return {
        "title": title,
        "description": description,
        "dependencies": dependencies,
        "estimated_complexity": complexity,
    }
