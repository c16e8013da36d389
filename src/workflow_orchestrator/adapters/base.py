"""Boundary interfaces for the external executor and validator."""

from __future__ import annotations

from typing import Protocol

from workflow_orchestrator.runtime.schemas import ValidationKind, ValidationResult
from workflow_orchestrator.storage.models import TaskRecord, WorkerRecord


class TaskExecutor(Protocol):
    """Run one task with one worker and return its raw text output."""

    def execute(self, worker: WorkerRecord, task: TaskRecord) -> str: ...


class Validator(Protocol):
    """Judge whether an output satisfies the input it was produced for."""

    def validate(
        self,
        kind: ValidationKind,
        original_input: str,
        output: str,
    ) -> ValidationResult: ...


def render_user_prompt(worker: WorkerRecord, task_input: str) -> str:
    template = worker.user_prompt_template
    if template:
        return template.replace("{{input}}", task_input)
    return task_input
