"""Bounded execute-then-validate loop around externally executed work."""

from __future__ import annotations

import logging

from workflow_orchestrator.adapters.base import TaskExecutor, Validator
from workflow_orchestrator.events import EventBus
from workflow_orchestrator.runtime.errors import TaskExecutionError
from workflow_orchestrator.runtime.schemas import ValidationKind, ValidationResult
from workflow_orchestrator.storage.base import ExecutionStorage
from workflow_orchestrator.storage.models import TaskRecord, WorkerRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class ValidationLoop:
    """Execute a task, have it judged, and retry while attempts remain.

    Rejection is never fatal: once attempts run out the last output is
    returned as-is. Only an executor or validator exception ends the loop
    with an error, after the task has been marked ``failed``.
    """

    def __init__(
        self,
        *,
        execution_id: str,
        storage: ExecutionStorage,
        executor: TaskExecutor,
        validator: Validator,
        events: EventBus,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.execution_id = execution_id
        self.storage = storage
        self.executor = executor
        self.validator = validator
        self.events = events
        self.max_attempts = max_attempts

    def execute_with_validation(
        self,
        worker: WorkerRecord,
        task: TaskRecord,
        *,
        original_input: str | None = None,
        kind: ValidationKind = "task",
    ) -> str:
        judged_against = task.input if original_input is None else original_input
        attempts = task.attempts
        output = ""
        for attempt in range(self.max_attempts):
            attempts += 1
            task = self.storage.update_task(task.task_id, status="running", attempts=attempts)
            self._emit_task_update(task, worker, "running", f"Executing task with {worker.name}...")
            try:
                output = self.executor.execute(worker, task)
            except Exception as exc:  # noqa: BLE001
                raise self._fail(task, worker, exc) from exc
            self._emit_task_update(task, worker, "completed", f"Task completed by {worker.name}")

            try:
                verdict = self.validator.validate(kind, judged_against, output)
            except Exception as exc:  # noqa: BLE001
                raise self._fail(task, worker, exc) from exc

            if verdict.is_complete:
                logger.info(
                    "validation_loop event=accepted task_id=%s worker=%s attempt=%d/%d",
                    task.task_id,
                    worker.name,
                    attempt + 1,
                    self.max_attempts,
                )
                return output

            logger.info(
                "validation_loop event=rejected task_id=%s worker=%s attempt=%d/%d feedback=%s",
                task.task_id,
                worker.name,
                attempt + 1,
                self.max_attempts,
                verdict.feedback,
            )
            if attempt < self.max_attempts - 1:
                task = self.storage.update_task(task.task_id, status="pending")

        logger.warning(
            "validation_loop event=degraded task_id=%s worker=%s attempts=%d",
            task.task_id,
            worker.name,
            self.max_attempts,
        )
        return output

    def validate_output(
        self,
        kind: ValidationKind,
        original_input: str,
        output: str,
    ) -> ValidationResult:
        """Judge an output without re-executing it; the last verdict is returned."""
        verdict = ValidationResult(is_complete=False, feedback="not validated")
        for attempt in range(self.max_attempts):
            verdict = self.validator.validate(kind, original_input, output)
            if verdict.is_complete:
                return verdict
            logger.info(
                "validation_loop event=rejected kind=%s execution_id=%s attempt=%d/%d feedback=%s",
                kind,
                self.execution_id,
                attempt + 1,
                self.max_attempts,
                verdict.feedback,
            )
        return verdict

    def _fail(self, task: TaskRecord, worker: WorkerRecord, exc: Exception) -> TaskExecutionError:
        logger.error(
            "validation_loop event=failed task_id=%s worker=%s reason=%s",
            task.task_id,
            worker.name,
            exc,
        )
        self.storage.update_task(task.task_id, status="failed")
        self.events.publish(
            self.execution_id,
            "agent_error",
            {
                "task_id": task.task_id,
                "worker_name": worker.name,
                "status": "failed",
                "message": str(exc),
            },
        )
        return TaskExecutionError(task.task_id, task.title, str(exc))

    def _emit_task_update(
        self,
        task: TaskRecord,
        worker: WorkerRecord,
        status: str,
        message: str,
    ) -> None:
        self.events.publish(
            self.execution_id,
            "task_update",
            {
                "task_id": task.task_id,
                "worker_name": worker.name,
                "status": status,
                "message": message,
            },
        )
