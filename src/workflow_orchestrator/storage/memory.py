"""In-memory storage backend for tests and the CLI."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from workflow_orchestrator.storage.models import (
    ExecutionRecord,
    ExecutionStatus,
    TaskRecord,
    TaskStatus,
    WorkerRecord,
    WorkflowRecord,
)


class InMemoryExecutionStorage:
    """Dict-backed implementation; safe to share between scheduler threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._executions: dict[str, ExecutionRecord] = {}
        self._tasks: dict[str, TaskRecord] = {}
        self._workers: dict[str, WorkerRecord] = {}
        self._workflows: dict[str, WorkflowRecord] = {}

    def migrate(self) -> None:
        return None

    def create_execution(
        self, input: str, *, status: ExecutionStatus = "draft"
    ) -> ExecutionRecord:
        now = datetime.now(UTC)
        record = ExecutionRecord(
            execution_id=str(uuid4()),
            status=status,
            input=input,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._executions[record.execution_id] = record
        return record.model_copy(deep=True)

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        with self._lock:
            record = self._executions.get(execution_id)
        return record.model_copy(deep=True) if record else None

    def transition_execution(
        self,
        execution_id: str,
        from_statuses: tuple[ExecutionStatus, ...],
        to_status: ExecutionStatus,
    ) -> ExecutionRecord | None:
        with self._lock:
            current = self._executions.get(execution_id)
            if current is None or current.status not in from_statuses:
                return None
            updated = current.model_copy(
                update={"status": to_status, "updated_at": datetime.now(UTC)}
            )
            self._executions[execution_id] = updated
        return updated.model_copy(deep=True)

    def update_execution(
        self,
        execution_id: str,
        *,
        status: ExecutionStatus | None = None,
        output: str | None = None,
        workflow_id: str | None = None,
        completed_at: datetime | None = None,
    ) -> ExecutionRecord:
        changes: dict[str, Any] = {"updated_at": datetime.now(UTC)}
        if status is not None:
            changes["status"] = status
        if output is not None:
            changes["output"] = output
        if workflow_id is not None:
            changes["workflow_id"] = workflow_id
        if completed_at is not None:
            changes["completed_at"] = completed_at
        with self._lock:
            current = self._executions.get(execution_id)
            if current is None:
                raise KeyError(f"Execution {execution_id} does not exist")
            updated = current.model_copy(update=changes)
            self._executions[execution_id] = updated
        return updated.model_copy(deep=True)

    def create_task(
        self,
        execution_id: str,
        *,
        title: str,
        description: str,
        input: str,
        worker_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TaskRecord:
        now = datetime.now(UTC)
        record = TaskRecord(
            task_id=str(uuid4()),
            execution_id=execution_id,
            worker_id=worker_id,
            title=title,
            description=description,
            input=input,
            status="pending",
            metadata=dict(metadata or {}),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._tasks[record.task_id] = record
        return record.model_copy(deep=True)

    def get_task(self, task_id: str) -> TaskRecord | None:
        with self._lock:
            record = self._tasks.get(task_id)
        return record.model_copy(deep=True) if record else None

    def update_task(
        self,
        task_id: str,
        *,
        status: TaskStatus | None = None,
        output: str | None = None,
        attempts: int | None = None,
        completed_at: datetime | None = None,
    ) -> TaskRecord:
        changes: dict[str, Any] = {"updated_at": datetime.now(UTC)}
        if status is not None:
            changes["status"] = status
        if output is not None:
            changes["output"] = output
        if attempts is not None:
            changes["attempts"] = attempts
        if completed_at is not None:
            changes["completed_at"] = completed_at
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                raise KeyError(f"Task {task_id} does not exist")
            updated = current.model_copy(update=changes)
            self._tasks[task_id] = updated
        return updated.model_copy(deep=True)

    def list_tasks(self, execution_id: str) -> list[TaskRecord]:
        with self._lock:
            return [
                task.model_copy(deep=True)
                for task in self._tasks.values()
                if task.execution_id == execution_id
            ]

    def create_worker(
        self,
        *,
        name: str,
        model: str,
        system_prompt: str,
        user_prompt_template: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> WorkerRecord:
        record = WorkerRecord(
            worker_id=str(uuid4()),
            name=name,
            model=model,
            system_prompt=system_prompt,
            user_prompt_template=user_prompt_template,
            config=dict(config or {}),
            created_at=datetime.now(UTC),
        )
        with self._lock:
            self._workers[record.worker_id] = record
        return record.model_copy(deep=True)

    def get_worker(self, worker_id: str) -> WorkerRecord | None:
        with self._lock:
            record = self._workers.get(worker_id)
        return record.model_copy(deep=True) if record else None

    def create_workflow(
        self,
        *,
        name: str,
        description: str,
        nodes: list[dict[str, Any]],
        edges: list[dict[str, Any]],
    ) -> WorkflowRecord:
        record = WorkflowRecord(
            workflow_id=str(uuid4()),
            name=name,
            description=description,
            nodes=list(nodes),
            edges=list(edges),
            created_at=datetime.now(UTC),
        )
        with self._lock:
            self._workflows[record.workflow_id] = record
        return record.model_copy(deep=True)

    def get_workflow(self, workflow_id: str) -> WorkflowRecord | None:
        with self._lock:
            record = self._workflows.get(workflow_id)
        return record.model_copy(deep=True) if record else None
