"""Storage interfaces for the execution / task / worker / workflow records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from workflow_orchestrator.storage.models import (
    ExecutionRecord,
    ExecutionStatus,
    TaskRecord,
    TaskStatus,
    WorkerRecord,
    WorkflowRecord,
)


class ExecutionStorage(Protocol):
    def migrate(self) -> None: ...

    def create_execution(
        self, input: str, *, status: ExecutionStatus = "draft"
    ) -> ExecutionRecord: ...

    def get_execution(self, execution_id: str) -> ExecutionRecord | None: ...

    def transition_execution(
        self,
        execution_id: str,
        from_statuses: tuple[ExecutionStatus, ...],
        to_status: ExecutionStatus,
    ) -> ExecutionRecord | None:
        """Atomically move to ``to_status`` if the current status is in ``from_statuses``.

        Returns the updated record, or ``None`` when the execution is missing or
        in another status.
        """
        ...

    def update_execution(
        self,
        execution_id: str,
        *,
        status: ExecutionStatus | None = None,
        output: str | None = None,
        workflow_id: str | None = None,
        completed_at: datetime | None = None,
    ) -> ExecutionRecord: ...

    def create_task(
        self,
        execution_id: str,
        *,
        title: str,
        description: str,
        input: str,
        worker_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TaskRecord: ...

    def get_task(self, task_id: str) -> TaskRecord | None: ...

    def update_task(
        self,
        task_id: str,
        *,
        status: TaskStatus | None = None,
        output: str | None = None,
        attempts: int | None = None,
        completed_at: datetime | None = None,
    ) -> TaskRecord: ...

    def list_tasks(self, execution_id: str) -> list[TaskRecord]: ...

    def create_worker(
        self,
        *,
        name: str,
        model: str,
        system_prompt: str,
        user_prompt_template: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> WorkerRecord: ...

    def get_worker(self, worker_id: str) -> WorkerRecord | None: ...

    def create_workflow(
        self,
        *,
        name: str,
        description: str,
        nodes: list[dict[str, Any]],
        edges: list[dict[str, Any]],
    ) -> WorkflowRecord: ...

    def get_workflow(self, workflow_id: str) -> WorkflowRecord | None: ...
