"""Storage models shared by the orchestrator, API and persistence backends."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ExecutionStatus = Literal["draft", "running", "paused", "completed", "failed"]
TaskStatus = Literal["pending", "running", "completed", "failed"]


class ExecutionRecord(BaseModel):
    """One end-to-end orchestration run for a single request."""

    execution_id: str
    status: ExecutionStatus
    input: str
    created_at: datetime
    updated_at: datetime
    # Final results, the paused plan + workers, or the failure text.
    output: str | None = None
    workflow_id: str | None = None
    completed_at: datetime | None = None


class TaskRecord(BaseModel):
    """Persisted unit of work bound to (at most) one worker."""

    task_id: str
    execution_id: str
    title: str
    description: str
    input: str
    status: TaskStatus
    created_at: datetime
    updated_at: datetime
    worker_id: str | None = None
    output: str | None = None
    attempts: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)
    completed_at: datetime | None = None


class WorkerRecord(BaseModel):
    """Specialized worker generated for one planned task."""

    worker_id: str
    name: str
    model: str
    system_prompt: str
    created_at: datetime
    user_prompt_template: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class WorkflowRecord(BaseModel):
    """Write-once visualization of a plan."""

    workflow_id: str
    name: str
    description: str
    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime
