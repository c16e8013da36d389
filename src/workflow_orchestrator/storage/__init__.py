"""Storage backends and models."""

from workflow_orchestrator.storage.base import ExecutionStorage
from workflow_orchestrator.storage.memory import InMemoryExecutionStorage
from workflow_orchestrator.storage.models import (
    ExecutionRecord,
    TaskRecord,
    WorkerRecord,
    WorkflowRecord,
)
from workflow_orchestrator.storage.postgres import PostgresExecutionStorage

__all__ = [
    "ExecutionRecord",
    "ExecutionStorage",
    "InMemoryExecutionStorage",
    "PostgresExecutionStorage",
    "TaskRecord",
    "WorkerRecord",
    "WorkflowRecord",
]
