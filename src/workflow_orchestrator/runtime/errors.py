"""Errors raised by the orchestration runtime.

Every fatal condition surfaces as an ``OrchestrationError`` subclass so the
run/resume boundary can record it on the execution and re-raise it. A
validator rejecting an output is not an error and never appears here.
"""

from __future__ import annotations


class OrchestrationError(RuntimeError):
    """Base class for fatal orchestration failures."""


class OutputParseError(OrchestrationError):
    """Planner, orchestrator or validator output did not match its schema."""


class CircularDependencyError(OrchestrationError):
    def __init__(self, index: int) -> None:
        super().__init__(f"Circular dependency detected at task {index}")
        self.index = index


class DeadlockError(OrchestrationError):
    def __init__(self, pending: list[int]) -> None:
        super().__init__(f"Deadlock detected: no tasks can proceed (pending={pending})")
        self.pending = pending


class TaskCountMismatchError(OrchestrationError):
    def __init__(self, task_count: int, worker_count: int) -> None:
        super().__init__(
            f"Task count mismatch: {task_count} tasks but {worker_count} workers. "
            "Each task must have exactly one corresponding worker."
        )
        self.task_count = task_count
        self.worker_count = worker_count


class ResumeStateError(OrchestrationError):
    """A paused execution does not carry the plan and workers needed to resume."""


class InvalidTransitionError(OrchestrationError):
    def __init__(self, execution_id: str, status: str, action: str) -> None:
        super().__init__(f"Cannot {action} execution {execution_id} in status '{status}'")
        self.execution_id = execution_id
        self.status = status
        self.action = action


class TaskExecutionError(OrchestrationError):
    def __init__(self, task_id: str, title: str, reason: str) -> None:
        super().__init__(f"Task '{title}' ({task_id}) failed: {reason}")
        self.task_id = task_id
        self.title = title
