"""Timeout and retry controls around any task executor."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError

from workflow_orchestrator.adapters.base import TaskExecutor
from workflow_orchestrator.storage.models import TaskRecord, WorkerRecord

logger = logging.getLogger(__name__)


class ExecutorTimeoutError(TimeoutError):
    """The wrapped executor did not answer within its time budget."""


class GatewayExecutor:
    """Execute through a wrapped executor with a per-call timeout and retries.

    A timeout counts as an ordinary failed attempt. When every attempt fails
    the last error is re-raised to the caller.
    """

    def __init__(
        self,
        inner: TaskExecutor,
        *,
        timeout_s: float = 120.0,
        max_retries: int = 0,
        backoff_s: float = 0.0,
    ) -> None:
        self.inner = inner
        self.timeout_s = timeout_s
        self.max_retries = max(0, max_retries)
        self.backoff_s = max(0.0, backoff_s)

    def execute(self, worker: WorkerRecord, task: TaskRecord) -> str:
        last_error: Exception | None = None
        for attempt in range(self.max_retries + 1):
            started_at = time.perf_counter()
            try:
                output = self._execute_once(worker, task)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                logger.warning(
                    "executor_gateway event=attempt_failed task_id=%s worker=%s "
                    "attempt=%d/%d duration_ms=%.2f reason=%s",
                    task.task_id,
                    worker.name,
                    attempt + 1,
                    self.max_retries + 1,
                    _duration_ms(started_at),
                    exc,
                )
                if attempt < self.max_retries and self.backoff_s > 0:
                    time.sleep(self.backoff_s)
                continue
            logger.info(
                "executor_gateway event=ok task_id=%s worker=%s attempt=%d duration_ms=%.2f",
                task.task_id,
                worker.name,
                attempt + 1,
                _duration_ms(started_at),
            )
            return output

        if last_error is None:
            raise RuntimeError("Task execution failed")
        raise last_error

    def _execute_once(self, worker: WorkerRecord, task: TaskRecord) -> str:
        pool = ThreadPoolExecutor(max_workers=1)
        future = pool.submit(self.inner.execute, worker, task)
        try:
            return future.result(timeout=self.timeout_s)
        except TimeoutError as exc:
            if future.done():
                raise
            raise ExecutorTimeoutError(
                f"Worker '{worker.name}' timed out after {self.timeout_s:.2f}s"
            ) from exc
        finally:
            # Do not block on a call that overran its budget.
            pool.shutdown(wait=False)


def _duration_ms(started_at: float) -> float:
    return round((time.perf_counter() - started_at) * 1000.0, 2)
