"""Dependency-aware wave scheduler with first-completion wake-ups."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any

from workflow_orchestrator.runtime.errors import DeadlockError
from workflow_orchestrator.runtime.schemas import TaskSpec

logger = logging.getLogger(__name__)


class WaveScheduler:
    """Run plan tasks concurrently while honoring their dependency indices.

    Every task whose dependencies have all completed is launched at once. The
    controlling thread then waits for the first running task to finish and
    re-derives the ready set, so a fast task unlocks its dependents without
    waiting for slower siblings.

    The first failing task aborts the run: nothing new is launched, queued
    work is cancelled, tasks already in flight are allowed to finish and their
    results are discarded, then the original error is re-raised.
    """

    def __init__(self, *, max_concurrency: int = 0) -> None:
        self.max_concurrency = max(0, max_concurrency)

    def run_all(self, specs: Sequence[TaskSpec], execute: Callable[[int], Any]) -> None:
        total = len(specs)
        if total == 0:
            return

        completed: set[int] = set()
        running: dict[Future[Any], int] = {}
        max_workers = min(self.max_concurrency, total) if self.max_concurrency else total
        pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="wave")
        try:
            while len(completed) < total:
                in_flight = set(running.values())
                ready = [
                    index
                    for index in range(total)
                    if index not in completed
                    and index not in in_flight
                    and all(dep in completed for dep in specs[index].dependencies)
                ]

                if not ready and not running:
                    pending = sorted(set(range(total)) - completed)
                    logger.error("scheduler event=deadlock pending=%s", pending)
                    raise DeadlockError(pending)

                for index in ready:
                    logger.info("scheduler event=launch task_index=%d", index)
                    running[pool.submit(execute, index)] = index

                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    index = running.pop(future)
                    error = future.exception()
                    if error is not None:
                        logger.error(
                            "scheduler event=abort task_index=%d in_flight=%d reason=%s",
                            index,
                            len(running),
                            error,
                        )
                        raise error
                    completed.add(index)
                    logger.info(
                        "scheduler event=completed task_index=%d progress=%d/%d",
                        index,
                        len(completed),
                        total,
                    )
        finally:
            pool.shutdown(wait=True, cancel_futures=True)
            _log_discarded(running)


def _log_discarded(running: dict[Future[Any], int]) -> None:
    for future, index in running.items():
        if future.cancelled():
            logger.info("scheduler event=cancelled task_index=%d", index)
            continue
        error = future.exception()
        if error is not None:
            logger.warning(
                "scheduler event=sibling_failed task_index=%d reason=%s", index, error
            )
        else:
            logger.info("scheduler event=discarded task_index=%d", index)
