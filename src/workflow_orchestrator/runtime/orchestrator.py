"""Two-phase run/resume state machine for one execution.

``run()`` plans the request, staffs it with generated workers, lays out the
workflow and pauses for human approval. ``resume()`` materializes one task
per plan entry and drives them through the wave scheduler. Either phase
records ``failed`` with the error text on the execution before re-raising.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from pydantic import ValidationError

from workflow_orchestrator.adapters.base import TaskExecutor, Validator
from workflow_orchestrator.events import EventBus
from workflow_orchestrator.graph.state import PlanningContext, initial_state
from workflow_orchestrator.graph.workflow import build_planning_graph
from workflow_orchestrator.runtime.errors import (
    InvalidTransitionError,
    ResumeStateError,
    TaskCountMismatchError,
)
from workflow_orchestrator.runtime.scheduler import WaveScheduler
from workflow_orchestrator.runtime.schemas import PausedExecutionState, SchedulingUnit
from workflow_orchestrator.runtime.validation_loop import DEFAULT_MAX_ATTEMPTS, ValidationLoop
from workflow_orchestrator.storage.base import ExecutionStorage
from workflow_orchestrator.storage.models import ExecutionRecord, ExecutionStatus

logger = logging.getLogger(__name__)

RUNNABLE_STATUSES: tuple[ExecutionStatus, ...] = ("draft",)
RESUMABLE_STATUSES: tuple[ExecutionStatus, ...] = ("paused",)


class WorkflowOrchestrator:
    def __init__(
        self,
        execution_id: str,
        *,
        storage: ExecutionStorage,
        executor: TaskExecutor,
        validator: Validator,
        events: EventBus,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_concurrency: int = 0,
        default_model: str = "gpt-4o-mini",
    ) -> None:
        self.execution_id = execution_id
        self.storage = storage
        self.events = events
        self.default_model = default_model
        self.loop = ValidationLoop(
            execution_id=execution_id,
            storage=storage,
            executor=executor,
            validator=validator,
            events=events,
            max_attempts=max_attempts,
        )
        self.scheduler = WaveScheduler(max_concurrency=max_concurrency)

    def run(self) -> ExecutionRecord:
        execution = self._claim(RUNNABLE_STATUSES, action="run")
        self._emit("execution_update", status="running", message="Starting workflow execution")
        logger.info("execution event=planning_start execution_id=%s", self.execution_id)

        try:
            context = PlanningContext(
                execution_id=self.execution_id,
                storage=self.storage,
                loop=self.loop,
                events=self.events,
                default_model=self.default_model,
            )
            graph = build_planning_graph(context)
            result = graph.invoke(initial_state(self.execution_id, execution.input))

            paused_state = PausedExecutionState(plan=result["plan"], workers=result["workers"])
            updated = self.storage.update_execution(
                self.execution_id,
                status="paused",
                workflow_id=result["workflow_id"],
                output=paused_state.model_dump_json(),
            )
        except Exception as exc:
            self._record_failure(exc, phase="planning")
            raise

        self._emit(
            "execution_update",
            status="paused",
            message="Workflow created. Ready for review and execution.",
        )
        logger.info(
            "execution event=paused execution_id=%s tasks=%d workers=%d",
            self.execution_id,
            len(paused_state.plan.tasks),
            len(paused_state.workers),
        )
        return updated

    def resume(self) -> ExecutionRecord:
        execution = self._claim(RESUMABLE_STATUSES, action="resume")
        self._emit("execution_update", status="running", message="Resuming execution - running tasks...")
        logger.info("execution event=resume_start execution_id=%s", self.execution_id)

        try:
            paused_state = _load_paused_state(execution.output)
            plan = paused_state.plan
            if len(plan.tasks) != len(paused_state.workers):
                raise TaskCountMismatchError(len(plan.tasks), len(paused_state.workers))

            units = [
                SchedulingUnit(
                    index=index,
                    spec=spec,
                    worker=worker,
                    task=self.storage.create_task(
                        self.execution_id,
                        title=spec.title,
                        description=spec.description,
                        input=spec.description,
                        worker_id=worker.worker_id,
                        metadata={"role": "plan_task", "plan_index": index},
                    ),
                )
                for index, (spec, worker) in enumerate(zip(plan.tasks, paused_state.workers))
            ]

            def _execute(index: int) -> None:
                unit = units[index]
                output = self.loop.execute_with_validation(unit.worker, unit.task)
                self.storage.update_task(
                    unit.task.task_id,
                    status="completed",
                    output=output,
                    completed_at=datetime.now(UTC),
                )

            self.scheduler.run_all(plan.tasks, _execute)

            tasks = self.storage.list_tasks(self.execution_id)
            updated = self.storage.update_execution(
                self.execution_id,
                status="completed",
                completed_at=datetime.now(UTC),
                output=json.dumps({"tasks": [task.model_dump(mode="json") for task in tasks]}),
            )
        except Exception as exc:
            self._record_failure(exc, phase="execution")
            raise

        self._emit("execution_update", status="completed", message="All tasks completed")
        logger.info(
            "execution event=completed execution_id=%s tasks=%d",
            self.execution_id,
            len(units),
        )
        return updated

    def _claim(self, allowed: tuple[ExecutionStatus, ...], *, action: str) -> ExecutionRecord:
        # Compare-and-set: only one caller can move the execution into running.
        claimed = self.storage.transition_execution(self.execution_id, allowed, "running")
        if claimed is not None:
            return claimed
        execution = self.storage.get_execution(self.execution_id)
        if execution is None:
            raise KeyError(f"Execution {self.execution_id} does not exist")
        raise InvalidTransitionError(self.execution_id, execution.status, action)

    def _record_failure(self, exc: Exception, *, phase: str) -> None:
        message = str(exc) or type(exc).__name__
        logger.error(
            "execution event=failed execution_id=%s phase=%s reason=%s",
            self.execution_id,
            phase,
            message,
        )
        self.storage.update_execution(self.execution_id, status="failed", output=message)
        self._emit("execution_update", status="failed", message=message)

    def _emit(self, event_type: str, **payload: str) -> None:
        self.events.publish(self.execution_id, event_type, payload)


def _load_paused_state(raw_output: str | None) -> PausedExecutionState:
    if not raw_output:
        raise ResumeStateError("Invalid execution data: missing plan or workers")
    try:
        return PausedExecutionState.model_validate_json(raw_output)
    except ValidationError as exc:
        raise ResumeStateError(
            f"Invalid execution data: missing plan or workers ({exc.error_count()} errors)"
        ) from exc
