"""Plan node: run the planner worker and parse its output into a plan."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from workflow_orchestrator.graph.state import PlanningContext, PlanningState
from workflow_orchestrator.runtime.levels import compute_levels
from workflow_orchestrator.runtime.parsing import parse_plan
from workflow_orchestrator.runtime.system_workers import system_worker

logger = logging.getLogger(__name__)


def run(state: PlanningState, context: PlanningContext) -> PlanningState:
    request = state["user_input"]
    planner = system_worker("planner", model=context.default_model)

    planning_task = context.storage.create_task(
        context.execution_id,
        title="Planning task execution",
        description=request,
        input=request,
        metadata={"role": "planner", "system_worker_id": planner.worker_id},
    )

    context.events.publish(
        context.execution_id,
        "agent_start",
        {"agent": "task-planner", "message": "Planning tasks..."},
    )
    raw_plan = context.loop.execute_with_validation(
        planner, planning_task, original_input=request, kind="plan"
    )
    context.events.publish(
        context.execution_id,
        "agent_complete",
        {"agent": "task-planner", "message": "Task plan created"},
    )
    context.storage.update_task(
        planning_task.task_id,
        status="completed",
        output=raw_plan,
        completed_at=datetime.now(UTC),
    )

    # Malformed output is fatal here; the loop already retried the generation.
    plan = parse_plan(raw_plan)
    levels = compute_levels(plan.tasks)
    logger.info(
        "planning event=plan_built execution_id=%s tasks=%d depth=%d",
        context.execution_id,
        len(plan.tasks),
        max(levels) + 1,
    )
    return {"raw_plan": raw_plan, "plan": plan, "levels": levels}
