"""Generate-workers node: staff every planned task with a specialized worker."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from workflow_orchestrator.graph.state import PlanningContext, PlanningState
from workflow_orchestrator.runtime.parsing import parse_worker_roster
from workflow_orchestrator.runtime.system_workers import system_worker

logger = logging.getLogger(__name__)


def run(state: PlanningState, context: PlanningContext) -> PlanningState:
    plan = state["plan"]
    orchestrator = system_worker("orchestrator", model=context.default_model)
    orchestrator_input = json.dumps(
        {
            "original_request": state["user_input"],
            "plan": plan.model_dump(mode="json"),
        }
    )
    staffing_task = context.storage.create_task(
        context.execution_id,
        title="Orchestrating specialized workers",
        description=f"Creating specialized workers for {len(plan.tasks)} tasks",
        input=orchestrator_input,
        metadata={"role": "orchestrator", "system_worker_id": orchestrator.worker_id},
    )

    context.events.publish(
        context.execution_id,
        "agent_start",
        {"agent": "orchestrator", "message": "Creating specialized workers..."},
    )
    raw_roster = context.loop.execute_with_validation(orchestrator, staffing_task)
    context.storage.update_task(
        staffing_task.task_id,
        status="completed",
        output=raw_roster,
        completed_at=datetime.now(UTC),
    )
    roster = parse_worker_roster(raw_roster)

    workers = [
        context.storage.create_worker(
            name=spec.name,
            model=spec.model or context.default_model,
            system_prompt=spec.system_prompt,
            user_prompt_template=spec.user_prompt_template,
            config=spec.config,
        )
        for spec in roster.workers
    ]
    context.events.publish(
        context.execution_id,
        "agent_complete",
        {"agent": "orchestrator", "message": f"Created {len(workers)} specialized workers"},
    )

    if len(workers) != len(plan.tasks):
        # Enforced when the execution resumes, not here.
        logger.warning(
            "planning event=worker_count_mismatch execution_id=%s tasks=%d workers=%d",
            context.execution_id,
            len(plan.tasks),
            len(workers),
        )
    return {"workers": workers}
