"""Validate-plan node: judge the planner output against the original request."""

from __future__ import annotations

import logging

from workflow_orchestrator.graph.state import PlanningContext, PlanningState

logger = logging.getLogger(__name__)


def run(state: PlanningState, context: PlanningContext) -> PlanningState:
    # Separate from the checks inside the planner loop: this judges the final
    # plan again, up to max_attempts times, without regenerating it.
    verdict = context.loop.validate_output("plan", state["user_input"], state["raw_plan"])
    if not verdict.is_complete:
        logger.warning(
            "planning event=plan_not_accepted execution_id=%s feedback=%s",
            context.execution_id,
            verdict.feedback,
        )
    return {"plan_validation": verdict}
