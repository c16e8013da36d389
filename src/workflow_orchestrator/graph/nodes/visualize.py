"""Build-workflow node: persist the positioned graph of the plan."""

from __future__ import annotations

from workflow_orchestrator.graph.state import PlanningContext, PlanningState
from workflow_orchestrator.runtime.layout import build_workflow_graph


def run(state: PlanningState, context: PlanningContext) -> PlanningState:
    context.events.publish(
        context.execution_id,
        "execution_update",
        {"message": "Creating workflow visualization..."},
    )
    graph = build_workflow_graph(
        state["plan"],
        state.get("workers", []),
        state["levels"],
        request=state["user_input"],
    )
    workflow = context.storage.create_workflow(
        name=graph.name,
        description=graph.description,
        nodes=graph.nodes,
        edges=graph.edges,
    )
    return {"workflow_id": workflow.workflow_id}
