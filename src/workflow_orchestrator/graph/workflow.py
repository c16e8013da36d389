"""LangGraph assembly for the planning phase of an execution."""

from collections.abc import Callable

from langgraph.graph import END, StateGraph

from workflow_orchestrator.graph.nodes import plan, validate, visualize, workers
from workflow_orchestrator.graph.state import PlanningContext, PlanningState

PlanningNode = Callable[[PlanningState, PlanningContext], PlanningState]


def build_planning_graph(context: PlanningContext):
    def _bind(node: PlanningNode) -> Callable[[PlanningState], PlanningState]:
        def _run(state: PlanningState) -> PlanningState:
            return node(state, context)

        return _run

    graph = StateGraph(PlanningState)

    graph.add_node("plan", _bind(plan.run))
    graph.add_node("validate_plan", _bind(validate.run))
    graph.add_node("generate_workers", _bind(workers.run))
    graph.add_node("build_workflow", _bind(visualize.run))

    graph.set_entry_point("plan")
    graph.add_edge("plan", "validate_plan")
    graph.add_edge("validate_plan", "generate_workers")
    graph.add_edge("generate_workers", "build_workflow")
    graph.add_edge("build_workflow", END)

    return graph.compile()
