from datetime import UTC, datetime

from workflow_orchestrator.runtime.layout import (
    HORIZONTAL_SPACING,
    ORIGIN_OFFSET,
    VERTICAL_SPACING,
    build_workflow_graph,
)
from workflow_orchestrator.runtime.levels import compute_levels
from workflow_orchestrator.runtime.schemas import Plan
from workflow_orchestrator.storage.models import WorkerRecord


def _plan(*dependencies: list[int]) -> Plan:
    return Plan(
        overall_strategy="Split and merge",
        tasks=[
            {"title": f"Task {index}", "description": f"Step {index}", "dependencies": deps}
            for index, deps in enumerate(dependencies)
        ],
    )


def _workers(count: int) -> list[WorkerRecord]:
    return [
        WorkerRecord(
            worker_id=f"w-{index}",
            name=f"Worker {index}",
            model="gpt-4o-mini",
            system_prompt="Do it.",
            created_at=datetime.now(UTC),
        )
        for index in range(count)
    ]


def test_nodes_are_columned_by_level_and_stacked_in_plan_order() -> None:
    plan = _plan([], [0], [0], [1, 2])

    graph = build_workflow_graph(plan, _workers(4), compute_levels(plan.tasks), request="Build it")

    positions = [node["position"] for node in graph.nodes]
    assert positions[0] == {"x": ORIGIN_OFFSET, "y": ORIGIN_OFFSET}
    assert positions[1] == {"x": HORIZONTAL_SPACING + ORIGIN_OFFSET, "y": ORIGIN_OFFSET}
    assert positions[2] == {
        "x": HORIZONTAL_SPACING + ORIGIN_OFFSET,
        "y": VERTICAL_SPACING + ORIGIN_OFFSET,
    }
    assert positions[3]["x"] == 2 * HORIZONTAL_SPACING + ORIGIN_OFFSET
    assert graph.nodes[3]["data"]["worker_name"] == "Worker 3"
    assert graph.nodes[3]["data"]["dependencies"] == [1, 2]


def test_edges_point_from_dependency_to_dependent() -> None:
    plan = _plan([], [0], [0], [1, 2])

    graph = build_workflow_graph(plan, _workers(4), compute_levels(plan.tasks), request="Build it")

    assert {(edge["source"], edge["target"]) for edge in graph.edges} == {
        ("task-0", "task-1"),
        ("task-0", "task-2"),
        ("task-1", "task-3"),
        ("task-2", "task-3"),
    }
    assert all(edge["type"] == "smoothstep" for edge in graph.edges)


def test_name_truncates_request_and_description_is_strategy() -> None:
    request = "x" * 80
    plan = _plan([])

    graph = build_workflow_graph(plan, _workers(1), [0], request=request)

    assert graph.name == f"Workflow for: {'x' * 50}..."
    assert graph.description == "Split and merge"


def test_missing_workers_and_dangling_dependencies_are_tolerated() -> None:
    plan = _plan([], [7])

    graph = build_workflow_graph(plan, _workers(1), compute_levels(plan.tasks), request="r")

    assert graph.nodes[1]["data"]["worker_id"] is None
    assert graph.edges == []
