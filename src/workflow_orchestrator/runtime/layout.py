"""Project a plan onto a positioned node/edge graph for visualization."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from workflow_orchestrator.runtime.schemas import Plan
from workflow_orchestrator.storage.models import WorkerRecord

logger = logging.getLogger(__name__)

HORIZONTAL_SPACING = 450
VERTICAL_SPACING = 280
ORIGIN_OFFSET = 100
NAME_PREVIEW_CHARS = 50


@dataclass(frozen=True)
class WorkflowGraph:
    name: str
    description: str
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]


def build_workflow_graph(
    plan: Plan,
    workers: Sequence[WorkerRecord],
    levels: Sequence[int],
    *,
    request: str,
) -> WorkflowGraph:
    """Lay tasks out in columns by dependency level, stacked in plan order."""
    count_at_level: dict[int, int] = {}
    nodes: list[dict[str, Any]] = []
    for index, task in enumerate(plan.tasks):
        level = levels[index]
        rank = count_at_level.get(level, 0)
        count_at_level[level] = rank + 1
        worker = workers[index] if index < len(workers) else None
        nodes.append(
            {
                "id": f"task-{index}",
                "type": "agent",
                "position": {
                    "x": level * HORIZONTAL_SPACING + ORIGIN_OFFSET,
                    "y": rank * VERTICAL_SPACING + ORIGIN_OFFSET,
                },
                "data": {
                    "label": task.title,
                    "worker_id": worker.worker_id if worker else None,
                    "worker_name": worker.name if worker else None,
                    "task_description": task.description,
                    "dependencies": list(task.dependencies),
                },
            }
        )

    edges: list[dict[str, Any]] = []
    for index, task in enumerate(plan.tasks):
        for dep in task.dependencies:
            if not 0 <= dep < len(plan.tasks):
                logger.warning(
                    "workflow_layout event=dangling_dependency task_index=%d dependency=%d",
                    index,
                    dep,
                )
                continue
            edges.append(
                {
                    "id": f"edge-{dep}-{index}",
                    "source": f"task-{dep}",
                    "target": f"task-{index}",
                    "type": "smoothstep",
                }
            )

    return WorkflowGraph(
        name=f"Workflow for: {request[:NAME_PREVIEW_CHARS]}...",
        description=plan.overall_strategy,
        nodes=nodes,
        edges=edges,
    )
