"""Typed state contract for the LangGraph planning pipeline."""

from dataclasses import dataclass
from typing import TypedDict

from workflow_orchestrator.events import EventBus
from workflow_orchestrator.runtime.schemas import Plan, ValidationResult
from workflow_orchestrator.runtime.validation_loop import ValidationLoop
from workflow_orchestrator.storage.base import ExecutionStorage
from workflow_orchestrator.storage.models import WorkerRecord


class PlanningState(TypedDict, total=False):
    execution_id: str
    user_input: str
    raw_plan: str
    plan: Plan
    levels: list[int]
    plan_validation: ValidationResult
    workers: list[WorkerRecord]
    workflow_id: str


@dataclass(frozen=True)
class PlanningContext:
    """Collaborators shared by every planning node of one execution."""

    execution_id: str
    storage: ExecutionStorage
    loop: ValidationLoop
    events: EventBus
    default_model: str


def initial_state(execution_id: str, user_input: str) -> PlanningState:
    return {
        "execution_id": execution_id,
        "user_input": user_input,
    }
