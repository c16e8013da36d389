"""Pydantic schemas for plans, generated workers and validation verdicts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from workflow_orchestrator.storage.models import TaskRecord, WorkerRecord

ValidationKind = Literal["plan", "task"]


class ModelOutput(BaseModel):
    """Base for shapes parsed out of model output; unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore")


class TaskSpec(ModelOutput):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    # Zero-based indices into the same plan.
    dependencies: list[int] = Field(default_factory=list)
    estimated_complexity: Literal["low", "medium", "high"] | None = None

    @field_validator("dependencies", mode="before")
    @classmethod
    def _null_dependencies(cls, value: Any) -> Any:
        return [] if value is None else value


class Plan(ModelOutput):
    overall_strategy: str = Field(min_length=1)
    tasks: list[TaskSpec] = Field(min_length=1)


class WorkerSpec(ModelOutput):
    name: str = Field(min_length=1)
    system_prompt: str = Field(min_length=1)
    user_prompt_template: str | None = None
    model: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def _null_config(cls, value: Any) -> Any:
        return {} if value is None else value


class WorkerRoster(ModelOutput):
    workers: list[WorkerSpec] = Field(
        min_length=1,
        validation_alias=AliasChoices("workers", "agents"),
    )


class ValidationResult(ModelOutput):
    is_complete: bool = Field(validation_alias=AliasChoices("is_complete", "passed"))
    feedback: str = ""
    missing_items: list[str] = Field(default_factory=list)


class PausedExecutionState(BaseModel):
    """What a paused execution keeps in its output field until approval."""

    plan: Plan
    workers: list[WorkerRecord]


@dataclass(frozen=True)
class SchedulingUnit:
    """One plan entry bound to its worker and materialized task."""

    index: int
    spec: TaskSpec
    worker: WorkerRecord
    task: TaskRecord
