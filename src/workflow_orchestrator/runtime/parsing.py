"""Strict parse-or-reject of free-text model output into typed schemas."""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from workflow_orchestrator.runtime.errors import OutputParseError
from workflow_orchestrator.runtime.schemas import Plan, ValidationResult, WorkerRoster

TModel = TypeVar("TModel", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"```(?:json)?[ \t]*", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text).strip()


def extract_json_object(text: str, *, context: str) -> dict[str, Any]:
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise OutputParseError(f"Failed to parse {context} output: content is empty")

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        # Models sometimes wrap the object in prose; retry on the outermost braces.
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            raise OutputParseError(
                f"Failed to parse {context} output: content was not valid JSON"
            ) from None
        try:
            parsed = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as exc:
            raise OutputParseError(
                f"Failed to parse {context} output: content was not valid JSON"
            ) from exc

    if not isinstance(parsed, dict):
        raise OutputParseError(f"Failed to parse {context} output: expected a JSON object")
    return parsed


def parse_plan(text: str) -> Plan:
    return _parse_model(text, Plan, context="planner")


def parse_worker_roster(text: str) -> WorkerRoster:
    return _parse_model(text, WorkerRoster, context="orchestrator")


def parse_validation_result(text: str) -> ValidationResult:
    return _parse_model(text, ValidationResult, context="logic check")


def _parse_model(text: str, model: type[TModel], *, context: str) -> TModel:
    payload = extract_json_object(text, context=context)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in exc.errors()
        )
        raise OutputParseError(f"Failed to parse {context} output: {problems}") from exc
