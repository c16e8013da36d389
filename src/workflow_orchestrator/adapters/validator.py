"""Validator that asks the logic-checker worker for a completeness verdict."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from uuid import uuid4

from workflow_orchestrator.adapters.base import TaskExecutor
from workflow_orchestrator.runtime.parsing import parse_validation_result
from workflow_orchestrator.runtime.schemas import ValidationKind, ValidationResult
from workflow_orchestrator.runtime.system_workers import system_worker
from workflow_orchestrator.storage.models import TaskRecord

logger = logging.getLogger(__name__)


class LogicCheckValidator:
    def __init__(self, executor: TaskExecutor, *, model: str = "gpt-4o-mini") -> None:
        self.executor = executor
        self.checker = system_worker("logic_checker", model=model)

    def validate(
        self,
        kind: ValidationKind,
        original_input: str,
        output: str,
    ) -> ValidationResult:
        # The check runs off the books: it is never stored as a task.
        now = datetime.now(UTC)
        check_task = TaskRecord(
            task_id=f"logic-check-{kind}-{uuid4().hex[:12]}",
            execution_id="",
            title=f"Logic check ({kind})",
            description=f"Check {kind} output for completeness",
            input=json.dumps({"type": kind, "original_input": original_input, "output": output}),
            status="running",
            created_at=now,
            updated_at=now,
        )
        raw_verdict = self.executor.execute(self.checker, check_task)
        verdict = parse_validation_result(raw_verdict)
        logger.debug(
            "logic_check event=verdict kind=%s is_complete=%s missing=%d",
            kind,
            verdict.is_complete,
            len(verdict.missing_items),
        )
        return verdict
