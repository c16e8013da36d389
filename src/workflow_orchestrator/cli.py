"""Run one request through planning (and optionally execution) from the shell."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from workflow_orchestrator.adapters import LogicCheckValidator, resolve_executor
from workflow_orchestrator.config.settings import get_settings
from workflow_orchestrator.events import EventBus, ExecutionEvent
from workflow_orchestrator.runtime.errors import OrchestrationError
from workflow_orchestrator.runtime.orchestrator import WorkflowOrchestrator
from workflow_orchestrator.runtime.schemas import PausedExecutionState
from workflow_orchestrator.storage.memory import InMemoryExecutionStorage


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=args.log_level or settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    resolution = resolve_executor(settings, mode=args.mode)
    storage = InMemoryExecutionStorage()
    events = EventBus()
    execution = storage.create_execution(args.request)
    if args.verbose:
        events.subscribe(execution.execution_id, _print_event)

    orchestrator = WorkflowOrchestrator(
        execution.execution_id,
        storage=storage,
        executor=resolution.executor,
        validator=LogicCheckValidator(resolution.executor, model=settings.default_model),
        events=events,
        max_attempts=settings.max_attempts,
        max_concurrency=settings.max_concurrency,
        default_model=settings.default_model,
    )

    print(f"Executor mode: {resolution.effective_mode}")
    if resolution.fallback_reason:
        print(f"Fallback: {resolution.fallback_reason}")

    try:
        paused = orchestrator.run()
    except OrchestrationError as exc:
        print(f"Planning failed: {exc}", file=sys.stderr)
        return 1

    state = PausedExecutionState.model_validate_json(paused.output or "{}")
    print(f"\nStrategy: {state.plan.overall_strategy}")
    for index, (task, worker) in enumerate(zip(state.plan.tasks, state.workers)):
        depends = ", ".join(str(dep) for dep in task.dependencies) or "-"
        print(f"  [{index}] {task.title} (depends on: {depends}) -> {worker.name}")

    if not args.approve:
        print(f"\nExecution {execution.execution_id} is paused. Re-run with --approve to execute.")
        return 0

    try:
        completed = orchestrator.resume()
    except OrchestrationError as exc:
        print(f"Execution failed: {exc}", file=sys.stderr)
        return 1

    results = json.loads(completed.output or "{}")
    print("\nResults:")
    for task in results.get("tasks", []):
        if task.get("metadata", {}).get("role") != "plan_task":
            continue
        print(f"\n## {task['title']} ({task['status']}, attempts={task['attempts']})")
        print(task.get("output") or "")
    return 0


def _print_event(event: ExecutionEvent) -> None:
    message = event.payload.get("message", "")
    print(f"  · {event.type}: {message}")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="workflow-orchestrator",
        description="Plan a request into dependent tasks, staff them, and optionally run them.",
    )
    parser.add_argument("request", help="Natural-language request to orchestrate.")
    parser.add_argument(
        "--approve",
        action="store_true",
        help="Resume the paused execution immediately and run every task.",
    )
    parser.add_argument(
        "--mode",
        choices=["deterministic", "llm"],
        default=None,
        help="Executor mode; defaults to WORKFLOW_ORCHESTRATOR_EXECUTOR_MODE.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level; defaults to WORKFLOW_ORCHESTRATOR_LOG_LEVEL.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print progress events as they are published.",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    raise SystemExit(main())
