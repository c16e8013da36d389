"""Executor and validator adapters at the model boundary."""

from workflow_orchestrator.adapters.base import TaskExecutor, Validator, render_user_prompt
from workflow_orchestrator.adapters.deterministic import DeterministicExecutor
from workflow_orchestrator.adapters.gateway import ExecutorTimeoutError, GatewayExecutor
from workflow_orchestrator.adapters.llm import OpenAIChatExecutor
from workflow_orchestrator.adapters.registry import ExecutorResolution, resolve_executor
from workflow_orchestrator.adapters.validator import LogicCheckValidator

__all__ = [
    "DeterministicExecutor",
    "ExecutorResolution",
    "ExecutorTimeoutError",
    "GatewayExecutor",
    "LogicCheckValidator",
    "OpenAIChatExecutor",
    "TaskExecutor",
    "Validator",
    "render_user_prompt",
    "resolve_executor",
]
