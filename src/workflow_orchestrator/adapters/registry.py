"""Executor resolution for deterministic and LLM-backed execution modes."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from workflow_orchestrator.adapters.base import TaskExecutor
from workflow_orchestrator.adapters.deterministic import DeterministicExecutor
from workflow_orchestrator.adapters.gateway import GatewayExecutor
from workflow_orchestrator.adapters.llm import OpenAIChatExecutor
from workflow_orchestrator.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutorResolution:
    executor: TaskExecutor
    requested_mode: str
    effective_mode: str
    fallback_reason: str | None = None


def resolve_executor(settings: Settings, *, mode: str | None = None) -> ExecutorResolution:
    requested_mode = (mode or settings.executor_mode).lower().strip()
    resolution = _resolve_inner(settings, requested_mode)
    if resolution.fallback_reason:
        logger.warning(
            "executor_resolution event=fallback requested_mode=%s effective_mode=%s reason=%s",
            resolution.requested_mode,
            resolution.effective_mode,
            resolution.fallback_reason,
        )
    return ExecutorResolution(
        executor=GatewayExecutor(
            resolution.executor,
            timeout_s=settings.executor_timeout_s,
            max_retries=settings.executor_max_retries,
            backoff_s=settings.executor_backoff_s,
        ),
        requested_mode=resolution.requested_mode,
        effective_mode=resolution.effective_mode,
        fallback_reason=resolution.fallback_reason,
    )


def _resolve_inner(settings: Settings, requested_mode: str) -> ExecutorResolution:
    deterministic = DeterministicExecutor()

    if requested_mode != "llm":
        return ExecutorResolution(
            executor=deterministic,
            requested_mode=requested_mode,
            effective_mode="deterministic",
        )

    provider = settings.llm_provider.lower().strip()
    if provider != "openai":
        return ExecutorResolution(
            executor=deterministic,
            requested_mode=requested_mode,
            effective_mode="deterministic",
            fallback_reason=f"unsupported executor provider: {settings.llm_provider}",
        )

    api_key = settings.resolved_openai_api_key()
    if not api_key:
        return ExecutorResolution(
            executor=deterministic,
            requested_mode=requested_mode,
            effective_mode="deterministic",
            fallback_reason="OPENAI_API_KEY is missing for executor llm mode",
        )

    return ExecutorResolution(
        executor=OpenAIChatExecutor(
            api_key=api_key,
            base_url=settings.llm_base_url,
            timeout_s=settings.llm_timeout_s,
        ),
        requested_mode=requested_mode,
        effective_mode="llm",
    )
