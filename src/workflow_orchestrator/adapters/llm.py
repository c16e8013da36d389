from __future__ import annotations

import json
import logging
import os
from typing import Any
from urllib import error, request

from workflow_orchestrator.adapters.base import render_user_prompt
from workflow_orchestrator.storage.models import TaskRecord, WorkerRecord

logger = logging.getLogger(__name__)


class OpenAIChatExecutor:
    """Task executor backed by the OpenAI chat completions REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_s: float = 60.0,
    ) -> None:
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is missing")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def execute(self, worker: WorkerRecord, task: TaskRecord) -> str:
        payload = self._request_body(worker, task)
        content = _message_text(self._request(payload))
        if not content.strip():
            raise RuntimeError(f"No response received from model for worker '{worker.name}'")
        return content

    @staticmethod
    def _request_body(worker: WorkerRecord, task: TaskRecord) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": worker.model,
            "messages": [
                {"role": "system", "content": worker.system_prompt},
                {"role": "user", "content": render_user_prompt(worker, task.input)},
            ],
        }
        temperature = worker.config.get("temperature")
        if isinstance(temperature, (int, float)):
            payload["temperature"] = temperature
        max_tokens = worker.config.get("max_tokens")
        if isinstance(max_tokens, int) and max_tokens > 0:
            payload["max_tokens"] = max_tokens
        return payload

    def _request(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/chat/completions"
        if _trace_enabled():
            logger.warning(
                "LLM trace request provider=openai model=%s url=%s timeout_s=%s",
                payload.get("model"),
                url,
                self.timeout_s,
            )
        req = request.Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            with request.urlopen(req, timeout=self.timeout_s) as response:
                body = response.read().decode("utf-8")
        except error.HTTPError as exc:
            raw_error = exc.read().decode("utf-8", errors="replace")
            raise RuntimeError(
                f"OpenAI request failed with status {exc.code}: {raw_error[:400]}"
            ) from exc
        except error.URLError as exc:
            raise RuntimeError(f"OpenAI request failed: {exc.reason}") from exc

        if _trace_enabled():
            logger.warning("LLM trace response provider=openai model=%s status=ok", payload.get("model"))
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise RuntimeError("OpenAI returned non-JSON response") from exc


def _message_text(response_json: dict[str, Any]) -> str:
    """Text of the first choice; content may be a string or a list of parts."""
    choices = response_json.get("choices") or []
    if not choices:
        raise RuntimeError("Chat completion returned no choices")
    content = (choices[0].get("message") or {}).get("content")
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part["text"]
            for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
    raise RuntimeError(f"Unexpected chat completion content type: {type(content).__name__}")


def _trace_enabled() -> bool:
    return os.getenv("WORKFLOW_ORCHESTRATOR_LLM_TRACE", "0").strip() == "1"
