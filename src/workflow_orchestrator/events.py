"""Publish/subscribe progress events keyed by execution id."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict, deque
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

EventType = Literal[
    "execution_update",
    "task_update",
    "agent_start",
    "agent_complete",
    "agent_error",
]


class ExecutionEvent(BaseModel):
    execution_id: str
    type: EventType
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


EventHandler = Callable[[ExecutionEvent], None]


class EventBus:
    """Fire-and-forget fan-out of execution progress.

    Publishing never blocks on, or fails because of, a subscriber: handler
    errors are logged and dropped. A bounded history per execution lets
    pollers catch up without a push channel; only the most recently active
    ``max_executions`` histories are kept.
    """

    def __init__(self, *, history_limit: int = 500, max_executions: int = 1000) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[str, list[EventHandler]] = {}
        self._history: OrderedDict[str, deque[ExecutionEvent]] = OrderedDict()
        self._history_limit = history_limit
        self._max_executions = max(1, max_executions)

    def subscribe(self, execution_id: str, handler: EventHandler) -> Callable[[], None]:
        with self._lock:
            self._handlers.setdefault(execution_id, []).append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(execution_id, [])
                if handler in handlers:
                    handlers.remove(handler)
                if not handlers:
                    self._handlers.pop(execution_id, None)

        return _unsubscribe

    def publish(
        self,
        execution_id: str,
        event_type: EventType,
        payload: dict[str, Any] | None = None,
    ) -> ExecutionEvent:
        event = ExecutionEvent(
            execution_id=execution_id,
            type=event_type,
            payload=dict(payload or {}),
            timestamp=datetime.now(UTC),
        )
        with self._lock:
            history = self._history.get(execution_id)
            if history is None:
                history = deque(maxlen=self._history_limit)
                self._history[execution_id] = history
                while len(self._history) > self._max_executions:
                    evicted, _ = self._history.popitem(last=False)
                    logger.debug("event_bus event=history_evicted execution_id=%s", evicted)
            else:
                self._history.move_to_end(execution_id)
            history.append(event)
            handlers = list(self._handlers.get(execution_id, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "event_bus event=handler_failed execution_id=%s type=%s",
                    execution_id,
                    event_type,
                )
        return event

    def history(self, execution_id: str) -> list[ExecutionEvent]:
        with self._lock:
            return list(self._history.get(execution_id, ()))
