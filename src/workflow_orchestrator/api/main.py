"""FastAPI app entrypoint for workflow-orchestrator."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from workflow_orchestrator.adapters import (
    LogicCheckValidator,
    TaskExecutor,
    Validator,
    resolve_executor,
)
from workflow_orchestrator.config.settings import Settings, get_settings
from workflow_orchestrator.events import EventBus, ExecutionEvent
from workflow_orchestrator.runtime.errors import InvalidTransitionError, OrchestrationError
from workflow_orchestrator.runtime.orchestrator import WorkflowOrchestrator
from workflow_orchestrator.storage.base import ExecutionStorage
from workflow_orchestrator.storage.models import (
    ExecutionRecord,
    TaskRecord,
    WorkerRecord,
    WorkflowRecord,
)
from workflow_orchestrator.storage.postgres import PostgresExecutionStorage


class CreateExecutionRequest(BaseModel):
    input: str = Field(min_length=1)


def _ensure_runtime_state(
    app: FastAPI,
    *,
    settings: Settings,
    storage_override: ExecutionStorage | None,
    executor_override: TaskExecutor | None,
    validator_override: Validator | None,
    events_override: EventBus | None,
) -> None:
    if not hasattr(app.state, "storage"):
        database_url = settings.resolved_database_url()
        if storage_override is None and not database_url:
            raise RuntimeError(
                "Missing database URL. Set WORKFLOW_ORCHESTRATOR_DATABASE_URL "
                "or ORCHESTRATOR_DATABASE_URL before starting the app."
            )
        app.state.storage = storage_override or PostgresExecutionStorage(database_url)
        app.state.storage.migrate()

    if not hasattr(app.state, "settings"):
        app.state.settings = settings

    if not hasattr(app.state, "executor"):
        if executor_override is not None:
            app.state.executor = executor_override
            app.state.executor_mode = "custom"
        else:
            resolution = resolve_executor(settings)
            app.state.executor = resolution.executor
            app.state.executor_mode = resolution.effective_mode

    if not hasattr(app.state, "validator"):
        app.state.validator = validator_override or LogicCheckValidator(
            app.state.executor, model=settings.default_model
        )

    if not hasattr(app.state, "events"):
        app.state.events = events_override or EventBus()


def create_app(
    *,
    storage: ExecutionStorage | None = None,
    settings_override: Settings | None = None,
    executor: TaskExecutor | None = None,
    validator: Validator | None = None,
    events: EventBus | None = None,
) -> FastAPI:
    settings = settings_override or get_settings()

    def _ensure(app: FastAPI) -> None:
        _ensure_runtime_state(
            app,
            settings=settings,
            storage_override=storage,
            executor_override=executor,
            validator_override=validator,
            events_override=events,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _ensure(app)
        yield

    app_lifespan = lifespan if storage is None else None
    app = FastAPI(title=settings.app_name, lifespan=app_lifespan)

    # Keep test paths reliable when lifespan is not executed by the client.
    if storage is not None:
        _ensure(app)

    def _runtime(request: Request) -> FastAPI:
        if not hasattr(request.app.state, "storage"):
            _ensure(request.app)
        return request.app

    def _get_execution(request: Request, execution_id: str) -> ExecutionRecord:
        record = _runtime(request).state.storage.get_execution(execution_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Execution not found")
        return record

    def _orchestrator(request: Request, execution_id: str) -> WorkflowOrchestrator:
        state = _runtime(request).state
        return WorkflowOrchestrator(
            execution_id,
            storage=state.storage,
            executor=state.executor,
            validator=state.validator,
            events=state.events,
            max_attempts=settings.max_attempts,
            max_concurrency=settings.max_concurrency,
            default_model=settings.default_model,
        )

    @app.get("/health")
    def health(request: Request) -> dict[str, str]:
        state = _runtime(request).state
        return {
            "status": "ok",
            "service": settings.app_name,
            "executor_mode": state.executor_mode,
        }

    @app.post("/executions", response_model=ExecutionRecord)
    def create_execution(payload: CreateExecutionRequest, request: Request) -> ExecutionRecord:
        execution_storage: ExecutionStorage = _runtime(request).state.storage
        return execution_storage.create_execution(payload.input)

    @app.get("/executions/{execution_id}", response_model=ExecutionRecord)
    def get_execution(execution_id: str, request: Request) -> ExecutionRecord:
        return _get_execution(request, execution_id)

    @app.post("/executions/{execution_id}/run", response_model=ExecutionRecord)
    def run_execution(execution_id: str, request: Request) -> ExecutionRecord:
        _get_execution(request, execution_id)
        try:
            return _orchestrator(request, execution_id).run()
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except OrchestrationError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    @app.post("/executions/{execution_id}/resume", response_model=ExecutionRecord)
    def resume_execution(execution_id: str, request: Request) -> ExecutionRecord:
        _get_execution(request, execution_id)
        try:
            return _orchestrator(request, execution_id).resume()
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except OrchestrationError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    @app.get("/executions/{execution_id}/tasks", response_model=list[TaskRecord])
    def list_execution_tasks(execution_id: str, request: Request) -> list[TaskRecord]:
        _get_execution(request, execution_id)
        return _runtime(request).state.storage.list_tasks(execution_id)

    @app.get("/executions/{execution_id}/events", response_model=list[ExecutionEvent])
    def list_execution_events(execution_id: str, request: Request) -> list[ExecutionEvent]:
        _get_execution(request, execution_id)
        return _runtime(request).state.events.history(execution_id)

    @app.get("/workers/{worker_id}", response_model=WorkerRecord)
    def get_worker(worker_id: str, request: Request) -> WorkerRecord:
        record = _runtime(request).state.storage.get_worker(worker_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Worker not found")
        return record

    @app.get("/workflows/{workflow_id}", response_model=WorkflowRecord)
    def get_workflow(workflow_id: str, request: Request) -> WorkflowRecord:
        record = _runtime(request).state.storage.get_workflow(workflow_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Workflow not found")
        return record

    return app


app = create_app()
