"""PostgreSQL-backed storage with automatic table migration."""

from __future__ import annotations

import json
import threading
import uuid
from datetime import UTC, datetime
from typing import Any

from workflow_orchestrator.storage.models import (
    ExecutionRecord,
    ExecutionStatus,
    TaskRecord,
    TaskStatus,
    WorkerRecord,
    WorkflowRecord,
)

_EXECUTION_COLUMNS = {"status", "output", "workflow_id", "completed_at"}
_TASK_COLUMNS = {"status", "output", "attempts", "completed_at"}


class PostgresExecutionStorage:
    """Persist executions, tasks, workers and workflows in PostgreSQL."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("WORKFLOW_ORCHESTRATOR_DATABASE_URL is required")
        self.database_url = database_url
        self._lock = threading.Lock()
        self._psycopg, self._dict_row, self._json_wrapper = self._load_psycopg()

    def migrate(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS executions (
                    execution_id UUID PRIMARY KEY,
                    status TEXT NOT NULL,
                    input TEXT NOT NULL,
                    output TEXT,
                    workflow_id UUID,
                    created_at TIMESTAMPTZ NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL,
                    completed_at TIMESTAMPTZ
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_executions_status
                ON executions(status)
                """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS workers (
                    worker_id UUID PRIMARY KEY,
                    name TEXT NOT NULL,
                    model TEXT NOT NULL,
                    system_prompt TEXT NOT NULL,
                    user_prompt_template TEXT,
                    config_json JSONB NOT NULL DEFAULT '{}'::jsonb,
                    created_at TIMESTAMPTZ NOT NULL
                )
                """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS execution_tasks (
                    seq BIGSERIAL,
                    task_id UUID PRIMARY KEY,
                    execution_id UUID NOT NULL
                        REFERENCES executions(execution_id) ON DELETE CASCADE,
                    worker_id UUID REFERENCES workers(worker_id),
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    input TEXT NOT NULL,
                    output TEXT,
                    status TEXT NOT NULL,
                    attempts INTEGER NOT NULL DEFAULT 0,
                    metadata_json JSONB NOT NULL DEFAULT '{}'::jsonb,
                    created_at TIMESTAMPTZ NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL,
                    completed_at TIMESTAMPTZ
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_execution_tasks_execution_id
                ON execution_tasks(execution_id, seq)
                """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS workflows (
                    workflow_id UUID PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL,
                    nodes_json JSONB NOT NULL DEFAULT '[]'::jsonb,
                    edges_json JSONB NOT NULL DEFAULT '[]'::jsonb,
                    created_at TIMESTAMPTZ NOT NULL
                )
                """)
            conn.commit()

    def create_execution(
        self, input: str, *, status: ExecutionStatus = "draft"
    ) -> ExecutionRecord:
        execution_id = uuid.uuid4()
        now = datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO executions (
                    execution_id, status, input, output, workflow_id,
                    created_at, updated_at, completed_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (execution_id, status, input, None, None, now, now, None),
            )
            conn.commit()
        created = self.get_execution(str(execution_id))
        if created is None:
            raise RuntimeError("Failed to persist execution")
        return created

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM executions WHERE execution_id::text = %s",
                (execution_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_execution(row)

    def transition_execution(
        self,
        execution_id: str,
        from_statuses: tuple[ExecutionStatus, ...],
        to_status: ExecutionStatus,
    ) -> ExecutionRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                """
                UPDATE executions SET status = %s, updated_at = %s
                WHERE execution_id::text = %s AND status = ANY(%s)
                RETURNING *
                """,
                (to_status, datetime.now(tz=UTC), execution_id, list(from_statuses)),
            ).fetchone()
            conn.commit()
        if row is None:
            return None
        return self._row_to_execution(row)

    def update_execution(
        self,
        execution_id: str,
        *,
        status: ExecutionStatus | None = None,
        output: str | None = None,
        workflow_id: str | None = None,
        completed_at: datetime | None = None,
    ) -> ExecutionRecord:
        changes = {
            "status": status,
            "output": output,
            "workflow_id": workflow_id,
            "completed_at": completed_at,
        }
        self._apply_update("executions", "execution_id", execution_id, changes, _EXECUTION_COLUMNS)
        refreshed = self.get_execution(execution_id)
        if refreshed is None:
            raise KeyError(f"Execution {execution_id} does not exist")
        return refreshed

    def create_task(
        self,
        execution_id: str,
        *,
        title: str,
        description: str,
        input: str,
        worker_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TaskRecord:
        task_id = uuid.uuid4()
        now = datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO execution_tasks (
                    task_id, execution_id, worker_id, title, description, input,
                    output, status, attempts, metadata_json, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    task_id,
                    execution_id,
                    worker_id,
                    title,
                    description,
                    input,
                    None,
                    "pending",
                    0,
                    self._json_wrapper(metadata or {}),
                    now,
                    now,
                ),
            )
            conn.commit()
        created = self.get_task(str(task_id))
        if created is None:
            raise RuntimeError("Failed to persist task")
        return created

    def get_task(self, task_id: str) -> TaskRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM execution_tasks WHERE task_id::text = %s",
                (task_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    def update_task(
        self,
        task_id: str,
        *,
        status: TaskStatus | None = None,
        output: str | None = None,
        attempts: int | None = None,
        completed_at: datetime | None = None,
    ) -> TaskRecord:
        changes = {
            "status": status,
            "output": output,
            "attempts": attempts,
            "completed_at": completed_at,
        }
        self._apply_update("execution_tasks", "task_id", task_id, changes, _TASK_COLUMNS)
        refreshed = self.get_task(task_id)
        if refreshed is None:
            raise KeyError(f"Task {task_id} does not exist")
        return refreshed

    def list_tasks(self, execution_id: str) -> list[TaskRecord]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM execution_tasks
                WHERE execution_id::text = %s
                ORDER BY seq ASC
                """,
                (execution_id,),
            ).fetchall()
        return [self._row_to_task(row) for row in rows]

    def create_worker(
        self,
        *,
        name: str,
        model: str,
        system_prompt: str,
        user_prompt_template: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> WorkerRecord:
        worker_id = uuid.uuid4()
        now = datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO workers (
                    worker_id, name, model, system_prompt,
                    user_prompt_template, config_json, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    worker_id,
                    name,
                    model,
                    system_prompt,
                    user_prompt_template,
                    self._json_wrapper(config or {}),
                    now,
                ),
            )
            conn.commit()
        return WorkerRecord(
            worker_id=str(worker_id),
            name=name,
            model=model,
            system_prompt=system_prompt,
            user_prompt_template=user_prompt_template,
            config=dict(config or {}),
            created_at=now,
        )

    def get_worker(self, worker_id: str) -> WorkerRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM workers WHERE worker_id::text = %s",
                (worker_id,),
            ).fetchone()
        if row is None:
            return None
        return WorkerRecord(
            worker_id=str(row["worker_id"]),
            name=row["name"],
            model=row["model"],
            system_prompt=row["system_prompt"],
            user_prompt_template=row["user_prompt_template"],
            config=self._parse_json_optional(row["config_json"]) or {},
            created_at=self._parse_datetime(row["created_at"]),
        )

    def create_workflow(
        self,
        *,
        name: str,
        description: str,
        nodes: list[dict[str, Any]],
        edges: list[dict[str, Any]],
    ) -> WorkflowRecord:
        workflow_id = uuid.uuid4()
        now = datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO workflows (
                    workflow_id, name, description, nodes_json, edges_json, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    workflow_id,
                    name,
                    description,
                    self._json_wrapper(nodes),
                    self._json_wrapper(edges),
                    now,
                ),
            )
            conn.commit()
        return WorkflowRecord(
            workflow_id=str(workflow_id),
            name=name,
            description=description,
            nodes=list(nodes),
            edges=list(edges),
            created_at=now,
        )

    def get_workflow(self, workflow_id: str) -> WorkflowRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM workflows WHERE workflow_id::text = %s",
                (workflow_id,),
            ).fetchone()
        if row is None:
            return None
        return WorkflowRecord(
            workflow_id=str(row["workflow_id"]),
            name=row["name"],
            description=row["description"],
            nodes=self._parse_json_list_optional(row["nodes_json"]) or [],
            edges=self._parse_json_list_optional(row["edges_json"]) or [],
            created_at=self._parse_datetime(row["created_at"]),
        )

    def _apply_update(
        self,
        table: str,
        key_column: str,
        key: str,
        changes: dict[str, Any],
        allowed: set[str],
    ) -> None:
        assignments: list[str] = []
        values: list[Any] = []
        for column, value in changes.items():
            if value is None:
                continue
            if column not in allowed:
                raise ValueError(f"Column {column} cannot be updated on {table}")
            assignments.append(f"{column} = %s")
            values.append(value)
        assignments.append("updated_at = %s")
        values.append(datetime.now(tz=UTC))
        values.append(key)
        with self._lock, self._connect() as conn:
            conn.execute(
                f"UPDATE {table} SET {', '.join(assignments)} WHERE {key_column}::text = %s",
                tuple(values),
            )
            conn.commit()

    def _connect(self) -> Any:
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any, Any]:
        try:
            import psycopg
            from psycopg.rows import dict_row
            from psycopg.types.json import Json
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "PostgreSQL storage requires psycopg. "
                'Install with: python -m pip install "psycopg[binary]>=3.2,<4.0"'
            ) from exc
        return psycopg, dict_row, Json

    @staticmethod
    def _parse_json_optional(raw: Any) -> dict[str, Any] | None:
        if raw is None:
            return None
        if isinstance(raw, str):
            parsed = json.loads(raw)
        else:
            parsed = raw
        if isinstance(parsed, dict):
            return parsed
        return None

    @staticmethod
    def _parse_json_list_optional(raw: Any) -> list[dict[str, Any]] | None:
        if raw is None:
            return None
        if isinstance(raw, str):
            parsed = json.loads(raw)
        else:
            parsed = raw
        if not isinstance(parsed, list):
            return None
        return [item for item in parsed if isinstance(item, dict)]

    @staticmethod
    def _parse_datetime(raw: Any) -> datetime:
        if isinstance(raw, datetime):
            return raw
        if isinstance(raw, str):
            return datetime.fromisoformat(raw)
        raise TypeError(f"Unsupported datetime value: {type(raw)!r}")

    @classmethod
    def _parse_datetime_optional(cls, raw: Any) -> datetime | None:
        if raw is None:
            return None
        return cls._parse_datetime(raw)

    @classmethod
    def _row_to_execution(cls, row: Any) -> ExecutionRecord:
        workflow_id = row.get("workflow_id")
        return ExecutionRecord(
            execution_id=str(row["execution_id"]),
            status=row["status"],
            input=row["input"],
            output=row["output"],
            workflow_id=str(workflow_id) if workflow_id is not None else None,
            created_at=cls._parse_datetime(row["created_at"]),
            updated_at=cls._parse_datetime(row["updated_at"]),
            completed_at=cls._parse_datetime_optional(row.get("completed_at")),
        )

    @classmethod
    def _row_to_task(cls, row: Any) -> TaskRecord:
        worker_id = row.get("worker_id")
        return TaskRecord(
            task_id=str(row["task_id"]),
            execution_id=str(row["execution_id"]),
            worker_id=str(worker_id) if worker_id is not None else None,
            title=row["title"],
            description=row["description"],
            input=row["input"],
            output=row["output"],
            status=row["status"],
            attempts=int(row["attempts"]),
            metadata=cls._parse_json_optional(row.get("metadata_json")) or {},
            created_at=cls._parse_datetime(row["created_at"]),
            updated_at=cls._parse_datetime(row["updated_at"]),
            completed_at=cls._parse_datetime_optional(row.get("completed_at")),
        )
