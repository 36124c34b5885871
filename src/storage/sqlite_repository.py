# src/storage/sqlite_repository.py - v1
"""SQLite-backed repository (REPOSITORY_BACKEND=sqlite).

Uses stdlib sqlite3. Work items and targets are stored as JSON documents
with their filterable columns split out; the run ledger is a plain table.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from contentflow.core.errors import ConcurrentUpdateError, NotFoundError
from contentflow.core.models import (
    PublishTarget,
    RunFilter,
    RunRecord,
    StepName,
    WorkItem,
    WorkItemStatus,
    ensure_utc,
    utcnow,
)
from contentflow.storage.base_repository import BaseRepository

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS work_items (
    id TEXT PRIMARY KEY,
    status TEXT NOT NULL,
    target_id TEXT,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_work_items_status ON work_items(status);
CREATE TABLE IF NOT EXISTS publish_targets (
    id TEXT PRIMARY KEY,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS pipeline_runs (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    work_item_id TEXT NOT NULL,
    step TEXT NOT NULL,
    status TEXT NOT NULL,
    model_used TEXT,
    tokens_in INTEGER NOT NULL DEFAULT 0,
    tokens_out INTEGER NOT NULL DEFAULT 0,
    cost_usd REAL NOT NULL DEFAULT 0,
    duration_ms INTEGER NOT NULL DEFAULT 0,
    error TEXT,
    output TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_runs_item ON pipeline_runs(work_item_id);
CREATE INDEX IF NOT EXISTS idx_runs_created ON pipeline_runs(created_at);
"""

_RUN_COLUMNS = (
    "id, work_item_id, step, status, model_used, tokens_in, tokens_out, "
    "cost_usd, duration_ms, error, output, created_at"
)


def _iso(value: datetime) -> str:
    return ensure_utc(value).isoformat()


def _row_to_run(row: tuple) -> RunRecord:
    return RunRecord(
        id=row[0],
        work_item_id=row[1],
        step=StepName(row[2]),
        status=row[3],
        model_used=row[4],
        tokens_in=row[5],
        tokens_out=row[6],
        cost_usd=row[7],
        duration_ms=row[8],
        error=row[9],
        output=json.loads(row[10]) if row[10] else {},
        created_at=datetime.fromisoformat(row[11]),
    )


class SqliteRepository(BaseRepository):
    """SQLite repository; conditional updates use a status-guarded UPDATE."""

    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) == ":memory:":
            target = ":memory:"
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)
        self._conn = sqlite3.connect(target)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    # --- Work items ---

    async def create(self, item: WorkItem) -> WorkItem:
        self._conn.execute(
            "INSERT INTO work_items (id, status, target_id, data, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (item.id, item.status.value, item.target_id,
             item.model_dump_json(), _iso(item.updated_at)),
        )
        self._conn.commit()
        return item

    async def get(self, work_item_id: str) -> WorkItem | None:
        row = self._conn.execute(
            "SELECT data FROM work_items WHERE id = ?", (work_item_id,)
        ).fetchone()
        if row is None:
            return None
        return WorkItem.model_validate_json(row[0])

    async def update(
        self,
        work_item_id: str,
        fields: dict[str, Any],
        expected_status: WorkItemStatus | None = None,
    ) -> WorkItem:
        current = await self.get(work_item_id)
        if current is None:
            raise NotFoundError("work item", work_item_id)

        updated = current.model_copy(update={**fields, "updated_at": utcnow()}, deep=True)
        # Round-trip through validation so enum/nested types are normalised.
        updated = WorkItem.model_validate_json(updated.model_dump_json())
        guard = WorkItemStatus(expected_status).value if expected_status else current.status.value

        cursor = self._conn.execute(
            "UPDATE work_items SET status = ?, target_id = ?, data = ?, updated_at = ? "
            "WHERE id = ? AND status = ?",
            (updated.status.value, updated.target_id, updated.model_dump_json(),
             _iso(updated.updated_at), work_item_id, guard),
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            raise ConcurrentUpdateError(work_item_id, guard, current.status.value)
        return updated

    async def list_items(
        self,
        status: WorkItemStatus | None = None,
        target_id: str | None = None,
    ) -> list[WorkItem]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(WorkItemStatus(status).value)
        if target_id is not None:
            clauses.append("target_id = ?")
            params.append(target_id)
        sql = "SELECT data FROM work_items"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        rows = self._conn.execute(sql, params).fetchall()
        return [WorkItem.model_validate_json(r[0]) for r in rows]

    # --- Targets ---

    async def put_target(self, target: PublishTarget) -> PublishTarget:
        self._conn.execute(
            "INSERT OR REPLACE INTO publish_targets (id, data) VALUES (?, ?)",
            (target.id, target.model_dump_json()),
        )
        self._conn.commit()
        return target

    async def get_target(self, target_id: str) -> PublishTarget | None:
        row = self._conn.execute(
            "SELECT data FROM publish_targets WHERE id = ?", (target_id,)
        ).fetchone()
        return PublishTarget.model_validate_json(row[0]) if row else None

    # --- Run ledger ---

    async def append_run(self, record: RunRecord) -> None:
        self._conn.execute(
            f"INSERT INTO pipeline_runs ({_RUN_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.id, record.work_item_id, record.step.value, record.status,
                record.model_used, record.tokens_in, record.tokens_out,
                record.cost_usd, record.duration_ms, record.error,
                json.dumps(record.output) if record.output else None,
                _iso(record.created_at),
            ),
        )
        self._conn.commit()

    async def query_runs(self, run_filter: RunFilter | None = None) -> list[RunRecord]:
        run_filter = run_filter or RunFilter()
        clauses: list[str] = []
        params: list[Any] = []
        if run_filter.work_item_id:
            clauses.append("work_item_id = ?")
            params.append(run_filter.work_item_id)
        if run_filter.work_item_ids is not None:
            if not run_filter.work_item_ids:
                return []
            clauses.append(
                "work_item_id IN (" + ", ".join("?" * len(run_filter.work_item_ids)) + ")"
            )
            params.extend(run_filter.work_item_ids)
        if run_filter.step:
            clauses.append("step = ?")
            params.append(run_filter.step.value)
        if run_filter.status:
            clauses.append("status = ?")
            params.append(run_filter.status)
        if run_filter.created_from:
            clauses.append("created_at >= ?")
            params.append(_iso(run_filter.created_from))
        if run_filter.created_to:
            clauses.append("created_at <= ?")
            params.append(_iso(run_filter.created_to))

        sql = f"SELECT {_RUN_COLUMNS} FROM pipeline_runs"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        order = "DESC" if run_filter.newest_first else "ASC"
        sql += f" ORDER BY created_at {order}, seq {order}"
        if run_filter.limit is not None:
            sql += " LIMIT ?"
            params.append(run_filter.limit)

        return [_row_to_run(row) for row in self._conn.execute(sql, params).fetchall()]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
