"""
Persistence for hook audit rows, impact reports and indexed commits.
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Union
from uuid import uuid4

from ..models.hooks import HookExecution, HookType
from ..models.impact import ImpactReport
from .database import Database

logger = logging.getLogger(__name__)

HOOK_SCHEMA = """
CREATE TABLE IF NOT EXISTS hook_executions (
    id               TEXT PRIMARY KEY,
    project_id       TEXT NOT NULL,
    hook_type        TEXT NOT NULL,
    timestamp        TEXT NOT NULL,
    repository       TEXT NOT NULL,
    branch           TEXT,
    commit_hash      TEXT,
    duration_ms      REAL NOT NULL DEFAULT 0,
    success          INTEGER NOT NULL,
    files_indexed    INTEGER NOT NULL DEFAULT 0,
    entities_updated INTEGER NOT NULL DEFAULT 0,
    message          TEXT,
    warnings_json    TEXT NOT NULL DEFAULT '[]',
    errors_json      TEXT NOT NULL DEFAULT '[]'
);
CREATE INDEX IF NOT EXISTS idx_hook_executions_project
    ON hook_executions(project_id, hook_type, timestamp);

CREATE TABLE IF NOT EXISTS impact_reports (
    id                 TEXT PRIMARY KEY,
    project_id         TEXT NOT NULL,
    generated_at       TEXT NOT NULL,
    base_branch        TEXT NOT NULL,
    target_branch      TEXT NOT NULL,
    commit_range       TEXT,
    files_added        INTEGER NOT NULL DEFAULT 0,
    files_modified     INTEGER NOT NULL DEFAULT 0,
    files_deleted      INTEGER NOT NULL DEFAULT 0,
    affected_entities  INTEGER NOT NULL DEFAULT 0,
    affected_decisions INTEGER NOT NULL DEFAULT 0,
    risk_level         TEXT NOT NULL,
    reasons_json       TEXT NOT NULL DEFAULT '[]',
    report_json        TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_impact_reports_project
    ON impact_reports(project_id, generated_at);

CREATE TABLE IF NOT EXISTS indexed_commits (
    project_id  TEXT NOT NULL,
    commit_hash TEXT NOT NULL,
    indexed_at  TEXT NOT NULL,
    file_count  INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (project_id, commit_hash)
);
"""


def _execution_from_row(row: sqlite3.Row) -> HookExecution:
    return HookExecution(
        id=row["id"],
        project_id=row["project_id"],
        hook_type=HookType(row["hook_type"]),
        timestamp=datetime.fromisoformat(row["timestamp"]),
        repository=row["repository"],
        branch=row["branch"] or "",
        commit_hash=row["commit_hash"] or "",
        duration_ms=row["duration_ms"],
        success=bool(row["success"]),
        files_indexed=row["files_indexed"],
        entities_updated=row["entities_updated"],
        message=row["message"] or "",
        warnings=json.loads(row["warnings_json"] or "[]"),
        errors=json.loads(row["errors_json"] or "[]")
    )


class HookStore:
    """SQLite persistence for hook executions and impact reports"""

    def __init__(self, database: Union[Database, str, Path] = ":memory:"):
        self.database = database if isinstance(database, Database) else Database(database)
        self.database.ensure_schema("hooks", HOOK_SCHEMA)

    async def record_execution(self, execution: HookExecution) -> None:
        """Insert one audit row"""
        def insert(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO hook_executions (
                    id, project_id, hook_type, timestamp, repository, branch, commit_hash,
                    duration_ms, success, files_indexed, entities_updated, message,
                    warnings_json, errors_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    execution.id,
                    execution.project_id,
                    execution.hook_type.value,
                    execution.timestamp.isoformat(),
                    execution.repository,
                    execution.branch,
                    execution.commit_hash,
                    execution.duration_ms,
                    int(execution.success),
                    execution.files_indexed,
                    execution.entities_updated,
                    execution.message,
                    json.dumps(execution.warnings),
                    json.dumps(execution.errors)
                )
            )

        await self.database.run(insert)

    async def get_recent_executions(
        self,
        project_id: str,
        hook_type: Optional[HookType] = None,
        limit: int = 20
    ) -> List[HookExecution]:
        """Most recent executions first"""
        sql = "SELECT * FROM hook_executions WHERE project_id = ?"
        params: List[Any] = [project_id]
        if hook_type is not None:
            sql += " AND hook_type = ?"
            params.append(hook_type.value)
        sql += " ORDER BY timestamp DESC, rowid DESC LIMIT ?"
        params.append(limit)

        def query(conn: sqlite3.Connection) -> List[HookExecution]:
            return [_execution_from_row(row) for row in conn.execute(sql, params).fetchall()]

        return await self.database.run(query)

    async def save_impact_report(self, project_id: str, report: ImpactReport) -> str:
        """Persist a report and return its row id"""
        report_id = str(uuid4())

        def insert(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO impact_reports (
                    id, project_id, generated_at, base_branch, target_branch, commit_range,
                    files_added, files_modified, files_deleted, affected_entities,
                    affected_decisions, risk_level, reasons_json, report_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    report_id,
                    project_id,
                    report.generated_at.isoformat(),
                    report.base_branch,
                    report.target_branch,
                    report.commit_range,
                    len(report.files_added),
                    len(report.files_modified),
                    len(report.files_deleted),
                    len(report.affected_entities),
                    len(report.affected_decisions),
                    report.risk_level.value,
                    json.dumps(report.reasons),
                    report.model_dump_json()
                )
            )

        await self.database.run(insert)
        return report_id

    async def get_latest_impact_report(self, project_id: str) -> Optional[ImpactReport]:
        def query(conn: sqlite3.Connection) -> Optional[ImpactReport]:
            row = conn.execute(
                """
                SELECT report_json FROM impact_reports
                WHERE project_id = ?
                ORDER BY generated_at DESC, rowid DESC LIMIT 1
                """,
                (project_id,)
            ).fetchone()
            return ImpactReport.model_validate_json(row["report_json"]) if row else None

        return await self.database.run(query)

    async def mark_commit_indexed(self, project_id: str, commit_hash: str, file_count: int) -> None:
        """Record (or refresh) an indexed commit"""
        def upsert(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO indexed_commits (project_id, commit_hash, indexed_at, file_count)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(project_id, commit_hash) DO UPDATE SET
                    indexed_at = excluded.indexed_at,
                    file_count = excluded.file_count
                """,
                (project_id, commit_hash, datetime.now().isoformat(), file_count)
            )

        await self.database.run(upsert)

    async def is_commit_indexed(self, project_id: str, commit_hash: str) -> bool:
        def query(conn: sqlite3.Connection) -> bool:
            row = conn.execute(
                "SELECT 1 FROM indexed_commits WHERE project_id = ? AND commit_hash = ?",
                (project_id, commit_hash)
            ).fetchone()
            return row is not None

        return await self.database.run(query)

    def close(self) -> None:
        self.database.close()
