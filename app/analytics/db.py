from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.core.config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_db_path() -> Path:
    return Path(settings.analytics_db_path)


def init_db() -> None:
    if not settings.analytics_enabled:
        return
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS discovery_outcomes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                flow TEXT NOT NULL,
                outcome TEXT NOT NULL,
                role TEXT,
                slug TEXT,
                turns INTEGER NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS generation_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                run_id TEXT NOT NULL,
                flow TEXT NOT NULL,
                model TEXT NOT NULL,
                schema_valid INTEGER NOT NULL,
                status TEXT NOT NULL,
                error_code TEXT,
                latency_ms INTEGER
            )
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_generation_runs_created_at
            ON generation_runs (created_at)
            """
        )
        conn.commit()
    purge_old_records()


def log_discovery_outcome(
    *,
    flow: str,
    outcome: str,
    role: str | None,
    slug: str | None,
    turns: int,
) -> None:
    if not settings.analytics_enabled:
        return
    with sqlite3.connect(_get_db_path()) as conn:
        conn.execute(
            """
            INSERT INTO discovery_outcomes (created_at, flow, outcome, role, slug, turns)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (_utc_now(), flow, outcome, role, slug, turns),
        )
        conn.commit()


def log_generation_run(
    *,
    run_id: str,
    flow: str,
    model: str,
    schema_valid: bool,
    status: str,
    error_code: str | None = None,
    latency_ms: int | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    with sqlite3.connect(_get_db_path()) as conn:
        conn.execute(
            """
            INSERT INTO generation_runs (
                created_at, run_id, flow, model, schema_valid, status, error_code, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                run_id,
                flow,
                model,
                1 if schema_valid else 0,
                status,
                error_code,
                latency_ms,
            ),
        )
        conn.commit()


def purge_old_records() -> dict[str, int]:
    if not settings.analytics_enabled:
        return {"discovery_outcomes": 0, "generation_runs": 0}

    retention = max(1, int(settings.analytics_retention_days))
    deleted = {"discovery_outcomes": 0, "generation_runs": 0}
    with sqlite3.connect(_get_db_path()) as conn:
        for table in deleted:
            cur = conn.execute(
                f"DELETE FROM {table} WHERE created_at < datetime('now', ?)",
                (f"-{retention} days",),
            )
            deleted[table] = int(cur.rowcount or 0)
        conn.commit()

    return deleted


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def get_summary() -> dict[str, Any]:
    if not settings.analytics_enabled:
        return {"enabled": False}
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            """
            SELECT outcome, COUNT(*) AS count
            FROM discovery_outcomes
            GROUP BY outcome
            """
        )
        outcomes = {outcome: count for outcome, count in cur.fetchall()}
        cur = conn.execute(
            """
            SELECT role, COUNT(*) AS count
            FROM discovery_outcomes
            WHERE role IS NOT NULL AND outcome = 'not_found'
            GROUP BY role
            ORDER BY count DESC
            LIMIT 10
            """
        )
        missing_roles = [_row_to_dict(cur, row) for row in cur.fetchall()]
        cur = conn.execute(
            """
            SELECT status, COUNT(*) AS count
            FROM generation_runs
            WHERE created_at >= datetime('now', '-7 days')
            GROUP BY status
            """
        )
        runs_7d = {status: count for status, count in cur.fetchall()}
    return {
        "enabled": True,
        "outcomes": outcomes,
        "missing_roles": missing_roles,
        "generation_runs_7d": runs_7d,
    }


def get_latest(limit: int = 20) -> list[dict[str, Any]]:
    if not settings.analytics_enabled:
        return []
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            """
            SELECT created_at, flow, outcome, role, slug, turns
            FROM discovery_outcomes
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = cur.fetchall()
        return [_row_to_dict(cur, row) for row in rows]
