from __future__ import annotations

import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from app.core.config import settings
from app.schemas.catalog import SimulationEntry


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_db_path() -> Path:
    return Path(settings.catalog_db_path)


def slugify(value: str) -> str:
    slug = (value or "").lower().replace("&", " and ")
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = slug.strip("-")
    return slug[:64]


def init_db() -> None:
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS simulations (
                slug TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS role_requests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                email TEXT NOT NULL,
                role TEXT NOT NULL
            )
            """
        )
        conn.commit()


def list_simulations() -> list[SimulationEntry]:
    """Return every known simulation, active or not, ordered by title ascending."""
    db_path = _get_db_path()
    if not db_path.exists():
        return []
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute("SELECT slug, title, active FROM simulations ORDER BY title ASC")
        rows = cur.fetchall()
    return [SimulationEntry(slug=slug, title=title, active=bool(active)) for slug, title, active in rows]


def get_simulation(slug: str) -> SimulationEntry | None:
    db_path = _get_db_path()
    if not db_path.exists():
        return None
    with sqlite3.connect(db_path) as conn:
        row = conn.execute(
            "SELECT slug, title, active FROM simulations WHERE slug = ?",
            (slug,),
        ).fetchone()
    if row is None:
        return None
    return SimulationEntry(slug=row[0], title=row[1], active=bool(row[2]))


def upsert_simulation(*, slug: str, title: str, active: bool = True) -> SimulationEntry:
    if not slug or not title.strip():
        raise ValueError("simulation requires a slug and a title")
    with sqlite3.connect(_get_db_path()) as conn:
        conn.execute(
            """
            INSERT INTO simulations (slug, title, active, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(slug) DO UPDATE SET title = excluded.title, active = excluded.active
            """,
            (slug, title.strip(), 1 if active else 0, _utc_now()),
        )
        conn.commit()
    return SimulationEntry(slug=slug, title=title.strip(), active=active)


def record_role_request(*, email: str, role: str) -> None:
    with sqlite3.connect(_get_db_path()) as conn:
        conn.execute(
            "INSERT INTO role_requests (created_at, email, role) VALUES (?, ?, ?)",
            (_utc_now(), email, role),
        )
        conn.commit()


def count_role_requests(role: str | None = None) -> int:
    db_path = _get_db_path()
    if not db_path.exists():
        return 0
    with sqlite3.connect(db_path) as conn:
        if role is None:
            cur = conn.execute("SELECT COUNT(*) FROM role_requests")
        else:
            cur = conn.execute("SELECT COUNT(*) FROM role_requests WHERE role = ?", (role,))
        return int(cur.fetchone()[0])
