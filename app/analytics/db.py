from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

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
            CREATE TABLE IF NOT EXISTS ai_service_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                task TEXT NOT NULL,
                service_used TEXT NOT NULL,
                fallback INTEGER NOT NULL,
                attempts_json TEXT NOT NULL,
                latency_ms INTEGER
            )
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ai_service_runs_created_at
            ON ai_service_runs (created_at)
            """
        )
        conn.commit()
    purge_old_records()


def log_ai_service_run(
    *,
    task: str,
    service_used: str,
    attempts: Sequence[str],
    degraded: bool,
    latency_ms: int | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    db_path = _get_db_path()
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO ai_service_runs (
                created_at, task, service_used, fallback, attempts_json, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                task,
                service_used,
                1 if degraded else 0,
                json.dumps(list(attempts)),
                latency_ms,
            ),
        )
        conn.commit()


def purge_old_records() -> dict[str, int]:
    if not settings.analytics_enabled:
        return {"ai_service_runs": 0}

    db_path = _get_db_path()
    retention = max(1, int(settings.analytics_retention_days))
    cutoff = datetime.now(timezone.utc).timestamp() - retention * 86400
    cutoff_iso = datetime.fromtimestamp(cutoff, timezone.utc).isoformat()

    with sqlite3.connect(db_path) as conn:
        cur = conn.execute("DELETE FROM ai_service_runs WHERE created_at < ?", (cutoff_iso,))
        deleted = int(cur.rowcount or 0)
        conn.commit()
    return {"ai_service_runs": deleted}


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def get_summary() -> dict[str, Any]:
    if not settings.analytics_enabled:
        return {"enabled": False}
    db_path = _get_db_path()
    with sqlite3.connect(db_path) as conn:
        total = conn.execute("SELECT COUNT(*) FROM ai_service_runs").fetchone()[0]
        fallback_total = conn.execute("SELECT COUNT(*) FROM ai_service_runs WHERE fallback = 1").fetchone()[0]
        cur = conn.execute(
            """
            SELECT service_used, COUNT(*) AS count
            FROM ai_service_runs
            GROUP BY service_used
            """
        )
        by_service = {row[0]: row[1] for row in cur.fetchall()}
        cur = conn.execute(
            """
            SELECT task, COUNT(*) AS count, AVG(latency_ms) AS avg_latency_ms
            FROM ai_service_runs
            GROUP BY task
            """
        )
        by_task = {
            row[0]: {"count": row[1], "avg_latency_ms": round(row[2] or 0.0, 1)}
            for row in cur.fetchall()
        }
    return {
        "enabled": True,
        "total": total,
        "fallback_total": fallback_total,
        "by_service": by_service,
        "by_task": by_task,
    }


def get_latest(limit: int = 20) -> list[dict[str, Any]]:
    if not settings.analytics_enabled:
        return []
    db_path = _get_db_path()
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            """
            SELECT created_at, task, service_used, fallback, attempts_json, latency_ms
            FROM ai_service_runs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = [_row_to_dict(cur, row) for row in cur.fetchall()]
    for row in rows:
        row["fallback"] = bool(row["fallback"])
        row["attempts"] = json.loads(row.pop("attempts_json") or "[]")
    return rows
