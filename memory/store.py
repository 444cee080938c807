from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any


SUMMARY_COLUMNS = "channel_id, summary, message_count, updated_at, last_message_at, server_id"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _summary_row_to_dict(row: tuple) -> dict[str, Any]:
    return {
        "channel_id": str(row[0]),
        "summary": row[1] or "",
        "message_count": int(row[2] or 0),
        "updated_at": row[3],
        "last_message_at": row[4],
        "server_id": row[5],
    }


def get_summary_sync(conn: sqlite3.Connection, channel_id: str) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        f"SELECT {SUMMARY_COLUMNS} FROM summaries WHERE channel_id = ? LIMIT 1",
        (str(channel_id),),
    )
    row = cur.fetchone()
    return _summary_row_to_dict(row) if row else None


def list_summaries_sync(conn: sqlite3.Connection, limit: int = 100) -> list[dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(
        f"SELECT {SUMMARY_COLUMNS} FROM summaries ORDER BY updated_at DESC LIMIT ?",
        (max(1, int(limit)),),
    )
    return [_summary_row_to_dict(row) for row in cur.fetchall()]


def upsert_summary_sync(
    conn: sqlite3.Connection,
    channel_id: str,
    *,
    summary: str | None = None,
    message_count: int | None = None,
    server_id: str | None = None,
) -> dict[str, Any]:
    """
    Partial upsert: only the fields passed are written, the rest keep their stored
    (or default) values. message_count never moves backwards.
    """
    now = _utc_now_iso()
    count = max(0, int(message_count)) if message_count is not None else None
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO summaries (channel_id, summary, message_count, updated_at, last_message_at, server_id)
        VALUES (?, COALESCE(?, ''), COALESCE(?, 0), ?, ?, ?)
        ON CONFLICT(channel_id) DO UPDATE SET
            summary=COALESCE(?, summaries.summary),
            message_count=MAX(summaries.message_count, COALESCE(?, summaries.message_count)),
            updated_at=excluded.updated_at,
            last_message_at=excluded.last_message_at,
            server_id=COALESCE(excluded.server_id, summaries.server_id)
        """,
        (
            str(channel_id),
            summary,
            count,
            now,
            now,
            str(server_id) if server_id is not None else None,
            summary,
            count,
        ),
    )
    conn.commit()
    row = get_summary_sync(conn, channel_id)
    if row is None:
        raise RuntimeError(f"Failed to fetch summary for channel {channel_id} after upsert")
    return row


def increment_message_count_sync(
    conn: sqlite3.Connection,
    channel_id: str,
    increment: int = 2,
    server_id: str | None = None,
) -> int:
    """Atomically add `increment` to the channel counter and return the new total."""
    step = max(0, int(increment))
    now = _utc_now_iso()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO summaries (channel_id, summary, message_count, updated_at, last_message_at, server_id)
        VALUES (?, '', ?, ?, ?, ?)
        ON CONFLICT(channel_id) DO UPDATE SET
            message_count=summaries.message_count + excluded.message_count,
            updated_at=excluded.updated_at,
            last_message_at=excluded.last_message_at,
            server_id=COALESCE(excluded.server_id, summaries.server_id)
        """,
        (str(channel_id), step, now, now, str(server_id) if server_id is not None else None),
    )
    cur.execute("SELECT message_count FROM summaries WHERE channel_id = ? LIMIT 1", (str(channel_id),))
    row = cur.fetchone()
    conn.commit()
    return int(row[0]) if row else step


def reset_summary_sync(conn: sqlite3.Connection, channel_id: str) -> bool:
    # Full row delete: text and counter go back to the "no record" state together.
    cur = conn.cursor()
    cur.execute("DELETE FROM summaries WHERE channel_id = ?", (str(channel_id),))
    conn.commit()
    return bool(cur.rowcount)


def summary_totals_sync(conn: sqlite3.Connection) -> dict[str, int]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT COUNT(*), COALESCE(SUM(message_count), 0), COALESCE(SUM(LENGTH(summary)), 0)
        FROM summaries
        """
    )
    row = cur.fetchone() or (0, 0, 0)
    return {
        "summaries": int(row[0] or 0),
        "message_count": int(row[1] or 0),
        "summary_chars": int(row[2] or 0),
    }
