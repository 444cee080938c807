from __future__ import annotations

import sqlite3
from typing import Any


VALID_ROLES = {"user", "assistant"}


def insert_message_sync(conn: sqlite3.Connection, payload: dict) -> bool:
    """Append one message-log row. Returns False when the (channel_id, message_id) pair already exists."""
    role = str(payload.get("role") or "").strip().lower()
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid message role: {payload.get('role')!r}")

    cur = conn.cursor()
    cur.execute(
        """
        INSERT OR IGNORE INTO messages (
            channel_id, message_id,
            author_id, author_name,
            content, role,
            created_at, server_id
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            str(payload["channel_id"]),
            str(payload["message_id"]),
            str(payload["author_id"]),
            payload.get("author_name"),
            payload.get("content") or "",
            role,
            payload["created_at"],
            str(payload["server_id"]) if payload.get("server_id") is not None else None,
        ),
    )
    conn.commit()
    return bool(cur.rowcount)


def fetch_recent_messages_sync(
    conn: sqlite3.Connection,
    channel_id: str,
    limit: int,
) -> list[dict[str, Any]]:
    """Most recent `limit` messages of a channel, returned oldest first."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT author_name, content, role, created_at
        FROM messages
        WHERE channel_id = ?
          AND content IS NOT NULL
          AND TRIM(content) != ''
        ORDER BY created_at DESC, id DESC
        LIMIT ?
        """,
        (str(channel_id), max(1, int(limit))),
    )
    rows = cur.fetchall()
    rows.reverse()
    return [
        {
            "author_name": author_name or "unknown",
            "content": content,
            "role": role,
            "created_at": created_at,
        }
        for author_name, content, role, created_at in rows
    ]


def count_messages_sync(conn: sqlite3.Connection, channel_id: str | None = None) -> int:
    cur = conn.cursor()
    if channel_id is None:
        cur.execute("SELECT COUNT(*) FROM messages")
    else:
        cur.execute("SELECT COUNT(*) FROM messages WHERE channel_id = ?", (str(channel_id),))
    row = cur.fetchone()
    return int(row[0]) if row else 0
