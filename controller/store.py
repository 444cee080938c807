from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any


INSTRUCTIONS_KEY = "system_instructions"
AI_CONFIG_KEY = "ai_config"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dumps(value: Any, fallback: str) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except Exception:
        return fallback


def _loads(text: str | None, fallback: Any) -> Any:
    if not text:
        return fallback
    try:
        return json.loads(text)
    except Exception:
        return fallback


def _channel_row_to_dict(row: tuple) -> dict[str, Any]:
    return {
        "id": int(row[0]),
        "channel_id": str(row[1]),
        "channel_name": row[2],
        "server_id": row[3],
        "added_at": row[4],
    }


# =========================
# ALLOWED CHANNELS
# =========================
def is_channel_allowed_sync(conn: sqlite3.Connection, channel_id: str) -> bool:
    # Discord channel ids are global snowflakes; server_id is informational only.
    cur = conn.cursor()
    cur.execute("SELECT 1 FROM allowed_channels WHERE channel_id = ? LIMIT 1", (str(channel_id),))
    return cur.fetchone() is not None


def get_allowed_channel_sync(conn: sqlite3.Connection, channel_id: str) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, channel_id, channel_name, server_id, added_at
        FROM allowed_channels
        WHERE channel_id = ?
        LIMIT 1
        """,
        (str(channel_id),),
    )
    row = cur.fetchone()
    return _channel_row_to_dict(row) if row else None


def list_allowed_channels_sync(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, channel_id, channel_name, server_id, added_at
        FROM allowed_channels
        ORDER BY added_at DESC, id DESC
        """
    )
    return [_channel_row_to_dict(row) for row in cur.fetchall()]


def add_allowed_channel_sync(
    conn: sqlite3.Connection,
    channel_id: str,
    channel_name: str | None = None,
    server_id: str | None = None,
) -> dict[str, Any]:
    """Insert a channel into the allow-list; a duplicate add returns the existing row."""
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO allowed_channels (channel_id, channel_name, server_id, added_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(channel_id) DO NOTHING
        """,
        (str(channel_id), channel_name, str(server_id) if server_id is not None else None, _utc_now_iso()),
    )
    conn.commit()
    row = get_allowed_channel_sync(conn, channel_id)
    if row is None:
        raise RuntimeError(f"Failed to fetch allowed channel {channel_id} after insert")
    return row


def remove_allowed_channel_sync(conn: sqlite3.Connection, channel_id: str) -> int:
    cur = conn.cursor()
    cur.execute("DELETE FROM allowed_channels WHERE channel_id = ?", (str(channel_id),))
    conn.commit()
    return int(cur.rowcount or 0)


# =========================
# SETTINGS
# =========================
def get_setting_sync(conn: sqlite3.Connection, key: str) -> Any | None:
    cur = conn.cursor()
    cur.execute("SELECT value_json FROM settings WHERE key = ? LIMIT 1", (key,))
    row = cur.fetchone()
    if not row:
        return None
    return _loads(row[0], None)


def set_setting_sync(conn: sqlite3.Connection, key: str, value: Any) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO settings (key, value_json, updated_at)
        VALUES (?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET
            value_json=excluded.value_json,
            updated_at=excluded.updated_at
        """,
        (key, _dumps(value, "{}"), _utc_now_iso()),
    )
    conn.commit()


def get_instructions_sync(conn: sqlite3.Connection, default_ai_config: dict[str, Any]) -> dict[str, Any]:
    """
    Returns {"text": str, "ai_config": dict}.

    Missing instructions are the empty string; stored ai_config keys override the defaults.
    """
    raw_instructions = get_setting_sync(conn, INSTRUCTIONS_KEY)
    text = ""
    if isinstance(raw_instructions, dict):
        text = str(raw_instructions.get("text") or "")

    ai_config = dict(default_ai_config or {})
    raw_ai_config = get_setting_sync(conn, AI_CONFIG_KEY)
    if isinstance(raw_ai_config, dict):
        for k, v in raw_ai_config.items():
            if v is not None:
                ai_config[k] = v

    return {"text": text, "ai_config": ai_config}


def set_instructions_sync(conn: sqlite3.Connection, text: str) -> None:
    set_setting_sync(conn, INSTRUCTIONS_KEY, {"text": str(text or "")})


def update_ai_config_sync(conn: sqlite3.Connection, changes: dict[str, Any]) -> dict[str, Any]:
    current = get_setting_sync(conn, AI_CONFIG_KEY)
    merged = dict(current) if isinstance(current, dict) else {}
    merged.update({k: v for k, v in (changes or {}).items() if v is not None})
    set_setting_sync(conn, AI_CONFIG_KEY, merged)
    return merged
