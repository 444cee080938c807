"""
Allow-list a channel without going through Discord.

Usage: python -m scripts.add_channel <CHANNEL_ID> [SERVER_ID] [CHANNEL_NAME]
"""

from __future__ import annotations

import os
import sys

from config.defaults import DEFAULT_DB_PATH
from controller.context import parse_channel_id_token
from controller.store import add_allowed_channel_sync
from controller.store import get_allowed_channel_sync
from db.migrate import init_db

USAGE = "Usage: python -m scripts.add_channel <CHANNEL_ID> [SERVER_ID] [CHANNEL_NAME]"


def add_channel(db_path: str, channel_id: str, server_id: str | None, channel_name: str | None) -> tuple[dict, bool]:
    """Returns (row, created). created is False when the channel was already allowed."""
    conn = init_db(db_path)
    try:
        existing = get_allowed_channel_sync(conn, channel_id)
        if existing is not None:
            return (existing, False)
        return (add_allowed_channel_sync(conn, channel_id, channel_name, server_id), True)
    finally:
        conn.close()


def _main(argv: list[str]) -> int:
    if not argv:
        print(USAGE)
        return 1

    channel_id = parse_channel_id_token(argv[0])
    if channel_id is None:
        print(f"[Script] invalid channel id: {argv[0]!r}")
        print(USAGE)
        return 1
    server_id = argv[1].strip() if len(argv) > 1 and argv[1].strip() else None
    channel_name = " ".join(argv[2:]).strip() or None

    db_path = os.getenv("COPILOT_DB_PATH", DEFAULT_DB_PATH)
    try:
        row, created = add_channel(db_path, channel_id, server_id, channel_name)
    except Exception as e:
        print(f"[Script] failed to add channel {channel_id}: {e}")
        return 1

    if created:
        print(f"[Script] channel added: {row}")
    else:
        print(f"[Script] channel already allowed: {row}")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main(sys.argv[1:]))
