from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    # Recency window reads newest-first per channel.
    cur.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_messages_channel_created
        ON messages(channel_id, created_at DESC, id DESC)
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_summaries_updated_at ON summaries(updated_at)")
