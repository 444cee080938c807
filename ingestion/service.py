from __future__ import annotations

from typing import Any


async def log_exchange(
    *,
    store,
    channel_id: str,
    server_id: str | None,
    user_message: dict[str, Any],
    assistant_message: dict[str, Any],
) -> int:
    """
    Write the user turn and the assistant reply to the message log.

    Each write is independent; a failure is logged and the other write still runs.
    Returns the number of rows actually inserted (duplicates count as 0).
    """
    inserted = 0
    for label, entry in (("user", user_message), ("assistant", assistant_message)):
        try:
            ok = await store.append_message_log(
                channel_id,
                str(entry["message_id"]),
                str(entry["author_id"]),
                entry.get("author_name"),
                entry.get("content") or "",
                label,
                server_id,
            )
            if ok:
                inserted += 1
        except Exception as e:
            print(f"[Ingestion] failed to log {label} message channel={channel_id}: {e}")
    return inserted
