from __future__ import annotations

import asyncio
from typing import Coroutine

from config.defaults import MESSAGES_PER_EXCHANGE
from memory.policy import SUMMARY_INTERVAL
from memory.policy import should_summarize
from memory.service import update_summary


def spawn_background(coro: Coroutine, *, label: str, tasks: set[asyncio.Task]) -> asyncio.Task:
    """
    Detach `coro` from the caller. The task is kept in `tasks` until it finishes;
    its failure is only logged.
    """
    task = asyncio.create_task(coro)
    tasks.add(task)

    def _done(t: asyncio.Task) -> None:
        tasks.discard(t)
        if t.cancelled():
            print(f"[Background] {label} cancelled")
            return
        exc = t.exception()
        if exc is not None:
            print(f"[Background] {label} failed: {exc}")

    task.add_done_callback(_done)
    return task


async def drain_background(tasks: set[asyncio.Task]) -> None:
    """Wait for every tracked task, including ones spawned while waiting. bot.py calls this on shutdown."""
    while tasks:
        await asyncio.gather(*list(tasks), return_exceptions=True)


async def refresh_channel_memory(
    *,
    store,
    completion,
    channel_id: str,
    server_id: str | None,
    previous_summary: str,
    user_message: str,
    assistant_message: str,
    increment: int = MESSAGES_PER_EXCHANGE,
) -> str | None:
    """
    Bump the channel counter and, on a trigger boundary, merge this exchange into
    the rolling summary. Returns the stored summary text when a refresh ran.

    `previous_summary` is the value read before this exchange. Errors are logged
    and swallowed.
    """
    try:
        new_count = await store.increment_message_count(channel_id, increment, server_id)
        print(f"[Memory] message_count={new_count} channel={channel_id}")

        if not should_summarize(new_count):
            print(
                f"[Memory] summary trigger not reached: {new_count} messages "
                f"(refresh every {SUMMARY_INTERVAL})"
            )
            return None

        print(f"[Memory] summary trigger at message_count={new_count} channel={channel_id}")
        updated = await update_summary(
            previous_summary or "",
            user_message,
            assistant_message,
            completion=completion,
        )
        await store.upsert_summary(channel_id, summary=updated, server_id=server_id)
        print(f"[Memory] summary stored at message_count={new_count} channel={channel_id}")
        return updated
    except Exception as e:
        print(f"[Memory] failed to update summary or message count channel={channel_id}: {e}")
        return None
