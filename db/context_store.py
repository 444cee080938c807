from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

from controller.store import add_allowed_channel_sync
from controller.store import get_instructions_sync
from controller.store import is_channel_allowed_sync
from controller.store import list_allowed_channels_sync
from controller.store import remove_allowed_channel_sync
from controller.store import set_instructions_sync
from controller.store import update_ai_config_sync
from ingestion.store import count_messages_sync
from ingestion.store import fetch_recent_messages_sync
from ingestion.store import insert_message_sync
from memory.store import get_summary_sync
from memory.store import increment_message_count_sync
from memory.store import list_summaries_sync
from memory.store import reset_summary_sync
from memory.store import summary_totals_sync
from memory.store import upsert_summary_sync


class ContextStore:
    """
    Async face of the sqlite store.

    Every call takes the shared db lock and runs the sync query in a worker
    thread, so the event loop keeps serving other channels. Nothing is cached:
    each call reads committed state.
    """

    def __init__(self, *, db_lock, db_conn, default_ai_config: dict[str, Any] | None = None) -> None:
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.default_ai_config = dict(default_ai_config or {})

    async def _run(self, func, *args, **kwargs):
        async with self.db_lock:
            return await asyncio.to_thread(func, self.db_conn, *args, **kwargs)

    # ---- bot path ----
    async def is_channel_allowed(self, channel_id: str) -> bool:
        return bool(await self._run(is_channel_allowed_sync, str(channel_id)))

    async def get_instructions(self) -> dict[str, Any]:
        return await self._run(get_instructions_sync, self.default_ai_config)

    async def get_summary(self, channel_id: str) -> dict[str, Any] | None:
        return await self._run(get_summary_sync, str(channel_id))

    async def upsert_summary(
        self,
        channel_id: str,
        *,
        summary: str | None = None,
        message_count: int | None = None,
        server_id: str | None = None,
    ) -> dict[str, Any]:
        return await self._run(
            upsert_summary_sync,
            str(channel_id),
            summary=summary,
            message_count=message_count,
            server_id=server_id,
        )

    async def increment_message_count(
        self,
        channel_id: str,
        increment: int = 2,
        server_id: str | None = None,
    ) -> int:
        return int(await self._run(increment_message_count_sync, str(channel_id), increment, server_id))

    async def append_message_log(
        self,
        channel_id: str,
        message_id: str,
        author_id: str,
        author_name: str | None,
        content: str,
        role: str,
        server_id: str | None = None,
    ) -> bool:
        payload = {
            "channel_id": channel_id,
            "message_id": message_id,
            "author_id": author_id,
            "author_name": author_name,
            "content": content,
            "role": role,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "server_id": server_id,
        }
        return bool(await self._run(insert_message_sync, payload))

    async def get_recent_messages(self, channel_id: str, limit: int) -> list[dict[str, Any]]:
        return await self._run(fetch_recent_messages_sync, str(channel_id), int(limit))

    # ---- admin path ----
    async def reset_summary(self, channel_id: str) -> bool:
        return bool(await self._run(reset_summary_sync, str(channel_id)))

    async def list_summaries(self, limit: int = 100) -> list[dict[str, Any]]:
        return await self._run(list_summaries_sync, int(limit))

    async def list_allowed_channels(self) -> list[dict[str, Any]]:
        return await self._run(list_allowed_channels_sync)

    async def add_allowed_channel(
        self,
        channel_id: str,
        channel_name: str | None = None,
        server_id: str | None = None,
    ) -> dict[str, Any]:
        return await self._run(add_allowed_channel_sync, str(channel_id), channel_name, server_id)

    async def remove_allowed_channel(self, channel_id: str) -> int:
        return int(await self._run(remove_allowed_channel_sync, str(channel_id)))

    async def set_instructions(self, text: str) -> dict[str, Any]:
        await self._run(set_instructions_sync, text)
        return await self.get_instructions()

    async def update_ai_config(self, changes: dict[str, Any]) -> dict[str, Any]:
        await self._run(update_ai_config_sync, changes)
        instructions = await self.get_instructions()
        return instructions["ai_config"]

    async def memory_totals(self) -> dict[str, int]:
        totals = await self._run(summary_totals_sync)
        totals["logged_messages"] = int(await self._run(count_messages_sync, None))
        return totals
