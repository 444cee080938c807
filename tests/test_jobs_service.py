from __future__ import annotations

import asyncio
import unittest

from db.context_store import ContextStore
from db.migrate import init_db
from ingestion.service import log_exchange
from jobs.service import drain_background
from jobs.service import refresh_channel_memory
from jobs.service import spawn_background


class _FakeCompletion:
    def __init__(self, result="Merged summary."):
        self.result = result
        self.prompts: list[str] = []

    async def complete(self, prompt: str, **kwargs):
        self.prompts.append(prompt)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class _BrokenStore:
    async def increment_message_count(self, *args, **kwargs):
        raise RuntimeError("database is locked")

    async def append_message_log(self, *args, **kwargs):
        raise RuntimeError("database is locked")


class RefreshChannelMemoryTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = init_db(":memory:")
        self.store = ContextStore(db_lock=asyncio.Lock(), db_conn=self.conn)

    async def asyncTearDown(self):
        self.conn.close()

    async def _refresh(self, completion, previous: str = "") -> str | None:
        return await refresh_channel_memory(
            store=self.store,
            completion=completion,
            channel_id="100",
            server_id="900",
            previous_summary=previous,
            user_message="When is the release?",
            assistant_message="Friday.",
        )

    async def test_counter_below_threshold_does_not_summarize(self):
        completion = _FakeCompletion()
        self.assertIsNone(await self._refresh(completion))
        row = await self.store.get_summary("100")
        self.assertEqual(row["message_count"], 2)
        self.assertEqual(row["summary"], "")
        self.assertEqual(completion.prompts, [])

    async def test_threshold_crossing_stores_new_summary(self):
        await self.store.upsert_summary("100", summary="Old.", message_count=8)
        completion = _FakeCompletion("Release is on Friday.")
        self.assertEqual(await self._refresh(completion, previous="Old."), "Release is on Friday.")

        row = await self.store.get_summary("100")
        self.assertEqual(row["message_count"], 10)
        self.assertEqual(row["summary"], "Release is on Friday.")
        self.assertIn("Old.", completion.prompts[0])

    async def test_failed_summary_keeps_previous_text(self):
        await self.store.upsert_summary("100", summary="Old.", message_count=18)
        await self._refresh(_FakeCompletion(RuntimeError("provider down")), previous="Old.")
        row = await self.store.get_summary("100")
        self.assertEqual(row["message_count"], 20)
        self.assertEqual(row["summary"], "Old.")

    async def test_store_errors_are_swallowed(self):
        out = await refresh_channel_memory(
            store=_BrokenStore(),
            completion=_FakeCompletion(),
            channel_id="100",
            server_id=None,
            previous_summary="",
            user_message="a",
            assistant_message="b",
        )
        self.assertIsNone(out)


class LogExchangeTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = init_db(":memory:")
        self.store = ContextStore(db_lock=asyncio.Lock(), db_conn=self.conn)

    async def asyncTearDown(self):
        self.conn.close()

    async def test_both_turns_are_logged_once(self):
        user = {"message_id": 1, "author_id": 42, "author_name": "alice", "content": "hi"}
        bot = {"message_id": 2, "author_id": 7, "author_name": "Copilot", "content": "hello"}
        kwargs = dict(store=self.store, channel_id="100", server_id="900", user_message=user, assistant_message=bot)

        self.assertEqual(await log_exchange(**kwargs), 2)
        self.assertEqual(await log_exchange(**kwargs), 0)

        rows = await self.store.get_recent_messages("100", 5)
        self.assertEqual([(r["author_name"], r["role"]) for r in rows], [("alice", "user"), ("Copilot", "assistant")])

    async def test_store_errors_are_swallowed(self):
        entry = {"message_id": 1, "author_id": 42, "author_name": "alice", "content": "hi"}
        out = await log_exchange(
            store=_BrokenStore(),
            channel_id="100",
            server_id=None,
            user_message=entry,
            assistant_message=entry,
        )
        self.assertEqual(out, 0)


class BackgroundTaskTests(unittest.IsolatedAsyncioTestCase):
    async def test_tasks_are_tracked_until_done(self):
        tasks: set[asyncio.Task] = set()
        gate = asyncio.Event()

        async def job():
            await gate.wait()
            return "done"

        task = spawn_background(job(), label="job", tasks=tasks)
        self.assertIn(task, tasks)
        gate.set()
        await drain_background(tasks)
        self.assertEqual(tasks, set())
        self.assertEqual(task.result(), "done")

    async def test_failure_does_not_escape(self):
        tasks: set[asyncio.Task] = set()

        async def boom():
            raise RuntimeError("boom")

        spawn_background(boom(), label="boom", tasks=tasks)
        await drain_background(tasks)
        self.assertEqual(tasks, set())

    async def test_drain_waits_for_tasks_spawned_while_draining(self):
        tasks: set[asyncio.Task] = set()
        finished: list[str] = []

        async def child():
            await asyncio.sleep(0)
            finished.append("child")

        async def parent():
            await asyncio.sleep(0)
            spawn_background(child(), label="child", tasks=tasks)
            finished.append("parent")

        spawn_background(parent(), label="parent", tasks=tasks)
        await drain_background(tasks)
        self.assertEqual(finished, ["parent", "child"])
        self.assertEqual(tasks, set())


if __name__ == "__main__":
    unittest.main()
