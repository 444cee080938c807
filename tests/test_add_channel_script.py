from __future__ import annotations

import os
import tempfile
import unittest
from unittest import mock

from controller.store import list_allowed_channels_sync
from db.migrate import init_db
from scripts.add_channel import _main
from scripts.add_channel import add_channel


class AddChannelScriptTests(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.mkdtemp()
        self.db_path = os.path.join(tmp, "copilot_test.db")

    def tearDown(self):
        for suffix in ("", "-wal", "-shm"):
            path = self.db_path + suffix
            if os.path.exists(path):
                os.unlink(path)
        os.rmdir(os.path.dirname(self.db_path))

    def test_add_is_idempotent(self):
        row, created = add_channel(self.db_path, "123456789012", "900", "general")
        self.assertTrue(created)
        self.assertEqual(row["channel_name"], "general")

        again, created = add_channel(self.db_path, "123456789012", "900", "renamed")
        self.assertFalse(created)
        self.assertEqual(again["id"], row["id"])

        conn = init_db(self.db_path)
        try:
            self.assertEqual(len(list_allowed_channels_sync(conn)), 1)
        finally:
            conn.close()

    def test_main_validates_arguments(self):
        with mock.patch.dict(os.environ, {"COPILOT_DB_PATH": self.db_path}):
            self.assertEqual(_main([]), 1)
            self.assertEqual(_main(["general"]), 1)
            self.assertEqual(_main(["<#123456789012>", "900", "ops", "room"]), 0)

        row, created = add_channel(self.db_path, "123456789012", None, None)
        self.assertFalse(created)
        self.assertEqual(row["channel_name"], "ops room")
        self.assertEqual(row["server_id"], "900")


if __name__ == "__main__":
    unittest.main()
