from __future__ import annotations

import unittest

from controller.context import parse_channel_id_token
from controller.context import parse_float
from controller.context import parse_id_set
from controller.context import resolve_effective_channel


class ParseHelpersTests(unittest.TestCase):
    def test_parse_id_set_accepts_mixed_separators(self):
        self.assertEqual(
            parse_id_set("123456789012, 223456789012;323456789012 nope"),
            {123456789012, 223456789012, 323456789012},
        )

    def test_parse_id_set_empty(self):
        self.assertEqual(parse_id_set(None), set())
        self.assertEqual(parse_id_set("  "), set())

    def test_parse_channel_id_token(self):
        self.assertEqual(parse_channel_id_token("<#123456789012>"), "123456789012")
        self.assertEqual(parse_channel_id_token(" 123456789012 "), "123456789012")
        self.assertIsNone(parse_channel_id_token("general"))
        self.assertIsNone(parse_channel_id_token(""))

    def test_parse_float_falls_back(self):
        self.assertEqual(parse_float("12.5", 30.0), 12.5)
        self.assertEqual(parse_float("soon", 30.0), 30.0)
        self.assertEqual(parse_float(None, 30.0), 30.0)


class EffectiveChannelTests(unittest.TestCase):
    def test_direct_channel(self):
        self.assertEqual(
            resolve_effective_channel("100", None, allowed_direct=True, allowed_parent=False),
            "100",
        )

    def test_thread_under_allowed_parent_uses_parent(self):
        self.assertEqual(
            resolve_effective_channel("777", "100", allowed_direct=False, allowed_parent=True),
            "100",
        )

    def test_parent_wins_when_both_are_allowed(self):
        self.assertEqual(
            resolve_effective_channel("777", "100", allowed_direct=True, allowed_parent=True),
            "100",
        )

    def test_allowed_thread_under_unlisted_parent_uses_itself(self):
        self.assertEqual(
            resolve_effective_channel("777", "100", allowed_direct=True, allowed_parent=False),
            "777",
        )

    def test_unauthorized(self):
        self.assertIsNone(resolve_effective_channel("777", "100", allowed_direct=False, allowed_parent=False))
        self.assertIsNone(resolve_effective_channel("100", None, allowed_direct=False, allowed_parent=False))


if __name__ == "__main__":
    unittest.main()
