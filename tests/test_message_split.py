from __future__ import annotations

import unittest

from misc.message_split import send_chunked
from misc.message_split import split_message


class SplitMessageTests(unittest.TestCase):
    def test_short_text_is_a_single_chunk(self):
        self.assertEqual(split_message("hello\nworld"), ["hello\nworld"])

    def test_empty_text_yields_no_chunks(self):
        self.assertEqual(split_message(""), [])

    def test_chunks_respect_limit_and_rejoin_to_original(self):
        lines = [f"line {i}: " + ("x" * (30 + i % 50)) for i in range(300)]
        text = "\n".join(lines)
        chunks = split_message(text, 2000)
        self.assertGreater(len(chunks), 1)
        for chunk in chunks:
            self.assertLessEqual(len(chunk), 2000)
        self.assertEqual("\n".join(chunks), text)

    def test_split_happens_on_line_boundaries(self):
        text = "\n".join(["a" * 900, "b" * 900, "c" * 900])
        self.assertEqual(split_message(text, 2000), ["a" * 900 + "\n" + "b" * 900, "c" * 900])

    def test_blank_lines_are_preserved(self):
        text = "first\n\n\nsecond"
        self.assertEqual("\n".join(split_message(text, 8)), text)

    def test_overlong_line_is_hard_cut(self):
        text = "z" * 4500
        chunks = split_message(text, 2000)
        self.assertEqual([len(c) for c in chunks], [2000, 2000, 500])
        self.assertEqual("".join(chunks), text)


class _FakeChannel:
    def __init__(self):
        self.sent: list[str] = []

    async def send(self, text: str):
        self.sent.append(text)


class SendChunkedTests(unittest.IsolatedAsyncioTestCase):
    async def test_sends_each_non_blank_chunk_in_order(self):
        channel = _FakeChannel()
        count = await send_chunked(channel, "a\n\n\n\nb", limit=1)
        self.assertEqual(channel.sent, ["a", "b"])
        self.assertEqual(count, 2)


if __name__ == "__main__":
    unittest.main()
