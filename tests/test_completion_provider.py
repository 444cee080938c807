from __future__ import annotations

import unittest
from types import SimpleNamespace

from controller.completion import CompletionProvider
from controller.completion import completion_overrides


class _DummyCompletions:
    def __init__(self, content=None, error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def _client(completions: _DummyCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class CompletionProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_returns_text_and_sends_single_user_message(self):
        completions = _DummyCompletions("Hello there.")
        provider = CompletionProvider(client=_client(completions), model="gpt-4o-mini")
        self.assertEqual(await provider.complete("Say hi"), "Hello there.")

        call = completions.calls[0]
        self.assertEqual(call["model"], "gpt-4o-mini")
        self.assertEqual(call["messages"], [{"role": "user", "content": "Say hi"}])
        self.assertEqual(call["temperature"], 0.7)
        self.assertEqual(call["max_completion_tokens"], 500)

    async def test_overrides_apply_per_call(self):
        completions = _DummyCompletions("ok")
        provider = CompletionProvider(client=_client(completions), model="gpt-4o-mini")
        await provider.complete("x", model="gpt-4o", temperature=0.1)
        self.assertEqual(completions.calls[0]["model"], "gpt-4o")
        self.assertEqual(completions.calls[0]["temperature"], 0.1)

    async def test_output_cap_override_applies_per_call(self):
        completions = _DummyCompletions("ok")
        provider = CompletionProvider(client=_client(completions), model="m", max_output_tokens=500)
        await provider.complete("x", max_output_tokens=50)
        await provider.complete("y")
        self.assertEqual(completions.calls[0]["max_completion_tokens"], 50)
        self.assertEqual(completions.calls[1]["max_completion_tokens"], 500)

    async def test_provider_error_returns_none_without_retry(self):
        completions = _DummyCompletions(error=RuntimeError("timeout"))
        provider = CompletionProvider(client=_client(completions), model="m")
        self.assertIsNone(await provider.complete("x"))
        self.assertEqual(len(completions.calls), 1)

    async def test_empty_output_returns_none(self):
        provider = CompletionProvider(client=_client(_DummyCompletions("  ")), model="m")
        self.assertIsNone(await provider.complete("x"))

    async def test_blank_prompt_skips_the_call(self):
        completions = _DummyCompletions("unused")
        provider = CompletionProvider(client=_client(completions), model="m")
        self.assertIsNone(await provider.complete("   "))
        self.assertEqual(completions.calls, [])


class CompletionOverridesTests(unittest.TestCase):
    def test_picks_model_temperature_and_output_cap(self):
        cfg = {"provider": "openai", "model": "gpt-4o", "temperature": "0.3", "max_output_tokens": 500}
        self.assertEqual(
            completion_overrides(cfg),
            {"model": "gpt-4o", "temperature": 0.3, "max_output_tokens": 500},
        )

    def test_ignores_missing_or_bad_values(self):
        self.assertEqual(completion_overrides(None), {})
        self.assertEqual(completion_overrides({"model": " ", "temperature": "warm", "max_output_tokens": "lots"}), {})
        self.assertEqual(completion_overrides({"max_output_tokens": 0}), {"max_output_tokens": 1})


if __name__ == "__main__":
    unittest.main()
