from __future__ import annotations

import asyncio
from typing import Any


class CompletionProvider:
    """
    Stateless prompt -> text wrapper around an OpenAI chat-completions client.

    `complete` returns None on any provider error, timeout, or empty output and
    never retries; callers degrade gracefully instead.
    """

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        temperature: float = 0.7,
        max_output_tokens: int = 500,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = float(temperature)
        self.max_output_tokens = int(max_output_tokens)

    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> str | None:
        if not (prompt or "").strip():
            return None

        try:
            resp = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=(model or self.model),
                messages=[{"role": "user", "content": prompt}],
                temperature=float(temperature if temperature is not None else self.temperature),
                max_completion_tokens=int(max_output_tokens or self.max_output_tokens),
            )
            text = resp.choices[0].message.content if resp and resp.choices else None
        except Exception as e:
            print(f"[OpenAI] completion failed: {e}")
            return None

        if not text or not str(text).strip():
            print("[OpenAI] no text content in completion response")
            return None
        return str(text)


def completion_overrides(ai_config: dict | None) -> dict[str, Any]:
    """Pick per-request model/temperature/output-cap overrides out of a stored ai_config."""
    cfg = ai_config if isinstance(ai_config, dict) else {}
    out: dict[str, Any] = {}
    model = str(cfg.get("model") or "").strip()
    if model:
        out["model"] = model
    try:
        if cfg.get("temperature") is not None:
            out["temperature"] = float(cfg["temperature"])
    except (TypeError, ValueError):
        pass
    try:
        if cfg.get("max_output_tokens") is not None:
            out["max_output_tokens"] = max(1, int(cfg["max_output_tokens"]))
    except (TypeError, ValueError):
        pass
    return out
