from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from config.defaults import DEFAULT_AI_CONFIG
from config.defaults import DEFAULT_COMPLETION_FAILURE_REPLY
from config.defaults import DEFAULT_GENERIC_ERROR_REPLY


@dataclass(slots=True)
class AssistantConfig:
    version: str = "assistant_v1"
    ai_config: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_AI_CONFIG))
    completion_failure_reply: str = DEFAULT_COMPLETION_FAILURE_REPLY
    generic_error_reply: str = DEFAULT_GENERIC_ERROR_REPLY


def default_assistant_config() -> AssistantConfig:
    return AssistantConfig()


def _coerce_ai_config(value: Any, defaults: dict[str, Any]) -> dict[str, Any]:
    out = dict(defaults)
    if not isinstance(value, dict):
        return out

    provider = str(value.get("provider") or "").strip()
    if provider:
        out["provider"] = provider
    model = str(value.get("model") or "").strip()
    if model:
        out["model"] = model
    try:
        if value.get("temperature") is not None:
            out["temperature"] = min(2.0, max(0.0, float(value["temperature"])))
    except (TypeError, ValueError):
        pass
    try:
        if value.get("max_output_tokens") is not None:
            out["max_output_tokens"] = max(1, int(value["max_output_tokens"]))
    except (TypeError, ValueError):
        pass
    return out


def load_assistant_config(path: str | Path | None) -> tuple[AssistantConfig, str | None]:
    """
    Returns (config, warning_message). warning_message is None on clean load.
    """
    defaults = default_assistant_config()
    if not path:
        return (defaults, "Assistant config path missing; using built-in defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Assistant config file not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read assistant config from {p}: {exc}; using built-in defaults.")

    if not isinstance(payload, dict):
        return (defaults, f"Invalid assistant config format in {p}; using built-in defaults.")

    replies = payload.get("replies") if isinstance(payload.get("replies"), dict) else {}
    config = AssistantConfig(
        version=str(payload.get("version") or defaults.version),
        ai_config=_coerce_ai_config(payload.get("ai_config"), defaults.ai_config),
        completion_failure_reply=str(replies.get("completion_failure") or "").strip()
        or defaults.completion_failure_reply,
        generic_error_reply=str(replies.get("generic_error") or "").strip() or defaults.generic_error_reply,
    )
    return (config, None)
