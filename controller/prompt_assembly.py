from __future__ import annotations

import math

from config.defaults import DISCORD_MAX_MESSAGE_LEN

CHARS_PER_TOKEN = 4
SUMMARY_TOKEN_BUDGET = 75
RECENT_MESSAGES_TOKEN_BUDGET = 150
ELLIPSIS = "..."

DEFAULT_INSTRUCTIONS = "You are a helpful Discord assistant."
DEFAULT_SUMMARY = "No previous context."
DEFAULT_RECENT_MESSAGES = "No recent messages."
DEFAULT_RETRIEVED = "No retrieved knowledge for this query."

SECTION_RULE = "=" * 63


def estimate_tokens(text: str) -> int:
    # ~4 characters per token; model tokenizers vary.
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)


def truncate_to_token_limit(text: str, max_tokens: int) -> str:
    text = text or ""
    if estimate_tokens(text) <= max_tokens:
        return text
    max_chars = max(0, int(max_tokens) * CHARS_PER_TOKEN - len(ELLIPSIS))
    return text[:max_chars].rstrip() + ELLIPSIS


def build_prompt(
    instructions: str | None,
    summary: str | None,
    recent_messages: str | None,
    user_message: str | None,
    retrieved: str | None = None,
) -> str:
    """
    Compose the provider-facing prompt.

    Section order and labels are fixed; changing them changes model behavior.
    Summary and recent messages are truncated to their token budgets.
    """
    instructions_text = (instructions or "").strip() or DEFAULT_INSTRUCTIONS
    summary_text = truncate_to_token_limit((summary or "").strip() or DEFAULT_SUMMARY, SUMMARY_TOKEN_BUDGET)
    recent_text = truncate_to_token_limit(
        (recent_messages or "").strip() or DEFAULT_RECENT_MESSAGES,
        RECENT_MESSAGES_TOKEN_BUDGET,
    )
    user_text = (user_message or "").strip()
    retrieved_text = (retrieved or "").strip() or DEFAULT_RETRIEVED

    sections = [
        "You are a helpful Discord AI assistant. Respond concisely and naturally.",
        SECTION_RULE,
        f"SYSTEM INSTRUCTIONS:\n{instructions_text}",
        SECTION_RULE,
        "CONVERSATION CONTEXT:\n\n"
        f"Long-term Summary (rolling context to save tokens):\n{summary_text}\n\n"
        f"Recent Messages (last few turns for immediate context):\n{recent_text}\n\n"
        f"Retrieved Knowledge (semantic search results):\n{retrieved_text}",
        SECTION_RULE,
        f"USER'S CURRENT MESSAGE:\n{user_text}",
        SECTION_RULE,
        "Respond directly to the user's message. Be helpful, accurate, and concise.\n"
        f"Keep responses under {DISCORD_MAX_MESSAGE_LEN} characters (Discord message limit).",
    ]
    return "\n\n".join(sections)


def prompt_stats(prompt: str, *, summary: str, recent_messages: str) -> str:
    return (
        f"prompt_tokens~{estimate_tokens(prompt)} "
        f"summary_tokens~{estimate_tokens(summary)} "
        f"recent_tokens~{estimate_tokens(recent_messages)}"
    )
