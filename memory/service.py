from __future__ import annotations

import math
from typing import Any

MAX_SUMMARY_CHARS = 1000
ELLIPSIS = "..."


def build_summary_prompt(current_summary: str, new_user_message: str, new_assistant_message: str) -> str:
    return (
        "You are a precise conversation summarizer for a Discord AI assistant.\n\n"
        "TASK: Update the existing summary with new information from the latest exchange. "
        "Be factual and concise.\n\n"
        "EXISTING SUMMARY:\n"
        f"{current_summary or '[No previous context]'}\n\n"
        "NEW EXCHANGE:\n"
        f"User: {new_user_message}\n"
        f"Assistant: {new_assistant_message}\n\n"
        "RULES:\n"
        "1. Merge new facts into the existing summary\n"
        "2. Keep only important context (decisions, requests, solutions, preferences)\n"
        "3. Drop greetings, confirmations, and trivial chat\n"
        "4. Use 2-4 sentences maximum\n"
        "5. Plain text only, no markdown or formatting\n"
        "6. Be deterministic and factual\n\n"
        "OUTPUT: Updated summary (plain text)"
    )


def cap_summary(text: str, max_chars: int = MAX_SUMMARY_CHARS) -> str:
    # Hard cap, may cut mid-sentence.
    if len(text) <= max_chars:
        return text
    return text[: max_chars - len(ELLIPSIS)] + ELLIPSIS


async def update_summary(
    current_summary: str,
    new_user_message: str,
    new_assistant_message: str,
    *,
    completion,
) -> str:
    """
    Merge the latest user/assistant exchange into the rolling summary.

    One completion call per invocation. Never raises: blank input, an empty or
    invalid model result, and any provider error all return `current_summary`
    unchanged. Accepted results are capped at MAX_SUMMARY_CHARS.
    """
    try:
        if not (new_user_message or "").strip() and not (new_assistant_message or "").strip():
            print("[Memory] empty exchange passed to update_summary; keeping existing summary")
            return current_summary

        prompt = build_summary_prompt(current_summary, new_user_message or "", new_assistant_message or "")
        new_summary = await completion.complete(prompt)

        if not isinstance(new_summary, str) or not new_summary.strip():
            print("[Memory] invalid summary response; keeping existing summary")
            return current_summary

        if len(new_summary) > MAX_SUMMARY_CHARS:
            print(f"[Memory] summary too long ({len(new_summary)} chars), truncating")
            return cap_summary(new_summary)

        print(f"[Memory] summary updated: {len(new_summary)} chars")
        return new_summary
    except Exception as e:
        print(f"[Memory] error updating summary: {e}")
        return current_summary


def format_recent_messages(messages: list[dict[str, Any]]) -> str:
    lines = []
    for msg in messages or []:
        who = str(msg.get("author_name") or "unknown")
        content = " ".join(str(msg.get("content") or "").split())
        if content:
            lines.append(f"{who}: {content}")
    return "\n".join(lines)


def calculate_token_savings(message_count: int, summary_length: int) -> dict[str, int]:
    """Rough comparison of full-history tokens vs the rolling summary (15 tokens/message, 4 chars/token)."""
    full_history_tokens = max(0, int(message_count)) * 15
    summary_tokens = math.ceil(max(0, int(summary_length)) / 4)
    savings = 0
    if full_history_tokens > 0:
        savings = round(((full_history_tokens - summary_tokens) / full_history_tokens) * 100)
    return {
        "full_history_tokens": full_history_tokens,
        "summary_tokens": summary_tokens,
        "savings": savings,
    }
