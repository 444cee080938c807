from __future__ import annotations

from typing import Any, Awaitable, Callable

DEFAULT_MATCH_COUNT = 5
MAX_MATCH_CHARS = 400

RetrievalProvider = Callable[[str, int], Awaitable[list[dict[str, Any]]]]


def format_retrieved_matches(rows: list[dict[str, Any]], max_chars: int = MAX_MATCH_CHARS) -> str:
    lines = []
    for row in rows or []:
        content = " ".join(str(row.get("content") or "").split())
        if not content:
            continue
        if len(content) > max_chars:
            content = content[: max_chars - 3] + "..."
        source = str(row.get("source") or "unknown")
        lines.append(f"{len(lines) + 1}. [{source}] {content}")
    return "\n".join(lines)


async def get_retrieved_context(
    user_message: str,
    *,
    retrieval_provider: RetrievalProvider | None,
    match_count: int = DEFAULT_MATCH_COUNT,
) -> str | None:
    """
    Knowledge lookup for the prompt. Returns None when no provider is configured,
    when nothing matched, or when the lookup failed (logged).
    """
    if retrieval_provider is None:
        return None
    if not (user_message or "").strip():
        return None

    try:
        rows = await retrieval_provider(user_message, max(1, int(match_count)))
    except Exception as e:
        print(f"[Retrieval] lookup failed: {e}")
        return None

    text = format_retrieved_matches(rows)
    return text or None
