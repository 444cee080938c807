from __future__ import annotations

from config.defaults import DISCORD_MAX_MESSAGE_LEN


def split_message(text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> list[str]:
    """
    Split on line boundaries into chunks of at most `limit` chars.

    "\\n".join(chunks) == text whenever no single line exceeds `limit`; a longer
    line is hard-cut into `limit`-sized pieces, since the transport ceiling wins.
    """
    if not text:
        return []
    limit = max(1, int(limit))

    chunks: list[str] = []
    buf: str | None = None
    for line in text.split("\n"):
        pieces = [line[i : i + limit] for i in range(0, len(line), limit)] or [""]
        for piece in pieces:
            if buf is None:
                buf = piece
            elif len(buf) + 1 + len(piece) > limit:
                chunks.append(buf)
                buf = piece
            else:
                buf = f"{buf}\n{piece}"
    if buf is not None:
        chunks.append(buf)
    return chunks


async def send_chunked(channel, text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> int:
    sent = 0
    for part in split_message(text, limit):
        if not part.strip():
            continue
        await channel.send(part)
        sent += 1
    return sent
