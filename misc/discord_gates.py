from __future__ import annotations

import discord
from controller.context import resolve_effective_channel


def resolve_channel_ids(message: discord.Message) -> tuple[str, str | None]:
    """Returns (channel_id, parent_channel_id); parent is set only for threads."""
    channel = message.channel
    channel_id = str(int(getattr(channel, "id", 0) or 0))
    parent_id: str | None = None
    if isinstance(channel, discord.Thread):
        raw_parent = getattr(channel, "parent_id", None)
        if raw_parent is None and getattr(channel, "parent", None) is not None:
            raw_parent = channel.parent.id
        if raw_parent:
            parent_id = str(int(raw_parent))
    return (channel_id, parent_id)


def user_is_admin(user: discord.abc.User, owner_user_ids: set[int]) -> bool:
    uid = int(getattr(user, "id", 0) or 0)
    if uid and uid in owner_user_ids:
        return True
    perms = getattr(user, "guild_permissions", None)
    return bool(getattr(perms, "administrator", False))


async def resolve_memory_channel(message, store) -> tuple[str, str | None, str | None]:
    """
    Returns (channel_id, parent_channel_id, memory_channel_id).

    memory_channel_id is the allow-listed parent for threads under one, else the
    channel itself when it is allow-listed, else None.
    """
    channel_id, parent_id = resolve_channel_ids(message)
    allowed_direct = await store.is_channel_allowed(channel_id)
    allowed_parent = await store.is_channel_allowed(parent_id) if parent_id else False
    memory_channel_id = resolve_effective_channel(
        channel_id,
        parent_id,
        allowed_direct=allowed_direct,
        allowed_parent=allowed_parent,
    )
    return (channel_id, parent_id, memory_channel_id)
