from __future__ import annotations

import asyncio

from controller.context import parse_channel_id_token
from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.discord_gates import resolve_memory_channel

ADMIN_ONLY_REPLY = "This command is limited to the owner and server administrators."


def _clip(text: str, limit: int) -> str:
    clean = " ".join((text or "").split())
    if len(clean) > limit:
        clean = clean[: limit - 3] + "..."
    return clean


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    async def _deny(ctx: commands.Context) -> bool:
        if gates.user_is_admin(ctx.author):
            return False
        await ctx.send(ADMIN_ONLY_REPLY)
        return True

    async def _report_failure(ctx: commands.Context, result: dict) -> bool:
        if result.get("success"):
            return False
        await ctx.send(f"Failed: {result.get('error') or 'unknown error'}")
        return True

    async def _memory_channel_for(ctx: commands.Context) -> str:
        # Falls back to the channel itself when nothing here is allow-listed.
        channel_id, _parent_id, memory_channel_id = await resolve_memory_channel(ctx.message, deps.admin.store)
        return memory_channel_id or channel_id

    async def _target_channel(ctx: commands.Context, token: str) -> str | None:
        if not (token or "").strip():
            return await _memory_channel_for(ctx)
        return parse_channel_id_token(token)

    @bot.command(name="channels")
    async def cmd_channels(ctx: commands.Context):
        if await _deny(ctx):
            return
        result = await deps.admin.list_channels()
        if await _report_failure(ctx, result):
            return

        rows = result.get("data") or []
        if not rows:
            await ctx.send("No channels are allow-listed yet. Use `!allowchannel` in one.")
            return

        lines = [f"Allowed channels ({len(rows)}):"]
        for row in rows:
            name = row.get("channel_name") or "unnamed"
            server = row.get("server_id") or "-"
            lines.append(f"- <#{row['channel_id']}> ({name}) server={server} added={row.get('added_at')}")
        await deps.send_chunked(ctx.channel, "\n".join(lines))

    @bot.command(name="allowchannel")
    async def cmd_allowchannel(ctx: commands.Context, channel: str = "", *, name: str = ""):
        if await _deny(ctx):
            return

        if (channel or "").strip():
            channel_id = parse_channel_id_token(channel)
            if channel_id is None:
                await ctx.send("Usage: `!allowchannel [#channel|channel_id] [name]`")
                return
        else:
            channel_id = str(ctx.channel.id)
            name = name or str(getattr(ctx.channel, "name", "") or "")

        server_id = str(ctx.guild.id) if ctx.guild else None
        result = await deps.admin.add_channel(channel_id, name or None, server_id)
        if await _report_failure(ctx, result):
            return
        await ctx.send(f"{result.get('message')}: <#{channel_id}>")

    @bot.command(name="denychannel")
    async def cmd_denychannel(ctx: commands.Context, channel: str = ""):
        if await _deny(ctx):
            return

        channel_id = parse_channel_id_token(channel) if (channel or "").strip() else str(ctx.channel.id)
        if channel_id is None:
            await ctx.send("Usage: `!denychannel [#channel|channel_id]`")
            return

        result = await deps.admin.remove_channel(channel_id)
        if await _report_failure(ctx, result):
            return
        if not (result.get("data") or {}).get("removed"):
            await ctx.send(f"<#{channel_id}> was not on the allow-list.")
            return
        await ctx.send(f"{result.get('message')}: <#{channel_id}>")

    @bot.command(name="instructions")
    async def cmd_instructions(ctx: commands.Context):
        if await _deny(ctx):
            return
        result = await deps.admin.get_settings()
        if await _report_failure(ctx, result):
            return

        data = result.get("data") or {}
        text = data.get("instructions") or "(empty: the default assistant instructions apply)"
        cfg = data.get("ai_config") or {}
        cfg_line = ", ".join(f"{k}={cfg[k]}" for k in sorted(cfg))
        await deps.send_chunked(ctx.channel, f"System instructions:\n{text}\n\nAI config: {cfg_line}")

    @bot.command(name="setinstructions")
    async def cmd_setinstructions(ctx: commands.Context, *, text: str = ""):
        if await _deny(ctx):
            return
        result = await deps.admin.update_instructions(text)
        if await _report_failure(ctx, result):
            return
        await ctx.send(result.get("message") or "Saved.")

    @bot.command(name="aiconfig")
    async def cmd_aiconfig(ctx: commands.Context, key: str = "", *, value: str = ""):
        if await _deny(ctx):
            return

        if not key:
            result = await deps.admin.get_settings()
            if await _report_failure(ctx, result):
                return
            cfg = (result.get("data") or {}).get("ai_config") or {}
            lines = ["AI config:"] + [f"- {k}: {cfg[k]}" for k in sorted(cfg)]
            await ctx.send("\n".join(lines))
            return

        if not value.strip():
            await ctx.send("Usage: `!aiconfig <provider|model|temperature|max_output_tokens> <value>`")
            return

        result = await deps.admin.update_ai_config({key.strip().lower(): value.strip()})
        if await _report_failure(ctx, result):
            return
        cfg = result.get("data") or {}
        await ctx.send(f"{result.get('message')}: {key.strip().lower()}={cfg.get(key.strip().lower())}")

    @bot.command(name="summary")
    async def cmd_summary(ctx: commands.Context, channel: str = ""):
        if await _deny(ctx):
            return

        channel_id = await _target_channel(ctx, channel)
        if channel_id is None:
            await ctx.send("Usage: `!summary [#channel|channel_id]`")
            return

        result = await deps.admin.get_summaries(channel_id)
        if await _report_failure(ctx, result):
            return
        row = result.get("data") or {}
        text = row.get("summary") or "(no summary yet)"
        await deps.send_chunked(
            ctx.channel,
            f"Summary for <#{channel_id}> (messages={row.get('message_count', 0)}, "
            f"updated={row.get('updated_at') or 'never'}):\n{text}",
        )

    @bot.command(name="summaries")
    async def cmd_summaries(ctx: commands.Context, limit: int = 20):
        if await _deny(ctx):
            return

        result = await deps.admin.get_summaries()
        if await _report_failure(ctx, result):
            return
        rows = result.get("data") or []
        if not rows:
            await ctx.send("No conversation summaries stored yet.")
            return

        lim = max(1, min(int(limit or 20), 100))
        lines = [f"Conversation summaries (latest {min(lim, len(rows))} of {len(rows)}):"]
        for row in rows[:lim]:
            lines.append(
                f"- <#{row['channel_id']}> messages={row.get('message_count', 0)} "
                f"updated={row.get('updated_at')} :: {_clip(row.get('summary') or '', 120) or '(empty)'}"
            )
        await deps.send_chunked(ctx.channel, "\n".join(lines))

    @bot.command(name="resetsummary")
    async def cmd_resetsummary(ctx: commands.Context, channel: str = ""):
        if await _deny(ctx):
            return

        channel_id = await _target_channel(ctx, channel)
        if channel_id is None:
            await ctx.send("Usage: `!resetsummary [#channel|channel_id]`")
            return

        result = await deps.admin.reset_summary(channel_id)
        if await _report_failure(ctx, result):
            return
        await ctx.send(f"{result.get('message')}: <#{channel_id}>")

    @bot.command(name="memorystats")
    async def cmd_memorystats(ctx: commands.Context):
        if await _deny(ctx):
            return

        result = await deps.admin.memory_stats()
        if await _report_failure(ctx, result):
            return
        s = result.get("data") or {}
        await ctx.send(
            "Memory stats:\n"
            f"- channels with summaries: {s.get('summaries', 0)}\n"
            f"- messages counted: {s.get('message_count', 0)}\n"
            f"- messages logged: {s.get('logged_messages', 0)}\n"
            f"- est. full-history tokens: {s.get('full_history_tokens', 0)}\n"
            f"- est. summary tokens: {s.get('summary_tokens', 0)}\n"
            f"- est. savings: {s.get('savings', 0)}%"
        )

    @bot.command(name="dbmigrations")
    async def cmd_dbmigrations(ctx: commands.Context, limit: int = 30):
        if await _deny(ctx):
            return
        if deps.list_schema_migrations_sync is None:
            await ctx.send("Migration listing is not configured.")
            return

        lim = max(1, min(int(limit or 30), 200))
        async with deps.db_lock:
            rows = await asyncio.to_thread(deps.list_schema_migrations_sync, deps.db_conn, lim)

        if not rows:
            await ctx.send("No schema migrations found.")
            return

        lines = [f"Applied schema migrations (latest {len(rows)}):"]
        for version, name, applied_at in rows:
            lines.append(f"- {version}_{name} @ {applied_at}")
        await deps.send_chunked(ctx.channel, "\n".join(lines))
