from __future__ import annotations

import asyncio

import discord
from config.defaults import DEFAULT_COMMAND_PREFIX
from controller.completion import completion_overrides
from controller.prompt_assembly import build_prompt
from controller.prompt_assembly import prompt_stats
from discord.ext import commands
from ingestion.service import log_exchange
from jobs.service import refresh_channel_memory
from jobs.service import spawn_background
from memory.service import format_recent_messages
from misc.discord_gates import resolve_memory_channel
from misc.message_split import split_message
from misc.runtime_deps import RuntimeDeps
from retrieval.service import get_retrieved_context


def _display_name(user) -> str:
    for attr in ("display_name", "global_name", "name"):
        value = getattr(user, attr, None)
        if value:
            return str(value)
    return "unknown"


async def _send_typing(channel) -> None:
    if getattr(channel, "typing", None) is None:
        return
    try:
        await channel.typing()
    except Exception as e:
        print(f"[Handler] typing indicator failed: {e}")


async def handle_message(message: discord.Message, *, deps: RuntimeDeps, bot_user=None) -> str:
    """
    Answer one inbound message and schedule its memory side effects.

    Returns the terminal state: "ignored", "unauthorized", "completion_failed",
    "errored" or "replied". Never raises; once a reply has gone out, later
    failures do not produce a second (apology) reply.
    """
    if getattr(message.author, "bot", False):
        return "ignored"
    content = message.content or ""
    if not content.strip():
        return "ignored"

    stage = "received"
    replied = False
    server_id = str(message.guild.id) if message.guild is not None else None
    try:
        channel_id, parent_id, base_channel_id = await resolve_memory_channel(message, deps.store)
        if base_channel_id is None:
            print(f"[Handler] channel not allowed channel={channel_id} parent={parent_id or '-'}")
            return "unauthorized"

        stage = "authorized"
        print(
            f"[Handler] message from {_display_name(message.author)} channel={channel_id} "
            f"memory_channel={base_channel_id} thread={'yes' if parent_id else 'no'}"
        )

        instructions, summary_row, recent_rows = await asyncio.gather(
            deps.store.get_instructions(),
            deps.store.get_summary(base_channel_id),
            deps.store.get_recent_messages(base_channel_id, deps.recent_window),
        )
        stage = "context_loaded"
        previous_summary = (summary_row or {}).get("summary") or ""
        recent_text = format_recent_messages(recent_rows)
        retrieved = await get_retrieved_context(content, retrieval_provider=deps.retrieval_provider)

        prompt = build_prompt(
            instructions.get("text"),
            previous_summary,
            recent_text,
            content,
            retrieved,
        )
        stage = "prompt_built"
        print(
            f"[CTX] channel={base_channel_id} recent_rows={len(recent_rows)} "
            f"retrieved={'yes' if retrieved else 'no'} "
            + prompt_stats(prompt, summary=previous_summary, recent_messages=recent_text)
        )

        await _send_typing(message.channel)
        response = await deps.completion.complete(
            prompt,
            **completion_overrides(instructions.get("ai_config")),
        )
        if not response:
            print(f"[Handler] no completion for message={message.id}")
            await message.reply(deps.assistant_config.completion_failure_reply)
            return "completion_failed"

        stage = "completed"
        chunks = split_message(response, deps.max_message_len)
        sent: list = []
        for chunk in chunks:
            if not chunk.strip():
                continue
            sent.append(await message.reply(chunk))
            replied = True
        stage = "replied"
    except Exception as e:
        print(f"[Handler] error at stage={stage} message={getattr(message, 'id', '?')}: {e}")
        if not replied:
            try:
                await message.reply(deps.assistant_config.generic_error_reply)
            except Exception as reply_err:
                print(f"[Handler] could not send error reply: {reply_err}")
        return "errored"

    assistant_text = "\n".join(chunks)
    bot_message_id = getattr(sent[0], "id", None) if sent else None
    user_entry = {
        "message_id": message.id,
        "author_id": message.author.id,
        "author_name": _display_name(message.author),
        "content": content,
    }
    assistant_entry = {
        "message_id": bot_message_id or f"{message.id}-bot",
        "author_id": getattr(bot_user, "id", None) or "assistant",
        "author_name": _display_name(bot_user) if bot_user is not None else "assistant",
        "content": assistant_text,
    }

    spawn_background(
        log_exchange(
            store=deps.store,
            channel_id=base_channel_id,
            server_id=server_id,
            user_message=user_entry,
            assistant_message=assistant_entry,
        ),
        label=f"log_exchange channel={base_channel_id}",
        tasks=deps.background_tasks,
    )
    spawn_background(
        refresh_channel_memory(
            store=deps.store,
            completion=deps.completion,
            channel_id=base_channel_id,
            server_id=server_id,
            previous_summary=previous_summary,
            user_message=content,
            assistant_message=assistant_text,
        ),
        label=f"refresh_channel_memory channel={base_channel_id}",
        tasks=deps.background_tasks,
    )
    return "replied"


def is_command_message(bot, content: str | None, prefix: str) -> bool:
    """True only when the first word after `prefix` names a registered command."""
    text = content or ""
    if not prefix or not text.startswith(prefix):
        return False
    rest = text[len(prefix) :]
    if not rest or rest[0].isspace():
        return False
    return bot.get_command(rest.split(maxsplit=1)[0]) is not None


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    command_prefix: str = DEFAULT_COMMAND_PREFIX,
) -> None:
    @bot.event
    async def on_ready():
        print(f"Assistant is online as {bot.user}")
        print(f"[Boot] serving {len(bot.guilds)} server(s)")

    @bot.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return

        if is_command_message(bot, message.content, command_prefix):
            await bot.process_commands(message)
            return

        await handle_message(message, deps=deps, bot_user=bot.user)

    @bot.event
    async def on_command_error(ctx, error):
        if isinstance(error, commands.CommandNotFound):
            return
        print(f"[Commands] {getattr(ctx, 'command', None)} failed: {error}")
        await ctx.send("Command failed. Check logs.")
