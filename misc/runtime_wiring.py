from __future__ import annotations

from config.defaults import DEFAULT_COMMAND_PREFIX
from controller.admin_service import AdminService
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_admin import register as register_admin
from misc.discord_gates import user_is_admin
from misc.events_runtime import register_runtime_events
from misc.message_split import send_chunked
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    store,
    completion,
    assistant_config,
    owner_user_ids: set[int],
    db_lock,
    db_conn,
    list_schema_migrations_sync,
    recent_window: int,
    retrieval_provider=None,
    command_prefix: str = DEFAULT_COMMAND_PREFIX,
) -> RuntimeDeps:
    """Build the dependency bundles and register events + admin commands on `bot`."""
    runtime_deps = RuntimeDeps(
        store=store,
        completion=completion,
        assistant_config=assistant_config,
        recent_window=recent_window,
        retrieval_provider=retrieval_provider,
    )
    command_deps = CommandDeps(
        admin=AdminService(store=store),
        send_chunked=send_chunked,
        list_schema_migrations_sync=list_schema_migrations_sync,
        db_lock=db_lock,
        db_conn=db_conn,
    )
    command_gates = CommandGates(
        user_is_admin=lambda user: user_is_admin(user, owner_user_ids),
    )

    register_admin(bot, deps=command_deps, gates=command_gates)
    register_runtime_events(bot, deps=runtime_deps, command_prefix=command_prefix)
    return runtime_deps
