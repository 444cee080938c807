from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

from config.defaults import DEFAULT_RECENT_WINDOW
from config.defaults import DISCORD_MAX_MESSAGE_LEN


@dataclass(frozen=True)
class RuntimeDeps:
    # store + llm
    store: Any
    completion: Any
    assistant_config: Any

    # prompt shaping
    recent_window: int = DEFAULT_RECENT_WINDOW
    max_message_len: int = DISCORD_MAX_MESSAGE_LEN

    # optional collaborators
    retrieval_provider: Callable | None = None

    # fire-and-forget side effects still in flight
    background_tasks: set[asyncio.Task] = field(default_factory=set)
