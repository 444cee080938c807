from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Callable


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    admin: Any = None
    send_chunked: Callable | None = None
    list_schema_migrations_sync: Callable | None = None
    db_lock: Any = None
    db_conn: Any = None


@dataclass(frozen=True)
class CommandGates:
    user_is_admin: Callable[[Any], bool] = _default_false
