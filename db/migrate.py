from __future__ import annotations

import hashlib
import importlib.util
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

# 0001_assistant_core.py -> ("0001", "assistant_core")
MIGRATION_FILE_RE = re.compile(r"^(\d{4})_(\w+)\.py$")


class Migration(NamedTuple):
    version: str
    name: str
    path: Path
    checksum: str

    @property
    def label(self) -> str:
        return f"{self.version}_{self.name}"


def default_migrations_dir() -> str:
    return str(Path(__file__).resolve().parent.parent / "migrations")


def discover_migrations(migrations_dir: str | None = None) -> list[Migration]:
    """Migration files in `migrations_dir`, ordered by version. Other files are ignored."""
    base = Path(migrations_dir or default_migrations_dir())
    if not base.is_dir():
        raise RuntimeError(f"Migrations directory not found: {base}")

    found: dict[str, Migration] = {}
    for path in base.iterdir():
        match = MIGRATION_FILE_RE.match(path.name)
        if not match or not path.is_file():
            continue
        version, name = match.groups()
        if version in found:
            raise RuntimeError(f"Duplicate migration version {version}: {found[version].path.name}, {path.name}")
        checksum = hashlib.sha256(path.read_bytes()).hexdigest()
        found[version] = Migration(version, name, path, checksum)
    return [found[v] for v in sorted(found)]


def _ensure_ledger(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            checksum TEXT NOT NULL,
            applied_at_utc TEXT NOT NULL
        )
        """
    )
    conn.commit()


def pending_migrations(conn: sqlite3.Connection, migrations: list[Migration]) -> list[Migration]:
    """
    Migrations not yet recorded in the ledger.

    A recorded version whose file was renamed or edited since it ran is an error;
    the schema it describes no longer matches the database.
    """
    cur = conn.execute("SELECT version, name, checksum FROM schema_migrations")
    recorded = {str(version): (str(name), str(checksum)) for version, name, checksum in cur.fetchall()}

    pending: list[Migration] = []
    for migration in migrations:
        seen = recorded.get(migration.version)
        if seen is None:
            pending.append(migration)
            continue
        if seen != (migration.name, migration.checksum):
            raise RuntimeError(
                f"Migration {migration.version} changed after it was applied "
                f"(recorded name={seen[0]}, file={migration.path.name})"
            )
    return pending


def _load_upgrade(migration: Migration):
    spec = importlib.util.spec_from_file_location(f"copilot_migration_{migration.label}", migration.path)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Could not load migration {migration.path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    upgrade = getattr(module, "upgrade", None)
    if not callable(upgrade):
        raise RuntimeError(f"Migration {migration.path.name} has no upgrade(conn)")
    return upgrade


def _apply_one(conn: sqlite3.Connection, migration: Migration) -> None:
    upgrade = _load_upgrade(migration)
    # DDL and the ledger row commit together or not at all.
    conn.execute("BEGIN")
    try:
        upgrade(conn)
        conn.execute(
            "INSERT INTO schema_migrations (version, name, checksum, applied_at_utc) VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        print(f"[DB] migration {migration.label} failed; rolled back")
        raise


def apply_sqlite_migrations(conn: sqlite3.Connection, migrations_dir: str | None = None) -> list[str]:
    """Apply pending migrations in version order; returns the versions applied now."""
    _ensure_ledger(conn)
    applied: list[str] = []
    for migration in pending_migrations(conn, discover_migrations(migrations_dir)):
        print(f"[DB] Applying migration {migration.label}")
        _apply_one(conn, migration)
        applied.append(migration.version)
    return applied


def list_schema_migrations_sync(conn: sqlite3.Connection, limit: int = 200) -> list[tuple[str, str, str]]:
    try:
        cur = conn.execute(
            "SELECT version, name, applied_at_utc FROM schema_migrations ORDER BY version DESC LIMIT ?",
            (max(1, min(int(limit), 500)),),
        )
    except sqlite3.OperationalError:
        return []
    return cur.fetchall()


def init_db(db_path: str, migrations_dir: str | None = None) -> sqlite3.Connection:
    # Queries run in worker threads via asyncio.to_thread.
    conn = sqlite3.connect(db_path, check_same_thread=False)
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
    apply_sqlite_migrations(conn, migrations_dir)
    return conn
