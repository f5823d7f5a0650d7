"""SQLite schema management (code-first approach)."""

import logging

import aiosqlite

from src.core.config import constants
from src.core.db_client import get_db_path


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, parents before children
COLLECTIONS = [
    "family_members",
    "tasks",
    "assignments",
    "routine_steps",
    "completions",
]


_TABLES: dict[str, str] = {
    "family_members": """
        CREATE TABLE IF NOT EXISTS family_members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            account_id TEXT NOT NULL,
            name TEXT NOT NULL,
            color_tag TEXT NOT NULL,
            is_default INTEGER NOT NULL DEFAULT 0,
            created TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
        )
    """,
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            account_id TEXT NOT NULL,
            kind TEXT NOT NULL CHECK (kind IN ('chore', 'routine')),
            name TEXT NOT NULL,
            description TEXT,
            recurrence TEXT NOT NULL,
            custom_recurrence_expr TEXT,
            start_date TEXT NOT NULL,
            end_date TEXT,
            estimated_minutes INTEGER NOT NULL,
            priority TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
            updated TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
        )
    """,
    "assignments": """
        CREATE TABLE IF NOT EXISTS assignments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks (id) ON DELETE CASCADE,
            family_member_id INTEGER NOT NULL REFERENCES family_members (id) ON DELETE CASCADE,
            UNIQUE (task_id, family_member_id)
        )
    """,
    "routine_steps": """
        CREATE TABLE IF NOT EXISTS routine_steps (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks (id) ON DELETE CASCADE,
            step_order INTEGER NOT NULL CHECK (step_order >= 0),
            description TEXT NOT NULL,
            estimated_minutes INTEGER NOT NULL
        )
    """,
    # No foreign keys: completions are history and outlive their task and member.
    "completions": """
        CREATE TABLE IF NOT EXISTS completions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            account_id TEXT NOT NULL,
            task_id INTEGER NOT NULL,
            family_member_id INTEGER NOT NULL,
            completed_at TEXT NOT NULL,
            notes TEXT
        )
    """,
}


_INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_family_members_account ON family_members (account_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_account ON tasks (account_id)",
    "CREATE INDEX IF NOT EXISTS idx_assignments_member ON assignments (family_member_id)",
    "CREATE INDEX IF NOT EXISTS idx_routine_steps_task ON routine_steps (task_id, step_order)",
    "CREATE INDEX IF NOT EXISTS idx_completions_task ON completions (task_id, completed_at)",
    "CREATE INDEX IF NOT EXISTS idx_completions_account ON completions (account_id, completed_at)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they are missing (idempotent)."""
    path = get_db_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Starting SQLite schema sync...", extra={"db_path": str(path)})

    async with aiosqlite.connect(str(path), timeout=constants.SQLITE_BUSY_TIMEOUT_SECONDS) as conn:
        await conn.execute("PRAGMA journal_mode = WAL")
        for collection_name in COLLECTIONS:
            await conn.execute(_TABLES[collection_name])
        for index in _INDEXES:
            await conn.execute(index)
        await conn.commit()

    logger.info("SQLite schema sync complete", extra={"collections": COLLECTIONS})
