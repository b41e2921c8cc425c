"""
Ledger of announced apps.

One row per successful announcement. Rows are only ever inserted.

SQLite (default) creates its table on first use. Supabase schema (create once):

    CREATE TABLE announced_apps (
      id BIGSERIAL PRIMARY KEY,
      app_id BIGINT NOT NULL,
      announced_at TEXT NOT NULL
    );
    CREATE INDEX announced_apps_app_id ON announced_apps (app_id);

``announced_at`` holds a full ISO-8601 UTC timestamp.
"""

import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from src.config import Settings
from src.utils.logging import get_logger

logger = get_logger(__name__)

TABLE_NAME = "announced_apps"


def announcement_timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


class BaseLedger(ABC):
    @abstractmethod
    async def has(self, app_id: int) -> bool:
        """True iff app_id has already been announced."""
        ...

    @abstractmethod
    async def record(self, app_id: int, announced_at: str) -> bool:
        """Insert a row. Returns False on any storage error instead of raising."""
        ...


class InMemoryLedger(BaseLedger):
    """Process-local ledger; forgets everything on restart."""

    def __init__(self):
        self._records: dict[int, str] = {}

    async def has(self, app_id: int) -> bool:
        return app_id in self._records

    async def record(self, app_id: int, announced_at: str) -> bool:
        self._records.setdefault(app_id, announced_at)
        return True


class SQLiteLedger(BaseLedger):
    """SQLite-backed ledger. Connection and table are created lazily, once."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._table_ready = False

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self._db_path)
            logger.info("ledger_opened", path=self._db_path)
        if not self._table_ready:
            with self._conn:
                self._conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        app_id INTEGER NOT NULL,
                        announced_at TEXT NOT NULL
                    )
                    """
                )
                self._conn.execute(
                    f"CREATE INDEX IF NOT EXISTS {TABLE_NAME}_app_id ON {TABLE_NAME} (app_id)"
                )
            self._table_ready = True
        return self._conn

    async def has(self, app_id: int) -> bool:
        try:
            row = self._connection().execute(
                f"SELECT 1 FROM {TABLE_NAME} WHERE app_id = ? LIMIT 1",
                (app_id,),
            ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("ledger_lookup_failed", app_id=app_id, error=str(exc))
            return False
        return row is not None

    async def record(self, app_id: int, announced_at: str) -> bool:
        try:
            conn = self._connection()
            with conn:
                cursor = conn.execute(
                    f"INSERT INTO {TABLE_NAME} (app_id, announced_at) VALUES (?, ?)",
                    (app_id, announced_at),
                )
        except sqlite3.Error as exc:
            logger.warning("ledger_insert_failed", app_id=app_id, error=str(exc))
            return False
        return bool(cursor.lastrowid)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._table_ready = False


class SupabaseLedger(BaseLedger):
    """Supabase-backed ledger. The table must exist (see module docstring)."""

    def __init__(self, url: str, key: str):
        self._url = url
        self._key = key
        self._client = None

    def _get_client(self):
        if self._client is None:
            from supabase import create_client
            self._client = create_client(self._url, self._key)
        return self._client

    async def has(self, app_id: int) -> bool:
        try:
            result = (
                self._get_client()
                .table(TABLE_NAME)
                .select("id")
                .eq("app_id", app_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            logger.warning("ledger_lookup_failed", app_id=app_id, error=str(exc))
            return False
        return bool(result.data)

    async def record(self, app_id: int, announced_at: str) -> bool:
        try:
            result = (
                self._get_client()
                .table(TABLE_NAME)
                .insert({"app_id": app_id, "announced_at": announced_at})
                .execute()
            )
        except Exception as exc:
            logger.warning("ledger_insert_failed", app_id=app_id, error=str(exc))
            return False
        return bool(result.data and result.data[0].get("id"))


def create_ledger(settings: Settings) -> BaseLedger:
    """Build the configured ledger backend."""
    backend = settings.ledger_backend.lower()
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError("ledger_backend=supabase requires SUPABASE_URL and SUPABASE_KEY")
        return SupabaseLedger(settings.supabase_url, settings.supabase_key)
    if backend == "memory":
        logger.warning("ledger_in_memory", detail="announcements will repeat after restart")
        return InMemoryLedger()
    if backend == "sqlite":
        return SQLiteLedger(settings.ledger_db_path)
    raise ValueError(f"unknown ledger backend: {settings.ledger_backend}")
