"""Session stores.

Two backends are provided: ``MemorySessionStore`` for tests and the terminal
chat, and ``SqliteSessionStore`` (aiosqlite) for anything that must survive a
restart.

Writes use optimistic concurrency: ``compare_and_set`` only succeeds when
the stored version still equals the version the caller read.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from chatflow.core.errors import ConfigError, SessionConflictError, StateError
from chatflow.session.models import Session, SessionUpdate

logger = logging.getLogger(__name__)


def _new_session(flow_id: str, session_key: str) -> Session:
    return Session(id=uuid.uuid4().hex, flow_id=flow_id, session_key=session_key)


class SessionStore(ABC):
    """Persistence for sessions keyed uniquely by (flow_id, session_key)."""

    async def __aenter__(self) -> "SessionStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def open(self) -> None:
        """Acquire backend resources."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def get(self, flow_id: str, session_key: str) -> Session | None: ...

    @abstractmethod
    async def get_or_create(self, flow_id: str, session_key: str) -> Session:
        """Return the session, creating a Fresh one on first contact.

        Safe under concurrent first messages: both callers get the same row.
        """
        ...

    @abstractmethod
    async def compare_and_set(self, session: Session, update: SessionUpdate) -> Session:
        """Apply ``update`` if ``session.version`` is still current.

        Raises:
            SessionConflictError: If another writer got there first.
        """
        ...

    @abstractmethod
    async def reset(self, flow_id: str, session_key: str) -> bool:
        """Clear the resume point. Returns False if no session exists."""
        ...


class MemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[tuple[str, str], Session] = {}
        self._lock = asyncio.Lock()

    async def get(self, flow_id: str, session_key: str) -> Session | None:
        return self._sessions.get((flow_id, session_key))

    async def get_or_create(self, flow_id: str, session_key: str) -> Session:
        async with self._lock:
            key = (flow_id, session_key)
            session = self._sessions.get(key)
            if session is None:
                session = _new_session(flow_id, session_key)
                self._sessions[key] = session
                logger.info(f"Created new session {session.id} for {key}")
            return session

    async def compare_and_set(self, session: Session, update: SessionUpdate) -> Session:
        async with self._lock:
            key = (session.flow_id, session.session_key)
            current = self._sessions.get(key)
            if current is None or current.version != session.version:
                raise SessionConflictError(
                    f"Session {session.id} changed since version {session.version}"
                )
            updated = current.model_copy(
                update={
                    "last_node_id": update.last_node_id,
                    "last_message": update.last_message,
                    "version": current.version + 1,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            self._sessions[key] = updated
            return updated

    async def reset(self, flow_id: str, session_key: str) -> bool:
        async with self._lock:
            current = self._sessions.get((flow_id, session_key))
            if current is None:
                return False
            self._sessions[(flow_id, session_key)] = current.model_copy(
                update={
                    "last_node_id": None,
                    "version": current.version + 1,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            return True


_SCHEMA = """
CREATE TABLE IF NOT EXISTS chat_sessions (
    id TEXT PRIMARY KEY,
    flow_id TEXT NOT NULL,
    session_key TEXT NOT NULL,
    last_node_id TEXT,
    last_message TEXT,
    version INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL,
    UNIQUE (flow_id, session_key)
)
"""

_COLUMNS = "id, flow_id, session_key, last_node_id, last_message, version, updated_at"


class SqliteSessionStore(SessionStore):
    def __init__(self, db_path: Path | str = "chatflow.db") -> None:
        self.db_path = str(db_path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        if self._db is not None:
            return
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Opening SQLite session store at {self.db_path}")
        try:
            self._db = await aiosqlite.connect(self.db_path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute(_SCHEMA)
            await self._db.commit()
        except aiosqlite.Error as e:
            raise StateError(f"Cannot open session store: {e}") from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StateError("Session store not opened. Use 'async with' or call open().")
        return self._db

    @staticmethod
    def _row_to_session(row: Any) -> Session:
        return Session(
            id=row["id"],
            flow_id=row["flow_id"],
            session_key=row["session_key"],
            last_node_id=row["last_node_id"],
            last_message=row["last_message"],
            version=row["version"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    async def get(self, flow_id: str, session_key: str) -> Session | None:
        try:
            async with self.db.execute(
                f"SELECT {_COLUMNS} FROM chat_sessions WHERE flow_id = ? AND session_key = ?",
                (flow_id, session_key),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StateError(f"Cannot read session: {e}") from e
        return self._row_to_session(row) if row else None

    async def get_or_create(self, flow_id: str, session_key: str) -> Session:
        fresh = _new_session(flow_id, session_key)
        try:
            cursor = await self.db.execute(
                f"INSERT OR IGNORE INTO chat_sessions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    fresh.id,
                    flow_id,
                    session_key,
                    None,
                    None,
                    0,
                    fresh.updated_at.isoformat(),
                ),
            )
            await self.db.commit()
            if cursor.rowcount:
                logger.info(f"Created new session {fresh.id} for ({flow_id}, {session_key})")
        except aiosqlite.Error as e:
            raise StateError(f"Cannot create session: {e}") from e

        session = await self.get(flow_id, session_key)
        if session is None:
            raise StateError(f"Session ({flow_id}, {session_key}) vanished after insert")
        return session

    async def compare_and_set(self, session: Session, update: SessionUpdate) -> Session:
        updated_at = datetime.now(timezone.utc)
        try:
            cursor = await self.db.execute(
                "UPDATE chat_sessions SET last_node_id = ?, last_message = ?, "
                "version = version + 1, updated_at = ? WHERE id = ? AND version = ?",
                (
                    update.last_node_id,
                    update.last_message,
                    updated_at.isoformat(),
                    session.id,
                    session.version,
                ),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StateError(f"Cannot update session: {e}") from e

        if cursor.rowcount == 0:
            raise SessionConflictError(
                f"Session {session.id} changed since version {session.version}"
            )
        return session.model_copy(
            update={
                "last_node_id": update.last_node_id,
                "last_message": update.last_message,
                "version": session.version + 1,
                "updated_at": updated_at,
            }
        )

    async def reset(self, flow_id: str, session_key: str) -> bool:
        try:
            cursor = await self.db.execute(
                "UPDATE chat_sessions SET last_node_id = NULL, version = version + 1, "
                "updated_at = ? WHERE flow_id = ? AND session_key = ?",
                (datetime.now(timezone.utc).isoformat(), flow_id, session_key),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StateError(f"Cannot reset session: {e}") from e
        return bool(cursor.rowcount)


def create_session_store(backend: str = "memory", **kwargs: Any) -> SessionStore:
    """Create a session store instance.

    Args:
        backend: "memory" or "sqlite".
        kwargs: Backend-specific arguments:
            - sqlite: path (str or Path) - path to SQLite file

    Raises:
        ConfigError: If the backend is unknown.
    """
    if backend == "memory":
        logger.debug("Creating in-memory session store")
        return MemorySessionStore()

    if backend == "sqlite":
        return SqliteSessionStore(kwargs.get("path", "chatflow.db"))

    raise ConfigError(f"Unknown session store backend: {backend}")
