"""
SQLite-backed trail storage.

This module implements the TrailStore class, the local persistence
collaborator for trails:
- Async SQLite operations (aiosqlite)
- Append-only step storage ordered by position
- Lookup by trail id, with None as the not-found signal
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Protocol

import aiosqlite
from pydantic import TypeAdapter

from .errors import TrailNotFound
from .models import Trail, TrailStep, TrailSummary

logger = logging.getLogger(__name__)

_step_adapter: TypeAdapter[TrailStep] = TypeAdapter(TrailStep)


class TrailPersistence(Protocol):
    """Protocol for trail persistence collaborators (local store, remote API)."""

    async def save_trail(self, trail: Trail) -> None:
        ...

    async def append_step(self, trail_id: str, step: TrailStep) -> None:
        ...

    async def get_trail(self, trail_id: str) -> Trail | None:
        """Return the stored trail, or None when the id is unknown."""
        ...


SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS trails (
        id TEXT PRIMARY KEY,
        query TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL,
        stored_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # Steps are never updated or deleted; position defines chronology
    """
    CREATE TABLE IF NOT EXISTS trail_steps (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        trail_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        type TEXT NOT NULL,
        ts TIMESTAMP NOT NULL,
        data JSON NOT NULL,
        UNIQUE (trail_id, position),
        FOREIGN KEY (trail_id) REFERENCES trails(id) ON DELETE CASCADE
    )
    """,

    "CREATE INDEX IF NOT EXISTS idx_steps_trail ON trail_steps(trail_id, position)",
    "CREATE INDEX IF NOT EXISTS idx_trails_created ON trails(created_at)",
]


class TrailStore:
    """SQLite-backed trail persistence."""

    def __init__(self, db_path: str | Path):
        """
        Initialize trail store.

        Args:
            db_path: Path to SQLite database (use ':memory:' for in-memory)
        """
        self.db_path = str(db_path)
        self._initialized = False
        self._conn: aiosqlite.Connection | None = None  # Persistent connection for :memory:
        self._is_memory = self.db_path == ":memory:"
        # Background writes for one trail must land in the order they were issued
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize database schema. Safe to call more than once."""
        if self._initialized:
            return

        if self._is_memory:
            self._conn = await aiosqlite.connect(self.db_path)
            db = self._conn
        else:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(self.db_path)

        try:
            await db.execute("PRAGMA foreign_keys = ON")

            for statement in SCHEMA_STATEMENTS:
                await db.execute(statement.strip())

            await db.commit()

            self._initialized = True
            logger.info(f"Initialized trail store at {self.db_path}")
        finally:
            if not self._is_memory:
                await db.close()

    @asynccontextmanager
    async def _get_db(self):
        """Context manager for database connections."""
        if not self._initialized:
            await self.initialize()

        if self._is_memory:
            yield self._conn
        else:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("PRAGMA foreign_keys = ON")
                yield db

    # --- Write Operations ---

    async def save_trail(self, trail: Trail) -> None:
        """
        Store a trail and any of its steps not yet stored.

        Already stored steps are left as they are; the step log only grows.
        """
        async with self._write_lock, self._get_db() as db:
            await db.execute(
                "INSERT OR IGNORE INTO trails (id, query, created_at) VALUES (?, ?, ?)",
                (trail.id, trail.query, trail.created_at.isoformat()),
            )

            stored = await self._count_steps(db, trail.id)
            for position, step in enumerate(trail.steps[stored:], start=stored):
                await self._insert_step(db, trail.id, position, step)

            await db.commit()

        logger.debug(f"Saved trail {trail.id} ({len(trail.steps)} steps)")

    async def append_step(self, trail_id: str, step: TrailStep) -> None:
        """
        Append one step to a stored trail.

        Raises:
            TrailNotFound: If no trail with this id has been saved
        """
        async with self._write_lock, self._get_db() as db:
            if not await self._trail_exists(db, trail_id):
                raise TrailNotFound(trail_id)

            position = await self._count_steps(db, trail_id)
            await self._insert_step(db, trail_id, position, step)
            await db.commit()

        logger.debug(f"Appended {step.type} step #{position} to trail {trail_id}")

    async def _insert_step(
        self, db: aiosqlite.Connection, trail_id: str, position: int, step: TrailStep
    ) -> None:
        await db.execute(
            """
            INSERT INTO trail_steps (trail_id, position, type, ts, data)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                trail_id,
                position,
                step.type,
                step.ts.isoformat(),
                step.model_dump_json(),
            ),
        )

    async def _count_steps(self, db: aiosqlite.Connection, trail_id: str) -> int:
        cursor = await db.execute(
            "SELECT COUNT(*) FROM trail_steps WHERE trail_id = ?", (trail_id,)
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def _trail_exists(self, db: aiosqlite.Connection, trail_id: str) -> bool:
        cursor = await db.execute("SELECT 1 FROM trails WHERE id = ?", (trail_id,))
        return await cursor.fetchone() is not None

    # --- Read Operations ---

    async def get_trail(self, trail_id: str) -> Trail | None:
        """
        Get a trail with its full step log.

        Args:
            trail_id: Trail ID to retrieve

        Returns:
            Trail if found, None otherwise
        """
        async with self._get_db() as db:
            cursor = await db.execute(
                "SELECT id, query, created_at FROM trails WHERE id = ?", (trail_id,)
            )
            row = await cursor.fetchone()
            if not row:
                return None

            cursor = await db.execute(
                "SELECT data FROM trail_steps WHERE trail_id = ? ORDER BY position",
                (trail_id,),
            )
            step_rows = await cursor.fetchall()

        steps = tuple(_step_adapter.validate_json(r[0]) for r in step_rows)
        return Trail(id=row[0], query=row[1], created_at=row[2], steps=steps)

    async def list_trails(self, limit: int = 20) -> list[TrailSummary]:
        """List stored trails, newest first."""
        async with self._get_db() as db:
            cursor = await db.execute(
                """
                SELECT t.id, t.query, t.created_at, COUNT(s.id)
                FROM trails t
                LEFT JOIN trail_steps s ON s.trail_id = t.id
                GROUP BY t.id
                ORDER BY t.created_at DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = await cursor.fetchall()

        return [
            TrailSummary(id=r[0], query=r[1], created_at=r[2], step_count=r[3])
            for r in rows
        ]

    async def count_trails(self) -> int:
        async with self._get_db() as db:
            cursor = await db.execute("SELECT COUNT(*) FROM trails")
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def close(self) -> None:
        """Close database connection (important for in-memory databases)."""
        if self._conn:
            await self._conn.close()
            self._conn = None
        self._initialized = False
