"""
SQLite database module for persisting the chat graph.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING

import aiosqlite

from chat.errors import ConcurrencyError
from chat.models import ChatMessage, ChatRoom, ChatUser, UserStatus

if TYPE_CHECKING:
    from chat.repository import ChangeSet

logger = logging.getLogger(__name__)

# Database path
DB_PATH = "chatroom.db"

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS chat_users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        client_id TEXT,
        hashed_password TEXT,
        gravatar_hash TEXT,
        status TEXT NOT NULL,
        last_activity TEXT NOT NULL,
        last_nudged TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chat_rooms (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        creator_id TEXT NOT NULL,
        last_nudged TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS room_users (
        room_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        PRIMARY KEY (room_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS room_owners (
        room_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        PRIMARY KEY (room_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chat_messages (
        id TEXT PRIMARY KEY,
        room_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        content TEXT NOT NULL,
        sent_at TEXT NOT NULL,
        seq INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS store_meta (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_user_name ON chat_users(name COLLATE NOCASE)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_room_name ON chat_rooms(name COLLATE NOCASE)",
    "CREATE INDEX IF NOT EXISTS idx_message_room ON chat_messages(room_id, seq)",
]


def _dump_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _load_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class ChatStore:
    """Stores users, rooms and messages, guarded by a single version counter."""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self._initialized = False

    async def init(self) -> None:
        """Initialize database with required tables and indices."""
        if self._initialized:
            return

        try:
            async with aiosqlite.connect(self.db_path) as db:
                for statement in SCHEMA:
                    await db.execute(statement)
                await db.execute("INSERT OR IGNORE INTO store_meta (id, version) VALUES (1, 0)")
                await db.commit()
                self._initialized = True
                logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    async def load(self) -> tuple[list[ChatUser], list[ChatRoom], int]:
        """
        Read the whole chat graph.

        Returns:
            Tuple of (users, rooms, version)
        """
        await self.init()
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row

            users: dict[str, ChatUser] = {}
            async with db.execute("SELECT * FROM chat_users") as cursor:
                async for row in cursor:
                    users[row["id"]] = ChatUser(
                        id=row["id"],
                        name=row["name"],
                        client_id=row["client_id"],
                        hashed_password=row["hashed_password"],
                        gravatar_hash=row["gravatar_hash"],
                        status=UserStatus(row["status"]),
                        last_activity=_load_time(row["last_activity"]),
                        last_nudged=_load_time(row["last_nudged"])
                    )

            rooms: dict[str, ChatRoom] = {}
            async with db.execute("SELECT * FROM chat_rooms") as cursor:
                async for row in cursor:
                    rooms[row["id"]] = ChatRoom(
                        id=row["id"],
                        name=row["name"],
                        creator_id=row["creator_id"],
                        last_nudged=_load_time(row["last_nudged"])
                    )

            async with db.execute("SELECT room_id, user_id FROM room_users") as cursor:
                async for row in cursor:
                    if row["room_id"] in rooms and row["user_id"] in users:
                        rooms[row["room_id"]].users.add(row["user_id"])
                        users[row["user_id"]].rooms.add(row["room_id"])

            async with db.execute("SELECT room_id, user_id FROM room_owners") as cursor:
                async for row in cursor:
                    if row["room_id"] in rooms and row["user_id"] in users:
                        rooms[row["room_id"]].owners.add(row["user_id"])
                        users[row["user_id"]].owned_rooms.add(row["room_id"])

            async with db.execute("SELECT * FROM chat_messages ORDER BY room_id, seq") as cursor:
                async for row in cursor:
                    if row["room_id"] in rooms:
                        rooms[row["room_id"]].messages.append(ChatMessage(
                            id=row["id"],
                            user_id=row["user_id"],
                            content=row["content"],
                            when=_load_time(row["sent_at"])
                        ))

            cursor = await db.execute("SELECT version FROM store_meta WHERE id = 1")
            version_row = await cursor.fetchone()

        return list(users.values()), list(rooms.values()), version_row[0] if version_row else 0

    async def save(self, changes: "ChangeSet", expected_version: int) -> int:
        """
        Apply the rows changed since the last commit in one transaction.

        Args:
            changes: Changed and removed users and rooms, and new messages
            expected_version: Version the caller last read

        Returns:
            The new version

        Raises:
            ConcurrencyError: If the stored version is not `expected_version`
        """
        await self.init()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                cursor = await db.execute(
                    "UPDATE store_meta SET version = version + 1 WHERE id = 1 AND version = ?",
                    (expected_version,)
                )
                if cursor.rowcount != 1:
                    raise ConcurrencyError()

                for room_id in changes.removed_room_ids:
                    await db.execute("DELETE FROM room_users WHERE room_id = ?", (room_id,))
                    await db.execute("DELETE FROM room_owners WHERE room_id = ?", (room_id,))
                    await db.execute("DELETE FROM chat_messages WHERE room_id = ?", (room_id,))
                    await db.execute("DELETE FROM chat_rooms WHERE id = ?", (room_id,))

                await db.executemany(
                    "DELETE FROM chat_users WHERE id = ?",
                    [(user_id,) for user_id in changes.removed_user_ids]
                )

                await db.executemany(
                    """
                    INSERT INTO chat_users
                    (id, name, client_id, hashed_password, gravatar_hash, status, last_activity, last_nudged)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        client_id = excluded.client_id,
                        hashed_password = excluded.hashed_password,
                        gravatar_hash = excluded.gravatar_hash,
                        status = excluded.status,
                        last_activity = excluded.last_activity,
                        last_nudged = excluded.last_nudged
                    """,
                    [
                        (u.id, u.name, u.client_id, u.hashed_password, u.gravatar_hash,
                         u.status.value, _dump_time(u.last_activity), _dump_time(u.last_nudged))
                        for u in changes.users
                    ]
                )

                for room in changes.rooms:
                    await db.execute(
                        """
                        INSERT INTO chat_rooms (id, name, creator_id, last_nudged) VALUES (?, ?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            name = excluded.name,
                            last_nudged = excluded.last_nudged
                        """,
                        (room.id, room.name, room.creator_id, _dump_time(room.last_nudged))
                    )
                    await db.execute("DELETE FROM room_users WHERE room_id = ?", (room.id,))
                    await db.execute("DELETE FROM room_owners WHERE room_id = ?", (room.id,))
                    await db.executemany(
                        "INSERT INTO room_users (room_id, user_id) VALUES (?, ?)",
                        [(room.id, user_id) for user_id in room.users]
                    )
                    await db.executemany(
                        "INSERT INTO room_owners (room_id, user_id) VALUES (?, ?)",
                        [(room.id, user_id) for user_id in room.owners]
                    )

                # Messages are append-only
                await db.executemany(
                    """
                    INSERT OR IGNORE INTO chat_messages
                    (id, room_id, user_id, content, sent_at, seq)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (m.id, room_id, m.user_id, m.content, _dump_time(m.when), seq)
                        for room_id, seq, m in changes.messages
                    ]
                )

                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.debug(
            f"Saved {len(changes.users)} users, {len(changes.rooms)} rooms and "
            f"{len(changes.messages)} messages at version {expected_version + 1}"
        )
        return expected_version + 1
