"""
In-process repository for the chat graph.

Users and rooms live in id-keyed maps. Mutations made by the domain service
become the committed state on commit_changes(); rollback() throws away
anything done since the last commit. When a ChatStore is attached, every
commit also persists the rows that changed, with an optimistic version check.

Commits are serialized. A caller that needs its mutations and its commit to
run without other callers interleaving wraps them in transaction().
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, AsyncIterator, Union

from chat.errors import ConcurrencyError
from chat.models import ChatMessage, ChatRoom, ChatUser

if TYPE_CHECKING:
    from db.chat_db import ChatStore

logger = logging.getLogger(__name__)


@dataclass
class ChangeSet:
    """Rows that differ from the last committed state."""

    users: list[ChatUser] = field(default_factory=list)
    rooms: list[ChatRoom] = field(default_factory=list)
    removed_user_ids: list[str] = field(default_factory=list)
    removed_room_ids: list[str] = field(default_factory=list)
    # (room id, position in the room, message)
    messages: list[tuple[str, int, ChatMessage]] = field(default_factory=list)


@dataclass
class _Snapshot:
    users: dict[str, ChatUser]
    rooms: dict[str, ChatRoom]
    message_counts: dict[str, int]


def _copy_user(user: ChatUser) -> ChatUser:
    return replace(user, rooms=set(user.rooms), owned_rooms=set(user.owned_rooms))


def _copy_room(room: ChatRoom) -> ChatRoom:
    # Messages are append-only, so the list is shared and trimmed on rollback
    return replace(room, owners=set(room.owners), users=set(room.users), messages=room.messages)


class ChatRepository:
    """Arena storage for users and rooms with a commit boundary."""

    def __init__(self, store: "ChatStore | None" = None):
        self._users: dict[str, ChatUser] = {}
        self._rooms: dict[str, ChatRoom] = {}
        self._store = store
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None
        self._lock_owner: asyncio.Task | None = None
        self.version = 0
        self._committed = self._snapshot()

    @property
    def users(self) -> list[ChatUser]:
        return list(self._users.values())

    @property
    def rooms(self) -> list[ChatRoom]:
        return list(self._rooms.values())

    def get_user_by_id(self, user_id: str | None) -> ChatUser | None:
        if not user_id:
            return None
        return self._users.get(user_id)

    def get_user_by_name(self, name: str) -> ChatUser | None:
        name = name.lower()
        for user in self._users.values():
            if user.name.lower() == name:
                return user
        return None

    def get_user_by_client_id(self, client_id: str | None) -> ChatUser | None:
        if not client_id:
            return None
        for user in self._users.values():
            if user.client_id == client_id:
                return user
        return None

    def get_room_by_name(self, name: str) -> ChatRoom | None:
        name = name.lower()
        for room in self._rooms.values():
            if room.name.lower() == name:
                return room
        return None

    def search_users(self, name: str) -> list[ChatUser]:
        """Online users whose name contains `name`, ignoring case."""
        name = name.lower()
        return [u for u in self._users.values() if u.is_online and name in u.name.lower()]

    def online_users(self, room: ChatRoom) -> list[ChatUser]:
        members = (self._users.get(user_id) for user_id in room.users)
        return sorted((u for u in members if u is not None and u.is_online), key=lambda u: u.name.lower())

    def rooms_of(self, user: ChatUser) -> list[ChatRoom]:
        return sorted(
            (self._rooms[room_id] for room_id in user.rooms if room_id in self._rooms),
            key=lambda r: r.name.lower()
        )

    def add(self, entity: Union[ChatUser, ChatRoom]) -> None:
        if isinstance(entity, ChatUser):
            self._users[entity.id] = entity
        elif isinstance(entity, ChatRoom):
            self._rooms[entity.id] = entity
        else:
            raise TypeError(f"Cannot add {type(entity).__name__} to the repository")

    async def load(self) -> None:
        """Replace the in-memory graph with the contents of the attached store."""
        if self._store is None:
            return
        users, rooms, version = await self._store.load()
        self._users = {u.id: u for u in users}
        self._rooms = {r.id: r for r in rooms}
        self.version = version
        self._committed = self._snapshot()
        logger.info(f"Loaded {len(users)} users and {len(rooms)} rooms (version {version})")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["ChatRepository"]:
        """
        Hold the commit lock for a whole unit of work.

        Any exception raised inside the block rolls back uncommitted
        mutations before it propagates.
        """
        async with self._commit_lock():
            self._lock_owner = asyncio.current_task()
            try:
                yield self
            except Exception:
                self.rollback()
                raise
            finally:
                self._lock_owner = None

    async def commit_changes(self) -> None:
        """
        Make every mutation since the last commit durable.

        Raises:
            ConcurrencyError: If the store was changed by another writer.
                The in-memory graph is reloaded from the store.
        """
        if self._lock_owner is not None and self._lock_owner is asyncio.current_task():
            await self._commit()
            return

        async with self._commit_lock():
            await self._commit()

    def rollback(self) -> None:
        """Discard uncommitted mutations."""
        committed = self._committed
        self._users = {user_id: _copy_user(u) for user_id, u in committed.users.items()}
        self._rooms = {room_id: _copy_room(r) for room_id, r in committed.rooms.items()}
        for room_id, room in self._rooms.items():
            del room.messages[committed.message_counts[room_id]:]

    def _commit_lock(self) -> asyncio.Lock:
        # An asyncio.Lock belongs to the loop that first waits on it
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _commit(self) -> None:
        snapshot = self._snapshot()
        changes = self._diff(self._committed, snapshot)

        if self._store is None:
            new_version = self.version + 1
        else:
            try:
                new_version = await self._store.save(changes, self.version)
            except ConcurrencyError:
                logger.warning(f"Commit at version {self.version} conflicted with another writer")
                await self.load()
                raise

        self.version = new_version
        self._committed = snapshot

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            users={user_id: _copy_user(u) for user_id, u in self._users.items()},
            rooms={room_id: _copy_room(r) for room_id, r in self._rooms.items()},
            message_counts={room_id: len(r.messages) for room_id, r in self._rooms.items()}
        )

    @staticmethod
    def _diff(old: _Snapshot, new: _Snapshot) -> ChangeSet:
        changes = ChangeSet(
            users=[u for user_id, u in new.users.items() if old.users.get(user_id) != u],
            rooms=[r for room_id, r in new.rooms.items() if old.rooms.get(room_id) != r],
            removed_user_ids=[user_id for user_id in old.users if user_id not in new.users],
            removed_room_ids=[room_id for room_id in old.rooms if room_id not in new.rooms]
        )
        for room_id, room in new.rooms.items():
            start = old.message_counts.get(room_id, 0)
            end = new.message_counts[room_id]
            changes.messages.extend(
                (room_id, seq, room.messages[seq]) for seq in range(start, end)
            )
        return changes
