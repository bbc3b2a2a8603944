"""
Domain service for the chat graph.

ChatService is the only code that mutates users and rooms. Every method
checks its preconditions before touching any entity and raises ChatError
when one fails.
"""

import hashlib
import logging
import re
from datetime import datetime, timedelta
from typing import Callable

from chat.config import ChatConfig
from chat.errors import ChatError
from chat.models import ChatMessage, ChatRoom, ChatUser, UserStatus, utc_now
from chat.repository import ChatRepository

logger = logging.getLogger(__name__)


def sha256_hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def gravatar_hash(email: str) -> str:
    return hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()


def user_exists_error(user_name: str) -> ChatError:
    return ChatError(f"Username {user_name} already taken, please pick a new one using '/nick nickname'.")


class ChatService:
    """Enforces the chat invariants over a ChatRepository."""

    def __init__(
        self,
        repository: ChatRepository,
        config: ChatConfig | None = None,
        hasher: Callable[[str], str] = sha256_hash,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Args:
            repository: Storage for users and rooms
            config: Naming, password and cooldown rules
            hasher: One-way hash applied to passwords before storing or comparing
            clock: Source of the current UTC time
        """
        self.repository = repository
        self.config = config or ChatConfig()
        self.hasher = hasher
        self.clock = clock
        self._name_re = re.compile(self.config.name_pattern)

    # Users

    def add_user(self, user_name: str, client_id: str | None, password: str | None = None) -> ChatUser:
        if not self._is_valid_name(user_name):
            raise ChatError(f"'{user_name}' is not a valid user name.")

        self._ensure_user_name_available(user_name)

        hashed_password = None
        if password:
            self._validate_password(password)
            hashed_password = self.hasher(password)

        user = ChatUser(
            name=user_name,
            client_id=client_id,
            hashed_password=hashed_password,
            status=UserStatus.ACTIVE,
            last_activity=self.clock()
        )
        self.repository.add(user)
        logger.info(f"User {user.name} created ({user.id})")
        return user

    def authenticate_user(self, user_name: str, password: str) -> ChatUser:
        user = self.repository.get_user_by_name(user_name)
        if user is None:
            raise ChatError(f"Unable to find user '{user_name}'.")

        if user.hashed_password is None:
            raise ChatError(f"The nick '{user_name}' is unclaimable")

        if user.hashed_password != self.hasher(password):
            raise ChatError(f"Unable to claim '{user_name}'.")

        return user

    def bind_client(self, user: ChatUser, client_id: str | None) -> None:
        user.client_id = client_id
        self.update_activity(user)

    def change_user_name(self, user: ChatUser, new_user_name: str) -> None:
        if not self._is_valid_name(new_user_name):
            raise ChatError(f"'{new_user_name}' is not a valid user name.")

        if user.name.lower() == new_user_name.lower():
            raise ChatError("That's already your username...")

        self._ensure_user_name_available(new_user_name)

        logger.info(f"User {user.name} renamed to {new_user_name}")
        user.name = new_user_name

    def set_user_password(self, user: ChatUser, password: str) -> None:
        self._validate_password(password)
        user.hashed_password = self.hasher(password)

    def change_user_password(self, user: ChatUser, old_password: str, new_password: str) -> None:
        if user.hashed_password != self.hasher(old_password):
            raise ChatError("Passwords don't match.")

        self._validate_password(new_password)
        user.hashed_password = self.hasher(new_password)

    def change_gravatar(self, user: ChatUser, email: str) -> str:
        if not email or not email.strip():
            raise ChatError("Email was not specified!")

        user.gravatar_hash = gravatar_hash(email)
        return user.gravatar_hash

    def update_activity(self, user: ChatUser) -> None:
        user.status = UserStatus.ACTIVE
        user.last_activity = self.clock()

    def disconnect_user(self, user: ChatUser) -> None:
        user.status = UserStatus.OFFLINE
        user.client_id = None

    def mark_inactive(self) -> list[ChatUser]:
        """
        Move active users who have been idle for `inactive_after_seconds` to inactive.

        Returns:
            The users whose status changed
        """
        cutoff = self.clock() - timedelta(seconds=self.config.inactive_after_seconds)
        idle = [
            u for u in self.repository.users
            if u.status == UserStatus.ACTIVE and u.last_activity <= cutoff
        ]
        for user in idle:
            user.status = UserStatus.INACTIVE
        if idle:
            logger.info(f"Marked {len(idle)} users inactive")
        return idle

    # Rooms

    def add_room(self, creator: ChatUser, name: str) -> ChatRoom:
        """Create a room with `creator` as its first owner and member."""
        if name.lower() == self.config.lobby_name.lower():
            raise ChatError(f"{self.config.lobby_name} is not a valid chat room.")

        if not self._is_valid_name(name):
            raise ChatError(f"'{name}' is not a valid room name.")

        if self.repository.get_room_by_name(name) is not None:
            raise ChatError(f"The room '{name}' already exists")

        room = ChatRoom(name=name, creator_id=creator.id)
        room.owners.add(creator.id)
        creator.owned_rooms.add(room.id)
        self.join_room(creator, room)
        self.repository.add(room)
        logger.info(f"Room {room.name} created by {creator.name}")
        return room

    def join_room(self, user: ChatUser, room: ChatRoom) -> None:
        user.rooms.add(room.id)
        room.users.add(user.id)

    def leave_room(self, user: ChatUser, room: ChatRoom) -> None:
        room.users.discard(user.id)
        user.rooms.discard(room.id)

    @staticmethod
    def is_user_in_room(room: ChatRoom, user: ChatUser) -> bool:
        return user.id in room.users

    def add_message(self, user: ChatUser, room: ChatRoom, content: str) -> ChatMessage:
        message = ChatMessage(user_id=user.id, content=content, when=self.clock())
        room.messages.append(message)
        return message

    def recent_messages(self, room: ChatRoom) -> list[ChatMessage]:
        """The last `recent_message_count` messages of `room`, oldest first."""
        count = self.config.recent_message_count
        return room.messages[-count:] if count > 0 else []

    # Ownership

    def add_owner(self, owner_or_creator: ChatUser, target_user: ChatUser, target_room: ChatRoom) -> None:
        self._ensure_owner(owner_or_creator, target_room)

        if target_room.is_owner(target_user):
            raise ChatError(f"'{target_user.name}' is already an owner of '{target_room.name}'.")

        target_room.owners.add(target_user.id)
        target_user.owned_rooms.add(target_room.id)
        logger.info(f"{owner_or_creator.name} made {target_user.name} an owner of {target_room.name}")

    def kick_user(self, user: ChatUser, target_user: ChatUser, target_room: ChatRoom) -> None:
        self._ensure_owner(user, target_room)

        if target_user.id == user.id:
            raise ChatError("Why would you want to kick yourself?")

        if not self.is_user_in_room(target_room, target_user):
            raise ChatError(f"'{target_user.name}' isn't in '{target_room.name}'.")

        if not target_room.is_creator(user) and target_room.is_owner(target_user):
            raise ChatError("Owners cannot kick other owners. Only the room creator can kick an owner.")

        self.leave_room(target_user, target_room)
        logger.info(f"{user.name} kicked {target_user.name} from {target_room.name}")

    # Nudges

    def nudge_user(self, user: ChatUser, target_user: ChatUser) -> None:
        if len(self.repository.users) < 2:
            raise ChatError("You're the only person in here...")

        if target_user.id == user.id:
            raise ChatError("You can't nudge yourself!")

        now = self.clock()
        if self._cooling_down(target_user.last_nudged, now):
            raise ChatError(f"User can only be nudged once every {self.config.nudge_cooldown_seconds} seconds")

        target_user.last_nudged = now

    def nudge_room(self, room: ChatRoom) -> None:
        now = self.clock()
        if self._cooling_down(room.last_nudged, now):
            raise ChatError(f"Room can only be nudged once every {self.config.nudge_cooldown_seconds} seconds")

        room.last_nudged = now

    # Helpers

    def _cooling_down(self, last_nudged: datetime | None, now: datetime) -> bool:
        if last_nudged is None:
            return False
        return now - last_nudged < timedelta(seconds=self.config.nudge_cooldown_seconds)

    def _ensure_user_name_available(self, user_name: str) -> None:
        if self.repository.get_user_by_name(user_name) is not None:
            raise user_exists_error(user_name)

    def _validate_password(self, password: str | None) -> None:
        if not password or len(password) < self.config.min_password_length:
            raise ChatError(f"Your password must be at least {self.config.min_password_length} characters.")

    def _is_valid_name(self, name: str | None) -> bool:
        return bool(name) and self._name_re.fullmatch(name) is not None

    @staticmethod
    def _ensure_owner(user: ChatUser, room: ChatRoom) -> None:
        if not room.is_owner(user):
            raise ChatError(f"You are not an owner of {room.name}")
