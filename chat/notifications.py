"""
Notification contract and the event-based implementation used by the host.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional

from pydantic import BaseModel, Field

from chat.models import ChatMessage, ChatRoom, ChatUser, utc_now


class ChatEventType(str, Enum):
    USER_CREATED = "user_created"
    USER_RENAMED = "user_renamed"
    PASSWORD_SET = "password_set"
    PASSWORD_CHANGED = "password_changed"
    GRAVATAR_CHANGED = "gravatar_changed"
    ROOM_JOINED = "room_joined"
    ROOM_LEFT = "room_left"
    OWNER_ADDED = "owner_added"
    USER_KICKED = "user_kicked"
    USER_NUDGED = "user_nudged"
    ROOM_NUDGED = "room_nudged"
    PRIVATE_MESSAGE = "private_message"
    SELF_MESSAGE = "self_message"
    MESSAGE = "message"
    USER_LIST = "user_list"
    ROOM_USER_LIST = "room_user_list"
    USER_ROOMS = "user_rooms"
    ROOM_LIST = "room_list"
    HELP = "help"
    ROOM_INFO = "room_info"
    USERS_INACTIVE = "users_inactive"
    USER_TYPING = "user_typing"


class EventAudience(str, Enum):
    CALLER = "caller"
    ROOM = "room"
    USER = "user"
    ALL = "all"


class ChatEvent(BaseModel):
    type: ChatEventType
    audience: EventAudience = EventAudience.CALLER
    room: Optional[str] = None
    rooms: list[str] = Field(default_factory=list)
    from_user: Optional[str] = None
    to_user: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime

    def to_json(self) -> str:
        return self.model_dump_json()


class NotificationService(ABC):
    """Receives one call per successful command."""

    @abstractmethod
    async def on_user_created(self, user: ChatUser) -> None: ...

    @abstractmethod
    async def on_user_name_changed(self, user: ChatUser, new_user_name: str, old_user_name: str) -> None: ...

    @abstractmethod
    async def set_password(self) -> None: ...

    @abstractmethod
    async def change_password(self) -> None: ...

    @abstractmethod
    async def change_gravatar(self, user: ChatUser, rooms: list[ChatRoom]) -> None: ...

    @abstractmethod
    async def join_room(self, user: ChatUser, room: ChatRoom) -> None: ...

    @abstractmethod
    async def leave_room(self, user: ChatUser, room: ChatRoom) -> None: ...

    @abstractmethod
    async def on_owner_added(self, target_user: ChatUser, target_room: ChatRoom) -> None: ...

    @abstractmethod
    async def kick_user(self, room: ChatRoom, target_user: ChatUser) -> None: ...

    @abstractmethod
    async def nudge_user(self, user: ChatUser, to_user: ChatUser) -> None: ...

    @abstractmethod
    async def nudge_room(self, room: ChatRoom, user: ChatUser) -> None: ...

    @abstractmethod
    async def send_private_message(self, user: ChatUser, to_user: ChatUser, message_text: str) -> None: ...

    @abstractmethod
    async def on_self_message(self, room: ChatRoom, user: ChatUser, content: str) -> None: ...

    @abstractmethod
    async def on_message(self, room: ChatRoom, user: ChatUser, content: str) -> None: ...

    @abstractmethod
    async def list_users(self, users: Iterable[ChatUser]) -> None: ...

    @abstractmethod
    async def list_users_in_room(self, room: ChatRoom, names: list[str]) -> None: ...

    @abstractmethod
    async def list_rooms(self, user: ChatUser, rooms: list[ChatRoom]) -> None: ...

    @abstractmethod
    async def show_rooms(self, rooms: list[ChatRoom]) -> None: ...

    @abstractmethod
    async def show_help(self, commands: list[tuple[str, str]]) -> None: ...

    @abstractmethod
    async def show_room_info(
        self,
        room: ChatRoom,
        users: list[ChatUser],
        owners: list[ChatUser],
        messages: list[tuple[ChatUser, ChatMessage]]
    ) -> None: ...

    @abstractmethod
    async def mark_inactive(self, users: list[ChatUser]) -> None: ...

    @abstractmethod
    async def set_typing(self, user: ChatUser, room: ChatRoom, is_typing: bool) -> None: ...


EventSink = Callable[[ChatEvent], Awaitable[None]]


class EventNotifier(NotificationService):
    """Turns every notification into a ChatEvent and hands it to `sink`."""

    def __init__(self, sink: EventSink, clock: Callable[[], datetime] = utc_now):
        """
        Args:
            sink: Coroutine that delivers each event
            clock: Source of event timestamps, normally the ChatService clock
        """
        self.sink = sink
        self.clock = clock

    async def _emit(self, event_type: ChatEventType, audience: EventAudience = EventAudience.CALLER, **fields) -> None:
        await self.sink(ChatEvent(type=event_type, audience=audience, timestamp=self.clock(), **fields))

    async def on_user_created(self, user: ChatUser) -> None:
        await self._emit(
            ChatEventType.USER_CREATED,
            from_user=user.name,
            payload={"id": user.id, "name": user.name, "hash": user.gravatar_hash}
        )

    async def on_user_name_changed(self, user: ChatUser, new_user_name: str, old_user_name: str) -> None:
        await self._emit(
            ChatEventType.USER_RENAMED,
            EventAudience.ALL,
            from_user=new_user_name,
            payload={"old_name": old_user_name, "new_name": new_user_name}
        )

    async def set_password(self) -> None:
        await self._emit(ChatEventType.PASSWORD_SET)

    async def change_password(self) -> None:
        await self._emit(ChatEventType.PASSWORD_CHANGED)

    async def change_gravatar(self, user: ChatUser, rooms: list[ChatRoom]) -> None:
        await self._emit(
            ChatEventType.GRAVATAR_CHANGED,
            EventAudience.ROOM,
            rooms=[r.name for r in rooms],
            from_user=user.name,
            payload={"hash": user.gravatar_hash}
        )

    async def join_room(self, user: ChatUser, room: ChatRoom) -> None:
        await self._emit(
            ChatEventType.ROOM_JOINED,
            EventAudience.ROOM,
            room=room.name,
            from_user=user.name,
            payload={"is_owner": room.is_owner(user)}
        )

    async def leave_room(self, user: ChatUser, room: ChatRoom) -> None:
        await self._emit(ChatEventType.ROOM_LEFT, EventAudience.ROOM, room=room.name, from_user=user.name)

    async def on_owner_added(self, target_user: ChatUser, target_room: ChatRoom) -> None:
        await self._emit(ChatEventType.OWNER_ADDED, EventAudience.ROOM, room=target_room.name, to_user=target_user.name)

    async def kick_user(self, room: ChatRoom, target_user: ChatUser) -> None:
        await self._emit(ChatEventType.USER_KICKED, EventAudience.ROOM, room=room.name, to_user=target_user.name)

    async def nudge_user(self, user: ChatUser, to_user: ChatUser) -> None:
        await self._emit(
            ChatEventType.USER_NUDGED,
            EventAudience.USER,
            from_user=user.name,
            to_user=to_user.name,
            payload={"text": f"{user.name} nudged you"}
        )

    async def nudge_room(self, room: ChatRoom, user: ChatUser) -> None:
        await self._emit(ChatEventType.ROOM_NUDGED, EventAudience.ROOM, room=room.name, from_user=user.name)

    async def send_private_message(self, user: ChatUser, to_user: ChatUser, message_text: str) -> None:
        await self._emit(
            ChatEventType.PRIVATE_MESSAGE,
            EventAudience.USER,
            from_user=user.name,
            to_user=to_user.name,
            payload={"text": message_text}
        )

    async def on_self_message(self, room: ChatRoom, user: ChatUser, content: str) -> None:
        await self._emit(
            ChatEventType.SELF_MESSAGE,
            EventAudience.ROOM,
            room=room.name,
            from_user=user.name,
            payload={"text": content}
        )

    async def on_message(self, room: ChatRoom, user: ChatUser, content: str) -> None:
        await self._emit(
            ChatEventType.MESSAGE,
            EventAudience.ROOM,
            room=room.name,
            from_user=user.name,
            payload={"text": content, "hash": user.gravatar_hash}
        )

    async def list_users(self, users: Iterable[ChatUser]) -> None:
        await self._emit(ChatEventType.USER_LIST, payload={"users": sorted(u.name for u in users)})

    async def list_users_in_room(self, room: ChatRoom, names: list[str]) -> None:
        await self._emit(ChatEventType.ROOM_USER_LIST, room=room.name, payload={"users": names})

    async def list_rooms(self, user: ChatUser, rooms: list[ChatRoom]) -> None:
        await self._emit(ChatEventType.USER_ROOMS, to_user=user.name, payload={"rooms": [r.name for r in rooms]})

    async def show_rooms(self, rooms: list[ChatRoom]) -> None:
        listing = [{"name": r.name, "count": len(r.users)} for r in sorted(rooms, key=lambda r: r.name.lower())]
        await self._emit(ChatEventType.ROOM_LIST, payload={"rooms": listing})

    async def show_help(self, commands: list[tuple[str, str]]) -> None:
        await self._emit(
            ChatEventType.HELP,
            payload={"commands": [{"usage": usage, "description": description} for usage, description in commands]}
        )

    async def show_room_info(
        self,
        room: ChatRoom,
        users: list[ChatUser],
        owners: list[ChatUser],
        messages: list[tuple[ChatUser, ChatMessage]]
    ) -> None:
        await self._emit(
            ChatEventType.ROOM_INFO,
            room=room.name,
            payload={
                "users": [{"name": u.name, "hash": u.gravatar_hash, "status": u.status.value} for u in users],
                "owners": [u.name for u in owners],
                "recent_messages": [
                    {"id": m.id, "user": u.name, "text": m.content, "when": m.when.isoformat()}
                    for u, m in messages
                ]
            }
        )

    async def mark_inactive(self, users: list[ChatUser]) -> None:
        await self._emit(
            ChatEventType.USERS_INACTIVE,
            EventAudience.ALL,
            payload={"users": [{"name": u.name, "status": u.status.value} for u in users]}
        )

    async def set_typing(self, user: ChatUser, room: ChatRoom, is_typing: bool) -> None:
        await self._emit(
            ChatEventType.USER_TYPING,
            EventAudience.ROOM,
            room=room.name,
            from_user=user.name,
            payload={"typing": is_typing}
        )
