"""
Lookup helpers that fail fast with a user-facing ChatError.
"""

from chat.errors import ChatError
from chat.models import ChatRoom, ChatUser
from chat.repository import ChatRepository


def verify_user_id(repository: ChatRepository, user_id: str | None) -> ChatUser:
    user = repository.get_user_by_id(user_id)
    if user is None:
        raise ChatError("You don't have a name. Pick a name using '/nick nickname'.")
    return user


def verify_user(repository: ChatRepository, user_name: str) -> ChatUser:
    user = repository.get_user_by_name(user_name)
    if user is None:
        raise ChatError(f"Unable to find user '{user_name}'.")
    return user


def verify_room(repository: ChatRepository, room_name: str | None) -> ChatRoom:
    if not room_name or not room_name.strip():
        raise ChatError("Room name cannot be blank!")

    room = repository.get_room_by_name(room_name)
    if room is None:
        raise ChatError(f"Unable to find room '{room_name}'.")
    return room


def verify_user_room(repository: ChatRepository, user: ChatUser, room_name: str | None) -> ChatRoom:
    """Return the named room, requiring `user` to be one of its members."""
    if not room_name:
        raise ChatError("Use '/join room' to join a room.")

    room = repository.get_room_by_name(room_name)
    if room is None:
        raise ChatError(f"You're in '{room_name}' but it doesn't exist.")

    if user.id not in room.users:
        raise ChatError(f"You're not in '{room_name}'. Use '/join {room_name}' to join it.")
    return room
