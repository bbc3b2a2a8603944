"""
Entities of the chat domain.

Users and rooms reference each other by id only. Membership and ownership
are kept as id sets on both sides and are maintained by ChatService.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    OFFLINE = "offline"


@dataclass
class ChatMessage:
    """A message posted to a room. Never edited once appended."""

    user_id: str
    content: str
    id: str = field(default_factory=new_id)
    when: datetime = field(default_factory=utc_now)


@dataclass
class ChatUser:
    """A chat identity, optionally claimed with a password."""

    name: str
    client_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    hashed_password: Optional[str] = None
    gravatar_hash: Optional[str] = None
    status: UserStatus = UserStatus.ACTIVE
    last_activity: datetime = field(default_factory=utc_now)
    last_nudged: Optional[datetime] = None
    rooms: set[str] = field(default_factory=set)
    owned_rooms: set[str] = field(default_factory=set)

    @property
    def is_online(self) -> bool:
        return self.status != UserStatus.OFFLINE

    @property
    def is_claimed(self) -> bool:
        return self.hashed_password is not None

    def __str__(self) -> str:
        return self.name


@dataclass
class ChatRoom:
    """A named room with a single creator, a set of owners and members."""

    name: str
    creator_id: str
    id: str = field(default_factory=new_id)
    owners: set[str] = field(default_factory=set)
    users: set[str] = field(default_factory=set)
    messages: list[ChatMessage] = field(default_factory=list, compare=False)
    last_nudged: Optional[datetime] = None

    def is_owner(self, user: ChatUser) -> bool:
        return user.id in self.owners

    def is_creator(self, user: ChatUser) -> bool:
        return user.id == self.creator_id

    def __str__(self) -> str:
        return self.name
