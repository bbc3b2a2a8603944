"""
Room membership commands: /join, /create and /leave.
"""

from chat.errors import ChatError
from chat.models import ChatRoom, ChatUser
from chat.verification import verify_room
from command.base import CommandBase, CommandContext, CommandResponse, CommandTier


async def join_room(context: CommandContext, user: ChatUser, room: ChatRoom) -> None:
    context.service.join_room(user, room)
    await context.repository.commit_changes()
    await context.notifier.join_room(user, room)


async def leave_room(context: CommandContext, user: ChatUser, room: ChatRoom) -> None:
    context.service.leave_room(user, room)
    await context.repository.commit_changes()
    await context.notifier.leave_room(user, room)


class JoinCommand(CommandBase):
    """Join an existing room."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "join"

    @property
    def description(self) -> str:
        return "Join a room"

    @property
    def usage(self) -> str:
        return "/join <room>"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if not args:
            return False, "Join which room?"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        room = verify_room(context.repository, args[0])

        if context.service.is_user_in_room(room, context.user):
            raise ChatError("You're already in that room!")

        await join_room(context, context.user, room)
        return CommandResponse(success=True, message=f"You joined {room.name}")


class CreateCommand(CommandBase):
    """Create a room and join it."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "create"

    @property
    def description(self) -> str:
        return "Create a new room and join it"

    @property
    def usage(self) -> str:
        return "/create <room>"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if not args or not args[0].strip():
            return False, "No room specified."
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        room = context.service.add_room(context.user, args[0])

        await context.repository.commit_changes()
        await context.notifier.join_room(context.user, room)
        return CommandResponse(success=True, message=f"You created {room.name}")


class LeaveRoomCommand(CommandBase):
    """Leave a named room."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "leave"

    @property
    def description(self) -> str:
        return "Leave the given room"

    @property
    def usage(self) -> str:
        return "/leave <room>"

    def matches(self, command_name: str, args: list[str]) -> bool:
        return command_name == self.name and len(args) == 1

    def validate(self, args: list[str]) -> tuple[bool, str]:
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        room = verify_room(context.repository, args[0])

        if not context.service.is_user_in_room(room, context.user):
            raise ChatError(f"You're not in '{room.name}'.")

        await leave_room(context, context.user, room)
        return CommandResponse(success=True, message=f"You left {room.name}")


class LeaveActiveRoomCommand(CommandBase):
    """Leave the room the caller is currently in."""

    tier = CommandTier.ROOM

    @property
    def name(self) -> str:
        return "leave"

    @property
    def description(self) -> str:
        return "Leave the current room"

    @property
    def usage(self) -> str:
        return "/leave"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        room = context.room
        await leave_room(context, context.user, room)
        return CommandResponse(success=True, message=f"You left {room.name}")
