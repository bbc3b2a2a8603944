"""
Read-only listing commands: /rooms, /list and /who.
"""

from chat.verification import verify_room
from command.base import CommandBase, CommandContext, CommandResponse, CommandTier
from command.router import CommandParser


class RoomsCommand(CommandBase):
    """List every room."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "rooms"

    @property
    def description(self) -> str:
        return "Show all rooms and how many people are in them"

    @property
    def usage(self) -> str:
        return "/rooms"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if args:
            return False, "The /rooms command takes no arguments"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        rooms = context.repository.rooms
        await context.notifier.show_rooms(rooms)
        return CommandResponse(success=True, message=f"{len(rooms)} rooms")


class ListCommand(CommandBase):
    """List the online members of a room."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "list"

    @property
    def description(self) -> str:
        return "Show who is online in a room"

    @property
    def usage(self) -> str:
        return "/list <room>"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if not args:
            return False, "List users in which room?"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        room = verify_room(context.repository, args[0])
        names = [u.name for u in context.repository.online_users(room)]

        await context.notifier.list_users_in_room(room, names)
        return CommandResponse(success=True, message=f"{len(names)} users in {room.name}")


class WhoCommand(CommandBase):
    """List everyone, or the rooms of one user."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "who"

    @property
    def description(self) -> str:
        return "Show all users, or the rooms a user is in"

    @property
    def usage(self) -> str:
        return "/who [name]"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if len(args) > 1:
            return False, f"Invalid format. Usage: {self.usage}"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        repository = context.repository

        if not args:
            users = [u for u in repository.users if u.is_online]
            await context.notifier.list_users(users)
            return CommandResponse(success=True, message=f"{len(users)} users online")

        name = CommandParser.normalize_user_name(args[0])
        user = repository.get_user_by_name(name)
        if user is None:
            # Fall back to a partial match when it is unambiguous
            matches = repository.search_users(name)
            if len(matches) != 1:
                await context.notifier.list_users(matches)
                return CommandResponse(success=True, message=f"{len(matches)} users match '{name}'")
            user = matches[0]

        await context.notifier.list_rooms(user, repository.rooms_of(user))
        return CommandResponse(success=True, message=f"Rooms of {user.name}")
