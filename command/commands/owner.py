"""
Room ownership commands: /addowner and /kick.
"""

from chat.errors import ChatError
from chat.verification import verify_room, verify_user
from command.base import CommandBase, CommandContext, CommandResponse, CommandTier
from command.router import CommandParser


class AddOwnerCommand(CommandBase):
    """Grant ownership of a room. Any command name ending in 'addowner' is accepted."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "addowner"

    @property
    def description(self) -> str:
        return "Make a user an owner of a room you own"

    @property
    def usage(self) -> str:
        return "/addowner <user> <room>"

    def matches(self, command_name: str, args: list[str]) -> bool:
        return command_name.endswith(self.name)

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if not args:
            return False, "Who do you want to make an owner?"
        if len(args) == 1:
            return False, "Which room?"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        target_user = verify_user(context.repository, CommandParser.normalize_user_name(args[0]))
        target_room = verify_room(context.repository, args[1])

        context.service.add_owner(context.user, target_user, target_room)

        await context.repository.commit_changes()
        await context.notifier.on_owner_added(target_user, target_room)
        return CommandResponse(success=True, message=f"{target_user.name} is now an owner of {target_room.name}")


class KickCommand(CommandBase):
    """Remove a user from the active room."""

    tier = CommandTier.OWNER

    @property
    def name(self) -> str:
        return "kick"

    @property
    def description(self) -> str:
        return "Kick a user out of the current room"

    @property
    def usage(self) -> str:
        return "/kick <user>"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if not args:
            return False, "Who are you trying to kick?"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        room = context.room
        if len(room.users) == 1:
            raise ChatError("You're the only person in here...")

        target_user = verify_user(context.repository, CommandParser.normalize_user_name(args[0]))

        context.service.kick_user(context.user, target_user, room)

        await context.repository.commit_changes()
        await context.notifier.kick_user(room, target_user)
        return CommandResponse(success=True, message=f"{target_user.name} was kicked from {room.name}")
