"""
Nudge commands - get the attention of a user or of a whole room.
"""

from chat.verification import verify_user
from command.base import CommandBase, CommandContext, CommandResponse, CommandTier
from command.router import CommandParser


class NudgeUserCommand(CommandBase):
    """Nudge one user, at most once per cooldown window."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "nudge"

    @property
    def description(self) -> str:
        return "Nudge a user"

    @property
    def usage(self) -> str:
        return "/nudge @username"

    def matches(self, command_name: str, args: list[str]) -> bool:
        return command_name == self.name and len(args) == 1

    def validate(self, args: list[str]) -> tuple[bool, str]:
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        target_user = verify_user(context.repository, CommandParser.normalize_user_name(args[0]))

        context.service.nudge_user(context.user, target_user)

        await context.repository.commit_changes()
        await context.notifier.nudge_user(context.user, target_user)
        return CommandResponse(success=True, message=f"You nudged {target_user.name}", target_user=target_user.name)


class NudgeRoomCommand(CommandBase):
    """Nudge everyone in the active room, at most once per cooldown window."""

    tier = CommandTier.ROOM

    @property
    def name(self) -> str:
        return "nudge"

    @property
    def description(self) -> str:
        return "Nudge everyone in the current room"

    @property
    def usage(self) -> str:
        return "/nudge"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        context.service.nudge_room(context.room)

        await context.repository.commit_changes()
        await context.notifier.nudge_room(context.room, context.user)
        return CommandResponse(success=True, message=f"You nudged {context.room.name}")
