"""
Me command - emote in the active room.
"""

from command.base import CommandBase, CommandContext, CommandResponse, CommandTier


class MeCommand(CommandBase):
    tier = CommandTier.ROOM

    @property
    def name(self) -> str:
        return "me"

    @property
    def description(self) -> str:
        return "Describe what you are doing in the current room"

    @property
    def usage(self) -> str:
        return "/me <action>"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if not args:
            return False, "You what?"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        content = " ".join(args)
        await context.notifier.on_self_message(context.room, context.user, content)
        return CommandResponse(success=True, message=f"{context.user.name} {content}")
