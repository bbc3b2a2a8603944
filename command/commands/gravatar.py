"""
Gravatar command - set the caller's avatar from an email address.
"""

from command.base import CommandBase, CommandContext, CommandResponse, CommandTier


class GravatarCommand(CommandBase):
    """Set the avatar hash shown next to the caller's messages."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "gravatar"

    @property
    def description(self) -> str:
        return "Use the gravatar of an email address as your avatar"

    @property
    def usage(self) -> str:
        return "/gravatar <email>"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if not " ".join(args).strip():
            return False, "Email was not specified!"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        user = context.user
        context.service.change_gravatar(user, " ".join(args))

        await context.repository.commit_changes()
        await context.notifier.change_gravatar(user, context.repository.rooms_of(user))
        return CommandResponse(success=True, message="Your gravatar has been set")
