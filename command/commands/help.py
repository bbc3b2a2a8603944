"""
Help command implementation.
"""

from command.base import CommandBase, CommandContext, CommandResponse, CommandTier
from command.factory import CommandFactory


class HelpCommand(CommandBase):
    """Display help information about available commands."""

    tier = CommandTier.BASE

    @property
    def name(self) -> str:
        return "help"

    @property
    def description(self) -> str:
        return "Show help information about available commands"

    @property
    def usage(self) -> str:
        return "/help"

    def validate(self, args: list) -> tuple[bool, str]:
        """Help command takes no arguments."""
        if args:
            return False, "The /help command takes no arguments"
        return True, ""

    async def execute(self, context: CommandContext, args: list) -> CommandResponse:
        """Send the usage and description of every registered command."""
        commands = [(cmd.usage, cmd.description) for cmd in CommandFactory.get_all_commands()]

        await context.notifier.show_help(commands)

        return CommandResponse(
            success=True,
            message=f"{len(commands)} commands available",
            response_type="info"
        )
