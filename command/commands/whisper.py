"""
Whisper (private message) command implementation.
"""

from chat.errors import ChatError
from chat.verification import verify_user
from command.base import CommandBase, CommandContext, CommandResponse, CommandTier
from command.router import CommandParser


class WhisperCommand(CommandBase):
    """Send private message to another user."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "msg"

    @property
    def description(self) -> str:
        return "Send a private message to a user"

    @property
    def usage(self) -> str:
        return "/msg @username <message>"

    def validate(self, args: list) -> tuple[bool, str]:
        """Validate whisper command arguments."""
        if not args or not args[0].strip():
            return False, "Who are you trying send a private message to?"

        # Remove @ prefix if present
        if not CommandParser.normalize_user_name(args[0]):
            return False, "Who are you trying send a private message to?"

        return True, ""

    async def execute(self, context: CommandContext, args: list) -> CommandResponse:
        """Execute private message sending."""
        if len(context.repository.users) == 1:
            raise ChatError("You're the only person in here...")

        target_username = CommandParser.normalize_user_name(args[0])
        target_user = verify_user(context.repository, target_username)

        if target_user.id == context.user.id:
            raise ChatError("You can't private message yourself!")

        # Message is the rest
        message = " ".join(args[1:]).strip()
        if not message:
            raise ChatError(f"What did you want to say to '{target_user.name}'.")

        await context.notifier.send_private_message(context.user, target_user, message)

        # Send confirmation to sender
        return CommandResponse(
            success=True,
            message=f"Private message sent to {target_user.name}",
            response_type="private",
            target_user=target_user.name
        )
