"""
Command router and parser for message handling.
"""

import logging
from typing import Callable

from chat.config import ChatConfig
from chat.errors import ChatError
from chat.notifications import NotificationService
from chat.repository import ChatRepository
from chat.service import ChatService
from chat.verification import verify_user_id, verify_user_room
from command.base import CommandBase, CommandContext, CommandResponse, CommandTier
from command.factory import CommandFactory

logger = logging.getLogger(__name__)


class CommandParser:
    """Parse message to extract command and arguments."""

    @staticmethod
    def is_command(message: str, prefix: str = "/") -> bool:
        """Check if message is a command (starts with /)."""
        return message.strip().startswith(prefix)

    @staticmethod
    def parse(message: str, prefix: str = "/") -> tuple[str, list]:
        """
        Parse command message into command name and arguments.

        Args:
            message: Message starting with /

        Returns:
            Tuple of (command_name, args_list)

        Example:
            "/msg @alice hello world" -> ("msg", ["@alice", "hello", "world"])
            "/help" -> ("help", [])
        """
        # Remove leading slash and strip whitespace
        command_text = message.strip()[len(prefix):].strip()

        if not command_text:
            return "", []

        # Split into command and arguments
        parts = command_text.split(maxsplit=1)
        command_name = parts[0].lower()

        # Parse arguments
        args = []
        if len(parts) > 1:
            args = parts[1].split()

        return command_name, args

    @staticmethod
    def normalize_user_name(user_name: str) -> str:
        """Strip the optional @ in front of a user name."""
        return user_name[1:] if user_name.startswith("@") else user_name


# Tier guards. Each one checks a single precondition and records what it resolved.

def require_identity(context: CommandContext) -> None:
    context.user = verify_user_id(context.repository, context.user_id)


def require_room_member(context: CommandContext) -> None:
    context.room = verify_user_room(context.repository, context.user, context.room_name)


def require_owner(context: CommandContext) -> None:
    if not context.room.is_owner(context.user):
        raise ChatError(f"You are not an owner of {context.room.name}")


TIER_GUARDS: dict[CommandTier, tuple[Callable[[CommandContext], None], ...]] = {
    CommandTier.BASE: (),
    CommandTier.USER: (require_identity,),
    CommandTier.ROOM: (require_identity, require_room_member),
    CommandTier.OWNER: (require_identity, require_room_member, require_owner),
}

# Owner commands are looked up together with room commands.
RESOLUTION_ORDER = (
    (CommandTier.BASE,),
    (CommandTier.USER,),
    (CommandTier.ROOM, CommandTier.OWNER),
)


class CommandDispatcher:
    """Parses raw input, authorizes the caller and runs the matching command."""

    def __init__(
        self,
        repository: ChatRepository,
        service: ChatService,
        notifier: NotificationService,
        config: ChatConfig | None = None,
        commands: list[CommandBase] | None = None
    ):
        self.repository = repository
        self.service = service
        self.notifier = notifier
        self.config = config or service.config
        self.commands = commands if commands is not None else CommandFactory.get_all_commands()

    def resolve(self, command_name: str, args: list[str]) -> CommandBase | None:
        """Find the first command matching the name, searching tiers from least privileged."""
        for tiers in RESOLUTION_ORDER:
            for command in self.commands:
                if command.tier in tiers and command.matches(command_name, args):
                    return command
        return None

    async def dispatch(
        self,
        message: str,
        user_id: str | None,
        client_id: str | None = None,
        room_name: str | None = None
    ) -> CommandResponse:
        """
        Run one command on behalf of a caller.

        Args:
            message: Raw text typed by the caller
            user_id: Id of the caller's identity, if they have one
            client_id: Connection the caller is using
            room_name: The caller's active room

        Returns:
            CommandResponse. Its response_type is "not_command" when `message`
            is plain chat text, and "error" when the command was rejected.
        """
        prefix = self.config.command_prefix
        if not CommandParser.is_command(message, prefix):
            return CommandResponse.not_a_command()

        command_name, args = CommandParser.parse(message, prefix)
        if not command_name:
            return CommandResponse.error("Empty command. Use /help for available commands.")

        command = self.resolve(command_name, args)
        if command is None:
            logger.info(f"Unknown command /{command_name} from {user_id or client_id}")
            return CommandResponse.error(f"'{command_name}' is not a valid command.")

        if room_name and room_name.lower() == self.config.lobby_name.lower():
            room_name = None

        context = CommandContext(
            repository=self.repository,
            service=self.service,
            notifier=self.notifier,
            config=self.config,
            user_id=user_id,
            client_id=client_id,
            room_name=room_name
        )

        try:
            async with self.repository.transaction():
                for guard in TIER_GUARDS[command.tier]:
                    guard(context)

                is_valid, error_msg = command.validate(args)
                if not is_valid:
                    return CommandResponse.error(error_msg)

                return await command.execute(context, args)
        except ChatError as e:
            logger.warning(f"/{command_name} rejected for {user_id or client_id}: {e.message}")
            return CommandResponse.error(e.message, retryable=e.retryable)
