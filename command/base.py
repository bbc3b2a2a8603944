"""
Base class and data structures for command system.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from chat.config import ChatConfig
from chat.models import ChatRoom, ChatUser
from chat.notifications import NotificationService
from chat.repository import ChatRepository
from chat.service import ChatService


class CommandTier(str, Enum):
    """Permission level a command requires, from least to most privileged."""
    BASE = "base"    # no identity
    USER = "user"    # named caller
    ROOM = "room"    # named caller inside the active room
    OWNER = "owner"  # owner of the active room


@dataclass
class CommandContext:
    """Context passed to commands during execution."""
    repository: ChatRepository
    service: ChatService
    notifier: NotificationService
    config: ChatConfig
    user_id: str | None
    client_id: str | None
    room_name: str | None
    user: ChatUser | None = None  # resolved by the user tier guard
    room: ChatRoom | None = None  # resolved by the room tier guard


@dataclass
class CommandResponse:
    """Response returned by command execution."""
    success: bool
    message: str
    response_type: str = "info"  # "info", "error", "private", "not_command"
    target_user: str | None = None  # For private messages
    user_id: str | None = None  # Identity bound to the caller after /nick
    retryable: bool = False

    @property
    def is_command(self) -> bool:
        return self.response_type != "not_command"

    @classmethod
    def not_a_command(cls) -> "CommandResponse":
        return cls(success=False, message="", response_type="not_command")

    @classmethod
    def error(cls, message: str, retryable: bool = False) -> "CommandResponse":
        return cls(success=False, message=message, response_type="error", retryable=retryable)


class CommandBase(ABC):
    """Abstract base class for all commands."""

    tier: CommandTier = CommandTier.USER

    @property
    @abstractmethod
    def name(self) -> str:
        """Command name (without leading slash)."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Command description for help text."""
        pass

    @property
    @abstractmethod
    def usage(self) -> str:
        """Command usage format."""
        pass

    def matches(self, command_name: str, args: list[str]) -> bool:
        """Whether this command handles `command_name` called with `args`."""
        return command_name == self.name

    @abstractmethod
    def validate(self, args: list[str]) -> tuple[bool, str]:
        """
        Validate command arguments.

        Returns:
            Tuple of (is_valid, error_message)
        """
        pass

    @abstractmethod
    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        """
        Execute the command.

        Args:
            context: Command execution context
            args: Parsed arguments

        Returns:
            CommandResponse with execution result

        Raises:
            ChatError: If a domain precondition fails
        """
        pass
