"""
Command factory for registering and creating commands.
"""

from typing import Type
from command.base import CommandBase


class CommandFactory:
    """Factory for creating and managing commands."""

    _commands: list[Type[CommandBase]] = []

    @classmethod
    def register(cls, command_class: Type[CommandBase]) -> None:
        """Register a command class. Registration order is dispatch order within a tier."""
        if command_class not in cls._commands:
            cls._commands.append(command_class)

    @classmethod
    def create(cls, command_name: str) -> CommandBase:
        """
        Create the first registered command with the given name.

        Args:
            command_name: Name of the command (without /)

        Returns:
            Command instance

        Raises:
            KeyError: If command not found
        """
        for command in cls.get_all_commands():
            if command.name == command_name:
                return command
        raise KeyError(f"Unknown command: {command_name}")

    @classmethod
    def get_all_commands(cls) -> list[CommandBase]:
        """Get instances of all registered commands, in registration order."""
        return [cmd_class() for cmd_class in cls._commands]

    @classmethod
    def clear(cls) -> None:
        cls._commands = []


def register_builtin_commands():
    """Register built-in commands with lazy imports to avoid circular imports."""
    from command.commands.help import HelpCommand
    from command.commands.nick import NickCommand
    from command.commands.listing import RoomsCommand, ListCommand, WhoCommand
    from command.commands.rooms import (
        JoinCommand,
        CreateCommand,
        LeaveRoomCommand,
        LeaveActiveRoomCommand,
    )
    from command.commands.whisper import WhisperCommand
    from command.commands.gravatar import GravatarCommand
    from command.commands.nudge import NudgeUserCommand, NudgeRoomCommand
    from command.commands.owner import AddOwnerCommand, KickCommand
    from command.commands.me import MeCommand
    from command.commands.history import HistoryCommand

    for command_class in (
        HelpCommand,
        NickCommand,
        RoomsCommand,
        ListCommand,
        WhoCommand,
        HistoryCommand,
        JoinCommand,
        CreateCommand,
        WhisperCommand,
        GravatarCommand,
        LeaveRoomCommand,
        NudgeUserCommand,
        AddOwnerCommand,
        MeCommand,
        LeaveActiveRoomCommand,
        NudgeRoomCommand,
        KickCommand,
    ):
        CommandFactory.register(command_class)
