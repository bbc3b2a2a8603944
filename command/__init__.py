"""
Command system for chatroom application.
Provides base command class, factory, dispatcher and command implementations.
"""

from command.base import CommandBase, CommandContext, CommandResponse, CommandTier
from command.factory import CommandFactory
from command.router import CommandDispatcher, CommandParser

__all__ = [
    'CommandBase',
    'CommandContext',
    'CommandResponse',
    'CommandTier',
    'CommandFactory',
    'CommandDispatcher',
    'CommandParser',
]
