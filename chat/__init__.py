"""
Chat domain for the multi-room chat service.
Provides entities, the domain service, verification helpers,
the repository and the notification contract.
"""

from chat.config import ChatConfig
from chat.errors import ChatError, ConcurrencyError
from chat.models import ChatMessage, ChatRoom, ChatUser, UserStatus
from chat.notifications import ChatEvent, EventNotifier, NotificationService
from chat.repository import ChatRepository
from chat.service import ChatService

__all__ = [
    'ChatConfig',
    'ChatError',
    'ConcurrencyError',
    'ChatMessage',
    'ChatRoom',
    'ChatUser',
    'UserStatus',
    'ChatEvent',
    'EventNotifier',
    'NotificationService',
    'ChatRepository',
    'ChatService',
]
