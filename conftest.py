"""
Shared fixtures for the chat tests.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# The host module reads its config at import time
os.environ.setdefault("CHAT_PERSIST", "false")

from chat import ChatConfig, ChatRepository, ChatService, EventNotifier
from command import CommandDispatcher, CommandFactory
from command.factory import register_builtin_commands


class FakeClock:
    """A settable UTC clock."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository():
    return ChatRepository()


@pytest.fixture
def service(repository, clock):
    return ChatService(repository, ChatConfig(persist=False), clock=clock)


@pytest.fixture
def events():
    return []


@pytest.fixture
def notifier(events, clock):
    async def sink(event):
        events.append(event)

    return EventNotifier(sink=sink, clock=clock)


@pytest.fixture
def dispatcher(repository, service, notifier):
    CommandFactory.clear()
    register_builtin_commands()
    return CommandDispatcher(repository, service, notifier)
