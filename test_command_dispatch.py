"""
Tests for command parsing and tiered dispatch.
"""

import pytest

from chat import ChatError, ChatRepository, ChatService
from chat.notifications import ChatEventType
from command import CommandDispatcher, CommandFactory, CommandParser, CommandTier
from command.base import CommandBase, CommandResponse
from db import ChatStore


class TestCommandParser:

    def test_is_command(self):
        assert CommandParser.is_command("/help")
        assert CommandParser.is_command("   /help  ")
        assert not CommandParser.is_command("hello")
        assert not CommandParser.is_command("hello /help")

    def test_parse(self):
        assert CommandParser.parse("/MSG @alice hello   world") == ("msg", ["@alice", "hello", "world"])
        assert CommandParser.parse("  /help ") == ("help", [])
        assert CommandParser.parse("/") == ("", [])

    def test_normalize_user_name(self):
        assert CommandParser.normalize_user_name("@alice") == "alice"
        assert CommandParser.normalize_user_name("alice") == "alice"


async def nick(dispatcher, name, client_id=None):
    response = await dispatcher.dispatch(f"/nick {name}", None, client_id or f"client-{name}")
    assert response.success, response.message
    return response.user_id


class TestDispatch:

    async def test_plain_text_is_not_a_command(self, dispatcher, events):
        response = await dispatcher.dispatch("hello", None)

        assert not response.is_command
        assert response.response_type == "not_command"
        assert events == []

    async def test_empty_command(self, dispatcher):
        response = await dispatcher.dispatch("/   ", None)

        assert response.response_type == "error"
        assert "Empty command" in response.message

    async def test_unknown_command(self, dispatcher):
        user_id = await nick(dispatcher, "alice")

        response = await dispatcher.dispatch("/dance wildly", user_id)

        assert not response.success
        assert response.message == "'dance' is not a valid command."

    async def test_command_names_ignore_case(self, dispatcher, events):
        response = await dispatcher.dispatch("/HeLp", None)

        assert response.success
        assert events[-1].type == ChatEventType.HELP

    async def test_user_tier_requires_identity(self, dispatcher, events):
        response = await dispatcher.dispatch("/rooms", None)

        assert not response.success
        assert response.message.startswith("You don't have a name")
        assert events == []

    async def test_room_tier_requires_membership(self, dispatcher, events):
        user_id = await nick(dispatcher, "alice")
        events.clear()

        response = await dispatcher.dispatch("/me waves", user_id, room_name="dev")

        assert not response.success
        assert response.message == "You're in 'dev' but it doesn't exist."
        assert events == []

    async def test_lobby_is_no_room(self, dispatcher):
        user_id = await nick(dispatcher, "alice")

        response = await dispatcher.dispatch("/me waves", user_id, room_name="Lobby")

        assert response.message == "Use '/join room' to join a room."

    async def test_owner_tier_requires_ownership(self, dispatcher, events):
        alice = await nick(dispatcher, "alice")
        bob = await nick(dispatcher, "bob")
        await dispatcher.dispatch("/create dev", alice)
        await dispatcher.dispatch("/join dev", bob)
        events.clear()

        response = await dispatcher.dispatch("/kick alice", bob, room_name="dev")

        assert response.message == "You are not an owner of dev"
        assert events == []

    async def test_leave_form_selects_tier(self, dispatcher):
        alice = await nick(dispatcher, "alice")
        await dispatcher.dispatch("/create dev", alice)

        # One argument is the user tier form, no arguments needs an active room
        assert dispatcher.resolve("leave", ["dev"]).tier == CommandTier.USER
        assert dispatcher.resolve("leave", []).tier == CommandTier.ROOM
        assert dispatcher.resolve("nudge", ["bob"]).tier == CommandTier.USER
        assert dispatcher.resolve("nudge", []).tier == CommandTier.ROOM

        response = await dispatcher.dispatch("/leave", alice, room_name=None)
        assert response.message == "Use '/join room' to join a room."

    async def test_addowner_suffix_match(self, dispatcher):
        assert dispatcher.resolve("addowner", []).name == "addowner"
        assert dispatcher.resolve("superaddowner", []).name == "addowner"
        assert dispatcher.resolve("addownerx", []) is None

    async def test_validation_error_shape(self, dispatcher, events):
        alice = await nick(dispatcher, "alice")
        events.clear()

        response = await dispatcher.dispatch("/join", alice)

        assert response == CommandResponse.error("Join which room?")
        assert events == []


class FailingCommand(CommandBase):
    """Mutates the graph and then fails a precondition."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "explode"

    @property
    def description(self) -> str:
        return "Always fails"

    @property
    def usage(self) -> str:
        return "/explode"

    def validate(self, args):
        return True, ""

    async def execute(self, context, args):
        context.service.change_user_name(context.user, "renamed")
        raise ChatError("Boom.")


class TestFailureAtomicity:

    async def test_failed_command_leaves_no_trace(self, dispatcher, repository, events):
        alice = await nick(dispatcher, "alice")
        events.clear()
        dispatcher.commands.append(FailingCommand())

        response = await dispatcher.dispatch("/explode", alice)

        assert response.message == "Boom."
        assert repository.get_user_by_id(alice).name == "alice"
        assert repository.get_user_by_name("renamed") is None
        assert events == []

    def test_factory_create(self, dispatcher):
        assert CommandFactory.create("help").name == "help"
        with pytest.raises(KeyError):
            CommandFactory.create("explode")

    async def test_commit_conflict_is_retryable(self, dispatcher, notifier, events, clock, tmp_path):
        store = ChatStore(str(tmp_path / "chat.db"))
        winner = ChatRepository(store)
        loser = ChatRepository(store)
        await winner.load()
        await loser.load()
        stale = CommandDispatcher(loser, ChatService(loser, clock=clock), notifier, commands=dispatcher.commands)

        ChatService(winner, clock=clock).add_user("alice", "c1")
        await winner.commit_changes()

        response = await stale.dispatch("/nick bob", None, "c2")

        assert response == CommandResponse.error(
            "Someone else changed this at the same time. Please try again.", retryable=True
        )
        assert events == []
        assert loser.get_user_by_name("bob") is None
        assert loser.get_user_by_name("alice") is not None

        retried = await stale.dispatch("/nick bob", None, "c2")
        assert retried.success
        assert loser.version == 2
