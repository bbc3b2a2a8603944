"""
Tests for the chat domain service.

These cover the invariants ChatService enforces over users and rooms:
naming rules, password rules, ownership, kicking and nudge cooldowns.
"""

import pytest

from chat import ChatError, UserStatus
from chat.service import gravatar_hash, sha256_hash


class TestUsers:
    """User creation, authentication and renaming."""

    def test_add_user(self, service, repository, clock):
        user = service.add_user("Bob", "client-1")

        assert repository.get_user_by_id(user.id) is user
        assert user.client_id == "client-1"
        assert user.status == UserStatus.ACTIVE
        assert user.last_activity == clock.now
        assert user.hashed_password is None

    def test_mark_inactive_after_idle_period(self, service, clock):
        alice = service.add_user("Alice", "client-1")
        clock.advance(120)
        bob = service.add_user("Bob", "client-2")
        carol = service.add_user("Carol", "client-3")
        service.disconnect_user(carol)

        clock.advance(service.config.inactive_after_seconds - 120)
        assert service.mark_inactive() == [alice]
        assert alice.status == UserStatus.INACTIVE
        assert bob.status == UserStatus.ACTIVE
        assert carol.status == UserStatus.OFFLINE
        assert alice.is_online

        # Already inactive users are not reported twice
        clock.advance(120)
        assert service.mark_inactive() == [bob]

        service.update_activity(alice)
        assert alice.status == UserStatus.ACTIVE

    def test_user_names_are_unique_ignoring_case(self, service):
        service.add_user("Bob", "client-1")

        with pytest.raises(ChatError, match="Username bob already taken"):
            service.add_user("bob", "client-2")

    @pytest.mark.parametrize("name", ["", "has space", "bad!", "x" * 31, "new\nline"])
    def test_invalid_user_names(self, service, name):
        with pytest.raises(ChatError, match="is not a valid user name"):
            service.add_user(name, "client-1")

    def test_valid_user_name_characters(self, service):
        assert service.add_user("a-b_c.9", "client-1").name == "a-b_c.9"
        assert service.add_user("x" * 30, "client-2").name == "x" * 30

    def test_password_is_stored_hashed(self, service):
        user = service.add_user("Bob", "client-1", "secret1")

        assert user.hashed_password == sha256_hash("secret1")
        assert user.hashed_password != "secret1"

    def test_password_must_be_six_characters(self, service, repository):
        with pytest.raises(ChatError, match="at least 6 characters"):
            service.add_user("x", "client-1", "abcde")

        assert repository.users == []
        assert service.add_user("x", "client-1", "abcdef").is_claimed

    def test_injected_hasher_is_used(self, repository):
        from chat import ChatService

        service = ChatService(repository, hasher=lambda value: value[::-1])
        user = service.add_user("Bob", None, "secret1")

        assert user.hashed_password == "1terces"

    def test_authenticate_user(self, service):
        user = service.add_user("Bob", "client-1", "secret1")

        assert service.authenticate_user("bob", "secret1") is user

    def test_authenticate_unclaimed_user(self, service):
        service.add_user("Bob", "client-1")

        with pytest.raises(ChatError, match="The nick 'Bob' is unclaimable"):
            service.authenticate_user("Bob", "secret1")

    def test_authenticate_wrong_password(self, service):
        service.add_user("Bob", "client-1", "secret1")

        with pytest.raises(ChatError, match="Unable to claim 'Bob'."):
            service.authenticate_user("Bob", "wrong-password")

    def test_change_user_name(self, service, repository):
        user = service.add_user("Bob", "client-1")

        service.change_user_name(user, "Robert")

        assert user.name == "Robert"
        assert repository.get_user_by_name("robert") is user

    def test_change_user_name_to_same_name(self, service):
        user = service.add_user("Bob", "client-1")

        with pytest.raises(ChatError, match="That's already your username"):
            service.change_user_name(user, "BOB")

    def test_change_user_name_to_taken_name(self, service):
        service.add_user("Alice", "client-1")
        user = service.add_user("Bob", "client-2")

        with pytest.raises(ChatError, match="already taken"):
            service.change_user_name(user, "alice")
        assert user.name == "Bob"

    def test_change_user_password(self, service):
        user = service.add_user("Bob", "client-1", "secret1")

        service.change_user_password(user, "secret1", "secret2")

        assert user.hashed_password == sha256_hash("secret2")

    def test_change_user_password_requires_old_password(self, service):
        user = service.add_user("Bob", "client-1", "secret1")

        with pytest.raises(ChatError, match="Passwords don't match."):
            service.change_user_password(user, "nope123", "secret2")
        assert user.hashed_password == sha256_hash("secret1")

    def test_set_user_password_checks_length(self, service):
        user = service.add_user("Bob", "client-1")

        with pytest.raises(ChatError, match="at least 6"):
            service.set_user_password(user, "short")
        assert user.hashed_password is None

    def test_change_gravatar(self, service):
        user = service.add_user("Bob", "client-1")

        service.change_gravatar(user, "  Bob@Example.com ")

        assert user.gravatar_hash == gravatar_hash("bob@example.com")

    def test_disconnect_and_activity(self, service, clock):
        user = service.add_user("Bob", "client-1")

        service.disconnect_user(user)
        assert user.status == UserStatus.OFFLINE
        assert user.client_id is None

        clock.advance(30)
        service.update_activity(user)
        assert user.status == UserStatus.ACTIVE
        assert user.last_activity == clock.now


class TestRooms:
    """Room creation and membership."""

    def test_add_room_seeds_creator(self, service):
        alice = service.add_user("Alice", "client-1")

        room = service.add_room(alice, "dev")

        assert room.creator_id == alice.id
        assert room.owners == {alice.id}
        assert room.users == {alice.id}
        assert alice.rooms == {room.id}
        assert alice.owned_rooms == {room.id}

    @pytest.mark.parametrize("name", ["Lobby", "lobby", "LOBBY"])
    def test_lobby_is_reserved(self, service, name):
        alice = service.add_user("Alice", "client-1")

        with pytest.raises(ChatError, match="Lobby is not a valid chat room."):
            service.add_room(alice, name)

    def test_invalid_room_name(self, service):
        alice = service.add_user("Alice", "client-1")

        with pytest.raises(ChatError, match="'no way' is not a valid room name."):
            service.add_room(alice, "no way")

    def test_join_and_leave_are_symmetric(self, service):
        alice = service.add_user("Alice", "client-1")
        bob = service.add_user("Bob", "client-2")
        room = service.add_room(alice, "dev")

        service.join_room(bob, room)
        assert bob.id in room.users and room.id in bob.rooms

        service.leave_room(bob, room)
        assert bob.id not in room.users and room.id not in bob.rooms

    def test_add_message_appends_in_order(self, service, clock):
        alice = service.add_user("Alice", "client-1")
        room = service.add_room(alice, "dev")

        first = service.add_message(alice, room, "hello")
        clock.advance(1)
        second = service.add_message(alice, room, "again")

        assert room.messages == [first, second]
        assert second.when > first.when

    def test_room_names_are_unique_ignoring_case(self, service, repository):
        alice = service.add_user("Alice", "client-1")
        service.add_room(alice, "dev")

        with pytest.raises(ChatError, match="The room 'DEV' already exists"):
            service.add_room(alice, "DEV")

        assert [r.name for r in repository.rooms] == ["dev"]
        assert len(alice.owned_rooms) == 1

    def test_recent_messages(self, service):
        service.config.recent_message_count = 2
        alice = service.add_user("Alice", "client-1")
        room = service.add_room(alice, "dev")
        assert service.recent_messages(room) == []

        service.add_message(alice, room, "one")
        two = service.add_message(alice, room, "two")
        three = service.add_message(alice, room, "three")

        assert service.recent_messages(room) == [two, three]


class TestOwnership:
    """Granting ownership and kicking users."""

    @pytest.fixture
    def setup(self, service):
        alice = service.add_user("Alice", "client-1")
        bob = service.add_user("Bob", "client-2")
        carol = service.add_user("Carol", "client-3")
        room = service.add_room(alice, "dev")
        service.join_room(bob, room)
        service.join_room(carol, room)
        return alice, bob, carol, room

    def test_add_owner(self, service, setup):
        alice, bob, _, room = setup

        service.add_owner(alice, bob, room)

        assert room.is_owner(bob)
        assert room.id in bob.owned_rooms
        assert room.creator_id == alice.id

    def test_add_owner_requires_owner(self, service, setup):
        _, bob, carol, room = setup

        with pytest.raises(ChatError, match="You are not an owner of dev"):
            service.add_owner(bob, carol, room)

    def test_add_existing_owner(self, service, setup):
        alice, bob, _, room = setup
        service.add_owner(alice, bob, room)

        with pytest.raises(ChatError, match="'Bob' is already an owner of 'dev'."):
            service.add_owner(alice, bob, room)

    def test_owner_need_not_be_member(self, service, setup):
        alice, _, _, room = setup
        dave = service.add_user("Dave", "client-4")

        service.add_owner(alice, dave, room)

        assert room.is_owner(dave)
        assert dave.id not in room.users

    def test_kick_user(self, service, setup):
        alice, _, carol, room = setup

        service.kick_user(alice, carol, room)

        assert carol.id not in room.users
        assert room.id not in carol.rooms

    def test_non_owner_cannot_kick(self, service, setup):
        _, bob, carol, room = setup

        with pytest.raises(ChatError, match="You are not an owner of dev"):
            service.kick_user(bob, carol, room)
        assert carol.id in room.users

    def test_cannot_kick_self(self, service, setup):
        alice, _, _, room = setup

        with pytest.raises(ChatError, match="Why would you want to kick yourself?"):
            service.kick_user(alice, alice, room)

    def test_cannot_kick_non_member(self, service, setup):
        alice, _, _, room = setup
        dave = service.add_user("Dave", "client-4")

        with pytest.raises(ChatError, match="'Dave' isn't in 'dev'."):
            service.kick_user(alice, dave, room)

    def test_owner_cannot_kick_owner(self, service, setup):
        alice, bob, carol, room = setup
        service.add_owner(alice, bob, room)
        service.add_owner(alice, carol, room)

        with pytest.raises(ChatError, match="Only the room creator can kick an owner."):
            service.kick_user(bob, carol, room)

        with pytest.raises(ChatError, match="Owners cannot kick other owners."):
            service.kick_user(bob, alice, room)

    def test_creator_can_kick_owner(self, service, setup):
        alice, bob, _, room = setup
        service.add_owner(alice, bob, room)

        service.kick_user(alice, bob, room)

        assert bob.id not in room.users
        # Ownership is not revoked by a kick
        assert room.is_owner(bob)


class TestNudges:
    """Nudge cooldowns for users and rooms."""

    def test_nudge_user_cooldown(self, service, clock):
        alice = service.add_user("Alice", "client-1")
        bob = service.add_user("Bob", "client-2")

        service.nudge_user(alice, bob)
        assert bob.last_nudged == clock.now

        clock.advance(59)
        with pytest.raises(ChatError, match="User can only be nudged once every 60 seconds"):
            service.nudge_user(alice, bob)

        clock.advance(1)
        service.nudge_user(alice, bob)
        assert bob.last_nudged == clock.now

    def test_cannot_nudge_self(self, service):
        alice = service.add_user("Alice", "client-1")
        service.add_user("Bob", "client-2")

        with pytest.raises(ChatError, match="You can't nudge yourself!"):
            service.nudge_user(alice, alice)

    def test_nudge_needs_two_users(self, service):
        alice = service.add_user("Alice", "client-1")

        with pytest.raises(ChatError, match="You're the only person in here..."):
            service.nudge_user(alice, alice)

    def test_nudge_room_cooldown(self, service, clock):
        alice = service.add_user("Alice", "client-1")
        room = service.add_room(alice, "dev")

        service.nudge_room(room)
        assert room.last_nudged == clock.now

        clock.advance(30)
        with pytest.raises(ChatError, match="Room can only be nudged once every 60 seconds"):
            service.nudge_room(room)

        clock.advance(30)
        service.nudge_room(room)
        assert room.last_nudged == clock.now
