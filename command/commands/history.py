"""
History command - show a room's members, owners and recent messages.
"""

from chat.verification import verify_room, verify_user_room
from command.base import CommandBase, CommandContext, CommandResponse, CommandTier


class HistoryCommand(CommandBase):
    """Describe a room the way a client needs it when the room is opened."""

    tier = CommandTier.USER

    @property
    def name(self) -> str:
        return "history"

    @property
    def description(self) -> str:
        return "Show who is in a room and its recent messages"

    @property
    def usage(self) -> str:
        return "/history [room]"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if len(args) > 1:
            return False, f"Invalid format. Usage: {self.usage}"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        repository = context.repository

        if args:
            room = verify_room(repository, args[0])
        else:
            room = verify_user_room(repository, context.user, context.room_name)

        owners = sorted(
            (u for u in map(repository.get_user_by_id, room.owners) if u is not None),
            key=lambda u: u.name.lower()
        )
        messages = []
        for message in context.service.recent_messages(room):
            author = repository.get_user_by_id(message.user_id)
            if author is not None:
                messages.append((author, message))

        await context.notifier.show_room_info(room, repository.online_users(room), owners, messages)
        return CommandResponse(success=True, message=f"{len(messages)} recent messages in {room.name}")
