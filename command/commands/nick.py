"""
Nick command - create, claim or rename an identity and manage its password.
"""

from chat.errors import ChatError
from chat.service import user_exists_error
from chat.verification import verify_user
from command.base import CommandBase, CommandContext, CommandResponse, CommandTier


class NickCommand(CommandBase):
    """
    Reserve a nick name.

    /nick nickname                         - take nickname, or rename to it
    /nick nickname password                - claim nickname, or set its first password
    /nick nickname oldpassword newpassword - change the password of your own nick
    """

    tier = CommandTier.BASE

    @property
    def name(self) -> str:
        return "nick"

    @property
    def description(self) -> str:
        return "Pick a name, claim it with a password or change its password"

    @property
    def usage(self) -> str:
        return "/nick <nickname> [password] [newpassword]"

    def validate(self, args: list[str]) -> tuple[bool, str]:
        if not args or not args[0].strip():
            return False, "No nick specified!"
        if len(args) > 3:
            return False, f"Too many arguments. Usage: {self.usage}"
        return True, ""

    async def execute(self, context: CommandContext, args: list[str]) -> CommandResponse:
        user_name = args[0]
        password = args[1] if len(args) > 1 else None
        new_password = args[2] if len(args) > 2 else None

        service = context.service
        user = context.repository.get_user_by_id(context.user_id)

        if user is None and not new_password:
            existing = context.repository.get_user_by_name(user_name)
            if existing is not None:
                if not password:
                    raise user_exists_error(user_name)
                user = service.authenticate_user(user_name, password)
                service.bind_client(user, context.client_id)
            else:
                user = service.add_user(user_name, context.client_id, password)

            await context.repository.commit_changes()
            await context.notifier.on_user_created(user)
            return self._bound(user, f"Your name is now {user.name}")

        if not password:
            old_user_name = user.name
            service.change_user_name(user, user_name)

            await context.repository.commit_changes()
            await context.notifier.on_user_name_changed(user, user_name, old_user_name)
            return self._bound(user, f"Your name is now {user_name}")

        target_user = verify_user(context.repository, user_name)
        if user is None or user.id != target_user.id:
            raise ChatError("You can't set/change the password for a nickname you don't own.")

        if not new_password:
            if target_user.is_claimed:
                raise ChatError("Use /nick [nickname] [oldpassword] [newpassword] to change an existing password.")
            service.set_user_password(user, password)

            await context.repository.commit_changes()
            await context.notifier.set_password()
            return self._bound(user, "Your password has been set")

        service.change_user_password(user, password, new_password)

        await context.repository.commit_changes()
        await context.notifier.change_password()
        return self._bound(user, "Your password has been changed")

    @staticmethod
    def _bound(user, message: str) -> CommandResponse:
        return CommandResponse(success=True, message=message, response_type="info", user_id=user.id)
