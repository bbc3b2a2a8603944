"""
Configuration for the chat service.
"""

import os
from dataclasses import dataclass


@dataclass
class ChatConfig:
    """Settings shared by the domain service, dispatcher and host."""

    command_prefix: str = "/"
    lobby_name: str = "Lobby"
    name_pattern: str = r"^[A-Za-z0-9\-_.]{1,30}$"
    min_password_length: int = 6
    nudge_cooldown_seconds: int = 60
    recent_message_count: int = 30
    inactive_after_seconds: int = 300
    inactivity_check_seconds: int = 60
    db_path: str = "chatroom.db"
    persist: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ChatConfig":
        """Build a config from CHAT_* environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            db_path=os.getenv("CHAT_DB_PATH", defaults.db_path),
            persist=os.getenv("CHAT_PERSIST", "true").lower() == "true",
            log_level=os.getenv("CHAT_LOG_LEVEL", defaults.log_level).upper(),
            nudge_cooldown_seconds=int(
                os.getenv("CHAT_NUDGE_COOLDOWN", str(defaults.nudge_cooldown_seconds))
            ),
            min_password_length=int(
                os.getenv("CHAT_MIN_PASSWORD_LENGTH", str(defaults.min_password_length))
            ),
            inactive_after_seconds=int(
                os.getenv("CHAT_INACTIVE_AFTER", str(defaults.inactive_after_seconds))
            ),
        )
