"""
Errors raised by the chat domain.
"""


class ChatError(Exception):
    """A validation or authorization failure with a user-facing message."""

    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConcurrencyError(ChatError):
    """A commit lost a race with another writer. Safe to retry the command."""

    retryable = True

    def __init__(self, message: str = "Someone else changed this at the same time. Please try again."):
        super().__init__(message)
