class ChatError(ValueError):
    """Base class for every rejection reported back to a client.

    Each subclass carries a default user-facing message. None of them is
    fatal: the originating connection gets an ``error`` frame and stays open.

    Attributes:
        message (str): Text shown to the user
    """
    default_message = "Request rejected"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthRequired(ChatError):
    default_message = "Authentication required. Please log in."


class RateLimited(ChatError):
    default_message = "Message rate limit exceeded. Please slow down."


class MessageTooLong(ChatError):
    default_message = "Message too long."


class InvalidGroupName(ChatError):
    default_message = "Invalid group name"


class GroupAlreadyExists(ChatError):
    default_message = "Group already exists"


class CannotLeaveGeneral(ChatError):
    default_message = "Cannot leave General group"


class InvalidCredentialToken(ChatError):
    default_message = "Invalid token"


class RegistrationConflict(ChatError):
    default_message = "Username or email already exists"


class ValidationError(ChatError):
    default_message = "Invalid request"
