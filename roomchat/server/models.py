from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Set, Union


def format_timestamp(ts: float) -> str:
    """Render a Unix timestamp (seconds) as ISO-8601 UTC with millisecond precision."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Session:
    """Authentication state attached to a connection.

    A connection starts UNAUTHENTICATED and moves to GUEST or
    AUTHENTICATED after its first authenticate event.

    Attributes:
        state (SessionState): Current authentication state
        username (Optional[str]): Display name, set only when authenticated
        identity_key (Optional[str]): Lowercased email of the identity
        email (Optional[str]): Email shown back to the client
    """
    state: SessionState = SessionState.UNAUTHENTICATED
    username: Optional[str] = None
    identity_key: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def guest(cls) -> "Session":
        return cls(state=SessionState.GUEST)

    @classmethod
    def authenticated(cls, username: str, identity_key: str, email: str) -> "Session":
        return cls(
            state=SessionState.AUTHENTICATED,
            username=username,
            identity_key=identity_key,
            email=email,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def is_guest(self) -> bool:
        return self.state is SessionState.GUEST


@dataclass
class Identity:
    """A registered user known to the credential service.

    Attributes:
        username (str): Display name, unique case-insensitively
        email (str): Lowercased email, the identity key
        password_hash (str): bcrypt hash of the password
    """
    username: str
    email: str
    password_hash: str


class SystemEventKind(Enum):
    JOINED = "user-joined"
    LEFT = "user-left"
    JOINED_GROUP = "user-joined-group"
    LEFT_GROUP = "user-left-group"


@dataclass(frozen=True)
class UserMessage:
    """A chat line posted by an authenticated user.

    Attributes:
        username (str): Author display name
        text (str): Sanitized message body
        timestamp (str): ISO-8601 time of append
        group (str): Group the message was posted to
    """
    username: str
    text: str
    timestamp: str
    group: str

    def to_dict(self) -> dict:
        return {
            "type": "message",
            "username": self.username,
            "message": self.text,
            "timestamp": self.timestamp,
            "group": self.group,
        }


@dataclass(frozen=True)
class SystemEvent:
    """A log entry recording a membership transition.

    Attributes:
        kind (SystemEventKind): Which transition happened
        username (str): User the transition concerns
        group (str): Group whose log holds the entry
        timestamp (str): ISO-8601 time of append
    """
    kind: SystemEventKind
    username: str
    group: str
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "type": "system",
            "event": self.kind.value,
            "username": self.username,
            "group": self.group,
            "timestamp": self.timestamp,
        }


LogEntry = Union[UserMessage, SystemEvent]


@dataclass
class Group:
    """A named message channel.

    Attributes:
        name (str): Unique, case-sensitive group name
        log (List[LogEntry]): Append-only history in chronological order
        member_ids (Set[str]): Connection IDs currently in the group
    """
    name: str
    log: List[LogEntry] = field(default_factory=list)
    member_ids: Set[str] = field(default_factory=set)


@dataclass
class RateWindow:
    """Fixed-window counter for one connection.

    Attributes:
        count (int): Requests consumed in the current window
        reset_at (float): Clock value after which the window restarts
    """
    count: int
    reset_at: float


# Inbound events. One dataclass per event kind the transport accepts.

@dataclass(frozen=True)
class Authenticate:
    token: Optional[str] = None


@dataclass(frozen=True)
class PostMessage:
    text: Any = ""
    group: Optional[str] = None


@dataclass(frozen=True)
class TypingStart:
    group: Optional[str] = None


@dataclass(frozen=True)
class TypingStop:
    group: Optional[str] = None


@dataclass(frozen=True)
class JoinGroup:
    group_name: Any = None


@dataclass(frozen=True)
class LeaveGroup:
    group_name: Any = None


@dataclass(frozen=True)
class CreateGroup:
    group_name: Any = None


@dataclass(frozen=True)
class Disconnect:
    pass


Event = Union[
    Authenticate, PostMessage, TypingStart, TypingStop,
    JoinGroup, LeaveGroup, CreateGroup, Disconnect,
]
