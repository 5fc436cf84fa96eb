import asyncio
import time
import uuid
from typing import Callable, Iterable, Optional, Tuple

from .credentials import CredentialService
from .directory import GroupDirectory
from .errors import (
    AuthRequired, ChatError, GroupAlreadyExists, InvalidGroupName, MessageTooLong, RateLimited,
)
from .models import (
    Authenticate, CreateGroup, Disconnect, Event, JoinGroup, LeaveGroup, LogEntry, PostMessage,
    Session, SystemEventKind, TypingStart, TypingStop,
)
from .ratelimit import RateLimiter
from .router import BroadcastRouter
from .sanitize import sanitize_input
from .sessions import SessionRegistry
from ..utils.config import ServerConfig
from ..utils.logger import setup_logger

logger = setup_logger('roomchat.engine')


def _history(entries: Iterable[LogEntry]) -> list:
    return [entry.to_dict() for entry in entries]


class CoordinationEngine:
    """Connection event handler tying sessions, groups and rate limits together.

    All state changes go through ``dispatch``. Handlers run on the event
    loop without suspending, except authentication which waits for the
    credential check; the transport feeds each connection's events one at a
    time, so a connection's later events never overtake an earlier one.

    Rejections are raised as ``ChatError`` inside handlers and turned into
    an ``error`` frame for the originating connection only.
    """

    def __init__(
        self,
        sessions: SessionRegistry,
        directory: GroupDirectory,
        limiter: RateLimiter,
        router: BroadcastRouter,
        max_message_length: int = 1000,
        max_group_name_length: int = 50,
    ):
        """Initialize the engine with its collaborators.

        Args:
            sessions (SessionRegistry): Per-connection authentication state
            directory (GroupDirectory): Groups, logs and memberships
            limiter (RateLimiter): Per-connection message budget
            router (BroadcastRouter): Outbound frame delivery
            max_message_length (int): Longest accepted message after sanitizing
            max_group_name_length (int): Longest accepted group name after sanitizing
        """
        self.sessions = sessions
        self.directory = directory
        self.limiter = limiter
        self.router = router
        self.max_message_length = max_message_length
        self.max_group_name_length = max_group_name_length

    @classmethod
    def from_config(
        cls,
        config: ServerConfig,
        credentials: CredentialService,
        clock: Callable[[], float] = time.time,
    ) -> "CoordinationEngine":
        """Build an engine with fresh collaborators sized by ``config``."""
        return cls(
            sessions=SessionRegistry(credentials),
            directory=GroupDirectory(clock=clock),
            limiter=RateLimiter(window=config.rate_window, cap=config.rate_cap, clock=clock),
            router=BroadcastRouter(),
            max_message_length=config.max_message_length,
            max_group_name_length=config.max_group_name_length,
        )

    @property
    def general(self) -> str:
        return self.directory.general

    # -- connection lifecycle -------------------------------------------------

    def connect(self, connection_id: Optional[str] = None) -> Tuple[str, asyncio.Queue]:
        """Register a new transport connection.

        The connection starts unauthenticated and is greeted with the
        read-only guest view and the group catalog.

        Returns:
            Tuple[str, asyncio.Queue]: The connection ID and its outbound queue
        """
        connection_id = connection_id or uuid.uuid4().hex
        q = self.router.register(connection_id)
        self.sessions.open(connection_id)
        self.router.send(connection_id, "auth-status", {"isAuthenticated": False, "isGuest": True})
        self.router.send(connection_id, "all-groups", {"groups": self.directory.catalog()})
        logger.info(f"Connection {connection_id} opened")
        return connection_id, q

    async def dispatch(self, connection_id: str, event: Event):
        """Process one inbound event for a connection.

        Args:
            connection_id (str): Originating connection
            event (Event): Parsed inbound event
        """
        if not self.sessions.is_live(connection_id):
            logger.debug(f"Ignoring {type(event).__name__} for closed connection {connection_id}")
            return

        try:
            if isinstance(event, Authenticate):
                await self._authenticate(connection_id, event)
            elif isinstance(event, PostMessage):
                self._post_message(connection_id, event)
            elif isinstance(event, TypingStart):
                self._typing(connection_id, event.group, True)
            elif isinstance(event, TypingStop):
                self._typing(connection_id, event.group, False)
            elif isinstance(event, JoinGroup):
                self._join_group(connection_id, event)
            elif isinstance(event, LeaveGroup):
                self._leave_group(connection_id, event)
            elif isinstance(event, CreateGroup):
                self._create_group(connection_id, event)
            elif isinstance(event, Disconnect):
                self._disconnect(connection_id)
            else:
                raise TypeError(f"Unhandled event type {type(event).__name__}")
        except ChatError as e:
            logger.warning(f"{type(event).__name__} from {connection_id} rejected: {e.message}")
            self.router.send(connection_id, "error", {"message": e.message})

    async def disconnect(self, connection_id: str):
        await self.dispatch(connection_id, Disconnect())

    # -- helpers ---------------------------------------------------------------

    def _require_auth(self, connection_id: str, message: str) -> Session:
        session = self.sessions.get(connection_id)
        if session is None or not session.is_authenticated:
            raise AuthRequired(message)
        return session

    def _validate_group_name(self, raw) -> str:
        if not raw or not isinstance(raw, str):
            raise InvalidGroupName()
        name = sanitize_input(raw)
        if not name or len(name) > self.max_group_name_length:
            raise InvalidGroupName(f"Group name must be 1-{self.max_group_name_length} characters")
        return name

    def _send_group_log(self, connection_ids: Iterable[str], group_name: str, exclude: Optional[str] = None):
        payload = {"group": group_name, "chatHistory": _history(self.directory.log(group_name))}
        self.router.send_many(connection_ids, "group-messages", payload, exclude=exclude)

    def _send_user_groups(self, connection_id: str):
        self.router.send(connection_id, "user-groups", {"groups": self.directory.groups_of(connection_id)})

    def _broadcast_catalog(self):
        self.router.send_all("all-groups", {"groups": self.directory.catalog()})

    def _broadcast_unified(self):
        self.router.send_all("receive-messages", {"chatHistory": _history(self.directory.unified_log())})

    def _broadcast_user_count(self):
        self.router.send_all("user-count", {"count": self.sessions.authenticated_count()})

    # -- handlers --------------------------------------------------------------

    async def _authenticate(self, connection_id: str, event: Authenticate):
        result = await self.sessions.authenticate(connection_id, event.token)
        if result is None:
            return

        session = result.session
        if not session.is_authenticated:
            self.router.send(connection_id, "auth-status", {"isAuthenticated": False, "isGuest": True})
            self.router.send(connection_id, "all-groups", {"groups": self.directory.catalog()})
            logger.info(f"Connection {connection_id} continues as guest")
            return

        if result.onboarded:
            self.directory.subscribe(connection_id, self.general)
            self.directory.announce(SystemEventKind.JOINED, session.username)
            self._broadcast_unified()
            self._broadcast_user_count()

        self._send_group_log([connection_id], self.general)
        self._send_user_groups(connection_id)
        self.router.send(connection_id, "all-groups", {"groups": self.directory.catalog()})
        self.router.send(connection_id, "auth-status", {
            "isAuthenticated": True,
            "username": session.username,
            "email": session.email,
        })
        self.router.send(connection_id, "receive-messages", {
            "chatHistory": _history(self.directory.unified_log()),
            "username": session.username,
        })

    def _post_message(self, connection_id: str, event: PostMessage):
        session = self._require_auth(connection_id, "Authentication required. Please log in to send messages.")
        group_name = event.group or self.general
        if not isinstance(group_name, str) or not self.directory.exists(group_name):
            raise InvalidGroupName(f"Group {group_name} does not exist")
        if not self.limiter.try_consume(connection_id):
            raise RateLimited()

        text = sanitize_input(event.text)
        if not text:
            return
        if len(text) > self.max_message_length:
            raise MessageTooLong(f"Message too long. Maximum {self.max_message_length} characters.")

        self.directory.post(session.username, group_name, text)
        self._broadcast_unified()
        self._send_group_log(self.directory.members(group_name), group_name)

    def _typing(self, connection_id: str, group_name, is_typing: bool):
        session = self.sessions.get(connection_id)
        if session is None or not session.is_authenticated:
            return
        group_name = group_name or self.general
        if not isinstance(group_name, str):
            return
        self.router.send_many(
            self.directory.members(group_name),
            "user-typing",
            {"username": session.username, "isTyping": is_typing, "group": group_name},
            exclude=connection_id,
        )

    def _join_group(self, connection_id: str, event: JoinGroup):
        session = self._require_auth(connection_id, "Authentication required. Please log in to join groups.")
        name = self._validate_group_name(event.group_name)

        if self.directory.ensure_group(name):
            self._broadcast_catalog()

        log, newly_joined = self.directory.join(connection_id, session.username, name)
        self.router.send(connection_id, "group-messages", {"group": name, "chatHistory": _history(log)})
        self._send_user_groups(connection_id)

        if newly_joined:
            self._send_group_log(self.directory.members(name), name, exclude=connection_id)

    def _leave_group(self, connection_id: str, event: LeaveGroup):
        session = self._require_auth(connection_id, "Authentication required.")
        name = event.group_name
        if not name or not isinstance(name, str):
            raise InvalidGroupName()

        if not self.directory.leave(connection_id, session.username, name):
            return

        self._send_user_groups(connection_id)
        self._send_group_log(self.directory.members(name), name)

    def _create_group(self, connection_id: str, event: CreateGroup):
        session = self._require_auth(connection_id, "Authentication required. Please log in to create groups.")
        name = self._validate_group_name(event.group_name)
        if self.directory.exists(name):
            raise GroupAlreadyExists()

        self.directory.ensure_group(name)
        self.directory.join(connection_id, session.username, name)
        logger.info(f"{session.username} created group {name}")

        self._broadcast_catalog()
        self._send_user_groups(connection_id)
        self._send_group_log([connection_id], name)

    def _disconnect(self, connection_id: str):
        session = self.sessions.discard(connection_id)
        self.limiter.discard(connection_id)
        left = self.directory.remove_connection(connection_id)
        self.router.remove(connection_id)
        logger.info(f"Connection {connection_id} closed (groups: {left})")

        if session is None or not session.is_authenticated:
            return

        self.directory.announce(SystemEventKind.LEFT, session.username)
        self._broadcast_unified()
        self._broadcast_user_count()
        self._send_group_log(self.directory.members(self.general), self.general)
