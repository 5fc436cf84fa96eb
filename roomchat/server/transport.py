import asyncio
import contextlib
from typing import AsyncIterable

import grpc
from grpc import aio

from .credentials import CredentialService
from .engine import CoordinationEngine
from .errors import (
    ChatError, InvalidCredentialToken, RegistrationConflict, ValidationError,
)
from .models import (
    Authenticate, CreateGroup, Event, JoinGroup, LeaveGroup, PostMessage, TypingStart, TypingStop,
)
from ..proto import chat_pb2, chat_pb2_grpc
from ..utils.logger import setup_logger

logger = setup_logger('roomchat.transport')

_STATUS_BY_ERROR = {
    ValidationError: grpc.StatusCode.INVALID_ARGUMENT,
    RegistrationConflict: grpc.StatusCode.ALREADY_EXISTS,
    InvalidCredentialToken: grpc.StatusCode.UNAUTHENTICATED,
}


def to_event(msg: chat_pb2.ClientEvent) -> Event:
    """Turn an inbound ClientEvent into the engine's event dataclass.

    Empty strings are proto3's "unset", so an empty token or group
    becomes None.

    Raises:
        ValidationError: If no kind is set
    """
    kind = msg.WhichOneof("kind")
    if kind == "authenticate":
        return Authenticate(token=msg.authenticate.token or None)
    if kind == "post_message":
        return PostMessage(text=msg.post_message.message, group=msg.post_message.group or None)
    if kind == "typing_start":
        return TypingStart(group=msg.typing_start.group or None)
    if kind == "typing_stop":
        return TypingStop(group=msg.typing_stop.group or None)
    if kind == "join_group":
        return JoinGroup(group_name=msg.join_group.group_name)
    if kind == "leave_group":
        return LeaveGroup(group_name=msg.leave_group.group_name)
    if kind == "create_group":
        return CreateGroup(group_name=msg.create_group.group_name)
    raise ValidationError("Event kind is missing")


def _entries(history):
    return [chat_pb2.LogEntry(**entry) for entry in history]


def to_server_event(frame: dict) -> chat_pb2.ServerEvent:
    """Wrap an engine frame ``{"event", "data"}`` in a ServerEvent."""
    name, data = frame["event"], frame["data"]
    if name == "auth-status":
        return chat_pb2.ServerEvent(auth_status=chat_pb2.AuthStatus(
            is_authenticated=data.get("isAuthenticated", False),
            is_guest=data.get("isGuest", False),
            username=data.get("username") or "",
            email=data.get("email") or "",
        ))
    if name == "receive-messages":
        return chat_pb2.ServerEvent(receive_messages=chat_pb2.ChatHistory(
            chat_history=_entries(data["chatHistory"]),
            username=data.get("username") or "",
        ))
    if name == "group-messages":
        return chat_pb2.ServerEvent(group_messages=chat_pb2.GroupMessages(
            group=data["group"], chat_history=_entries(data["chatHistory"]),
        ))
    if name == "all-groups":
        return chat_pb2.ServerEvent(all_groups=chat_pb2.GroupList(groups=data["groups"]))
    if name == "user-groups":
        return chat_pb2.ServerEvent(user_groups=chat_pb2.GroupList(groups=data["groups"]))
    if name == "user-count":
        return chat_pb2.ServerEvent(user_count=chat_pb2.UserCount(count=data["count"]))
    if name == "user-typing":
        return chat_pb2.ServerEvent(user_typing=chat_pb2.UserTyping(
            username=data["username"], is_typing=data["isTyping"], group=data["group"],
        ))
    if name == "error":
        return chat_pb2.ServerEvent(error=chat_pb2.Error(message=data["message"]))
    raise ValueError(f"Unknown outbound event: {name}")


class CoordinatorService(chat_pb2_grpc.CoordinatorServicer):
    """gRPC front of the coordination engine.

    Exposes the real-time Connect stream and the Signup, Login and Verify
    credential calls defined in ``roomchat/proto/chat.proto``.
    """

    def __init__(self, engine: CoordinationEngine, credentials: CredentialService):
        """Initialize the service.

        Args:
            engine (CoordinationEngine): Handles every connection event
            credentials (CredentialService): Identity store and token issuer
        """
        self.engine = engine
        self.credentials = credentials

    async def _abort(self, context: aio.ServicerContext, error: Exception, action: str):
        if isinstance(error, ChatError):
            code = _STATUS_BY_ERROR.get(type(error), grpc.StatusCode.FAILED_PRECONDITION)
            logger.warning(f"{action} rejected: {error.message}")
            await context.abort(code, error.message)
        logger.exception(f"{action} error")
        await context.abort(grpc.StatusCode.INTERNAL, "Internal server error")

    async def Signup(self, request: chat_pb2.SignupRequest, context: aio.ServicerContext):
        """Register an identity and return a fresh token."""
        loop = asyncio.get_running_loop()
        try:
            identity = await loop.run_in_executor(
                None,
                self.credentials.register_identity,
                request.username, request.email, request.password,
            )
            token = self.credentials.issue_credential(identity)
        except Exception as e:
            await self._abort(context, e, "Signup")
        logger.info(f"Signup: identity '{identity.username}' registered")
        return chat_pb2.AuthResponse(token=token, username=identity.username, email=identity.email)

    async def Login(self, request: chat_pb2.LoginRequest, context: aio.ServicerContext):
        """Check a password and return a fresh token."""
        loop = asyncio.get_running_loop()
        try:
            identity = await loop.run_in_executor(
                None,
                self.credentials.authenticate_password,
                request.email_or_username, request.password,
            )
            token = self.credentials.issue_credential(identity)
        except Exception as e:
            await self._abort(context, e, "Login")
        logger.info(f"Login: identity '{identity.username}' logged in")
        return chat_pb2.AuthResponse(token=token, username=identity.username, email=identity.email)

    async def Verify(self, request: chat_pb2.VerifyRequest, context: aio.ServicerContext):
        """Return the username and email a token was issued for."""
        try:
            if not request.token:
                raise InvalidCredentialToken("No token provided")
            claims = self.credentials.verify_credential(request.token)
        except Exception as e:
            await self._abort(context, e, "Verify")
        return chat_pb2.VerifyResponse(username=claims["username"] or "", email=claims["email"])

    async def Connect(self, request_iterator: AsyncIterable[chat_pb2.ClientEvent], context: aio.ServicerContext):
        """Open a bidirectional stream for one client connection.

        Protocol Flow:
        1. Server registers the connection and greets it as a guest
        2. Client sends ``authenticate`` with or without a token
        3. Client events are dispatched in arrival order; engine output is
           streamed back as ServerEvent messages

        The connection is torn down when the client half-closes or cancels.

        Yields:
            chat_pb2.ServerEvent: Outbound events for this connection
        """
        connection_id, q = self.engine.connect()

        async def reader():
            """Dispatch inbound events one at a time, then disconnect."""
            try:
                async for msg in request_iterator:
                    try:
                        event = to_event(msg)
                    except ValidationError as e:
                        logger.warning(f"Connect: bad event from {connection_id}: {e.message}")
                        self.engine.router.send(connection_id, "error", {"message": e.message})
                        continue
                    await self.engine.dispatch(connection_id, event)
            except Exception:
                logger.exception(f"Connect: reader for {connection_id} failed")
            finally:
                await self.engine.disconnect(connection_id)

        reader_task = asyncio.create_task(reader())
        try:
            while True:
                frame = await q.get()
                if frame is None:
                    break
                yield to_server_event(frame)
        finally:
            reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader_task
            await self.engine.disconnect(connection_id)
            logger.info(f"Connect: stream for {connection_id} finished")
