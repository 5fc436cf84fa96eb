import asyncio
from dataclasses import dataclass
from typing import Dict, Optional

from .credentials import CredentialService
from .errors import InvalidCredentialToken
from .models import Session
from ..utils.logger import setup_logger

logger = setup_logger('roomchat.sessions')


@dataclass(frozen=True)
class SessionResult:
    """Outcome of an authenticate call.

    Attributes:
        session (Session): The connection's session after the call
        onboarded (bool): True only on the call that first made the
            connection authenticated
    """
    session: Session
    onboarded: bool


class SessionRegistry:
    """Per-connection authentication state.

    Sessions are derived from the credential service. A connection is live
    from ``open`` until ``discard``; results of verifications that finish
    after the connection is gone are dropped.
    """

    def __init__(self, credentials: CredentialService):
        self.credentials = credentials
        self.sessions: Dict[str, Session] = {}

    def open(self, connection_id: str) -> Session:
        session = Session()
        self.sessions[connection_id] = session
        return session

    def get(self, connection_id: str) -> Optional[Session]:
        return self.sessions.get(connection_id)

    def is_live(self, connection_id: str) -> bool:
        return connection_id in self.sessions

    def discard(self, connection_id: str) -> Optional[Session]:
        return self.sessions.pop(connection_id, None)

    def authenticated_count(self) -> int:
        return sum(1 for s in self.sessions.values() if s.is_authenticated)

    async def _resolve(self, token: Optional[str]) -> Session:
        """Turn a token into a session, falling back to guest on any failure."""
        if not token:
            return Session.guest()

        loop = asyncio.get_running_loop()
        try:
            claims = await loop.run_in_executor(None, self.credentials.verify_credential, token)
        except InvalidCredentialToken:
            logger.info("Invalid credential token, continuing as guest")
            return Session.guest()
        except Exception:
            logger.exception("Credential verification failed unexpectedly, continuing as guest")
            return Session.guest()

        identity = self.credentials.lookup(claims["email"])
        if identity is None:
            logger.info(f"Token for unknown identity {claims['email']}, continuing as guest")
            return Session.guest()
        return Session.authenticated(identity.username, identity.email, identity.email)

    async def authenticate(self, connection_id: str, token: Optional[str]) -> Optional[SessionResult]:
        """Resolve and record the session of a connection.

        The first successful authentication onboards the connection. Later
        calls never downgrade or switch an authenticated session; they just
        return it with ``onboarded=False``. A guest may still upgrade.

        Args:
            connection_id (str): Connection being authenticated
            token (Optional[str]): Credential token, or None for guest access

        Returns:
            Optional[SessionResult]: None if the connection disconnected while
            the token was being verified
        """
        if not self.is_live(connection_id):
            return None

        resolved = await self._resolve(token)

        current = self.sessions.get(connection_id)
        if current is None:
            logger.info(f"Connection {connection_id} closed during authentication, result discarded")
            return None
        if current.is_authenticated:
            return SessionResult(current, onboarded=False)

        self.sessions[connection_id] = resolved
        if resolved.is_authenticated:
            logger.info(f"Connection {connection_id} authenticated as {resolved.username}")
        return SessionResult(resolved, onboarded=resolved.is_authenticated)
