import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
import jwt

from .errors import InvalidCredentialToken, RegistrationConflict, ValidationError
from .models import Identity
from .sanitize import sanitize_input
from ..utils.logger import setup_logger

logger = setup_logger('roomchat.credentials')

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class CredentialService:
    """Identity store plus password and token handling.

    Identities live in memory, keyed by lowercased email. Passwords are
    hashed with bcrypt; credentials are HS256 JWTs carrying the username
    and email.
    """

    def __init__(self, secret: str, token_ttl: timedelta = timedelta(days=7), bcrypt_rounds: int = 10):
        """Initialize the credential service.

        Args:
            secret (str): HMAC secret for signing tokens
            token_ttl (timedelta): Validity horizon of issued tokens
            bcrypt_rounds (int): bcrypt cost factor

        Attributes:
            identities (Dict[str, Identity]): Lowercased email -> identity
        """
        self.secret = secret
        self.token_ttl = token_ttl
        self.bcrypt_rounds = bcrypt_rounds
        self.identities: Dict[str, Identity] = {}

    def register_identity(self, username, email, password) -> Identity:
        """Register a new identity.

        The username is sanitized before it is validated, so length and
        uniqueness hold for the name that is actually stored.

        Raises:
            ValidationError: If a field is missing or malformed
            RegistrationConflict: If the username or email is already taken
        """
        if not username or not email or not password:
            raise ValidationError("Username, email, and password are required")
        if not all(isinstance(v, str) for v in (username, email, password)):
            raise ValidationError("Username, email, and password must be strings")
        username = sanitize_input(username)
        if len(username) < 3 or len(username) > 30:
            raise ValidationError("Username must be 3-30 characters")
        if not EMAIL_RE.match(email):
            raise ValidationError("Invalid email format")
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")

        key = email.lower()
        for existing in self.identities.values():
            if existing.username.lower() == username.lower() or existing.email == key:
                logger.warning(f"Registration conflict for '{username}' / '{key}'")
                raise RegistrationConflict()

        password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds))
        identity = Identity(
            username=username,
            email=key,
            password_hash=password_hash.decode("utf-8"),
        )
        self.identities[key] = identity
        logger.info(f"New identity registered: {identity.username} ({key})")
        return identity

    def authenticate_password(self, email_or_username, password) -> Identity:
        """Find an identity by email or username and check its password.

        Raises:
            ValidationError: If a field is missing
            InvalidCredentialToken: If no identity matches or the password is wrong
        """
        if not email_or_username or not password:
            raise ValidationError("Email/username and password are required")
        if not isinstance(email_or_username, str) or not isinstance(password, str):
            raise ValidationError("Email/username and password must be strings")

        needle = email_or_username.lower()
        identity = None
        for candidate in self.identities.values():
            if candidate.email == needle or candidate.username.lower() == needle:
                identity = candidate
                break

        if identity is None or not bcrypt.checkpw(password.encode("utf-8"), identity.password_hash.encode("utf-8")):
            logger.warning(f"Failed login for '{email_or_username}'")
            raise InvalidCredentialToken("Invalid credentials")
        return identity

    def issue_credential(self, identity: Identity) -> str:
        """Mint a signed token for an identity."""
        now = datetime.now(timezone.utc)
        claims = {
            "username": identity.username,
            "email": identity.email,
            "iat": now,
            "exp": now + self.token_ttl,
        }
        return jwt.encode(claims, self.secret, algorithm="HS256")

    def verify_credential(self, token: str) -> dict:
        """Verify a token's signature and expiry.

        Returns:
            dict: ``{"username", "email"}`` taken from the token

        Raises:
            InvalidCredentialToken: If the token is malformed, forged or expired
        """
        try:
            claims = jwt.decode(token, self.secret, algorithms=["HS256"])
        except jwt.PyJWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise InvalidCredentialToken() from e
        if not isinstance(claims.get("email"), str):
            raise InvalidCredentialToken()
        return {"username": claims.get("username"), "email": claims["email"]}

    def lookup(self, identity_key: str) -> Optional[Identity]:
        return self.identities.get(identity_key.lower())
