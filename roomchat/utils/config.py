"""
Server configuration module.

Holds every tunable of the coordination server in one place.
"""
import os
from datetime import timedelta

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 50051
DEFAULT_JWT_SECRET = "roomchat-secret-key-change-in-production"
GENERAL_GROUP = "General"


class ServerConfig:
    """Server configuration class."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        jwt_secret: str = DEFAULT_JWT_SECRET,
    ):
        self.host = host
        self.port = port

        # Credentials
        self.jwt_secret = jwt_secret
        self.token_ttl = timedelta(days=7)
        self.bcrypt_rounds = 10

        # Abuse limits
        self.rate_window = 60.0  # seconds
        self.rate_cap = 30
        self.max_message_length = 1000
        self.max_group_name_length = 50

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Build a config from ROOMCHAT_* environment variables."""
        return cls(
            host=os.environ.get("ROOMCHAT_HOST", DEFAULT_HOST),
            port=int(os.environ.get("ROOMCHAT_PORT", DEFAULT_PORT)),
            jwt_secret=os.environ.get("ROOMCHAT_JWT_SECRET", DEFAULT_JWT_SECRET),
        )
