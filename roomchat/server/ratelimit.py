import time
from typing import Callable, Dict

from .models import RateWindow
from ..utils.logger import setup_logger

logger = setup_logger('roomchat.ratelimit')


class RateLimiter:
    """Per-connection fixed-window request counter.

    Every connection gets its own window of ``window`` seconds allowing at
    most ``cap`` requests. Budgets are keyed by connection, not identity,
    so two connections of one user have two independent budgets.
    """

    def __init__(self, window: float = 60.0, cap: int = 30, clock: Callable[[], float] = time.time):
        """Initialize the limiter.

        Args:
            window (float): Window length in seconds
            cap (int): Requests allowed per window
            clock (Callable[[], float]): Time source in seconds
        """
        self.window = window
        self.cap = cap
        self.clock = clock
        self.windows: Dict[str, RateWindow] = {}

    def try_consume(self, connection_id: str) -> bool:
        """Consume one request from the connection's budget.

        Returns:
            bool: True if allowed, False if the cap is reached for this window
        """
        now = self.clock()
        current = self.windows.get(connection_id)

        if current is None or now > current.reset_at:
            self.windows[connection_id] = RateWindow(count=1, reset_at=now + self.window)
            return True

        if current.count >= self.cap:
            logger.warning(f"Rate limit hit for connection {connection_id}")
            return False

        current.count += 1
        return True

    def discard(self, connection_id: str):
        self.windows.pop(connection_id, None)
