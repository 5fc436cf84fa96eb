import asyncio
from typing import Dict, Iterable, Optional

from ..utils.logger import setup_logger

logger = setup_logger('roomchat.router')


class BroadcastRouter:
    """Outbound frame routing for live connections.

    Each connected client has a dedicated asyncio Queue that the transport
    drains. A frame is a dict ``{"event": name, "data": payload}``; ``None``
    is the end-of-stream marker.

    Sends never suspend, so a handler that broadcasts runs to completion
    and every recipient sees frames in the same order.
    """

    def __init__(self):
        """Initialize router.

        Attributes:
            queues (Dict[str, asyncio.Queue]): Maps connection IDs to their outbound queues
        """
        self.queues: Dict[str, asyncio.Queue] = {}
        logger.info("Broadcast router initialized")

    def register(self, connection_id: str) -> asyncio.Queue:
        """Create and store the outbound queue of a new connection."""
        q = asyncio.Queue()
        self.queues[connection_id] = q
        logger.info(f"Registered queue for connection {connection_id}")
        logger.debug(f"Active connections: {list(self.queues.keys())}")
        return q

    def remove(self, connection_id: str):
        """Drop a connection's queue and wake its reader with the end marker."""
        q = self.queues.pop(connection_id, None)
        if q is not None:
            q.put_nowait(None)
        logger.info(f"Removed queue for connection {connection_id}")
        logger.debug(f"Remaining connections: {list(self.queues.keys())}")

    def connection_ids(self):
        return list(self.queues)

    def send(self, connection_id: str, event: str, data=None) -> bool:
        """Send one frame to a connection if it is live.

        Returns:
            bool: True if the frame was queued, False if the connection is gone
        """
        q = self.queues.get(connection_id)
        if q is None:
            logger.debug(f"Dropped {event} for connection {connection_id} - not connected")
            return False
        q.put_nowait({"event": event, "data": data})
        return True

    def send_many(self, connection_ids: Iterable[str], event: str, data=None, exclude: Optional[str] = None) -> int:
        """Send the same frame to several connections.

        Returns:
            int: Number of connections the frame was queued for
        """
        delivered = 0
        for connection_id in connection_ids:
            if connection_id == exclude:
                continue
            if self.send(connection_id, event, data):
                delivered += 1
        logger.debug(f"Sent {event} to {delivered} connections")
        return delivered

    def send_all(self, event: str, data=None, exclude: Optional[str] = None) -> int:
        return self.send_many(self.connection_ids(), event, data, exclude=exclude)
