import time
from typing import Callable, Dict, List, Set, Tuple

from .errors import CannotLeaveGeneral, InvalidGroupName
from .models import Group, LogEntry, SystemEvent, SystemEventKind, UserMessage, format_timestamp
from ..utils.config import GENERAL_GROUP
from ..utils.logger import setup_logger

logger = setup_logger('roomchat.directory')


class GroupDirectory:
    """In-memory directory of chat groups, their logs and their members.

    Membership is a bidirectional edge: ``Group.member_ids`` on one side and
    ``memberships`` (connection ID -> joined group names) on the other. Only
    the methods of this class touch either side, and they always update both.

    The directory also keeps the legacy unified history, a flat log of every
    user message and presence event across all groups.
    """

    def __init__(self, clock: Callable[[], float] = time.time, general: str = GENERAL_GROUP):
        """Initialize the directory with the privileged General group.

        Args:
            clock (Callable[[], float]): Time source in seconds, used for log timestamps
            general (str): Name of the default group every user joins

        Attributes:
            groups_by_name (Dict[str, Group]): Groups in order of first creation
            memberships (Dict[str, List[str]]): Connection ID -> joined group names
            history (List[LogEntry]): Legacy unified log
        """
        self.clock = clock
        self.general = general
        self.groups_by_name: Dict[str, Group] = {}
        self.memberships: Dict[str, List[str]] = {}
        self.history: List[LogEntry] = []
        self.ensure_group(general)

    def _now(self) -> str:
        return format_timestamp(self.clock())

    def _require(self, name: str) -> Group:
        group = self.groups_by_name.get(name)
        if group is None:
            raise InvalidGroupName(f"Group {name} does not exist")
        return group

    def ensure_group(self, name: str) -> bool:
        """Create an empty group if it does not exist yet.

        Returns:
            bool: True if the group was created by this call
        """
        if name in self.groups_by_name:
            return False
        self.groups_by_name[name] = Group(name=name)
        logger.info(f"New group created: {name}")
        return True

    def exists(self, name: str) -> bool:
        return name in self.groups_by_name

    def join(self, connection_id: str, username: str, group_name: str) -> Tuple[List[LogEntry], bool]:
        """Add a connection to a group.

        Joining is idempotent: a repeated join leaves membership unchanged and
        appends nothing.

        Args:
            connection_id (str): Joining connection
            username (str): Display name recorded in the join event
            group_name (str): Existing group to join

        Returns:
            Tuple[List[LogEntry], bool]: The group's log after the join and
            whether the connection was newly added

        Raises:
            InvalidGroupName: If the group does not exist

        Side Effects:
            - Records the membership on both sides
            - Appends a joined-group SystemEvent on first join
        """
        group = self._require(group_name)
        if connection_id in group.member_ids:
            logger.debug(f"Connection {connection_id} already in group {group_name}")
            return list(group.log), False

        group.member_ids.add(connection_id)
        self.memberships.setdefault(connection_id, []).append(group_name)
        group.log.append(SystemEvent(SystemEventKind.JOINED_GROUP, username, group_name, self._now()))
        logger.info(f"{username} ({connection_id}) joined group {group_name}")
        return list(group.log), True

    def subscribe(self, connection_id: str, group_name: str) -> bool:
        """Record membership without writing to the group's log.

        Used for General, whose presence events go through ``announce``.

        Returns:
            bool: True if the connection was newly added
        """
        group = self._require(group_name)
        if connection_id in group.member_ids:
            return False
        group.member_ids.add(connection_id)
        self.memberships.setdefault(connection_id, []).append(group_name)
        return True

    def leave(self, connection_id: str, username: str, group_name: str) -> bool:
        """Remove a connection from a group.

        Returns:
            bool: True if the connection was a member and has been removed

        Raises:
            CannotLeaveGeneral: If group_name is the General group

        Side Effects:
            - Drops the membership on both sides
            - Appends a left-group SystemEvent
        """
        if group_name == self.general:
            raise CannotLeaveGeneral()
        group = self.groups_by_name.get(group_name)
        if group is None or connection_id not in group.member_ids:
            return False

        group.member_ids.discard(connection_id)
        joined = self.memberships.get(connection_id, [])
        if group_name in joined:
            joined.remove(group_name)
        group.log.append(SystemEvent(SystemEventKind.LEFT_GROUP, username, group_name, self._now()))
        logger.info(f"{username} ({connection_id}) left group {group_name}")
        return True

    def remove_connection(self, connection_id: str) -> List[str]:
        """Drop a connection from every group it belongs to.

        Group logs are not touched.

        Returns:
            List[str]: Names of the groups the connection was removed from
        """
        joined = self.memberships.pop(connection_id, [])
        for name in joined:
            group = self.groups_by_name.get(name)
            if group is not None:
                group.member_ids.discard(connection_id)
        logger.debug(f"Removed connection {connection_id} from groups {joined}")
        return joined

    def post(self, username: str, group_name: str, text: str) -> UserMessage:
        """Append a user message to a group's log and to the unified history.

        Raises:
            InvalidGroupName: If the group does not exist
        """
        group = self._require(group_name)
        msg = UserMessage(username=username, text=text, timestamp=self._now(), group=group_name)
        group.log.append(msg)
        self.history.append(msg)
        logger.debug(f"Message from {username} appended to {group_name}")
        return msg

    def announce(self, kind: SystemEventKind, username: str) -> SystemEvent:
        """Append a presence event to General and to the unified history."""
        event = SystemEvent(kind, username, self.general, self._now())
        self.groups_by_name[self.general].log.append(event)
        self.history.append(event)
        return event

    def log(self, group_name: str) -> List[LogEntry]:
        group = self.groups_by_name.get(group_name)
        return list(group.log) if group else []

    def members(self, group_name: str) -> Set[str]:
        group = self.groups_by_name.get(group_name)
        return set(group.member_ids) if group else set()

    def groups_of(self, connection_id: str) -> List[str]:
        return list(self.memberships.get(connection_id, []))

    def catalog(self) -> List[str]:
        """Group names in order of first creation."""
        return list(self.groups_by_name)

    def unified_log(self) -> List[LogEntry]:
        return list(self.history)
