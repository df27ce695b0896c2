"""Outbound delivery to participants, observer groups and everyone connected."""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from connect4.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()

ADMIN_GROUP = "admin"


def session_group(session_id: str) -> str:
    return f"session:{session_id}"


class Notifier(ABC):
    """Outbound side of the transport as seen by the queue and the coordinator.

    Delivery is best effort: implementations never raise on a failed send.
    """

    @abstractmethod
    async def send(self, participant_id: str, message: dict[str, Any]) -> bool:
        """Deliver to one participant. Returns False if nothing was sent."""
        ...

    @abstractmethod
    async def broadcast(self, message: dict[str, Any]) -> None: ...

    @abstractmethod
    def join_group(self, group: str, participant_id: str) -> None: ...

    @abstractmethod
    def leave_group(self, group: str, participant_id: str) -> None: ...

    @abstractmethod
    async def send_to_group(self, group: str, message: dict[str, Any]) -> None: ...


class ConnectionHub(Notifier):
    """Registry of live connections, one per participant.

    A participant opening a second connection replaces the first one, which
    is closed. Group membership is keyed by participant, so it survives a
    connection swap.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionProtocol] = {}  # participant_id -> connection
        self._groups: dict[str, set[str]] = {}  # group -> participant_ids

    def register(self, connection: ConnectionProtocol) -> ConnectionProtocol | None:
        """Bind a connection to its participant. Returns the replaced connection, if any."""
        previous = self._connections.get(connection.participant_id)
        self._connections[connection.participant_id] = connection
        if previous is connection:
            return None
        return previous

    def unregister(self, connection: ConnectionProtocol) -> bool:
        """Drop a connection if it is still the participant's current one.

        Returns False when a newer connection has already replaced it, in
        which case the participant is still considered connected.
        """
        current = self._connections.get(connection.participant_id)
        if current is not connection:
            return False
        del self._connections[connection.participant_id]
        for members in self._groups.values():
            members.discard(connection.participant_id)
        return True

    async def replace(self, connection: ConnectionProtocol) -> None:
        """Register a connection and close whichever one it displaced."""
        previous = self.register(connection)
        if previous is not None:
            logger.info(
                "replacing existing connection",
                participant_id=connection.participant_id,
                old_connection_id=previous.connection_id,
            )
            with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                await previous.close(code=4002, reason="replaced_by_new_connection")

    def is_connected(self, participant_id: str) -> bool:
        return participant_id in self._connections

    def connection_for(self, participant_id: str) -> ConnectionProtocol | None:
        return self._connections.get(participant_id)

    @property
    def connected_ids(self) -> list[str]:
        return list(self._connections)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def group_members(self, group: str) -> set[str]:
        return set(self._groups.get(group, ()))

    def join_group(self, group: str, participant_id: str) -> None:
        self._groups.setdefault(group, set()).add(participant_id)

    def leave_group(self, group: str, participant_id: str) -> None:
        members = self._groups.get(group)
        if members is None:
            return
        members.discard(participant_id)
        if not members:
            del self._groups[group]

    async def send(self, participant_id: str, message: dict[str, Any]) -> bool:
        connection = self._connections.get(participant_id)
        if connection is None:
            return False
        return await self._deliver(connection, message)

    async def broadcast(self, message: dict[str, Any]) -> None:
        # snapshot: a disconnect may mutate the dict while we await a send
        for connection in list(self._connections.values()):
            await self._deliver(connection, message)

    async def send_to_group(self, group: str, message: dict[str, Any]) -> None:
        for participant_id in list(self._groups.get(group, ())):
            await self.send(participant_id, message)

    @staticmethod
    async def _deliver(connection: ConnectionProtocol, message: dict[str, Any]) -> bool:
        try:
            await connection.send_message(message)
        except (RuntimeError, OSError, ConnectionError) as e:
            logger.debug(
                "message delivery failed",
                participant_id=connection.participant_id,
                message_type=message.get("type"),
                error=str(e),
            )
            return False
        return True
