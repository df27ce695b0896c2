"""Abstract participant connection speaking MessagePack frames."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from connect4.messaging.encoder import decode, encode

if TYPE_CHECKING:
    from connect4.session.models import Participant


class ConnectionProtocol(ABC):
    """
    One transport connection bound to an authenticated participant.

    Lets the router and the connection hub be exercised in tests without
    a real WebSocket.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @property
    @abstractmethod
    def participant(self) -> Participant:
        """Identity resolved from the ticket presented at connect time."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    @property
    def participant_id(self) -> str:
        return self.participant.participant_id

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        raw = await self.receive_bytes()
        return decode(raw)
