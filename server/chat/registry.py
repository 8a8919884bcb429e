"""
Client registry module.

This module keeps the process-wide table of connected participants. The
table is a fixed-capacity list of slots guarded by a single asyncio.Lock;
the lock is held only for the table operation, never for network I/O.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from common.constants import MAX_CLIENTS
from common.protocol_definitions import ChatRelayError
from server.utils.logger import logger


class RegistryFullError(ChatRelayError):
    """Raised when a join finds no free slot."""

    def __init__(self, capacity: int):
        super().__init__(f"Registry full ({capacity} participants)")
        self.capacity = capacity


@dataclass(eq=False)
class Participant:
    """One connected chat endpoint."""
    display_name: str
    writer: asyncio.StreamWriter
    reader: Optional[asyncio.StreamReader] = None
    address: Optional[tuple] = None
    slot: Optional[int] = None


class ClientRegistry:
    """Lock-guarded slot table of participants."""

    def __init__(self, capacity: int = MAX_CLIENTS,
                 on_change: Optional[Callable[[], Awaitable[None]]] = None):
        if capacity < 1:
            raise ValueError("Registry capacity must be at least 1")
        self.capacity = capacity
        self.on_change = on_change
        self._slots: List[Optional[Participant]] = [None] * capacity
        self._lock = asyncio.Lock()

    async def join(self, participant: Participant) -> int:
        """
        Place a participant in the first free slot.

        Raises RegistryFullError if every slot is taken. A participant that
        is already registered keeps its current slot.
        """
        async with self._lock:
            slot = self._slot_of(participant)
            if slot is None:
                slot = self._first_free()
                if slot is None:
                    raise RegistryFullError(self.capacity)
                self._slots[slot] = participant
                participant.slot = slot

        await self._notify_change()
        return slot

    async def leave(self, participant: Participant) -> bool:
        """Free the participant's slot. Returns False if it held none."""
        async with self._lock:
            slot = self._slot_of(participant)
            if slot is None:
                return False
            self._slots[slot] = None
            participant.slot = None

        await self._notify_change()
        return True

    async def find_by_name(self, name: str) -> Optional[Participant]:
        """Return the first participant in slot order with this name."""
        async with self._lock:
            for participant in self._slots:
                if participant is not None and participant.display_name == name:
                    return participant
        return None

    async def snapshot(self) -> List[Participant]:
        """Point-in-time copy of the registered participants, in slot order."""
        async with self._lock:
            return [p for p in self._slots if p is not None]

    async def names(self) -> List[str]:
        """Display names of registered participants, in slot order."""
        return [p.display_name for p in await self.snapshot()]

    def count(self) -> int:
        """Get the number of registered participants."""
        return sum(1 for p in self._slots if p is not None)

    def is_full(self) -> bool:
        return self.count() >= self.capacity

    def _slot_of(self, participant: Participant) -> Optional[int]:
        for index, occupant in enumerate(self._slots):
            if occupant is participant:
                return index
        return None

    def _first_free(self) -> Optional[int]:
        for index, occupant in enumerate(self._slots):
            if occupant is None:
                return index
        return None

    async def _notify_change(self):
        if self.on_change is None:
            return
        try:
            await self.on_change()
        except Exception as e:
            logger.log_error("user list notification", e)
