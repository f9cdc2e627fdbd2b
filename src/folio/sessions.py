"""In-memory session store for gallery readers.

Two maps, each behind its own asyncio.Lock:

- origins: summary message id -> OriginRecord (read-only templates)
- readers: reader message id -> ReadSession (live pagination state)

The origin map is a bounded cache evicting the oldest insertion first.
Reader sessions live until stopped or their message is deleted.

Callers never receive the stored ReadSession object; lookups and
navigation hand back copies so state can only change through the store.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from enum import Enum
from typing import Generic, TypeVar

from folio.logging import get_logger
from folio.models import OriginRecord, ReadSession

log = get_logger("sessions")

V = TypeVar("V")


class NavigationOutcome(str, Enum):
    """Result of a reaction handled against the session maps."""

    OPENED = "opened"
    IGNORED = "ignored"
    MOVED = "moved"
    AT_BOUNDARY = "at_boundary"
    STOPPED = "stopped"
    NO_SESSION = "no_session"
    NOT_OWNER = "not_owner"


class GuardedMap(Generic[V]):
    """A dict keyed by message id with lock-guarded access.

    Args:
        capacity: Maximum entries; the oldest insertion is evicted when
            exceeded. None means unbounded.
    """

    def __init__(self, name: str, capacity: int | None = None) -> None:
        self.name = name
        self.capacity = capacity
        self.lock = asyncio.Lock()
        self._items: OrderedDict[str, V] = OrderedDict()

    async def get(self, key: str) -> V | None:
        async with self.lock:
            return self._items.get(key)

    async def put(self, key: str, value: V) -> None:
        async with self.lock:
            self._put_locked(key, value)

    async def delete(self, key: str) -> V | None:
        """Remove an entry, returning it if it was present."""
        async with self.lock:
            return self._items.pop(key, None)

    async def compare_and_swap(self, key: str, expected: V | None, new: V | None) -> bool:
        """Replace the entry for ``key`` only if it is still ``expected``.

        ``expected=None`` means the key must be absent; ``new=None`` deletes.
        Identity comparison is used, so callers must pass the object they
        read from this map.
        """
        async with self.lock:
            if self._items.get(key) is not expected:
                return False
            if new is None:
                self._items.pop(key, None)
            else:
                self._put_locked(key, new)
            return True

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def peek_locked(self, key: str) -> V | None:
        """Read an entry; the caller must hold ``lock``."""
        return self._items.get(key)

    def pop_locked(self, key: str) -> V | None:
        """Remove an entry; the caller must hold ``lock``."""
        return self._items.pop(key, None)

    def _put_locked(self, key: str, value: V) -> None:
        self._items[key] = value
        if self.capacity is not None:
            while len(self._items) > self.capacity:
                evicted, _ = self._items.popitem(last=False)
                log.debug("session_evicted", map=self.name, message_id=evicted)


class SessionStore:
    """Owns all origin records and reader sessions.

    Attributes:
        origins: Summary message id -> OriginRecord.
        readers: Reader message id -> ReadSession.
    """

    def __init__(self, origin_capacity: int | None = 1000) -> None:
        self.origins: GuardedMap[OriginRecord] = GuardedMap("origins", origin_capacity)
        self.readers: GuardedMap[ReadSession] = GuardedMap("readers")

    async def get_origin(self, message_id: str) -> OriginRecord | None:
        return await self.origins.get(message_id)

    async def put_origin(self, message_id: str, record: OriginRecord) -> None:
        await self.origins.put(message_id, record)

    async def get_reader(self, message_id: str) -> ReadSession | None:
        """Get a snapshot of the reader session on a message."""
        session = await self.readers.get(message_id)
        return session.model_copy(deep=True) if session is not None else None

    async def put_reader(self, message_id: str, session: ReadSession) -> None:
        await self.readers.put(message_id, session.model_copy(deep=True))

    async def delete_reader(self, message_id: str) -> ReadSession | None:
        return await self.readers.delete(message_id)

    async def navigate(
        self,
        message_id: str,
        user_id: str,
        step: int,
    ) -> tuple[NavigationOutcome, ReadSession | None]:
        """Move a reader by ``step`` pages (-1 or +1), atomically.

        The page index is clamped: stepping past either end leaves the
        session unchanged and reports AT_BOUNDARY.

        Returns:
            The outcome and a snapshot of the session after the move
            (None when there is no session).
        """
        async with self.readers.lock:
            session = self.readers.peek_locked(message_id)
            if session is None:
                return NavigationOutcome.NO_SESSION, None
            if session.owner_id != user_id:
                return NavigationOutcome.NOT_OWNER, session.model_copy(deep=True)

            target = session.current + step
            if not 0 <= target < session.total:
                return NavigationOutcome.AT_BOUNDARY, session.model_copy(deep=True)

            session.current = target
            return NavigationOutcome.MOVED, session.model_copy(deep=True)

    async def stop(
        self,
        message_id: str,
        user_id: str,
    ) -> tuple[NavigationOutcome, ReadSession | None]:
        """Remove a reader session if ``user_id`` owns it.

        Only one of several concurrent stops for the same message sees
        STOPPED; the rest find no session.
        """
        async with self.readers.lock:
            session = self.readers.peek_locked(message_id)
            if session is None:
                return NavigationOutcome.NO_SESSION, None
            if session.owner_id != user_id:
                return NavigationOutcome.NOT_OWNER, session.model_copy(deep=True)
            self.readers.pop_locked(message_id)
            return NavigationOutcome.STOPPED, session
