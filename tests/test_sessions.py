"""Tests for the session store.

Covers:
- Origin/reader get, put, delete and compare-and-swap
- Bounded origin cache eviction
- Atomic navigation with ownership and boundary checks
- Stop removing a session exactly once under concurrency
"""

from __future__ import annotations

import asyncio

import pytest

from folio.models import OriginRecord, ReadSession
from folio.sessions import GuardedMap, NavigationOutcome, SessionStore


def make_session(owner_id: str = "owner", total: int = 3, current: int = 0) -> ReadSession:
    return ReadSession(
        owner_id=owner_id,
        media_id="987654",
        page_exts=["jpg"] * total,
        current=current,
        total=total,
        channel_id="c1",
        code="123456",
    )


def make_origin(total: int = 3) -> OriginRecord:
    return OriginRecord(
        requester_id="requester",
        media_id="987654",
        page_exts=("jpg",) * total,
        total=total,
        channel_id="c1",
        code="123456",
    )


class TestGuardedMap:
    """Tests for the lock-guarded map."""

    @pytest.mark.asyncio
    async def test_put_get_delete(self) -> None:
        items: GuardedMap[str] = GuardedMap("test")
        await items.put("a", "one")

        assert await items.get("a") == "one"
        assert await items.delete("a") == "one"
        assert await items.get("a") is None
        assert await items.delete("a") is None

    @pytest.mark.asyncio
    async def test_compare_and_swap(self) -> None:
        items: GuardedMap[list] = GuardedMap("test")
        first, second = ["first"], ["second"]

        assert await items.compare_and_swap("k", None, first) is True
        assert await items.compare_and_swap("k", None, second) is False
        assert await items.compare_and_swap("k", ["first"], second) is False  # equal, not same
        assert await items.compare_and_swap("k", first, second) is True
        assert await items.get("k") is second
        assert await items.compare_and_swap("k", second, None) is True
        assert "k" not in items

    @pytest.mark.asyncio
    async def test_capacity_evicts_oldest_insertion(self) -> None:
        items: GuardedMap[int] = GuardedMap("test", capacity=2)
        await items.put("a", 1)
        await items.put("b", 2)
        await items.get("a")
        await items.put("c", 3)

        assert "a" not in items
        assert "b" in items and "c" in items
        assert len(items) == 2


class TestSessionStore:
    """Tests for SessionStore."""

    @pytest.mark.asyncio
    async def test_origin_round_trip(self) -> None:
        store = SessionStore()
        origin = make_origin()
        await store.put_origin("summary", origin)

        assert await store.get_origin("summary") == origin
        assert await store.get_origin("other") is None

    @pytest.mark.asyncio
    async def test_origin_capacity_from_constructor(self) -> None:
        store = SessionStore(origin_capacity=1)
        await store.put_origin("one", make_origin())
        await store.put_origin("two", make_origin())

        assert await store.get_origin("one") is None
        assert await store.get_origin("two") is not None

    @pytest.mark.asyncio
    async def test_reader_snapshots_are_copies(self) -> None:
        store = SessionStore()
        await store.put_reader("reader", make_session())

        snapshot = await store.get_reader("reader")
        assert snapshot is not None
        snapshot.current = 2

        stored = await store.get_reader("reader")
        assert stored is not None and stored.current == 0

    @pytest.mark.asyncio
    async def test_navigate_moves_within_bounds(self) -> None:
        store = SessionStore()
        await store.put_reader("reader", make_session(total=3))

        outcome, session = await store.navigate("reader", "owner", 1)
        assert outcome is NavigationOutcome.MOVED
        assert session is not None and session.current == 1

        outcome, session = await store.navigate("reader", "owner", 1)
        assert outcome is NavigationOutcome.MOVED
        assert session.current == 2

        outcome, session = await store.navigate("reader", "owner", 1)
        assert outcome is NavigationOutcome.AT_BOUNDARY
        assert session.current == 2

    @pytest.mark.asyncio
    async def test_previous_at_first_page_is_noop(self) -> None:
        store = SessionStore()
        await store.put_reader("reader", make_session())

        outcome, session = await store.navigate("reader", "owner", -1)

        assert outcome is NavigationOutcome.AT_BOUNDARY
        assert session is not None and session.current == 0

    @pytest.mark.asyncio
    async def test_navigate_rejects_non_owner(self) -> None:
        store = SessionStore()
        await store.put_reader("reader", make_session())

        outcome, _ = await store.navigate("reader", "intruder", 1)

        assert outcome is NavigationOutcome.NOT_OWNER
        stored = await store.get_reader("reader")
        assert stored is not None and stored.current == 0

    @pytest.mark.asyncio
    async def test_navigate_without_session(self) -> None:
        store = SessionStore()
        outcome, session = await store.navigate("missing", "owner", 1)

        assert outcome is NavigationOutcome.NO_SESSION
        assert session is None

    @pytest.mark.asyncio
    async def test_random_walk_stays_in_bounds(self) -> None:
        store = SessionStore()
        await store.put_reader("reader", make_session(total=4))
        steps = [1, 1, -1, 1, 1, 1, 1, -1, -1, -1, -1, -1, 1]

        for step in steps:
            await store.navigate("reader", "owner", step)
            session = await store.get_reader("reader")
            assert session is not None
            assert 0 <= session.current < session.total

    @pytest.mark.asyncio
    async def test_concurrent_navigation_is_serialized(self) -> None:
        store = SessionStore()
        await store.put_reader("reader", make_session(total=10))

        await asyncio.gather(*(store.navigate("reader", "owner", 1) for _ in range(20)))

        session = await store.get_reader("reader")
        assert session is not None and session.current == 9

    @pytest.mark.asyncio
    async def test_stop_requires_owner(self) -> None:
        store = SessionStore()
        await store.put_reader("reader", make_session())

        outcome, _ = await store.stop("reader", "intruder")

        assert outcome is NavigationOutcome.NOT_OWNER
        assert await store.get_reader("reader") is not None

    @pytest.mark.asyncio
    async def test_concurrent_stops_remove_once(self) -> None:
        store = SessionStore()
        await store.put_reader("reader", make_session())

        results = await asyncio.gather(
            store.stop("reader", "owner"),
            store.stop("reader", "owner"),
            store.stop("reader", "owner"),
        )

        outcomes = [outcome for outcome, _ in results]
        assert outcomes.count(NavigationOutcome.STOPPED) == 1
        assert outcomes.count(NavigationOutcome.NO_SESSION) == 2
        assert await store.get_reader("reader") is None
