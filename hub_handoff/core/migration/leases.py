"""Per-cluster advisory leases for serializing overlapping migrations in one process."""

import asyncio
from collections import Counter
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager

import structlog

logger = structlog.get_logger()


class ClusterLeaseRegistry:
    """Hands out one lock per managed cluster name.

    Locks for a batch are taken in sorted name order, so two runs over overlapping
    cluster sets cannot deadlock. The leases are process-local and advisory.
    A cluster's lock is dropped once no run holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: Counter[str] = Counter()

    def __len__(self) -> int:
        return len(self._locks)

    def is_held(self, name: str) -> bool:
        lock = self._locks.get(name)
        return lock is not None and lock.locked()

    def _checkout(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        self._users[name] += 1
        return lock

    def _checkin(self, name: str) -> None:
        self._users[name] -= 1
        if self._users[name] <= 0:
            del self._users[name]
            del self._locks[name]

    async def acquire(self, names: Iterable[str]) -> list[str]:
        """Acquire the leases for ``names``; returns the names actually held."""
        held: list[str] = []
        try:
            for name in sorted(set(names)):
                lock = self._checkout(name)
                if lock.locked():
                    logger.debug("Waiting for cluster lease", cluster=name)
                try:
                    await lock.acquire()
                except BaseException:
                    self._checkin(name)
                    raise
                held.append(name)
        except BaseException:
            self.release(held)
            raise
        return held

    def release(self, names: Iterable[str]) -> None:
        for name in names:
            lock = self._locks.get(name)
            if lock is not None and lock.locked():
                lock.release()
                self._checkin(name)

    @asynccontextmanager
    async def hold(self, names: Iterable[str]) -> AsyncGenerator[list[str], None]:
        """Hold the leases for ``names`` for the duration of the block."""
        held = await self.acquire(names)
        try:
            yield held
        finally:
            self.release(held)
