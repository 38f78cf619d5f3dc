"""In-process per-account lock registry."""

from __future__ import annotations

import asyncio
from weakref import WeakValueDictionary


class AccountLocks:
    """One asyncio.Lock per account address.

    Locks are held weakly, so an address with no operation in flight costs
    nothing. Cross-process exclusion comes from SELECT ... FOR UPDATE on the
    account row.
    """

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def get(self, address: str) -> asyncio.Lock:
        lock = self._locks.get(address)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[address] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
