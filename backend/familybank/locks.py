"""Per-child serialization of balance and schedule mutations.

Request handlers and the background tickers run as coroutines on one event
loop.  Everything that touches a child's balance or schedules does so while
holding that child's lock, so a read-check-write sequence can never
interleave with another writer for the same child.  Locks are kept per
event loop because :class:`asyncio.Lock` binds to the loop it first waits on.
"""

import asyncio
import weakref

_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[int, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def child_lock(child_id: int) -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    per_loop = _locks.get(loop)
    if per_loop is None:
        per_loop = _locks[loop] = {}
    lock = per_loop.get(child_id)
    if lock is None:
        lock = per_loop[child_id] = asyncio.Lock()
    return lock


def forget_child(child_id: int) -> None:
    """Drop the lock of a deleted child on the current loop."""
    per_loop = _locks.get(asyncio.get_running_loop())
    if per_loop is not None:
        lock = per_loop.get(child_id)
        if lock is not None and not lock.locked():
            del per_loop[child_id]
