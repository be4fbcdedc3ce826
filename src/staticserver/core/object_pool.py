"""
=============================================================================
OBJECT POOL
=============================================================================

A thread-safe free list of reusable objects.

Some objects are worth keeping around between requests because building
them is not free (a gzip encoder allocates its window and hash tables).
Every worker thread shares one pool:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Worker-0 ──acquire()──►  ┌─────────────┐                          │
    │                            │ idle: [a,b] │ ◄── threading.Lock        │
    │   Worker-1 ──release(x)──► └─────────────┘                          │
    │                                   │                                  │
    │                         empty? ───┴──► factory()                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Contract for users of the pool:

    1. acquire() exactly once per use
    2. reset the object before using it (pooled objects carry state from
       their previous user)
    3. release() in a ``finally`` so a failure never leaks the object

An object is only ever held by one thread between acquire() and release().
Released objects beyond ``max_idle`` are dropped and left to the GC.

=============================================================================
"""

import threading
from typing import Callable, Generic, List, TypeVar


T = TypeVar("T")


class ObjectPool(Generic[T]):
    """
    Concurrency-safe pool of reusable objects.

        pool = ObjectPool(GzipWriter, max_idle=32)
        writer = pool.acquire()
        try:
            writer.reset(sink)
            ...
        finally:
            pool.release(writer)
    """

    def __init__(self, factory: Callable[[], T], max_idle: int = 32):
        if max_idle < 0:
            raise ValueError("max_idle must be >= 0")

        self._factory = factory
        self._max_idle = max_idle
        self._idle: List[T] = []
        self._lock = threading.Lock()

        self.created = 0

    def acquire(self) -> T:
        """Return an idle object, or a fresh one from the factory."""
        with self._lock:
            if self._idle:
                return self._idle.pop()
            self.created += 1

        # Built outside the lock; the factory may be slow
        return self._factory()

    def release(self, obj: T) -> None:
        """Hand an object back for reuse."""
        with self._lock:
            if len(self._idle) < self._max_idle:
                self._idle.append(obj)

    @property
    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    def clear(self) -> None:
        """Drop every idle object."""
        with self._lock:
            self._idle.clear()
