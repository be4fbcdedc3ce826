"""
Unit tests for the object pool.
"""

import threading

import pytest

from staticserver.core import ObjectPool


class TestObjectPool:
    """Tests for ObjectPool."""

    def test_acquire_uses_factory_when_empty(self):
        pool = ObjectPool(list)

        first = pool.acquire()
        second = pool.acquire()

        assert first is not second
        assert pool.created == 2

    def test_release_then_reuse(self):
        pool = ObjectPool(object)

        obj = pool.acquire()
        pool.release(obj)

        assert pool.idle_count == 1
        assert pool.acquire() is obj
        assert pool.created == 1

    def test_max_idle_bounds_free_list(self):
        pool = ObjectPool(object, max_idle=2)
        objs = [pool.acquire() for _ in range(5)]

        for obj in objs:
            pool.release(obj)

        assert pool.idle_count == 2

    def test_zero_max_idle_never_keeps(self):
        pool = ObjectPool(object, max_idle=0)
        pool.release(pool.acquire())

        assert pool.idle_count == 0

    def test_negative_max_idle(self):
        with pytest.raises(ValueError):
            ObjectPool(object, max_idle=-1)

    def test_clear(self):
        pool = ObjectPool(object)
        pool.release(pool.acquire())

        pool.clear()

        assert pool.idle_count == 0

    def test_never_hands_out_same_object_twice(self):
        """An object is held by one thread at a time."""
        pool = ObjectPool(object, max_idle=4)
        holders = {}
        lock = threading.Lock()
        errors = []

        def worker():
            for _ in range(200):
                obj = pool.acquire()
                with lock:
                    if id(obj) in holders:
                        errors.append(obj)
                    holders[id(obj)] = obj
                with lock:
                    del holders[id(obj)]
                pool.release(obj)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert pool.idle_count <= 4
