"""Tests for conduit.streaming.adapter module."""

import threading
import time

import pytest

from conduit.core.errors import StreamClosedError, ValidationError
from conduit.streaming.adapter import Adapter


class TestConstruction:
    def test_capacity_from_settings(self, monkeypatch):
        monkeypatch.setenv("CONDUIT_ADAPTER_CAPACITY", "8")
        assert Adapter().capacity == 8

    def test_invalid_capacity(self):
        with pytest.raises(ValidationError):
            Adapter(0)


class TestFifo:
    def test_order_and_end(self):
        adapter = Adapter(10)
        for i in range(5):
            adapter.put(i)
        adapter.end()
        assert list(adapter) == [0, 1, 2, 3, 4]

    def test_end_delivered_once(self):
        adapter = Adapter(2)
        assert adapter.end() is True
        assert adapter.end() is False
        assert adapter.ended

    def test_put_after_end_raises(self):
        adapter = Adapter(2, name="a->b")
        adapter.end()
        with pytest.raises(StreamClosedError):
            adapter.put(1)


class TestBlocking:
    def test_put_blocks_when_full(self):
        adapter = Adapter(1)
        adapter.put("first")
        put_done = threading.Event()

        def producer():
            adapter.put("second")
            put_done.set()

        t = threading.Thread(target=producer)
        t.start()
        assert not put_done.wait(0.05)
        it = iter(adapter)
        assert next(it) == "first"
        assert put_done.wait(1)
        t.join()
        assert len(adapter) == 1

    def test_iteration_blocks_until_data(self):
        adapter = Adapter(4)
        received = []

        def consumer():
            received.extend(adapter)

        t = threading.Thread(target=consumer)
        t.start()
        time.sleep(0.02)
        adapter.put(1)
        adapter.put(2)
        adapter.end()
        t.join(1)
        assert received == [1, 2]

    def test_producer_consumer_many_records(self):
        adapter = Adapter(3)
        received = []
        t = threading.Thread(target=lambda: received.extend(adapter))
        t.start()
        for i in range(500):
            adapter.put(i)
        adapter.end()
        t.join(2)
        assert received == list(range(500))


class TestAbandon:
    def test_abandon_unblocks_producer(self):
        adapter = Adapter(1)
        adapter.put(1)
        results = []
        t = threading.Thread(target=lambda: results.append(adapter.put(2)))
        t.start()
        time.sleep(0.02)
        adapter.abandon()
        t.join(1)
        assert results == [False]
        assert adapter.abandoned
        assert len(adapter) == 0

    def test_put_after_abandon_is_dropped(self):
        adapter = Adapter(5)
        adapter.abandon()
        assert adapter.put("x") is False
        assert len(adapter) == 0
