"""Adapter — bounded FIFO channel between two nodes.

``put`` blocks while the buffer is full (backpressure); iteration blocks
while it is empty and ends once the producer has signalled end-of-stream
and the buffer has drained.  The end marker is delivered exactly once.

A consumer that stops reading (it finished early or faulted) *abandons*
its input: buffered records are discarded and later ``put`` calls return
``False`` immediately, so the producer is never left blocked on a full
buffer nobody drains.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterator
from typing import Generic, TypeVar

from conduit.core.errors import StreamClosedError, ValidationError
from conduit.core.settings import get_settings

T = TypeVar("T")


class Adapter(Generic[T]):
    """Bounded, thread-safe record channel with a one-shot end-of-stream."""

    def __init__(self, capacity: int | None = None, name: str = "adapter") -> None:
        if capacity is None:
            capacity = get_settings().adapter_capacity
        if capacity < 1:
            raise ValidationError(f"Adapter capacity must be >= 1, got {capacity}", field="capacity")
        self.name = name
        self._capacity = capacity
        self._buffer: deque[T] = deque()
        self._lock = threading.Lock()
        self._not_full = threading.Condition(self._lock)
        self._not_empty = threading.Condition(self._lock)
        self._ended = False
        self._abandoned = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def ended(self) -> bool:
        with self._lock:
            return self._ended

    @property
    def abandoned(self) -> bool:
        with self._lock:
            return self._abandoned

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    def put(self, record: T) -> bool:
        """Enqueue *record*, blocking while the buffer is full.

        Returns False when the consumer has abandoned the adapter.

        Raises:
            StreamClosedError: end-of-stream was already signalled.
        """
        with self._not_full:
            if self._ended:
                raise StreamClosedError(self.name)
            while len(self._buffer) >= self._capacity and not self._abandoned:
                self._not_full.wait()
            if self._abandoned:
                return False
            self._buffer.append(record)
            self._not_empty.notify()
            return True

    def end(self) -> bool:
        """Signal end-of-stream; only the first call has an effect."""
        with self._lock:
            if self._ended:
                return False
            self._ended = True
            self._not_empty.notify_all()
            return True

    def abandon(self) -> None:
        """Drop buffered records and unblock the producer for good."""
        with self._lock:
            self._abandoned = True
            self._buffer.clear()
            self._not_full.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            with self._not_empty:
                while not self._buffer and not self._ended:
                    self._not_empty.wait()
                if not self._buffer:
                    return
                record = self._buffer.popleft()
                self._not_full.notify()
            yield record

    def __repr__(self) -> str:
        return f"Adapter({self.name!r}, capacity={self._capacity}, buffered={len(self)}, ended={self.ended})"


__all__ = ["Adapter"]
