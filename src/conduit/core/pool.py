"""Object Pool — typed free/in-use record pools.

WHY
───
Streaming processes handle many records.  Allocating a fresh object for
every row produces garbage proportional to the dataset; borrowing from a
pool bounds peak memory to ``capacity × record size`` instead.

ARCHITECTURE
────────────
::

    ObjectPool (one per pipeline execution, lives on the context)
      ├── .register(type, initial_size, auto_grow)  ─ before execution
      ├── .borrow(type)         ─ Free → Referenced (grow or PoolExhausted)
      ├── .return_(instance)    ─ reset() + Referenced → Free
      ├── .deallocate()         ─ drop everything (end of execution)
      └── .pools                ─ TypedPool stats for debug logging

    TypedPool
      free: list[T]             referenced: dict[id, T]

Pool discipline is manual.  A node that borrows a record is responsible
for returning it (or handing that responsibility downstream) once the
record is no longer needed.

BEST PRACTICES
──────────────
- Register pools before the pipeline starts; registration during a run is
  allowed but defeats pre-allocation.
- Never keep a reference to a record after returning it.

Example::

    pool = ObjectPool()
    pool.register(Record, initial_size=100, auto_grow=False)
    row = pool.borrow(Record)
    row["id"] = 1
    pool.return_(row)
"""

from __future__ import annotations

import threading
from typing import Any, Generic, TypeVar

from conduit.core.errors import (
    PoolContractError,
    PoolExhaustedError,
    PoolNotRegisteredError,
    ValidationError,
)

T = TypeVar("T")


class TypedPool(Generic[T]):
    """Free/referenced instance pool for a single type."""

    def __init__(self, record_type: type[T], initial_size: int, auto_grow: bool) -> None:
        self.record_type = record_type
        self.auto_grow = auto_grow
        self._lock = threading.Lock()
        self._free: list[T] = [record_type() for _ in range(initial_size)]
        self._referenced: dict[int, T] = {}
        self._capacity = initial_size

    @property
    def capacity(self) -> int:
        with self._lock:
            return self._capacity

    @property
    def free(self) -> int:
        with self._lock:
            return len(self._free)

    @property
    def referenced(self) -> int:
        with self._lock:
            return len(self._referenced)

    def borrow(self) -> T:
        with self._lock:
            if self._free:
                instance = self._free.pop()
            elif self.auto_grow:
                instance = self.record_type()
                self._capacity += 1
            else:
                raise PoolExhaustedError(self.record_type, self._capacity)
            self._referenced[id(instance)] = instance
            return instance

    def return_(self, instance: T) -> None:
        with self._lock:
            if self._referenced.pop(id(instance), None) is None:
                raise PoolContractError(
                    f"Instance of '{self.record_type.__name__}' was not issued by this pool "
                    "or has already been returned"
                )
            reset = getattr(instance, "reset", None)
            if reset is not None:
                reset()
            self._free.append(instance)

    def owns(self, instance: Any) -> bool:
        with self._lock:
            return self._referenced.get(id(instance)) is instance

    def deallocate(self) -> None:
        with self._lock:
            self._free.clear()
            self._referenced.clear()
            self._capacity = 0

    def __repr__(self) -> str:
        return (
            f"TypedPool<{self.record_type.__name__}>("
            f"capacity={self.capacity}, free={self.free}, referenced={self.referenced})"
        )


class ObjectPool:
    """Registry of typed pools shared by one pipeline execution."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pools: dict[type, TypedPool[Any]] = {}

    def register(self, record_type: type[T], initial_size: int = 5000, auto_grow: bool = True) -> TypedPool[T]:
        """Create and pre-allocate a pool for *record_type*.

        Raises:
            ValidationError: Negative size or a pool already registered for the type.
        """
        if initial_size < 0:
            raise ValidationError(
                f"Pool initial_size must be >= 0, got {initial_size}", field="initial_size"
            )
        with self._lock:
            if record_type in self._pools:
                raise ValidationError(
                    f"Object pool already registered for type '{record_type.__name__}'",
                    field="record_type",
                )
            pool = TypedPool(record_type, initial_size, auto_grow)
            self._pools[record_type] = pool
            return pool

    def is_registered(self, record_type: type) -> bool:
        with self._lock:
            return record_type in self._pools

    def pool(self, record_type: type[T]) -> TypedPool[T]:
        with self._lock:
            try:
                return self._pools[record_type]
            except KeyError:
                raise PoolNotRegisteredError(record_type) from None

    @property
    def pools(self) -> list[TypedPool[Any]]:
        with self._lock:
            return list(self._pools.values())

    def borrow(self, record_type: type[T]) -> T:
        return self.pool(record_type).borrow()

    def return_(self, instance: Any) -> None:
        """Return *instance* to the pool of its exact type."""
        with self._lock:
            pool = self._pools.get(type(instance))
        if pool is None:
            raise PoolContractError(
                f"No object pool owns instances of type '{type(instance).__name__}'"
            )
        pool.return_(instance)

    def deallocate(self) -> None:
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            pool.deallocate()


__all__ = ["ObjectPool", "TypedPool"]
