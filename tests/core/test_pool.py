"""Tests for conduit.core.pool module."""

import threading

import pytest

from conduit.core.errors import (
    PoolContractError,
    PoolExhaustedError,
    PoolNotRegisteredError,
    ValidationError,
)
from conduit.core.pool import ObjectPool, TypedPool
from conduit.core.record import Record


class Row:
    def __init__(self) -> None:
        self.value = None
        self.resets = 0

    def reset(self) -> None:
        self.value = None
        self.resets += 1


# ── Registration ─────────────────────────────────────────────


class TestRegistration:
    def test_register_preallocates(self):
        pool = ObjectPool()
        typed = pool.register(Row, initial_size=3, auto_grow=False)
        assert typed.capacity == 3
        assert typed.free == 3
        assert typed.referenced == 0
        assert pool.is_registered(Row)

    def test_negative_size_rejected(self):
        with pytest.raises(ValidationError):
            ObjectPool().register(Row, initial_size=-1)

    def test_duplicate_registration_rejected(self):
        pool = ObjectPool()
        pool.register(Row, 1)
        with pytest.raises(ValidationError):
            pool.register(Row, 1)

    def test_borrow_unregistered_type(self):
        with pytest.raises(PoolNotRegisteredError):
            ObjectPool().borrow(Row)


# ── Borrow / return ──────────────────────────────────────────


class TestBorrowReturn:
    def test_borrow_moves_free_to_referenced(self):
        pool = ObjectPool()
        pool.register(Row, 2, auto_grow=False)
        row = pool.borrow(Row)
        typed = pool.pool(Row)
        assert isinstance(row, Row)
        assert typed.free == 1
        assert typed.referenced == 1
        assert typed.owns(row)

    def test_return_resets_and_frees(self):
        pool = ObjectPool()
        pool.register(Row, 1, auto_grow=False)
        row = pool.borrow(Row)
        row.value = "dirty"
        pool.return_(row)
        assert row.value is None
        assert row.resets == 1
        assert pool.pool(Row).free == 1
        assert pool.pool(Row).referenced == 0

    def test_exhausted_without_growth(self):
        pool = ObjectPool()
        pool.register(Row, 2, auto_grow=False)
        pool.borrow(Row)
        pool.borrow(Row)
        with pytest.raises(PoolExhaustedError) as exc_info:
            pool.borrow(Row)
        assert exc_info.value.capacity == 2

    def test_grows_with_auto_grow(self):
        pool = ObjectPool()
        pool.register(Row, 2, auto_grow=True)
        rows = [pool.borrow(Row) for _ in range(3)]
        assert len({id(r) for r in rows}) == 3
        assert pool.pool(Row).capacity >= 3

    def test_foreign_instance_rejected(self):
        pool = ObjectPool()
        pool.register(Row, 1)
        with pytest.raises(PoolContractError):
            pool.return_(Row())

    def test_double_return_rejected(self):
        pool = ObjectPool()
        pool.register(Row, 1)
        row = pool.borrow(Row)
        pool.return_(row)
        with pytest.raises(PoolContractError):
            pool.return_(row)

    def test_return_of_unpooled_type_rejected(self):
        with pytest.raises(PoolContractError):
            ObjectPool().return_(Row())

    def test_record_pool_clears_fields_on_return(self):
        pool = ObjectPool()
        pool.register(Record, 1)
        record = pool.borrow(Record)
        record["id"] = 7
        pool.return_(record)
        assert len(pool.borrow(Record)) == 0


# ── Concurrency & lifetime ───────────────────────────────────


class TestConcurrency:
    def test_concurrent_borrow_return_keeps_counts(self):
        pool = ObjectPool()
        pool.register(Row, 10, auto_grow=True)

        def worker():
            for _ in range(200):
                pool.return_(pool.borrow(Row))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        typed = pool.pool(Row)
        assert typed.referenced == 0
        assert typed.free == typed.capacity


class TestDeallocate:
    def test_deallocate_drops_all_pools(self):
        pool = ObjectPool()
        pool.register(Row, 5)
        pool.deallocate()
        assert pool.pools == []
        assert not pool.is_registered(Row)

    def test_typed_pool_deallocate(self):
        typed = TypedPool(Row, 3, auto_grow=False)
        typed.borrow()
        typed.deallocate()
        assert typed.capacity == 0
        assert typed.free == 0
        assert typed.referenced == 0
