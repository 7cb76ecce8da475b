"""Tests for conduit.core.result module."""

import pytest

from conduit.core.result import Err, Ok, try_result


class TestOk:
    def test_create_ok(self):
        result = Ok(42)
        assert result.value == 42
        assert result.is_ok() is True
        assert result.is_err() is False

    def test_unwrap_and_unwrap_or(self):
        assert Ok("hello").unwrap() == "hello"
        assert Ok(10).unwrap_or(99) == 10


class TestErr:
    def test_unwrap_reraises(self):
        with pytest.raises(ValueError, match="bad"):
            Err(ValueError("bad")).unwrap()

    def test_unwrap_or_returns_default(self):
        assert Err(ValueError()).unwrap_or(5) == 5


class TestTryResult:
    def test_success(self):
        assert try_result(lambda: 1 + 1) == Ok(2)

    def test_failure(self):
        result = try_result(lambda: 1 / 0)
        assert result.is_err()
        assert isinstance(result.error, ZeroDivisionError)

    def test_pattern_matching(self):
        match try_result(lambda: int("x")):
            case Ok(value):
                outcome = value
            case Err(error):
                outcome = type(error).__name__
        assert outcome == "ValueError"
