"""Tests for conduit.core.record module."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from conduit.core.errors import RecordConversionError
from conduit.core.record import Record


class TestFieldAccess:
    """Mapping-style access."""

    def test_set_and_get(self):
        record = Record()
        record["id"] = 1
        assert record["id"] == 1
        assert "id" in record
        assert len(record) == 1

    def test_init_from_mapping_and_kwargs(self):
        record = Record({"a": 1}, b=2)
        assert record.field_names == ["a", "b"]

    def test_missing_field_raises_key_error(self):
        with pytest.raises(KeyError):
            Record()["missing"]

    def test_get_default(self):
        assert Record().get("x", "dflt") == "dflt"

    def test_delete(self):
        record = Record(a=1)
        del record["a"]
        assert "a" not in record

    def test_equality(self):
        assert Record(a=1) == Record(a=1)
        assert Record(a=1) != Record(a=2)


class TestTypedAccess:
    """get_as conversions."""

    @pytest.mark.parametrize(
        "value,target,expected",
        [
            ("42", int, 42),
            (3.0, int, 3),
            (Decimal("7"), int, 7),
            (5, float, 5.0),
            ("2.5", float, 2.5),
            ("yes", bool, True),
            (0, bool, False),
            (12, str, "12"),
            ("1.10", Decimal, Decimal("1.10")),
            (0.5, Decimal, Decimal("0.5")),
            ("2024-03-01T10:00:00", datetime, datetime(2024, 3, 1, 10, 0)),
            ("2024-03-01", date, date(2024, 3, 1)),
            (datetime(2024, 3, 1, 10, 0), date, date(2024, 3, 1)),
        ],
    )
    def test_conversions(self, value, target, expected):
        assert Record(f=value).get_as("f", target) == expected

    def test_same_type_returned_as_is(self):
        marker = datetime(2024, 1, 1)
        assert Record(f=marker).get_as("f", datetime) is marker

    def test_none_stays_none(self):
        assert Record(f=None).get_as("f", int) is None

    @pytest.mark.parametrize(
        "value,target",
        [
            ("abc", int),
            (2.5, int),
            (True, int),
            ("maybe", bool),
            (7, datetime),
            ([1], float),
            (Decimal("Infinity"), int),
            (Decimal("NaN"), int),
            (float("inf"), int),
        ],
    )
    def test_conversion_failures(self, value, target):
        with pytest.raises(RecordConversionError) as exc_info:
            Record(f=value).get_as("f", target)
        assert exc_info.value.field == "f"
        assert exc_info.value.target is target

    def test_unsupported_target(self):
        with pytest.raises(RecordConversionError):
            Record(f="x").get_as("f", list)

    def test_missing_field_with_default(self):
        assert Record().get_as("f", int, 0) == 0

    def test_missing_field_without_default(self):
        with pytest.raises(KeyError):
            Record().get_as("f", int)


class TestCopying:
    """copy_to / clone / reset."""

    def test_copy_to_is_deep_and_replaces_target(self):
        source = Record(items=[1, 2])
        target = Record(stale=True)
        source.copy_to(target)
        assert target.field_names == ["items"]
        target["items"].append(3)
        assert source["items"] == [1, 2]

    def test_clone(self):
        original = Record(nested={"k": 1})
        copy = original.clone()
        assert copy == original
        assert copy is not original
        copy["nested"]["k"] = 2
        assert original["nested"]["k"] == 1

    def test_reset(self):
        record = Record(a=1, b=2)
        record.reset()
        assert len(record) == 0

    def test_to_dict_and_from_mapping(self):
        record = Record.from_mapping({"x": 1})
        assert record.to_dict() == {"x": 1}
