"""
Normalization Tests

Sentinel handling (zero GUID, 0001-01-01, entry number 0), percentage
normalization and timestamp parsing shared by every transform.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from mirror.normalize import (
    ZERO_GUID,
    normalize_bool,
    normalize_date,
    normalize_datetime,
    normalize_decimal,
    normalize_entry_reference,
    normalize_int,
    normalize_percent,
    normalize_reference,
    normalize_text,
)


class TestReferences:

    def test_zero_guid_becomes_none(self):
        assert normalize_reference(ZERO_GUID) is None
        assert normalize_reference("{00000000-0000-0000-0000-000000000000}") is None

    def test_real_guid_is_kept(self):
        guid = "5d115c9c-44e3-ea11-bb43-000d3a2feca1"
        assert normalize_reference(guid) == guid
        assert normalize_reference("{" + guid + "}") == guid

    def test_empty_reference(self):
        assert normalize_reference(None) is None
        assert normalize_reference("") is None
        assert normalize_reference("   ") is None

    def test_entry_reference_zero_means_unlinked(self):
        assert normalize_entry_reference(0) is None
        assert normalize_entry_reference("0") is None
        assert normalize_entry_reference(None) is None
        assert normalize_entry_reference(1045) == 1045


class TestScalars:

    def test_text(self):
        assert normalize_text("Adatum") == "Adatum"
        assert normalize_text("") is None
        assert normalize_text("  ") is None
        assert normalize_text(None) is None
        assert normalize_text(42) == "42"

    @pytest.mark.parametrize("value,expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("No", False),
        (1, True),
        (0, False),
        (None, None),
        ("", None),
        ("maybe", None),
    ])
    def test_bool(self, value, expected):
        assert normalize_bool(value) is expected

    def test_int(self):
        assert normalize_int("1,200") == 1200
        assert normalize_int(7.0) == 7
        assert normalize_int("abc") is None
        assert normalize_int(True) is None

    def test_decimal_keeps_precision(self):
        assert normalize_decimal(1234.56) == Decimal("1234.56")
        assert normalize_decimal("0.1") == Decimal("0.1")
        assert normalize_decimal(0) == Decimal("0")

    def test_missing_decimal_is_none_not_zero(self):
        assert normalize_decimal(None) is None
        assert normalize_decimal("") is None

    def test_non_numeric_decimal_warns(self):
        warnings = []
        assert normalize_decimal("n/a", warnings, "unit_price") is None
        assert len(warnings) == 1
        assert "unit_price" in warnings[0]


class TestPercent:
    """Percentages land in [0, 100] with two decimals."""

    @pytest.mark.parametrize("raw,expected", [
        (0.155, Decimal("15.50")),
        (0.5, Decimal("50.00")),
        (0, Decimal("0.00")),
        (0.12345, Decimal("12.35")),
        (1, Decimal("1.00")),
        (12.345, Decimal("12.35")),
        (100, Decimal("100.00")),
        ("25", Decimal("25.00")),
    ])
    def test_in_range_values(self, raw, expected):
        warnings = []
        assert normalize_percent(raw, warnings) == expected
        assert warnings == []

    def test_above_hundred_clamps_with_warning(self):
        warnings = []
        assert normalize_percent(150, warnings) == Decimal("100")
        assert str(normalize_percent(150)) == "100.00"
        assert len(warnings) == 1

    def test_negative_clamps_with_warning(self):
        warnings = []
        assert normalize_percent(-5, warnings) == Decimal("0")
        assert str(normalize_percent(-5)) == "0.00"
        assert len(warnings) == 1

    def test_non_numeric_becomes_zero_with_warning(self):
        warnings = []
        assert normalize_percent("abc", warnings) == Decimal("0")
        assert str(normalize_percent("abc")) == "0.00"
        assert len(warnings) == 1

    def test_missing_stays_none(self):
        warnings = []
        assert normalize_percent(None, warnings) is None
        assert warnings == []

    @pytest.mark.parametrize("raw", [0, 0.155, 0.999, 1, 42.424, 100, 150, -3, "x"])
    def test_result_always_in_range(self, raw):
        result = normalize_percent(raw)
        assert Decimal("0") <= result <= Decimal("100")
        assert result == result.quantize(Decimal("0.01"))
        assert result.as_tuple().exponent == -2


class TestDates:

    def test_sentinel_date_becomes_none(self):
        assert normalize_date("0001-01-01") is None
        assert normalize_date("0001-01-01T00:00:00Z") is None

    def test_plain_date(self):
        assert normalize_date("2024-03-31") == date(2024, 3, 31)

    def test_unparseable_date_warns(self):
        warnings = []
        assert normalize_date("31/03/2024", warnings, "posting_date") is None
        assert "posting_date" in warnings[0]

    def test_datetime_with_short_fraction(self):
        result = normalize_datetime("2024-01-15T10:30:00.48Z")
        assert result == datetime(2024, 1, 15, 10, 30, 0, 480000, tzinfo=timezone.utc)

    def test_datetime_with_offset_is_converted_to_utc(self):
        result = normalize_datetime("2024-01-15T12:30:00+02:00")
        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_sentinel_datetime_becomes_none(self):
        assert normalize_datetime("0001-01-01T00:00:00Z") is None

    def test_missing_datetime(self):
        assert normalize_datetime(None) is None
        assert normalize_datetime("") is None
