"""Tests for typed value encoding and semantic equality in edukb/ingestion/codec.py."""

from __future__ import annotations

import pytest

from edukb.ingestion.codec import (
    EARTH_GLOBE,
    GREGORIAN_CALENDAR,
    Precision,
    decode,
    encode,
    values_equal,
)
from edukb.utils import MalformedValueError
from edukb.wikibase.models import Datatype


# ---------------------------------------------------------------------------
# encode
# ---------------------------------------------------------------------------
class TestEncodeString:
    def test_trims_text(self) -> None:
        assert encode("  Matemática  ", Datatype.string) == "Matemática"


class TestEncodeQuantity:
    def test_positive_gets_explicit_sign(self) -> None:
        assert encode("15", Datatype.quantity) == {"amount": "+15", "unit": "1"}

    def test_decimal_comma_is_normalized(self) -> None:
        assert encode("-2,5", Datatype.quantity)["amount"] == "-2.5"

    def test_exponent_is_expanded(self) -> None:
        assert encode("1E+3", Datatype.quantity)["amount"] == "+1000"

    @pytest.mark.parametrize("raw", ["abc", "", "1,2,3", "NaN"])
    def test_non_numeric_raises(self, raw: str) -> None:
        with pytest.raises(MalformedValueError):
            encode(raw, Datatype.quantity)


class TestEncodeTime:
    def test_year_month(self) -> None:
        value = encode("202303", Datatype.time)
        assert value["time"] == "+2023-03-01T00:00:00Z"
        assert value["precision"] == 10
        assert value["timezone"] == 0
        assert value["calendarmodel"] == GREGORIAN_CALENDAR

    def test_longer_dates_keep_year_and_month(self) -> None:
        assert encode("19800315", Datatype.time)["time"] == "+1980-03-01T00:00:00Z"

    def test_year_precision_needs_only_the_year(self) -> None:
        value = encode("2023", Datatype.time, Precision.YEAR)
        assert value["time"] == "+2023-01-01T00:00:00Z"
        assert value["precision"] == 9

    @pytest.mark.parametrize("raw", ["2023", "20231", "", "2023AB", "202313"])
    def test_month_precision_rejects_bad_text(self, raw: str) -> None:
        with pytest.raises(MalformedValueError):
            encode(raw, Datatype.time)

    def test_year_precision_rejects_short_text(self) -> None:
        with pytest.raises(MalformedValueError):
            encode("23", Datatype.time, Precision.YEAR)


class TestEncodeCoordinate:
    def test_lat_lon_with_decimal_commas(self) -> None:
        value = encode("-33,45;-70,66", Datatype.coordinate)
        assert value["latitude"] == -33.45
        assert value["longitude"] == -70.66
        assert value["precision"] == 0.0001
        assert value["globe"] == EARTH_GLOBE

    @pytest.mark.parametrize("raw", ["-33.45", "1;2;3", "a;b", ""])
    def test_malformed_coordinates_raise(self, raw: str) -> None:
        with pytest.raises(MalformedValueError):
            encode(raw, Datatype.coordinate)


class TestEncodeItem:
    def test_prefixed_and_bare_codes_agree(self) -> None:
        expected = {"entity-type": "item", "numeric-id": 17346, "id": "Q17346"}
        assert encode("Q17346", Datatype.item) == expected
        assert encode("17346", Datatype.item) == expected

    def test_non_numeric_raises(self) -> None:
        with pytest.raises(MalformedValueError):
            encode("QX", Datatype.item)


# ---------------------------------------------------------------------------
# values_equal
# ---------------------------------------------------------------------------
class TestValuesEqual:
    def test_quantity_separators(self) -> None:
        assert values_equal("1.234", "1,234", Datatype.quantity)

    def test_quantity_against_stored_payload(self) -> None:
        stored = {"amount": "+15", "unit": "1"}
        assert values_equal(stored, "15", Datatype.quantity)
        assert values_equal(stored, "15,0", Datatype.quantity)
        assert not values_equal(stored, "16", Datatype.quantity)

    def test_time_compares_year_month_prefix(self) -> None:
        assert values_equal("+2023-03-01T00:00:00Z", "202303", Datatype.time)
        assert values_equal("+2023-03-01T00:00:00Z", "20230315", Datatype.time)
        assert not values_equal("+2023-03-01T00:00:00Z", "202304", Datatype.time)

    def test_time_at_year_precision(self) -> None:
        stored = encode("2023", Datatype.time, Precision.YEAR)
        assert values_equal(stored, "2023", Datatype.time, Precision.YEAR)
        assert not values_equal(stored, "2024", Datatype.time, Precision.YEAR)

    def test_item_compares_identifier_only(self) -> None:
        stored = {"entity-type": "item", "numeric-id": 17346, "id": "Q17346"}
        assert values_equal(stored, "17346", Datatype.item)
        assert values_equal({"numeric-id": 17346}, "Q17346", Datatype.item)
        assert not values_equal(stored, "Q17347", Datatype.item)

    def test_coordinate_payload_against_raw_text(self) -> None:
        stored = encode("-33.45;-70.66", Datatype.coordinate)
        assert values_equal(stored, "-33,45;-70,66", Datatype.coordinate)

    def test_string_ignores_surrounding_space(self) -> None:
        assert values_equal("HOMBRE", " HOMBRE ", Datatype.string)

    def test_malformed_candidate_is_unequal(self) -> None:
        assert not values_equal("+2023-03-01T00:00:00Z", "20", Datatype.time)
        assert not values_equal({"amount": "+15", "unit": "1"}, "abc", Datatype.quantity)

    def test_missing_stored_value_is_unequal(self) -> None:
        assert not values_equal(None, "15", Datatype.quantity)


# ---------------------------------------------------------------------------
# decode
# ---------------------------------------------------------------------------
class TestDecode:
    def test_renders_each_datatype(self) -> None:
        assert decode({"amount": "+15", "unit": "1"}, Datatype.quantity) == "+15"
        assert decode(encode("202303", Datatype.time), Datatype.time) == "+2023-03-01T00:00:00Z"
        assert decode({"latitude": 1.5, "longitude": -2.0}, Datatype.coordinate) == "1.5;-2.0"
        assert decode(encode("Q5", Datatype.item), Datatype.item) == "Q5"
        assert decode("texto", Datatype.string) == "texto"

    def test_none_is_empty(self) -> None:
        assert decode(None, Datatype.item) == ""
