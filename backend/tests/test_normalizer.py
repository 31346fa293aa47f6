from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.services.normalizer import (
    normalize_address,
    normalize_row,
    parse_bool,
    parse_float,
    parse_int,
)


@pytest.mark.parametrize(
    "variant",
    ["123 Main St", "  123 Main St", "123 Main St  ", "123 MAIN ST", "\t123 main st \n"],
)
def test_address_key_ignores_case_and_surrounding_whitespace(variant: str) -> None:
    assert normalize_address(variant) == normalize_address("123 main st")


def test_record_keeps_original_case_address() -> None:
    key, record = normalize_row({"PROPERTYADDRESS": "  12 Oak Ave  "})

    assert key == "12 oak ave"
    assert record.property_address == "12 Oak Ave"
    assert record.id is None


def test_full_row_is_typed() -> None:
    stamp = datetime(2024, 1, 2, tzinfo=timezone.utc)
    key, record = normalize_row(
        {
            "PROPERTYADDRESS": "500 Congress Ave",
            "CITY": "Austin",
            "STATE": "TX",
            "ZIP": "78701",
            "COUNTY": "Travis",
            "YEARBUILT": "1987",
            "LATITUDE": "30.2672",
            "LONGITUDE": "-97.7431",
            "OCCUPANCYRATE": "88.5",
            "PARKINGSPACES": "120",
            "HASEVCHARGING": "TRUE",
            "REDEVELOPMENTOPPORTUNITIES": "Surface lot could become mixed use",
        },
        updated_at=stamp,
    )

    assert key == "500 congress ave"
    assert record.year_built == 1987
    assert record.latitude == pytest.approx(30.2672)
    assert record.longitude == pytest.approx(-97.7431)
    assert record.occupancy_rate == pytest.approx(88.5)
    assert record.parking_spaces == 120
    assert record.has_ev_charging is True
    assert record.redevelopment_opportunities == "Surface lot could become mixed use"
    assert record.updated_at == stamp


def test_malformed_numerics_become_absent_not_zero() -> None:
    _, record = normalize_row(
        {
            "PROPERTYADDRESS": "1 Elm St",
            "YEARBUILT": "circa 1920",
            "LATITUDE": "north",
            "LONGITUDE": "",
            "OCCUPANCYRATE": "n/a",
            "PARKINGSPACES": "lots",
        }
    )

    assert record.year_built is None
    assert record.latitude is None
    assert record.longitude is None
    assert record.occupancy_rate is None
    assert record.parking_spaces is None


def test_zero_is_a_real_value() -> None:
    _, record = normalize_row({"PROPERTYADDRESS": "1 Elm St", "PARKINGSPACES": "0", "LATITUDE": "0"})

    assert record.parking_spaces == 0
    assert record.latitude == 0.0


@pytest.mark.parametrize(
    "raw, expected",
    [("true", True), ("True", True), (" TRUE ", True), ("false", False), ("yes", False),
     ("1", False), ("", None), ("   ", None), (None, None)],
)
def test_ev_charging_is_tri_state(raw, expected) -> None:
    assert parse_bool(raw) is expected


def test_missing_ev_charging_is_unknown_not_false() -> None:
    _, record = normalize_row({"PROPERTYADDRESS": "1 Elm St"})

    assert record.has_ev_charging is None


def test_empty_text_fields_are_absent() -> None:
    _, record = normalize_row(
        {"PROPERTYADDRESS": "1 Elm St", "CITY": "", "STATE": "  ", "REDEVELOPMENTOPPORTUNITIES": ""}
    )

    assert record.city is None
    assert record.state is None
    assert record.county is None
    assert record.redevelopment_opportunities is None


def test_integer_fields_accept_whole_float_strings() -> None:
    assert parse_int("1999.0") == 1999
    assert parse_int("1999.5") is None


@pytest.mark.parametrize("raw", ["99999999999999999999", "2147483648", "-2147483649", "1e30"])
def test_integers_outside_column_range_are_absent(raw) -> None:
    assert parse_int(raw) is None


def test_integer_range_bounds_are_kept() -> None:
    assert parse_int("2147483647") == 2147483647
    assert parse_int("-2147483648") == -2147483648


def test_write_values_carry_the_address_key() -> None:
    _, record = normalize_row({"PROPERTYADDRESS": "  123 Main St "})

    values = record.to_values()

    assert values["property_address"] == "123 Main St"
    assert values["address_key"] == "123 main st"
    assert "id" not in values


def test_non_finite_floats_are_absent() -> None:
    assert parse_float("nan") is None
    assert parse_float("inf") is None
    assert parse_float("-12.5") == -12.5


@pytest.mark.parametrize("row", [{}, {"PROPERTYADDRESS": None}, {"PROPERTYADDRESS": 42, "YEARBUILT": 3.5}, None, "junk"])
def test_normalize_never_raises(row) -> None:
    key, record = normalize_row(row)

    assert isinstance(key, str)
    assert record.id is None
