from __future__ import annotations

from datetime import datetime, timezone

import pytest

from estate_crm.timezone import (
    combine_local,
    format_local,
    local_date_string,
    local_time_string,
    parse_timestamp,
    to_local,
    to_utc,
)


def test_naive_timestamps_are_utc() -> None:
    assert parse_timestamp("2024-03-01T10:00:00") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)


def test_local_conversion_uses_office_timezone() -> None:
    local = to_local("2024-03-01T20:30:00Z")

    assert (local.hour, local.minute) == (0, 30)
    assert local_date_string("2024-03-01T20:30:00Z") == "2024-03-02"
    assert local_time_string("2024-03-01T20:30:00Z") == "00:30"
    assert format_local("2024-03-01T20:30:00Z") == "02 Mar 2024, 00:30"


def test_local_wall_time_to_utc() -> None:
    assert to_utc("2024-03-02", "09:15") == datetime(2024, 3, 2, 5, 15, tzinfo=timezone.utc)
    assert combine_local("2024-03-02", "00:30") == datetime(2024, 3, 1, 20, 30, tzinfo=timezone.utc)


def test_other_timezone() -> None:
    assert local_time_string("2024-07-01T12:00:00Z", tz="Europe/London") == "13:00"


@pytest.mark.parametrize("value", ["25:00", "noon"])
def test_bad_time_of_day(value) -> None:
    with pytest.raises(ValueError):
        to_utc("2024-03-02", value)
