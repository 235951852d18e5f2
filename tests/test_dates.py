from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from dates import (
    MONDAY,
    SUNDAY,
    days_in_month,
    end_of_week,
    is_same_day,
    is_same_week,
    parse_instant,
    parse_local_date,
    shift_month,
    start_of_week,
    to_local_date,
    to_utc_instant,
)

SAO_PAULO = ZoneInfo("America/Sao_Paulo")


def test_utc_instant_is_pinned_to_midday() -> None:
    assert to_utc_instant(date(2025, 10, 15), hour=12) == "2025-10-15T12:00:00.000Z"


@pytest.mark.parametrize(
    "zone",
    ["America/Sao_Paulo", "Pacific/Honolulu", "UTC", "Europe/Berlin", "Asia/Tokyo"],
)
def test_utc_instant_reads_back_as_same_calendar_day(zone: str) -> None:
    day = date(2025, 1, 31)
    assert to_local_date(to_utc_instant(day, hour=12), ZoneInfo(zone)) == day


def test_parse_local_date_is_strict() -> None:
    assert parse_local_date("2025-10-15") == date(2025, 10, 15)
    with pytest.raises(ValueError):
        parse_local_date("15/10/2025")
    with pytest.raises(ValueError):
        parse_local_date("2025-02-30")
    with pytest.raises(ValueError):
        parse_local_date("")


def test_parse_instant_handles_z_suffix_and_naive_values() -> None:
    assert parse_instant("2025-10-15T03:00:00.000Z") == datetime(
        2025, 10, 15, 3, 0, tzinfo=timezone.utc
    )
    assert parse_instant(datetime(2025, 10, 15, 3, 0)).tzinfo == timezone.utc


def test_parse_instant_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_instant("not a date")
    with pytest.raises(ValueError):
        parse_instant("")
    with pytest.raises(ValueError):
        parse_instant(None)


def test_bare_date_string_is_local_not_utc_midnight() -> None:
    assert to_local_date("2025-10-15", SAO_PAULO) == date(2025, 10, 15)


def test_same_day_converts_the_instant_to_local_time_first() -> None:
    # 01:00 UTC is still the previous evening in Sao Paulo (UTC-3).
    assert is_same_day("2025-10-15T01:00:00.000Z", date(2025, 10, 14), SAO_PAULO)
    assert not is_same_day("2025-10-15T01:00:00.000Z", date(2025, 10, 15), SAO_PAULO)
    assert is_same_day("2025-10-15T03:00:00.000Z", date(2025, 10, 15), SAO_PAULO)


def test_week_bounds_default_to_sunday() -> None:
    wednesday = date(2025, 10, 15)
    assert start_of_week(wednesday) == date(2025, 10, 12)
    assert end_of_week(wednesday) == date(2025, 10, 18)
    assert start_of_week(wednesday, MONDAY) == date(2025, 10, 13)
    assert end_of_week(wednesday, MONDAY) == date(2025, 10, 19)
    assert start_of_week(date(2025, 10, 12), SUNDAY) == date(2025, 10, 12)


def test_is_same_week() -> None:
    assert is_same_week(date(2025, 10, 12), date(2025, 10, 18))
    assert not is_same_week(date(2025, 10, 18), date(2025, 10, 19))
    assert is_same_week(date(2025, 10, 18), date(2025, 10, 19), MONDAY)


def test_month_helpers_carry_years() -> None:
    assert shift_month(2024, 1, -1) == (2023, 12)
    assert shift_month(2023, 12, 1) == (2024, 1)
    assert shift_month(2024, 3, -11) == (2023, 4)
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2023, 2) == 28
