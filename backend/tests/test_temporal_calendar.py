"""ISO 주차 계산 함수의 경계값과 왕복 변환을 검증하는 테스트입니다."""

from datetime import date, datetime, timedelta

import pytest

from planner.exceptions import InvalidDate
from planner.services import temporal_calendar as tc


def test_week_start_midweek_and_sunday_map_to_same_monday():
    assert tc.week_start(date(2025, 1, 15)) == datetime(2025, 1, 13)
    assert tc.week_start(date(2025, 1, 19)) == datetime(2025, 1, 13)
    assert tc.week_start(datetime(2025, 1, 13, 18, 30)) == datetime(2025, 1, 13)


def test_week_end_is_sunday_end_of_day():
    end = tc.week_end("2025-01-15")
    assert end.date() == date(2025, 1, 19)
    assert (end.hour, end.minute, end.second) == (23, 59, 59)
    assert end.microsecond == 999000


def test_week_bounds_hold_for_every_day_of_a_year():
    current = date(2024, 1, 1)
    while current.year == 2024:
        start = tc.week_start(current)
        end = tc.week_end(current)
        assert start.isoweekday() == 1
        assert end.isoweekday() == 7
        assert end > start
        assert start.date() <= current <= end.date()
        week = tc.iso_week(current)
        assert 1 <= week.week <= 53
        current += timedelta(days=1)


def test_iso_week_matches_known_values():
    assert tc.iso_week(date(2025, 1, 15)) == (2025, 3)
    # Year boundaries follow the Thursday of the week
    assert tc.iso_week(date(2024, 12, 30)) == (2025, 1)
    assert tc.iso_week(date(2021, 1, 1)) == (2020, 53)
    assert tc.iso_week(date(2027, 1, 3)) == (2026, 53)


def test_iso_week_agrees_with_isocalendar():
    current = date(2019, 12, 20)
    for _ in range(900):
        expected = current.isocalendar()
        assert tc.iso_week(current) == (expected[0], expected[1])
        current += timedelta(days=1)


def test_weeks_in_year():
    assert tc.weeks_in_year(2020) == 53
    assert tc.weeks_in_year(2024) == 52
    assert tc.weeks_in_year(2026) == 53


def test_date_from_iso_week_round_trip():
    for year in (2015, 2020, 2024, 2025, 2026):
        for week in range(1, tc.weeks_in_year(year) + 1):
            monday = tc.date_from_iso_week(year, week)
            assert monday.isoweekday() == 1
            assert tc.iso_week(monday) == (year, week)


def test_date_from_iso_week_first_week_can_start_in_previous_year():
    assert tc.date_from_iso_week(2025, 1) == datetime(2024, 12, 30)
    assert tc.date_from_iso_week(2026, 53) == datetime(2026, 12, 28)


@pytest.mark.parametrize("year,week", [(2025, 0), (2025, 54), (2025, -1), (2025, 53), (1, 10), (9999, 1)])
def test_date_from_iso_week_rejects_out_of_range(year, week):
    with pytest.raises(InvalidDate):
        tc.date_from_iso_week(year, week)


@pytest.mark.parametrize("value", ["not-a-date", "2025-13-01", "", None])
def test_invalid_inputs_raise_invalid_date(value):
    with pytest.raises(InvalidDate) as exc:
        tc.week_start(value)
    assert exc.value.status_code == 400
    assert exc.value.code == "INVALID_DATE"


def test_iso_string_with_utc_suffix_is_accepted():
    assert tc.week_start("2025-01-15T10:00:00Z").date() == date(2025, 1, 13)


def test_add_weeks_and_month_bounds():
    assert tc.add_weeks(date(2025, 1, 15), 1) == datetime(2025, 1, 20)
    assert tc.add_weeks(date(2025, 1, 15), -2) == datetime(2024, 12, 30)
    assert tc.month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert tc.year_bounds(2025) == (date(2025, 1, 1), date(2025, 12, 31))
    with pytest.raises(InvalidDate):
        tc.month_bounds(2025, 13)
