"""ISO-8601 주차 계산을 위한 순수 함수 모음입니다.

모든 함수는 ``date``/``datetime``/ISO 문자열을 받으며, 해석할 수 없는 입력은
``InvalidDate`` 로 거부합니다. 주의 시작은 월요일, ISO 연도/주차는 해당 주의
목요일을 기준으로 결정합니다.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import NamedTuple, Tuple, Union

from planner.exceptions import InvalidDate

DateLike = Union[date, datetime, str]

MIN_YEAR = 2
MAX_YEAR = 9998


class IsoWeek(NamedTuple):
    year: int
    week: int


def to_datetime(value: DateLike) -> datetime:
    if isinstance(value, bool) or value is None:
        raise InvalidDate(f"날짜 형식이 올바르지 않습니다: {value!r}")
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            raise InvalidDate(f"날짜 형식이 올바르지 않습니다: {value!r}")
    raise InvalidDate(f"날짜 형식이 올바르지 않습니다: {value!r}")


def week_start(value: DateLike) -> datetime:
    current = to_datetime(value)
    # isoweekday: Monday=1 ... Sunday=7, so Sunday steps back six days
    offset = current.isoweekday() - 1
    try:
        monday = current - timedelta(days=offset)
    except OverflowError:
        raise InvalidDate(f"지원 범위를 벗어난 날짜입니다: {value!r}")
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def week_end(value: DateLike) -> datetime:
    try:
        sunday = week_start(value) + timedelta(days=6)
    except OverflowError:
        raise InvalidDate(f"지원 범위를 벗어난 날짜입니다: {value!r}")
    return sunday.replace(hour=23, minute=59, second=59, microsecond=999000)


def _first_thursday(year: int) -> date:
    jan1 = date(year, 1, 1)
    return jan1 + timedelta(days=(3 - jan1.weekday()) % 7)


def iso_week(value: DateLike) -> IsoWeek:
    current = to_datetime(value).date()
    try:
        thursday = current + timedelta(days=4 - current.isoweekday())
    except OverflowError:
        raise InvalidDate(f"지원 범위를 벗어난 날짜입니다: {value!r}")
    delta_days = (thursday - _first_thursday(thursday.year)).days
    return IsoWeek(year=thursday.year, week=1 + round(delta_days / 7))


def weeks_in_year(year: int) -> int:
    # Dec 28 always falls in the last ISO week of its year
    return iso_week(date(year, 12, 28)).week


def _validate_year(year: int) -> None:
    if isinstance(year, bool) or not isinstance(year, int):
        raise InvalidDate(f"연도 형식이 올바르지 않습니다: {year!r}")
    if year < MIN_YEAR or year > MAX_YEAR:
        raise InvalidDate(f"지원 범위를 벗어난 연도입니다: {year}")


def date_from_iso_week(year: int, week: int) -> datetime:
    _validate_year(year)
    if isinstance(week, bool) or not isinstance(week, int) or week < 1 or week > 53:
        raise InvalidDate(f"주차는 1~53 사이여야 합니다: {week!r}")
    if week > weeks_in_year(year):
        raise InvalidDate(f"{year}년에는 {week}주차가 없습니다.")
    thursday = _first_thursday(year) + timedelta(weeks=week - 1)
    monday = thursday - timedelta(days=3)
    return datetime(monday.year, monday.month, monday.day)


def add_weeks(value: DateLike, weeks: int) -> datetime:
    try:
        return week_start(value) + timedelta(weeks=weeks)
    except OverflowError:
        raise InvalidDate(f"지원 범위를 벗어난 날짜입니다: {value!r}")


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    _validate_year(year)
    if isinstance(month, bool) or not isinstance(month, int) or month < 1 or month > 12:
        raise InvalidDate(f"월은 1~12 사이여야 합니다: {month!r}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def year_bounds(year: int) -> Tuple[date, date]:
    _validate_year(year)
    return date(year, 1, 1), date(year, 12, 31)
