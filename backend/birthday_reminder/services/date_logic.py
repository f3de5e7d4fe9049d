from __future__ import annotations

from datetime import date


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def birthday_in_year(birth_date: date, year: int) -> date:
    # Feb 29 birthdays are observed on Feb 28 in non-leap years
    if birth_date.month == 2 and birth_date.day == 29 and not is_leap_year(year):
        return date(year, 2, 28)
    return date(year, birth_date.month, birth_date.day)


def next_birthday(birth_date: date, today: date) -> date:
    this_year = birthday_in_year(birth_date, today.year)
    if this_year >= today:
        return this_year
    return birthday_in_year(birth_date, today.year + 1)


def days_until_birthday(birth_date: date, today: date) -> int:
    return (next_birthday(birth_date, today) - today).days


def turning_age(birth_date: date, occurrence: date) -> int:
    return occurrence.year - birth_date.year
