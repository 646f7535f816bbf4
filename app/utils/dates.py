import calendar
from datetime import date, timedelta
from typing import Tuple

from app.core.constants import FINE_EXPIRY_DAYS

DATE_FORMAT = "%Y-%m-%d"


def fine_expiry_date(issue_date: date) -> date:
    """Payment deadline of a fine issued on `issue_date`."""
    return issue_date + timedelta(days=FINE_EXPIRY_DAYS)


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def subtract_months(value: date, months: int) -> date:
    """
    Step back a number of calendar months, clamping the day to the
    length of the target month (2024-03-31 minus 1 month is 2024-02-29).
    """
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_bounds(value: date) -> Tuple[date, date]:
    """First day of `value`'s month and first day of the following month."""
    start = value.replace(day=1)
    if start.month == 12:
        end = date(start.year + 1, 1, 1)
    else:
        end = date(start.year, start.month + 1, 1)
    return start, end


def year_bounds(value: date) -> Tuple[date, date]:
    return date(value.year, 1, 1), date(value.year + 1, 1, 1)
