"""Date parsing utilities."""

from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - ISO dates: "2024-01-15"
    - Day-first dates as written in Venezuela: "15/01/2024"
    - Relative dates: "today", "yesterday", "this month", "last month", etc.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "this month": today.replace(day=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "next month": (today + relativedelta(months=1)).replace(day=1),
        "this year": today.replace(month=1, day=1),
        "last year": today.replace(month=1, day=1) - relativedelta(years=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    if not date_str:
        raise ValueError("Empty date string")

    # ISO strings are year-first; everything else is read day-first
    try:
        if len(date_str) >= 4 and date_str[:4].isdigit():
            return date_parser.parse(date_str, yearfirst=True).date()
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str) -> tuple[date, date]:
    """Return the (start, end) dates of a named period.

    ``this-*`` ranges end today; ``last-*`` ranges cover the whole previous
    month or year.

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)

    ranges = {
        "this-month": (month_start, today),
        "this-year": (year_start, today),
        "last-month": (month_start - relativedelta(months=1), month_start - timedelta(days=1)),
        "last-year": (year_start - relativedelta(years=1), year_start - timedelta(days=1)),
    }
    if period not in ranges:
        raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(ranges)}")
    return ranges[period]
