"""Calendar date parsing for loosely formatted event dates."""
from datetime import date, datetime
from typing import Optional

DATE_FORMATS = [
    '%Y-%m-%d',      # ISO 8601
    '%m/%d/%Y',      # US format
    '%m-%d-%Y',      # US format with dashes
    '%B %d, %Y',     # Full month name
    '%b %d, %Y',     # Abbreviated month name
    '%a, %b %d, %Y', # Weekday prefix
    '%d %B %Y',      # Day first, full month name
    '%d %b %Y',      # Day first, abbreviated month name
    '%d/%m/%Y',      # European format
    '%Y/%m/%d',      # Alternative ISO format
]


def parse_calendar_date(date_str: str) -> Optional[date]:
    """
    Parse a date string into a calendar date.

    Args:
        date_str: ISO date, ISO datetime or one of DATE_FORMATS

    Returns:
        The calendar date, or None if no format matches
    """
    if not date_str or not isinstance(date_str, str):
        return None

    text = date_str.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def today_iso(today: date) -> str:
    return today.strftime('%Y-%m-%d')
