"""
Date Parsing for User-Entered Query Ranges

Accepts the handful of literal formats people actually type and
anchors everything at local midnight for the request layer.
"""
import re
from datetime import date, datetime, time
from typing import Tuple

from .exceptions import DateParseError

# (label, pattern) tried in order, first match wins
DATE_FORMATS: Tuple[Tuple[str, re.Pattern], ...] = (
    ("YYYY-MM-DD", re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})$")),
    ("YYYY/MM/DD", re.compile(r"^([0-9]{4})/([0-9]{2})/([0-9]{2})$")),
    ("YYYY-M-D", re.compile(r"^([0-9]{4})-([0-9]{1,2})-([0-9]{1,2})$")),
    ("YYYY/M/D", re.compile(r"^([0-9]{4})/([0-9]{1,2})/([0-9]{1,2})$")),
)


def parse_date(text: str) -> date:
    """
    Parse a calendar date from one of the accepted literal formats.

    Accepted: YYYY-MM-DD, YYYY/MM/DD, YYYY-M-D, YYYY/M/D

    Args:
        text: User-entered date string

    Returns:
        The parsed calendar date

    Raises:
        DateParseError: If no format matches or the date does not exist
    """
    candidate = text.strip() if isinstance(text, str) else ""

    for _label, pattern in DATE_FORMATS:
        match = pattern.match(candidate)
        if not match:
            continue
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            # Right shape, impossible date (e.g. 2023-02-30)
            break

    raise DateParseError(text)


def to_midnight(day: date) -> datetime:
    """Local wall-clock midnight at the start of `day`"""
    return datetime.combine(day, time.min)
