"""
Lenient parsing helpers for the free-form text fields of point-of-sale exports.

Neither helper raises: text that cannot be interpreted yields ``None`` so that
callers can apply their own fallbacks.
"""

import math
import re
from datetime import datetime
from email.utils import parsedate_to_datetime

# M/D/YY or M/D/YYYY, as exported by most register back-offices
_NUMERIC_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")

# Slash-separated ISO order and long month names
_EXTRA_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def _to_local_naive(parsed: datetime) -> datetime:
    if parsed.tzinfo is not None:
        return parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_business_date(value: str | None) -> datetime | None:
    """
    Parse a business date.

    Accepted forms, tried in this order:

    - ISO-8601 dates and date-times (a trailing ``Z`` means UTC)
    - numeric ``M/D/YY`` and ``M/D/YYYY``; two-digit years are read as 2000 + year
    - RFC 2822 timestamps such as ``Fri, 01 Mar 2024 10:00:00 GMT``
    - ``YYYY/MM/DD`` with an optional time, and long dates such as ``March 1, 2024``

    Timezone-aware values are converted to naive local time so they compare
    with naive ones.
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return _to_local_naive(datetime.fromisoformat(iso_text))
    except ValueError:
        pass

    match = _NUMERIC_DATE_RE.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        try:
            return datetime(year, month, day)
        except ValueError:
            return None

    try:
        return _to_local_naive(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        pass

    for fmt in _EXTRA_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_number(value: str | None) -> float | None:
    """Parse a finite decimal number, or return None."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number
