"""
Field normalizers for incident records.

Pure best-effort conversions of raw text into canonical date, time,
timestamp and numeric forms. None of them raises on bad input: each returns
a fallback value ("" or 0) and, where the input was not empty, logs a
warning naming the value that was replaced.

Timestamps carry a fixed UTC-3 offset (Recife local time). This is a policy
constant, not a timezone conversion: no timezone database is consulted and
daylight saving time is not modelled.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime

from dateutil.parser import isoparse
from dateutil.parser import parse as date_parse

logger = logging.getLogger(__name__)

TIMEZONE_OFFSET = "-03:00"
FALLBACK_TIME = "00:00:00"

# Incident-count columns of the municipal exports
NUMERIC_FIELDS = frozenset([
    "auto",
    "moto",
    "ciclom",
    "ciclista",
    "pedestre",
    "onibus",
    "caminhao",
    "viatura",
    "outros",
    "vitimas",
    "vitimasfatais",
])
NUMERIC_PREFIX = "num_"
NUMERIC_SUFFIX = "_count"

# Tried before lenient parsing, which reads "2024/03/02" as 3 February
DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%d/%m/%y")

# 24-hour HH:mm:ss, zero-padded
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d):([0-5]\d)$")

# Leading decimal number, the rest of the text is ignored
_NUMBER_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def normalize_date(text: str | None, log: logging.Logger | None = None) -> str:
    """Normalize a calendar date to ``YYYY-MM-DD``.

    ISO input ("2024-03-01", "2024-03-01T10:00:00Z") is read as such, then a
    few explicit day-first layouts are tried, and anything else goes through
    lenient parsing with the day first, as in the Brazilian "01/03/2024".

    Args:
        text: Raw date text.
        log: Logger for the fallback warning.

    Returns:
        The normalized date, or "" when the text cannot be parsed.
    """
    if not text or not text.strip():
        return ""

    text = text.strip()
    try:
        return isoparse(text).date().isoformat()
    except (ValueError, OverflowError):
        pass

    for date_format in DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format).date().isoformat()
        except ValueError:
            continue

    try:
        return date_parse(text, dayfirst=True).date().isoformat()
    except (ValueError, OverflowError):
        (log or logger).warning(f'Invalid date value "{text}", using empty date.')
        return ""


def normalize_time(text: str | None, log: logging.Logger | None = None) -> str:
    """Normalize a time of day to ``HH:mm:ss`` textually.

    Hour and minute are zero-padded to two digits; seconds default to "00".
    Value ranges are not checked ("99:99:99" passes); use ``is_valid_time``
    for that.

    Examples:
        >>> normalize_time("7:5")
        '07:05:00'
        >>> normalize_time("7")
        ''
    """
    if not text or not text.strip():
        return ""

    parts = text.strip().split(":")
    if len(parts) < 2:
        (log or logger).warning(f'Invalid time value "{text}", using empty time.')
        return ""

    hour = parts[0].strip().zfill(2)
    minute = parts[1].strip().zfill(2)
    second = parts[2].strip().zfill(2) if len(parts) > 2 and parts[2].strip() else "00"
    return f"{hour}:{minute}:{second}"


def is_valid_time(text: str | None) -> bool:
    """Return True only for a zero-padded 24-hour ``HH:mm:ss`` time."""
    return bool(text) and _TIME_PATTERN.match(text) is not None


def combine_date_time(
    date_text: str,
    time_text: str | None = None,
    log: logging.Logger | None = None,
) -> str:
    """Combine a date and a time into an ISO 8601 timestamp at UTC-3.

    Only the part of ``date_text`` before any "T" is kept. Sub-seconds are
    dropped from ``time_text``. A missing or invalid time is replaced by
    midnight and a warning is logged.

    Args:
        date_text: Raw date, possibly already a full timestamp.
        time_text: Raw time of day, optional.
        log: Logger for the fallback warning.

    Returns:
        ``"{date}T{time}-03:00"``

    Examples:
        >>> combine_date_time("2024-03-01", "14:30:00")
        '2024-03-01T14:30:00-03:00'
    """
    cleaned_date = (date_text or "").split("T")[0].strip()
    cleaned_time = FALLBACK_TIME

    candidate = time_text.split(".")[0].strip() if time_text else ""
    if is_valid_time(candidate):
        cleaned_time = candidate
    else:
        (log or logger).warning(
            f'Invalid or missing time value "{time_text}", using fallback "{FALLBACK_TIME}".'
        )

    return f"{cleaned_date}T{cleaned_time}{TIMEZONE_OFFSET}"


def parse_numeric_field(text: str | None, log: logging.Logger | None = None) -> float:
    """Parse a numeric field, accepting a comma as decimal separator.

    Never raises. Like a lenient float parser, only the leading number is
    read ("12 feridos" gives 12). Empty text gives 0; text without a leading
    number, or one that overflows, gives 0 and a warning.

    Examples:
        >>> parse_numeric_field("1,5")
        1.5
        >>> parse_numeric_field("")
        0.0
    """
    if text is None or not str(text).strip():
        return 0.0

    raw = str(text).strip()
    match = _NUMBER_PREFIX.match(raw.replace(",", "."))
    value = float(match.group(0)) if match else math.nan

    if not math.isfinite(value):
        (log or logger).warning(f'Invalid numeric value "{raw}", using 0.')
        return 0.0
    return value


def is_numeric_field(key: str) -> bool:
    """Return True if a canonical header holds an incident count.

    A header is numeric when it is one of the known count columns, starts
    with ``num_`` or ends with ``_count``.
    """
    return key in NUMERIC_FIELDS or key.startswith(NUMERIC_PREFIX) or key.endswith(NUMERIC_SUFFIX)
