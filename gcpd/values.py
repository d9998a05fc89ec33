# gcpd/values.py
"""
Typed coercion for raw GCPD table cell text.

Cells arrive as plain strings ("Yes", "12", "2024-01-02 03:04:05 GMT").
parse_value() turns them into bool/int/float/ISO-8601 UTC strings and never
raises; anything it cannot coerce comes back as the trimmed text.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional, Union

from dateutil import parser as date_parser

Value = Union[None, bool, int, float, str]

INT_RE = re.compile(r"^[+-]?\d+$")
FLOAT_RE = re.compile(r"^[+-]?\d+\.\d+$")
DATETIME_FALLBACK_RE = re.compile(r"(\d{4}-\d{2}-\d{2})[ T](\d{2}:\d{2}:\d{2})")

# Two distinct defaults: a string that carries a full calendar date parses
# to the same day under both.
_DEFAULT_A = datetime(1901, 1, 1)
_DEFAULT_B = datetime(1902, 2, 2)


def to_iso_utc(dt: datetime) -> str:
    """Format as ISO-8601 UTC with milliseconds, e.g. 2024-01-02T03:04:05.000Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def try_parse_number(text: str) -> Optional[Union[int, float]]:
    if INT_RE.match(text):
        return int(text)
    if FLOAT_RE.match(text):
        return float(text)
    return None


def try_parse_date(text: str) -> Optional[str]:
    """
    Parse a date/time string to ISO-8601 UTC.

    Naive timestamps are read as UTC. Strings without a full calendar date
    (bare times like "00:15:32", lone month names) are rejected so that
    durations never turn into today's date.
    """
    if not text or not text.strip():
        return None

    try:
        first = date_parser.parse(text, default=_DEFAULT_A)
        second = date_parser.parse(text, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        first = second = None

    if first is not None and first.date() == second.date():
        try:
            return to_iso_utc(first)
        except (ValueError, OverflowError):
            # Offset pushes the instant outside datetime's range.
            return None

    match = DATETIME_FALLBACK_RE.search(text)
    if match:
        try:
            dt = datetime.strptime(f"{match.group(1)}T{match.group(2)}", "%Y-%m-%dT%H:%M:%S")
            return to_iso_utc(dt)
        except ValueError:
            return None
    return None


def parse_value(raw: Optional[str], parse_numbers: bool = True, parse_dates: bool = True) -> Value:
    if raw is None:
        return None
    text = str(raw).strip()
    if text == "":
        return None

    lowered = text.lower()
    if lowered == "yes":
        return True
    if lowered == "no":
        return False

    if parse_numbers:
        number = try_parse_number(text)
        if number is not None:
            return number

    if parse_dates:
        iso = try_parse_date(text)
        if iso:
            return iso

    return text
