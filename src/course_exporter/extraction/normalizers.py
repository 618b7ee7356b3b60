"""
Normalizers Module - Turn raw page text into canonical values.
==============================================================

Pure, total functions: malformed input degrades to an empty string (or
``None`` for :func:`time_to_seconds`) and nothing here ever raises.

- clean_text: zero-width cleanup and whitespace collapsing
- parse_duration_text: "2 hours 15 minutes" -> "135"
- time_to_seconds: "01:02:03" -> 3723
- time_range_to_duration_minutes: "12:34-45:10" -> "33"
- normalize_published_date: "March 3, 2022" -> "2022-03-03"
- to_absolute_url / get_course_slug: URL helpers
"""

import re
from typing import Any, Optional
from urllib.parse import urljoin, urlsplit

ZERO_WIDTH_SPACE = "\u200b"

_WHITESPACE_RUN = re.compile(r"\s+")
_HOURS = re.compile(r"(\d+)\s*hours?")
_MINUTES = re.compile(r"(\d+)\s*minutes?")
_MINUTES_SHORT = re.compile(r"(\d+)\s*mins?\b")
_ANY_NUMBER = re.compile(r"(\d+)")
_PLAIN_INTEGER = re.compile(r"\d+")
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_LONG_MONTH_DATE = re.compile(r"([A-Za-z]+)\s+(\d{1,2}),\s*(\d{4})")

MONTHS = {
    "january": "01",
    "february": "02",
    "march": "03",
    "april": "04",
    "may": "05",
    "june": "06",
    "july": "07",
    "august": "08",
    "september": "09",
    "october": "10",
    "november": "11",
    "december": "12",
}


def clean_text(value: Any) -> str:
    """
    Normalize whitespace and strip zero-width spaces.

    Args:
        value: Any value; ``None`` is treated as an empty string

    Returns:
        Text with every whitespace run collapsed to one space, trimmed
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    text = text.replace(ZERO_WIDTH_SPACE, "")
    return _WHITESPACE_RUN.sub(" ", text).strip()


def parse_duration_text(value: Any) -> str:
    """
    Extract a duration in minutes from free text.

    Tries, in order:
    1. "N hour(s)" and/or "N minute(s)" -> hours * 60 + minutes
    2. "N min" / "N mins" -> N
    3. the first bare integer anywhere in the text

    Args:
        value: Raw duration text

    Returns:
        String-encoded non-negative integer, or "" when nothing matches

    Note:
        The bare-integer fallback also picks up unrelated digits, e.g. a year.
    """
    text = clean_text(value).lower()
    if not text:
        return ""

    hours_match = _HOURS.search(text)
    minutes_match = _MINUTES.search(text)
    if hours_match or minutes_match:
        hours = int(hours_match.group(1)) if hours_match else 0
        minutes = int(minutes_match.group(1)) if minutes_match else 0
        return str(hours * 60 + minutes)

    short_match = _MINUTES_SHORT.search(text)
    if short_match:
        return str(int(short_match.group(1)))

    fallback = _ANY_NUMBER.search(text)
    return str(int(fallback.group(1))) if fallback else ""


def time_to_seconds(value: Any) -> Optional[int]:
    """
    Convert ``HH:MM:SS``, ``MM:SS`` or ``SS`` into seconds.

    Returns:
        Seconds, or None if any segment is not a plain integer or the
        segment count is outside 1-3
    """
    parts = [part.strip() for part in clean_text(value).split(":")]
    if not parts or len(parts) > 3:
        return None
    if any(not _PLAIN_INTEGER.fullmatch(part) for part in parts):
        return None

    seconds = 0
    for part in parts:
        seconds = seconds * 60 + int(part)
    return seconds


def time_range_to_duration_minutes(value: Any) -> str:
    """
    Derive a lesson duration from a ``start-end`` time range.

    Args:
        value: Range such as "12:34-45:10"

    Returns:
        Rounded minutes as a string; "" for malformed ranges or end < start
    """
    text = clean_text(value)
    if not text:
        return ""

    start_text, separator, end_text = text.partition("-")
    start_text, end_text = start_text.strip(), end_text.strip()
    if not separator or not start_text or not end_text:
        return ""

    start = time_to_seconds(start_text)
    end = time_to_seconds(end_text)
    if start is None or end is None or end < start:
        return ""

    # half-up rounding on a non-negative whole number of seconds
    return str((end - start + 30) // 60)


def normalize_published_date(value: Any) -> str:
    """
    Normalize a publish date to ``YYYY-MM-DD``.

    Accepts an ISO date as-is or "Month D, YYYY" with a full English month
    name. Anything else yields "".
    """
    text = clean_text(value)
    if not text:
        return ""

    if _ISO_DATE.fullmatch(text):
        return text

    match = _LONG_MONTH_DATE.fullmatch(text)
    if match:
        month = MONTHS.get(match.group(1).lower())
        if month:
            day = str(int(match.group(2))).zfill(2)
            return f"{match.group(3)}-{month}-{day}"

    return ""


def to_absolute_url(value: Any, origin: str) -> str:
    """Resolve a possibly relative href against the page origin."""
    href = clean_text(value)
    if not href:
        return ""

    try:
        resolved = urljoin(origin.rstrip("/") + "/", href)
        parsed = urlsplit(resolved)
    except ValueError:
        return ""

    if not parsed.scheme or not parsed.netloc:
        return ""
    return resolved


def get_course_slug(path: str) -> str:
    """
    Extract the course slug from a ``/courses/<slug>/...`` path.

    Returns:
        The slug, or "" when the path has another shape
    """
    parts = [part for part in (path or "").split("/") if part]
    if len(parts) < 2 or parts[0] != "courses":
        return ""
    return parts[1]
