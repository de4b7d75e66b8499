"""URL encoding and date validation for sitemap entries.

The sitemaps protocol requires fully-qualified, percent-encoded URLs of at
most 2048 characters, and W3C datetime values for ``<lastmod>``.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Optional
from urllib.parse import quote, urlsplit, urlunsplit

MAX_URL_LENGTH = 2048
MIN_SITEMAP_YEAR = 2000

# RFC 3986 reserved and unreserved characters stay literal; "%" is handled
# separately so existing escapes are not encoded twice.
_SAFE_PATH_CHARS = "/:@!$&'()*+,;=-._~"
_SAFE_QUERY_CHARS = _SAFE_PATH_CHARS + "?"
_SAFE_SEGMENT_CHARS = _SAFE_PATH_CHARS.replace("/", "")
_BARE_PERCENT = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _quote_component(value: str, safe: str) -> str:
    value = _BARE_PERCENT.sub("%25", value)
    return quote(value, safe=safe + "%")


def encode_sitemap_url(url: str) -> str:
    """
    Percent-encode a URL so it is safe to place in a sitemap.

    The scheme is kept, the host is IDNA-encoded, and path, query and
    fragment are percent-encoded as UTF-8. Existing escapes are preserved.

    Args:
        url: Absolute URL, possibly containing spaces or non-ASCII text

    Returns:
        Encoded URL string

    Examples:
        >>> encode_sitemap_url("https://example.com/mx/supplier/ACME SA")
        'https://example.com/mx/supplier/ACME%20SA'
        >>> encode_sitemap_url("https://example.com/mx/buyer/Secretaría")
        'https://example.com/mx/buyer/Secretar%C3%ADa'
    """
    parts = urlsplit(url.strip())
    netloc = parts.netloc
    if netloc and not netloc.isascii():
        host, sep, port = netloc.partition(":")
        netloc = host.encode("idna").decode("ascii") + sep + port
    return urlunsplit(
        (
            parts.scheme,
            netloc,
            _quote_component(parts.path, _SAFE_PATH_CHARS),
            _quote_component(parts.query, _SAFE_QUERY_CHARS),
            _quote_component(parts.fragment, _SAFE_QUERY_CHARS),
        )
    )


def is_valid_url_length(url: str) -> bool:
    """Check a (final, encoded) URL against the sitemap length limit."""
    return len(url) <= MAX_URL_LENGTH


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a search-engine date value into an aware datetime.

    Accepts ISO 8601 strings (with or without time and with a trailing
    ``Z``), ``date``/``datetime`` objects, and epoch milliseconds as
    returned by ``max`` aggregations.

    Returns:
        Parsed datetime in UTC, or None if the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_valid_sitemap_date(value: Any) -> bool:
    """Return True when the value parses to a calendar date in 2000 or later."""
    parsed = parse_timestamp(value)
    return parsed is not None and parsed.year >= MIN_SITEMAP_YEAR


def normalize_sitemap_date(value: Any) -> Optional[str]:
    """
    Render a date value as W3C Datetime, or None when it is not a valid sitemap date.

    Calendar dates without a time part stay ``YYYY-MM-DD``; anything with a
    time becomes ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    Examples:
        >>> normalize_sitemap_date("20240102")
        '2024-01-02'
        >>> normalize_sitemap_date("2024-01-02 10:00:00+02:00")
        '2024-01-02T08:00:00.000Z'
    """
    if not is_valid_sitemap_date(value):
        return None
    parsed = parse_timestamp(value)
    if _is_date_only(value):
        return parsed.date().isoformat()
    return format_timestamp(parsed)


def _is_date_only(value: Any) -> bool:
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    return isinstance(value, str) and not any(sep in value.strip() for sep in "T :")


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def quote_segment(segment: Any) -> str:
    """Percent-encode one path segment; ``/``, ``?``, ``#`` and ``%`` are escaped."""
    return quote(str(segment), safe=_SAFE_SEGMENT_CHARS)


def join_url(base: str, *segments: Any) -> str:
    """Join path segments onto a base URL ending with ``/``, encoding each segment."""
    return base + "/".join(quote_segment(segment) for segment in segments)
