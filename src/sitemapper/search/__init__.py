"""Search-engine access: HTTP client and pagers."""

from sitemapper.search.client import SearchClient
from sitemapper.search.pager import AggregationPager, CursorPager

__all__ = [
    "AggregationPager",
    "CursorPager",
    "SearchClient",
]
