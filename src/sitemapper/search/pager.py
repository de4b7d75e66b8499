"""Pagers over the search engine.

``CursorPager`` walks a whole index through a scroll cursor, one page at a
time. ``AggregationPager`` issues a single terms aggregation and returns its
buckets. Neither retries: any upstream failure propagates.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

from sitemapper.errors import UpstreamQueryError
from sitemapper.models import Bucket, LastModifiedCacheSpec, Page, RecordKind
from sitemapper.search.client import SearchClient
from sitemapper.urls import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10000
DEFAULT_SCROLL_TIMEOUT = "600s"


def _total_hits(body: dict[str, Any]) -> int:
    total = body.get("hits", {}).get("total")
    if isinstance(total, dict):
        total = total.get("value")
    if not isinstance(total, int):
        raise UpstreamQueryError("Search response has no hit total")
    return total


def _page_from_response(body: dict[str, Any], total: Optional[int] = None) -> Page:
    hits = body.get("hits", {}).get("hits")
    if not isinstance(hits, list):
        raise UpstreamQueryError("Search response has no hits array")
    return Page(hits=hits, total=total, cursor=body.get("_scroll_id"))


class CursorPager:
    """Single-use walk over every hit matching a query.

    The cursor is opened by ``open()`` and advanced by ``next()``. The walk
    ends when the number of hits consumed reaches the total reported with the
    first page; a short page is not an end signal. ``pages()`` drives the
    whole protocol and releases the cursor once it is exhausted.

    Usage:
        pager = CursorPager(client, "sociedad_suppliers", {"query": {"match_all": {}}})
        for page in pager.pages():
            for hit in page.hits:
                ...
    """

    def __init__(
        self,
        client: SearchClient,
        index: str,
        body: dict[str, Any],
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        scroll_timeout: str = DEFAULT_SCROLL_TIMEOUT,
    ):
        self.client = client
        self.index = index
        self.body = {**body, "track_total_hits": True}
        self.page_size = page_size
        self.scroll_timeout = scroll_timeout
        self.total: Optional[int] = None
        self.consumed = 0
        self._started = False
        self._exhausted = False

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def open(self) -> tuple[Page, int]:
        """Issue the initial query and return the first page and the total."""
        if self._started:
            raise RuntimeError(f"Cursor over '{self.index}' has already been opened")
        self._started = True
        response = self.client.search(
            self.index, self.body, scroll=self.scroll_timeout, size=self.page_size
        )
        self.total = _total_hits(response)
        logger.debug("Opened cursor over %s: %d documents", self.index, self.total)
        return _page_from_response(response, self.total), self.total

    def next(self, cursor: Optional[str]) -> Page:
        """Request the page following ``cursor``."""
        if self._exhausted:
            raise RuntimeError(f"Cursor over '{self.index}' is exhausted")
        if not cursor:
            raise UpstreamQueryError(f"Search response for '{self.index}' has no scroll id")
        return _page_from_response(self.client.scroll(cursor, self.scroll_timeout), self.total)

    def pages(self) -> Iterator[Page]:
        """
        Yield every page front to back, exactly once.

        The next page is only requested after the caller has finished with
        the current one, so at most one page is held in memory.

        Raises:
            UpstreamQueryError: If a request fails, or the cursor runs dry
                before the reported total is reached
        """
        page, total = self.open()
        while True:
            yield page
            self.consumed += len(page.hits)
            if self.consumed >= total:
                break
            if not page.hits:
                raise UpstreamQueryError(
                    f"Cursor over '{self.index}' ended after {self.consumed} of {total} documents"
                )
            page = self.next(page.cursor)

        self._exhausted = True
        self._release(page.cursor)

    def _release(self, cursor: Optional[str]) -> None:
        if not cursor:
            return
        try:
            self.client.clear_scroll(cursor)
        except UpstreamQueryError as e:
            # The server expires the cursor after scroll_timeout regardless.
            logger.warning("Could not release cursor over %s: %s", self.index, e.message)


def _max_value(agg: Optional[dict[str, Any]]) -> Optional[str]:
    """Read a ``max`` aggregation as an ISO timestamp."""
    if not agg or agg.get("value") is None:
        return None
    moment = parse_timestamp(agg.get("value_as_string") or agg["value"])
    return format_timestamp(moment) if moment else None


def _warn_if_truncated(agg: dict[str, Any], name: str, size: int) -> None:
    if agg.get("sum_other_doc_count", 0) > 0:
        logger.warning(
            "Aggregation %s hit its bound of %d buckets; %d documents fall in omitted buckets",
            name,
            size,
            agg["sum_other_doc_count"],
        )


class AggregationPager:
    """Single round-trip terms aggregations flattened into buckets."""

    AGGREGATION_NAME = "entities"

    def __init__(self, client: SearchClient):
        self.client = client

    def build_body(self, kind: RecordKind, query: dict[str, Any]) -> dict[str, Any]:
        """Build the aggregation request for an aggregation kind."""
        sub_aggs: dict[str, Any] = {}
        if kind.last_modified_field:
            sub_aggs["last_modified"] = {"max": {"field": kind.last_modified_field}}
        if kind.partition_field:
            sub_aggs["partition"] = {"terms": {"field": kind.partition_field, "size": 1}}
        if kind.unit_field:
            unit_aggs = {}
            if kind.last_modified_field:
                unit_aggs["last_modified"] = {"max": {"field": kind.last_modified_field}}
            sub_aggs["units"] = {
                "terms": {"field": kind.unit_field, "size": kind.unit_bucket_size},
                "aggs": unit_aggs,
            }

        terms: dict[str, Any] = {"terms": {"field": kind.id_field, "size": kind.bucket_size}}
        if sub_aggs:
            terms["aggs"] = sub_aggs
        return {**query, "size": 0, "aggs": {self.AGGREGATION_NAME: terms}}

    def fetch_buckets(self, kind: RecordKind, query: dict[str, Any]) -> list[Bucket]:
        """
        Run the aggregation for ``kind`` and return its buckets in order.

        Buckets beyond ``kind.bucket_size`` (or ``unit_bucket_size`` per
        group) are absent from the result; a warning is logged when that
        happens.
        """
        response = self.client.search(kind.index, self.build_body(kind, query))
        agg = response.get("aggregations", {}).get(self.AGGREGATION_NAME)
        if not isinstance(agg, dict) or not isinstance(agg.get("buckets"), list):
            raise UpstreamQueryError(f"Aggregation response for '{kind.index}' has no buckets")

        _warn_if_truncated(agg, f"{kind.index}/{kind.id_field}", kind.bucket_size)

        buckets = []
        for raw in agg["buckets"]:
            partition_buckets = raw.get("partition", {}).get("buckets") or []
            children = []
            units = raw.get("units")
            if units:
                _warn_if_truncated(units, f"{kind.name} {raw['key']}/units", kind.unit_bucket_size)
                children = [
                    Bucket(
                        key=str(unit["key"]),
                        last_modified=_max_value(unit.get("last_modified")),
                        doc_count=unit.get("doc_count", 0),
                    )
                    for unit in units.get("buckets", [])
                ]
            buckets.append(
                Bucket(
                    key=str(raw["key"]),
                    last_modified=_max_value(raw.get("last_modified")),
                    partition_key=str(partition_buckets[0]["key"]) if partition_buckets else None,
                    doc_count=raw.get("doc_count", 0),
                    children=children,
                )
            )

        logger.debug("Aggregation over %s returned %d buckets", kind.index, len(buckets))
        return buckets

    def fetch_last_modified(
        self, spec: LastModifiedCacheSpec, query: dict[str, Any]
    ) -> dict[str, str]:
        """Precompute ``{identifier: last_modified}`` in one aggregation."""
        body = {
            **query,
            "size": 0,
            "aggs": {
                "cache": {
                    "terms": {"field": spec.key_field, "size": spec.size},
                    "aggs": {"last_modified": {"max": {"field": spec.date_field}}},
                }
            },
        }
        response = self.client.search(spec.index, body)
        agg = response.get("aggregations", {}).get("cache")
        if not isinstance(agg, dict) or not isinstance(agg.get("buckets"), list):
            raise UpstreamQueryError(f"Aggregation response for '{spec.index}' has no buckets")

        _warn_if_truncated(agg, f"{spec.index}/{spec.key_field}", spec.size)

        cache = {}
        for raw in agg["buckets"]:
            value = _max_value(raw.get("last_modified"))
            if value:
                cache[str(raw["key"])] = value
        logger.info("Cached last-modified dates for %d identifiers", len(cache))
        return cache


def walk_buckets(buckets: list[Bucket]) -> Iterator[tuple[Bucket, Optional[Bucket]]]:
    """Yield ``(bucket, parent)`` pairs: each group, then its units."""
    for bucket in buckets:
        yield bucket, None
        for child in bucket.children:
            yield child, bucket
