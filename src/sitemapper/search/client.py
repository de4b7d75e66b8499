"""Search-engine client wrapper around ``opensearchpy.OpenSearch``.

Only the calls the exporter needs are exposed: ``search`` (optionally
opening a scroll cursor), ``scroll`` and ``clear_scroll``. Retries,
timeouts and gzip compression are handled by the library's transport;
any failure it reports surfaces as ``UpstreamQueryError``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from opensearchpy import OpenSearch
from opensearchpy.exceptions import OpenSearchException

from sitemapper.errors import UpstreamQueryError


class SearchClient:
    """Synchronous search-engine client.

    Usage:
        with SearchClient("http://localhost:9200/") as client:
            body = client.search("sociedad_suppliers", {"query": {"match_all": {}}})
    """

    def __init__(
        self,
        node: str,
        *,
        timeout: float = 60.0,
        max_retries: int = 10,
        compression: bool = True,
        verify: bool = False,
        client: Optional[OpenSearch] = None,
    ):
        self.node = node
        self._client = client or OpenSearch(
            hosts=[node],
            timeout=timeout,
            max_retries=max_retries,
            retry_on_timeout=True,
            http_compress=compression,
            verify_certs=verify,
            ssl_show_warn=verify,
        )

    def __enter__(self) -> "SearchClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def search(
        self,
        index: str,
        body: dict[str, Any],
        *,
        scroll: Optional[str] = None,
        size: Optional[int] = None,
        source: bool = False,
    ) -> dict[str, Any]:
        """
        Run a search against ``index``.

        Args:
            index: Index name
            body: Request body (query, fields, aggs)
            scroll: Cursor keep-alive; opens a scroll cursor when set
            size: Number of hits per page
            source: Whether to return ``_source`` with each hit

        Returns:
            Decoded response body
        """
        params: dict[str, Any] = {"_source": source}
        if scroll:
            params["scroll"] = scroll
        if size is not None:
            params["size"] = size
        with _upstream_errors(f"search {index}"):
            return self._client.search(index=index, body=body, **params)

    def scroll(self, scroll_id: str, scroll: str) -> dict[str, Any]:
        """Fetch the next page of an open scroll cursor."""
        with _upstream_errors("scroll"):
            return self._client.scroll(scroll_id=scroll_id, scroll=scroll)

    def clear_scroll(self, scroll_id: str) -> None:
        """Release a scroll cursor on the server."""
        with _upstream_errors("clear_scroll"):
            self._client.clear_scroll(scroll_id=scroll_id)


@contextmanager
def _upstream_errors(operation: str) -> Iterator[None]:
    """Turn client library failures into ``UpstreamQueryError``."""
    try:
        yield
    except OpenSearchException as e:
        status = getattr(e, "status_code", None)
        raise UpstreamQueryError(
            f"{operation} failed: {e}",
            status_code=status if isinstance(status, int) else None,
            original_error=e,
        ) from e
