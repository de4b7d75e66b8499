"""
Shared pytest fixtures for sitemapper tests.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import pytest
from click.testing import CliRunner

COUNTRIES = {
    "mx": {"slug": "mexico", "name": "México"},
    "ar": {"slug": "argentina", "name": "Argentina"},
    "co": {"slug": "colombia", "name": "Colombia"},
}


def make_hit(
    identifier: Optional[str],
    country: Optional[str] = "mx",
    updated: Optional[str] = None,
    id_field: str = "id",
    date_field: str = "updated_date",
) -> dict[str, Any]:
    """Build a hit as returned by a ``fields`` search."""
    fields: dict[str, list] = {}
    if identifier is not None:
        fields[id_field] = [identifier]
    if country is not None:
        fields["country"] = [country]
    if updated is not None:
        fields[date_field] = [updated]
    return {"_index": "test", "_id": identifier or "none", "fields": fields}


def make_terms(buckets: list[dict[str, Any]], other: int = 0) -> dict[str, Any]:
    return {"doc_count_error_upper_bound": 0, "sum_other_doc_count": other, "buckets": buckets}


class FakeSearchClient:
    """Scripted stand-in for ``SearchClient``.

    ``pages`` maps an index to the list of pages (lists of hits) its cursor
    returns. ``aggregations`` maps ``(index, aggregation name)`` to the
    aggregation body returned for it.
    """

    def __init__(
        self,
        pages: Optional[dict[str, list[list[dict]]]] = None,
        aggregations: Optional[dict[tuple[str, str], dict]] = None,
        total_override: Optional[dict[str, int]] = None,
    ):
        self.pages = pages or {}
        self.aggregations = aggregations or {}
        self.total_override = total_override or {}
        self.calls: list[tuple] = []
        self.cleared: list[str] = []

    def _page(self, index: str, number: int) -> dict[str, Any]:
        pages = self.pages.get(index, [])
        hits = pages[number] if number < len(pages) else []
        total = self.total_override.get(index, sum(len(page) for page in pages))
        return {
            "_scroll_id": f"{index}:{number}",
            "hits": {"total": {"value": total, "relation": "eq"}, "hits": hits},
        }

    def search(self, index, body, *, scroll=None, size=None, source=False):
        self.calls.append(("search", index, body, scroll, size))
        if "aggs" in body:
            name = next(iter(body["aggs"]))
            return {
                "hits": {"total": {"value": 0, "relation": "eq"}, "hits": []},
                "aggregations": {name: self.aggregations[(index, name)]},
            }
        return self._page(index, 0)

    def scroll(self, scroll_id, scroll):
        self.calls.append(("scroll", scroll_id, scroll))
        index, number = scroll_id.rsplit(":", 1)
        return self._page(index, int(number) + 1)

    def clear_scroll(self, scroll_id):
        self.cleared.append(scroll_id)

    def close(self):
        pass


@pytest.fixture
def countries_file(tmp_path: Path) -> Path:
    """Write the country reference file used by most tests."""
    path = tmp_path / "countries.json"
    path.write_text(json.dumps(COUNTRIES), encoding="utf-8")
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "sitemaps"


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner for testing."""
    return CliRunner()


def invoke_cli(runner: CliRunner, cmd, args: list[str], **kwargs):
    """
    Helper to invoke CLI command.

    Args:
        runner: Click test runner
        cmd: Click command or group
        args: Command arguments
        **kwargs: Additional arguments to runner.invoke()

    Returns:
        Click Result object
    """
    return runner.invoke(cmd, args, catch_exceptions=False, **kwargs)


def assert_cli_success(result, msg: str = None):
    """Assert CLI command succeeded (exit code 0)."""
    if result.exit_code != 0:
        error_msg = f"CLI failed (exit code {result.exit_code})"
        if msg:
            error_msg = f"{msg}: {error_msg}"
        if result.output:
            error_msg += f"\nOutput: {result.output}"
        raise AssertionError(error_msg)
