"""Export runs: page through a collection, project, batch and write sitemaps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sitemapper.batcher import PartitionedBatcher
from sitemapper.config import ExportConfig
from sitemapper.countries import CountryLookup, ObservedCountries
from sitemapper.errors import ReferenceDataError
from sitemapper.index import SitemapIndexBuilder, build_country_sitemap
from sitemapper.models import KindSource, RecordKind, SitemapFile, URLDescriptor
from sitemapper.projector import RecordProjector
from sitemapper.queries import base_query, cursor_body
from sitemapper.search.client import SearchClient
from sitemapper.search.pager import AggregationPager, CursorPager, walk_buckets
from sitemapper.writer import SitemapFileWriter

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle of one export run. Transitions only move forward."""

    IDLE = "idle"
    PAGING = "paging"
    PROJECTING = "projecting"
    BATCHING = "batching"
    FLUSHED = "flushed"
    DONE = "done"


_ALLOWED_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.IDLE: {RunState.PAGING},
    RunState.PAGING: {RunState.PAGING, RunState.PROJECTING, RunState.FLUSHED},
    RunState.PROJECTING: {RunState.PROJECTING, RunState.BATCHING, RunState.PAGING, RunState.FLUSHED},
    RunState.BATCHING: {RunState.PROJECTING, RunState.PAGING, RunState.FLUSHED},
    RunState.FLUSHED: {RunState.DONE},
    RunState.DONE: set(),
}


@dataclass
class ExportContext:
    """State shared by the runs of one export: reference data and accumulators."""

    countries: CountryLookup
    observed: ObservedCountries = field(default_factory=ObservedCountries)
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_modified_caches: dict[str, dict[str, str]] = field(default_factory=dict)


@dataclass
class ExportRun:
    """Counters and outputs of one (collection, kind) run."""

    kind: RecordKind
    state: RunState = RunState.IDLE
    seen: int = 0
    emitted: int = 0
    skipped: int = 0
    files: list[SitemapFile] = field(default_factory=list)

    @property
    def filenames(self) -> list[str]:
        return [sitemap.filename for sitemap in self.files]


@dataclass
class ExportResult:
    """Everything an export produced."""

    runs: list[ExportRun] = field(default_factory=list)
    countries_file: Optional[SitemapFile] = None
    index_file: Optional[SitemapFile] = None

    @property
    def filenames(self) -> list[str]:
        names = [name for run in self.runs for name in run.filenames]
        if self.countries_file:
            names.append(self.countries_file.filename)
        return names


class ExportOrchestrator:
    """Drives one run per record kind.

    Cursor kinds are walked page by page; every hit is projected and
    batched before the next page is requested. Aggregation kinds are read in
    a single request and emitted group by group, each group followed by its
    units. Upstream errors propagate and abort the export.
    """

    def __init__(
        self,
        client: SearchClient,
        config: ExportConfig,
        context: ExportContext,
        writer: Optional[SitemapFileWriter] = None,
    ):
        self.client = client
        self.config = config
        self.context = context
        self.writer = writer or SitemapFileWriter(config.output_dir, dry_run=config.dry_run)
        self.query = base_query(config.country)

    def run(self, kind: RecordKind) -> ExportRun:
        run = ExportRun(kind=kind)
        batcher = PartitionedBatcher(
            kind.name,
            self.writer,
            item_cap=self.config.item_cap,
            partitioned=kind.partition_field is not None,
        )
        projector = RecordProjector(
            kind,
            self.config.base_url,
            self.context.countries,
            self.context.observed,
            last_modified_cache=self._last_modified_cache(kind),
            fallback_last_modified=self.config.fallback_last_modified,
            now=self.context.now,
        )

        self._transition(run, RunState.PAGING)
        if kind.source == KindSource.AGGREGATION:
            self._run_aggregation(run, projector, batcher)
        else:
            self._run_cursor(run, projector, batcher)

        self._transition(run, RunState.FLUSHED)
        run.files = batcher.flush_all()
        self._transition(run, RunState.DONE)

        logger.info(
            "Finished %s: %d records, %d entries, %d skipped, %d file(s)",
            kind.name,
            run.seen,
            run.emitted,
            run.skipped,
            len(run.files),
        )
        return run

    def _run_cursor(
        self, run: ExportRun, projector: RecordProjector, batcher: PartitionedBatcher
    ) -> None:
        pager = CursorPager(
            self.client,
            run.kind.index,
            cursor_body(run.kind, self.query),
            page_size=self.config.page_size,
            scroll_timeout=self.config.scroll_timeout,
        )
        for page in pager.pages():
            for hit in page.hits:
                self._accept(run, projector.project_hit(hit), batcher)
            logger.debug("%s: %d of %s records", run.kind.name, run.seen, pager.total)
            self._transition(run, RunState.PAGING)

    def _run_aggregation(
        self, run: ExportRun, projector: RecordProjector, batcher: PartitionedBatcher
    ) -> None:
        buckets = AggregationPager(self.client).fetch_buckets(run.kind, self.query)
        for bucket, parent in walk_buckets(buckets):
            self._accept(run, projector.project_bucket(bucket, parent), batcher)

    def _accept(
        self,
        run: ExportRun,
        descriptor: Optional[URLDescriptor],
        batcher: PartitionedBatcher,
    ) -> None:
        self._transition(run, RunState.PROJECTING)
        run.seen += 1
        if descriptor is None:
            run.skipped += 1
            return
        self._transition(run, RunState.BATCHING)
        batcher.add(descriptor)
        run.emitted += 1

    def _last_modified_cache(self, kind: RecordKind) -> dict[str, str]:
        if kind.cache is None:
            return {}
        cache = self.context.last_modified_caches.get(kind.name)
        if cache is None:
            logger.info("Getting last-modified dates for %s from %s...", kind.name, kind.cache.index)
            cache = AggregationPager(self.client).fetch_last_modified(kind.cache, self.query)
            self.context.last_modified_caches[kind.name] = cache
        return cache

    @staticmethod
    def _transition(run: ExportRun, state: RunState) -> None:
        if state not in _ALLOWED_TRANSITIONS[run.state]:
            raise RuntimeError(f"Invalid run transition {run.state.value} -> {state.value}")
        run.state = state


def load_context(config: ExportConfig, now: Optional[datetime] = None) -> ExportContext:
    """Load reference data before anything is queried."""
    if config.countries_path is None:
        raise ReferenceDataError("No countries file given")
    context = ExportContext(countries=CountryLookup.load(config.countries_path))
    if now is not None:
        context.now = now
    return context


def run_export(
    config: ExportConfig,
    client: Optional[SearchClient] = None,
    now: Optional[datetime] = None,
) -> ExportResult:
    """
    Run a full export: every configured kind, the country sitemap, then the index.

    The index is only written once every kind has completed; any error
    aborts the export before it.

    Args:
        config: Export configuration
        client: Search client; one is created from ``config`` when omitted
        now: Reference time for change frequencies and index timestamps

    Returns:
        ExportResult with per-kind runs and the produced files
    """
    logger.info("Starting")
    logger.info("Getting countries file...")
    context = load_context(config, now)

    owns_client = client is None
    if client is None:
        client = SearchClient(
            config.db_uri,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            compression=config.compression,
            verify=config.verify_tls,
        )

    writer = SitemapFileWriter(config.output_dir, dry_run=config.dry_run)
    result = ExportResult()
    try:
        orchestrator = ExportOrchestrator(client, config, context, writer)
        for kind in config.kinds:
            logger.info("Getting %s records...", kind.name)
            result.runs.append(orchestrator.run(kind))
    finally:
        if owns_client:
            client.close()

    logger.info("Generating countries sitemap...")
    result.countries_file = build_country_sitemap(context.observed, config.base_url, writer)

    logger.info("Generating sitemap index...")
    builder = SitemapIndexBuilder(writer, config.static_sitemap_url)
    result.index_file = builder.build(
        result.filenames, config.base_url, config.location, context.now
    )
    logger.info("Finished")
    return result
