"""Per-partition buffering of sitemap entries into capped files."""

from __future__ import annotations

import logging
from typing import Optional

from sitemapper.models import SitemapFile, URLDescriptor
from sitemapper.writer import SitemapFileWriter, sitemap_filename

logger = logging.getLogger(__name__)

DEFAULT_ITEM_CAP = 25000


class PartitionBuffer:
    """Pending entries of one partition plus its file sequence."""

    def __init__(self, key: Optional[str]):
        self.key = key
        self.entries: list[URLDescriptor] = []
        self.flushes = 0

    def next_sequence(self) -> int:
        """0 (no suffix) for the first file, then 2, 3, ..."""
        return 0 if self.flushes == 0 else self.flushes + 1

    def __len__(self) -> int:
        return len(self.entries)


class PartitionedBatcher:
    """Routes descriptors to per-partition buffers and flushes full ones.

    A buffer is written as soon as it holds ``item_cap`` entries, so no file
    ever exceeds the cap. ``flush_all()`` writes whatever remains, in the
    order partitions were first seen.

    Usage:
        batcher = PartitionedBatcher("supplier", writer)
        for descriptor in descriptors:
            batcher.add(descriptor)
        files = batcher.flush_all()
    """

    def __init__(
        self,
        kind: str,
        writer: SitemapFileWriter,
        *,
        item_cap: int = DEFAULT_ITEM_CAP,
        partitioned: bool = True,
    ):
        if item_cap < 1:
            raise ValueError("item_cap must be at least 1")
        self.kind = kind
        self.writer = writer
        self.item_cap = item_cap
        self.partitioned = partitioned
        self.files: list[SitemapFile] = []
        self.added = 0
        self._buffers: dict[Optional[str], PartitionBuffer] = {}

    def add(self, descriptor: URLDescriptor) -> Optional[SitemapFile]:
        """Buffer one descriptor; returns the file written if its buffer filled up."""
        key = descriptor.partition_key if self.partitioned else None
        buffer = self._buffers.get(key)
        if buffer is None:
            buffer = self._buffers[key] = PartitionBuffer(key)
        buffer.entries.append(descriptor)
        self.added += 1

        if len(buffer) >= self.item_cap:
            return self._flush(buffer)
        return None

    def flush_all(self) -> list[SitemapFile]:
        """
        Write every non-empty buffer.

        Returns:
            All files produced by this batcher, in the order they were written
        """
        for buffer in self._buffers.values():
            if buffer.entries:
                self._flush(buffer)
        return list(self.files)

    @property
    def partitions(self) -> list[Optional[str]]:
        return list(self._buffers)

    def _flush(self, buffer: PartitionBuffer) -> SitemapFile:
        filename = sitemap_filename(self.kind, buffer.key, buffer.next_sequence())
        logger.debug(
            "Flushing %d %s entries for partition %s", len(buffer), self.kind, buffer.key or "-"
        )
        sitemap = self.writer.write(buffer.entries, filename)
        buffer.flushes += 1
        buffer.entries = []
        self.files.append(sitemap)
        return sitemap
