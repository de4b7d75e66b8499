"""Sitemap XML serialization."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union
from xml.sax.saxutils import escape

from sitemapper.models import SitemapFile, URLDescriptor

logger = logging.getLogger(__name__)

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


def sitemap_filename(kind: str, partition: Optional[str] = None, sequence: int = 0) -> str:
    """
    Build a deterministic sitemap filename.

    Examples:
        >>> sitemap_filename("supplier", "mx")
        'sitemap_mx_supplier.xml'
        >>> sitemap_filename("supplier", "mx", 2)
        'sitemap_mx_supplier_2.xml'
        >>> sitemap_filename("index")
        'sitemap_index.xml'
    """
    name = "sitemap_"
    if partition:
        name += f"{partition}_"
    name += kind
    if sequence > 0:
        name += f"_{sequence}"
    return name + ".xml"


def render_entries(entries: Iterable[URLDescriptor], is_index: bool = False) -> Iterator[str]:
    """Yield the sitemap document for ``entries`` chunk by chunk."""
    root = "sitemapindex" if is_index else "urlset"
    yield XML_DECLARATION
    yield f'<{root} xmlns="{SITEMAP_NAMESPACE}">\n'
    for entry in entries:
        loc = escape(entry.locator, {"'": "&apos;", '"': "&quot;"})
        if is_index:
            lastmod = f"<lastmod>{entry.last_modified}</lastmod>" if entry.last_modified else ""
            yield f"<sitemap><loc>{loc}</loc>{lastmod}</sitemap>\n"
            continue
        yield f"<url><loc>{loc}</loc>\n"
        if entry.last_modified:
            yield f"<lastmod>{entry.last_modified}</lastmod>\n"
        if entry.change_frequency:
            yield f"<changefreq>{entry.change_frequency.value}</changefreq>\n"
        yield "</url>\n"
    yield f"</{root}>"


class SitemapFileWriter:
    """Writes sitemap and sitemap index documents into ``output_dir``.

    In dry-run mode filenames are computed and logged but nothing touches
    the filesystem.
    """

    def __init__(self, output_dir: Union[str, Path] = "sitemaps", dry_run: bool = False):
        self.output_dir = Path(output_dir)
        self.dry_run = dry_run

    def write(
        self, entries: list[URLDescriptor], filename: str, is_index: bool = False
    ) -> SitemapFile:
        logger.info("Writing: %s", filename)
        if not self.dry_run:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with open(self.output_dir / filename, "w", encoding="utf-8", newline="\n") as f:
                f.writelines(render_entries(entries, is_index))
        return SitemapFile(filename=filename, entry_count=len(entries), is_index=is_index)
