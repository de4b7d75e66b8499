"""Sitemap index and country sitemap generation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sitemapper.countries import ObservedCountries
from sitemapper.models import SitemapFile, URLDescriptor
from sitemapper.urls import encode_sitemap_url, format_timestamp, join_url
from sitemapper.writer import SitemapFileWriter, sitemap_filename

logger = logging.getLogger(__name__)

DEFAULT_STATIC_SITEMAP_URL = "https://sociedad.info/sitemap-static.xml"
INDEX_KIND = "index"
COUNTRIES_KIND = "countries"


def published_url(base_url: str, location: str, filename: str) -> str:
    """Public URL of a generated sitemap file."""
    return f"{base_url.rstrip('/')}/static/{location}/{filename}"


class SitemapIndexBuilder:
    """Writes the top-level index referencing every generated sitemap.

    The first entry always points at the separately maintained static
    sitemap; generated files follow in the order they were produced.
    """

    def __init__(
        self,
        writer: SitemapFileWriter,
        static_sitemap_url: Optional[str] = DEFAULT_STATIC_SITEMAP_URL,
    ):
        self.writer = writer
        self.static_sitemap_url = static_sitemap_url

    def build(
        self,
        filenames: Iterable[str],
        base_url: str,
        location: str,
        now: Optional[datetime] = None,
    ) -> SitemapFile:
        stamp = format_timestamp(now or datetime.now(timezone.utc))
        entries = []
        if self.static_sitemap_url:
            entries.append(URLDescriptor(locator=self.static_sitemap_url, last_modified=stamp))
        for filename in filenames:
            url = published_url(base_url, location, filename)
            logger.debug("Index URI: %s", url)
            entries.append(URLDescriptor(locator=encode_sitemap_url(url), last_modified=stamp))

        return self.writer.write(entries, sitemap_filename(INDEX_KIND), is_index=True)


def build_country_sitemap(
    observed: ObservedCountries, base_url: str, writer: SitemapFileWriter
) -> SitemapFile:
    """Write one entry per country seen during the export.

    Entries carry no ``<lastmod>`` so the file only changes when the set of
    countries does.
    """
    entries = [
        URLDescriptor(locator=encode_sitemap_url(join_url(base_url, slug)))
        for slug in observed.slugs()
    ]
    return writer.write(entries, sitemap_filename(COUNTRIES_KIND))
