"""Projection of raw search results into sitemap URL descriptors."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from sitemapper.classify import classify
from sitemapper.countries import CountryLookup, ObservedCountries
from sitemapper.models import Bucket, RecordKind, URLDescriptor
from sitemapper.urls import encode_sitemap_url, join_url

logger = logging.getLogger(__name__)


def first_value(fields: Mapping[str, Any], name: Optional[str]) -> Any:
    """Return the first value of a field as returned by the ``fields`` API."""
    if not name:
        return None
    value = fields.get(name)
    if isinstance(value, list):
        return value[0] if value else None
    return value


class RecordProjector:
    """Turns hits and buckets of one record kind into ``URLDescriptor``s.

    Last-modified resolution order: the precomputed ``last_modified_cache``
    entry for the identifier, then the record's own last-modified field,
    then ``fallback_last_modified``.

    A record yields nothing when its identifier is missing, its country is
    not in the lookup, or its encoded URL is too long.
    """

    def __init__(
        self,
        kind: RecordKind,
        base_url: str,
        countries: CountryLookup,
        observed: ObservedCountries,
        *,
        last_modified_cache: Optional[Mapping[str, str]] = None,
        fallback_last_modified: Optional[str] = None,
        now: Optional[datetime] = None,
    ):
        self.kind = kind
        self.base_url = base_url
        self.countries = countries
        self.observed = observed
        self.last_modified_cache = last_modified_cache or {}
        self.fallback_last_modified = fallback_last_modified
        self.now = now or datetime.now(timezone.utc)

    def project(self, fields: Mapping[str, Any]) -> Optional[URLDescriptor]:
        """Project the ``fields`` of one hit."""
        identifier = first_value(fields, self.kind.id_field)
        if identifier is None or identifier == "":
            return None

        last_modified = self.resolve_last_modified(
            str(identifier), first_value(fields, self.kind.last_modified_field)
        )
        return self._describe(
            [self.kind.name, str(identifier)],
            first_value(fields, self.kind.partition_field),
            last_modified,
        )

    def project_hit(self, hit: Mapping[str, Any]) -> Optional[URLDescriptor]:
        return self.project(hit.get("fields") or {})

    def project_bucket(
        self, bucket: Bucket, parent: Optional[Bucket] = None
    ) -> Optional[URLDescriptor]:
        """Project an aggregation bucket; units are nested under their parent group."""
        if parent is None:
            segments = [self.kind.name, bucket.key]
            partition = bucket.partition_key
        else:
            segments = [self.kind.name, parent.key, self.kind.unit_segment, bucket.key]
            partition = parent.partition_key

        last_modified = self.resolve_last_modified(bucket.key, bucket.last_modified)
        return self._describe(segments, partition, last_modified)

    def resolve_last_modified(self, identifier: str, record_value: Any) -> Optional[Any]:
        cached = self.last_modified_cache.get(identifier)
        if cached:
            return cached
        if record_value is not None:
            return record_value
        return self.fallback_last_modified

    def _describe(
        self, segments: list[str], partition: Any, last_modified: Any
    ) -> Optional[URLDescriptor]:
        prefix: list[str] = []
        partition_key = None
        if self.kind.partition_field:
            partition_key = None if partition is None else str(partition)
            slug = self.countries.slug_for(partition_key)
            if slug is None:
                return None
            self.observed.observe(partition_key, slug)
            prefix = [slug]

        locator = encode_sitemap_url(join_url(self.base_url, *prefix, *segments))
        try:
            return URLDescriptor(
                locator=locator,
                last_modified=last_modified,
                change_frequency=classify(self.kind, last_modified, self.now),
                partition_key=partition_key,
            )
        except ValidationError as e:
            logger.debug("Skipping %s: %s", locator[:100], e.errors()[0]["msg"])
            return None
