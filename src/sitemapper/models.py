"""Data models for sitemap export runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sitemapper.urls import MAX_URL_LENGTH, is_valid_url_length, normalize_sitemap_date


class ChangeFrequency(str, Enum):
    """Values allowed in a sitemap ``<changefreq>`` element."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class KindRole(str, Enum):
    """How a record kind is classified for change frequency."""

    PROVIDER = "provider"  # slowly changing reference data
    ACTIVITY = "activity"  # transactional / activity records


class KindSource(str, Enum):
    """How a record kind is read from the search engine."""

    CURSOR = "cursor"
    AGGREGATION = "aggregation"


class LastModifiedCacheSpec(BaseModel):
    """Bulk aggregation that precomputes last-modified values per identifier."""

    model_config = ConfigDict(frozen=True)

    index: str = Field(..., description="Index holding the related records")
    key_field: str = Field(..., description="Field grouping related records by identifier")
    date_field: str = Field(..., description="Date field aggregated with max")
    size: int = Field(default=1_000_000, ge=1, description="Upper bound on cached identifiers")


class RecordKind(BaseModel):
    """One exported record type with its field bindings and classification rule.

    ``name`` is both the URL path segment and the type part of filenames.
    Cursor kinds read ``id_field``/``last_modified_field``/``partition_field``
    from every hit. Aggregation kinds group ``index`` by ``id_field`` and,
    when ``unit_field`` is set, by ``unit_field`` inside each group.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    role: KindRole
    source: KindSource = Field(default=KindSource.CURSOR)
    index: str = Field(..., min_length=1)
    id_field: str = Field(default="id")
    last_modified_field: Optional[str] = Field(default="updated_date")
    partition_field: Optional[str] = Field(default="country")
    unit_field: Optional[str] = Field(default=None)
    unit_segment: Optional[str] = Field(default=None, description="Path segment before unit ids")
    bucket_size: int = Field(default=25_000, ge=1, description="Top-level bucket bound")
    unit_bucket_size: int = Field(default=1_000, ge=1, description="Nested bucket bound")
    cache: Optional[LastModifiedCacheSpec] = Field(default=None)

    @model_validator(mode="after")
    def check_unit_binding(self) -> "RecordKind":
        if self.unit_field and self.source != KindSource.AGGREGATION:
            raise ValueError(f"Kind '{self.name}': unit_field requires an aggregation source")
        if self.unit_field and not self.unit_segment:
            raise ValueError(f"Kind '{self.name}': unit_field requires unit_segment")
        return self

    @property
    def requested_fields(self) -> list[str]:
        """Fields requested from the search engine for cursor kinds."""
        names = [self.id_field, self.last_modified_field, self.partition_field]
        return [name for name in names if name]


class URLDescriptor(BaseModel):
    """One sitemap entry.

    Validation happens here and only here: a locator longer than
    ``MAX_URL_LENGTH`` is rejected, and a last-modified value that does not
    parse to a year >= 2000 is dropped from the entry. Kept values are
    normalized to W3C Datetime.
    """

    model_config = ConfigDict(frozen=True)

    locator: str = Field(..., min_length=1)
    last_modified: Optional[str] = Field(default=None)
    change_frequency: Optional[ChangeFrequency] = Field(default=None)
    partition_key: Optional[str] = Field(default=None, exclude=True)

    @field_validator("locator")
    @classmethod
    def check_locator_length(cls, v: str) -> str:
        if not is_valid_url_length(v):
            raise ValueError(f"locator exceeds {MAX_URL_LENGTH} characters ({len(v)})")
        return v

    @field_validator("last_modified", mode="before")
    @classmethod
    def normalize_last_modified(cls, v: Any) -> Optional[str]:
        return normalize_sitemap_date(v)


@dataclass
class Page:
    """One page of hits returned by the search engine."""

    hits: list[dict[str, Any]]
    total: Optional[int] = None
    cursor: Optional[str] = None


@dataclass
class Bucket:
    """One aggregation bucket, optionally with nested unit buckets."""

    key: str
    last_modified: Optional[Any] = None
    partition_key: Optional[str] = None
    doc_count: int = 0
    children: list["Bucket"] = field(default_factory=list)


@dataclass(frozen=True)
class SitemapFile:
    """A sitemap document that has been rendered (and written unless dry-run)."""

    filename: str
    entry_count: int
    is_index: bool = False
