"""Tests for RecordProjector."""

from datetime import datetime, timezone

import pytest

from sitemapper.conftest import COUNTRIES, make_hit
from sitemapper.countries import CountryLookup, ObservedCountries
from sitemapper.models import Bucket, ChangeFrequency, KindRole, RecordKind
from sitemapper.projector import RecordProjector, first_value
from sitemapper.queries import BUYER, CONTRACT, SUPPLIER
from sitemapper.urls import MAX_URL_LENGTH

BASE = "https://example.com/"
NOW = datetime(2026, 10, 18, tzinfo=timezone.utc)


@pytest.fixture
def lookup() -> CountryLookup:
    return CountryLookup({code: entry["slug"] for code, entry in COUNTRIES.items()})


@pytest.fixture
def observed() -> ObservedCountries:
    return ObservedCountries()


def projector_for(kind, lookup, observed, **kwargs) -> RecordProjector:
    return RecordProjector(kind, BASE, lookup, observed, now=NOW, **kwargs)


class TestProjectHits:
    """Test suite for projecting cursor hits."""

    def test_basic_hit(self, lookup, observed):
        """Test locator composition and classification."""
        projector = projector_for(CONTRACT, lookup, observed)
        hit = make_hit("c-1", "mx", "2026-10-15", date_field="date")

        descriptor = projector.project_hit(hit)

        assert descriptor.locator == "https://example.com/mexico/contract/c-1"
        assert descriptor.last_modified == "2026-10-15"
        assert descriptor.change_frequency == ChangeFrequency.DAILY
        assert descriptor.partition_key == "mx"
        assert observed.slugs() == ["mexico"]

    def test_missing_identifier(self, lookup, observed):
        """Test that a hit without an identifier yields nothing."""
        projector = projector_for(SUPPLIER, lookup, observed)
        assert projector.project_hit(make_hit(None, "mx")) is None
        assert projector.project_hit({"_id": "x"}) is None

    def test_unknown_country_dropped(self, lookup, observed):
        """Test that an unresolvable partition drops the record."""
        projector = projector_for(SUPPLIER, lookup, observed)
        assert projector.project_hit(make_hit("s-1", "zz")) is None
        assert len(observed) == 0

    def test_missing_country_dropped(self, lookup, observed):
        projector = projector_for(SUPPLIER, lookup, observed)
        assert projector.project_hit(make_hit("s-1", None)) is None

    def test_unpartitioned_kind(self, lookup, observed):
        """Test that kinds without a partition field skip the country segment."""
        kind = RecordKind(name="page", role=KindRole.ACTIVITY, index="pages", partition_field=None)
        projector = projector_for(kind, lookup, observed)

        descriptor = projector.project({"id": ["about"]})

        assert descriptor.locator == "https://example.com/page/about"
        assert descriptor.partition_key is None

    def test_identifier_encoded(self, lookup, observed):
        projector = projector_for(SUPPLIER, lookup, observed)
        descriptor = projector.project_hit(make_hit("ACME SA de CV", "mx"))
        assert descriptor.locator == "https://example.com/mexico/supplier/ACME%20SA%20de%20CV"

    def test_distinct_identifiers_stay_distinct(self, lookup, observed):
        """Test that # and ? in identifiers are encoded into the path."""
        projector = projector_for(SUPPLIER, lookup, observed)

        first = projector.project_hit(make_hit("ACME #1", "mx"))
        second = projector.project_hit(make_hit("ACME #2", "mx"))
        query = projector.project_hit(make_hit("what?x=1", "mx"))

        assert first.locator == "https://example.com/mexico/supplier/ACME%20%231"
        assert second.locator == "https://example.com/mexico/supplier/ACME%20%232"
        assert query.locator == "https://example.com/mexico/supplier/what%3Fx=1"

    def test_compact_date_normalized(self, lookup, observed):
        projector = projector_for(CONTRACT, lookup, observed)
        descriptor = projector.project_hit(make_hit("c-1", "mx", "20240102", date_field="date"))
        assert descriptor.last_modified == "2024-01-02"

    def test_overlong_url_dropped(self, lookup, observed):
        """Test that an identifier producing an overlong URL is skipped."""
        projector = projector_for(SUPPLIER, lookup, observed)
        prefix = len("https://example.com/mexico/supplier/")

        assert projector.project_hit(make_hit("x" * (MAX_URL_LENGTH - prefix + 1), "mx")) is None
        kept = projector.project_hit(make_hit("x" * (MAX_URL_LENGTH - prefix), "mx"))
        assert len(kept.locator) == MAX_URL_LENGTH

    def test_invalid_date_omitted(self, lookup, observed):
        """Test that an old date is dropped but the entry is kept."""
        projector = projector_for(CONTRACT, lookup, observed)
        descriptor = projector.project_hit(make_hit("c-1", "mx", "1970-01-01", date_field="date"))
        assert descriptor.last_modified is None
        assert descriptor.change_frequency == ChangeFrequency.YEARLY


class TestLastModifiedResolution:
    """Cache first, then the record field, then the fallback."""

    def test_cache_wins(self, lookup, observed):
        projector = projector_for(
            SUPPLIER, lookup, observed, last_modified_cache={"s-1": "2025-01-01T00:00:00.000Z"}
        )
        descriptor = projector.project_hit(make_hit("s-1", "mx", "2020-01-01"))
        assert descriptor.last_modified == "2025-01-01T00:00:00.000Z"

    def test_record_field_second(self, lookup, observed):
        projector = projector_for(SUPPLIER, lookup, observed, last_modified_cache={"other": "2025-01-01"})
        descriptor = projector.project_hit(make_hit("s-1", "mx", "2020-01-01"))
        assert descriptor.last_modified == "2020-01-01"

    def test_fallback_last(self, lookup, observed):
        projector = projector_for(SUPPLIER, lookup, observed, fallback_last_modified="2018-06-01")
        descriptor = projector.project_hit(make_hit("s-1", "mx"))
        assert descriptor.last_modified == "2018-06-01"

    def test_nothing_available(self, lookup, observed):
        projector = projector_for(SUPPLIER, lookup, observed)
        descriptor = projector.project_hit(make_hit("s-1", "mx"))
        assert descriptor.last_modified is None
        assert descriptor.change_frequency == ChangeFrequency.MONTHLY


class TestProjectBuckets:
    """Test suite for projecting aggregation buckets."""

    def test_group_and_unit_paths(self, lookup, observed):
        """Test the compound path used for nested units."""
        projector = projector_for(BUYER, lookup, observed)
        group = Bucket(key="B-9", partition_key="ar", last_modified="2026-10-01T00:00:00.000Z")
        unit = Bucket(key="U-1", last_modified="2026-06-01T00:00:00.000Z")
        group.children.append(unit)

        group_descriptor = projector.project_bucket(group)
        unit_descriptor = projector.project_bucket(unit, group)

        assert group_descriptor.locator == "https://example.com/argentina/buyer/B-9"
        assert group_descriptor.change_frequency == ChangeFrequency.WEEKLY
        assert unit_descriptor.locator == "https://example.com/argentina/buyer/B-9/unit/U-1"
        assert unit_descriptor.partition_key == "ar"
        assert unit_descriptor.change_frequency == ChangeFrequency.YEARLY

    def test_bucket_without_country(self, lookup, observed):
        projector = projector_for(BUYER, lookup, observed)
        assert projector.project_bucket(Bucket(key="B-9")) is None


class TestFirstValue:
    """Test suite for first_value."""

    def test_list_value(self):
        assert first_value({"id": ["a", "b"]}, "id") == "a"

    def test_scalar_value(self):
        assert first_value({"id": "a"}, "id") == "a"

    def test_empty_or_missing(self):
        assert first_value({"id": []}, "id") is None
        assert first_value({}, "id") is None
        assert first_value({"id": "a"}, None) is None
