"""Tests for country reference data."""

import pytest

from sitemapper.countries import CountryLookup, ObservedCountries
from sitemapper.errors import ReferenceDataError


class TestCountryLookup:
    """Test suite for CountryLookup."""

    def test_load(self, countries_file):
        """Test loading slugs from the reference file."""
        lookup = CountryLookup.load(countries_file)
        assert len(lookup) == 3
        assert lookup.slug_for("mx") == "mexico"
        assert "ar" in lookup

    def test_unknown_code(self, countries_file):
        lookup = CountryLookup.load(countries_file)
        assert lookup.slug_for("zz") is None
        assert lookup.slug_for(None) is None

    def test_missing_file(self, tmp_path):
        """Test that a missing file is a reference data error."""
        with pytest.raises(ReferenceDataError) as exc_info:
            CountryLookup.load(tmp_path / "missing.json")
        assert exc_info.value.exit_code == 2

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "countries.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ReferenceDataError):
            CountryLookup.load(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "countries.json"
        path.write_text('["mx"]', encoding="utf-8")
        with pytest.raises(ReferenceDataError):
            CountryLookup.load(path)

    def test_entry_without_slug(self, tmp_path):
        path = tmp_path / "countries.json"
        path.write_text('{"mx": {"name": "Mexico"}}', encoding="utf-8")
        with pytest.raises(ReferenceDataError, match="mx"):
            CountryLookup.load(path)


class TestObservedCountries:
    """Test suite for ObservedCountries."""

    def test_first_seen_order(self):
        """Test that countries keep the order they were first seen in."""
        observed = ObservedCountries()
        observed.observe("mx", "mexico")
        observed.observe("ar", "argentina")
        observed.observe("mx", "mexico")
        assert observed.slugs() == ["mexico", "argentina"]
        assert len(observed) == 2
        assert "ar" in observed
