"""Tests for ExportConfig."""

from pathlib import Path

import pytest

from sitemapper.config import ExportConfig, select_kinds
from sitemapper.errors import ConfigurationError
from sitemapper.queries import BUYER_RECORDS, CONTRACT, DEFAULT_KINDS, SUPPLIER


class TestExportConfig:
    """Test suite for ExportConfig."""

    def test_defaults(self):
        """Test ExportConfig default values."""
        config = ExportConfig(base_url="https://e.com", location="prod")

        assert config.db_uri == "http://localhost:9200/"
        assert config.base_url == "https://e.com/"
        assert config.output_dir == Path("sitemaps")
        assert config.page_size == 10000
        assert config.scroll_timeout == "600s"
        assert config.item_cap == 25000
        assert config.dry_run is False
        assert config.country is None
        assert config.fallback_last_modified is None
        assert config.kinds == DEFAULT_KINDS

    def test_trailing_slash_kept(self):
        config = ExportConfig(base_url="https://e.com/", location="prod")
        assert config.base_url == "https://e.com/"

    def test_from_options_drops_none(self):
        """Test that unset CLI options fall back to defaults."""
        config = ExportConfig.from_options(
            base_url="https://e.com", location="prod", page_size=None, item_cap=100
        )
        assert config.page_size == 10000
        assert config.item_cap == 100

    def test_missing_base_url(self):
        """Test that a missing required value is a configuration error."""
        with pytest.raises(ConfigurationError, match="base_url") as exc_info:
            ExportConfig.from_options(location="prod")
        assert exc_info.value.exit_code == 1

    def test_invalid_url(self):
        with pytest.raises(ConfigurationError, match="db_uri"):
            ExportConfig.from_options(base_url="https://e.com", location="prod", db_uri="localhost")

    def test_invalid_scroll_timeout(self):
        with pytest.raises(ConfigurationError):
            ExportConfig.from_options(base_url="https://e.com", location="prod", scroll_timeout="10 min")

    def test_cap_bounds(self):
        with pytest.raises(ConfigurationError):
            ExportConfig.from_options(base_url="https://e.com", location="prod", item_cap=0)


class TestSelectKinds:
    """Test suite for select_kinds."""

    def test_default_preset(self):
        assert select_kinds() == DEFAULT_KINDS

    def test_subset_keeps_run_order(self):
        assert select_kinds("default", "contract, supplier") == (SUPPLIER, CONTRACT)

    def test_records_preset(self):
        kinds = select_kinds("records")
        assert kinds[0] == BUYER_RECORDS
        assert kinds[1].name == "supplier"
        assert kinds[1].cache is None

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError, match="nope"):
            select_kinds("default", "nope")

    def test_unknown_preset(self):
        with pytest.raises(ConfigurationError):
            select_kinds("other")
