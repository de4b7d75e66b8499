"""
Export configuration.

Values are supplied by the CLI, which reads flags with fallbacks to
``SITEMAPPER_*`` environment variables (optionally from a ``.env`` file).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sitemapper.errors import ConfigurationError
from sitemapper.models import RecordKind
from sitemapper.queries import DEFAULT_KINDS, KIND_PRESETS


class ExportConfig(BaseModel):
    """Settings for one export run."""

    model_config = ConfigDict(frozen=True)

    DEFAULT_DB_URI: ClassVar[str] = "http://localhost:9200/"
    DEFAULT_OUTPUT_DIR: ClassVar[str] = "sitemaps"
    DEFAULT_PAGE_SIZE: ClassVar[int] = 10000
    DEFAULT_SCROLL_TIMEOUT: ClassVar[str] = "600s"
    DEFAULT_ITEM_CAP: ClassVar[int] = 25000
    DEFAULT_STATIC_SITEMAP_URL: ClassVar[str] = "https://sociedad.info/sitemap-static.xml"

    db_uri: str = Field(default=DEFAULT_DB_URI, description="Search engine endpoint")
    base_url: str = Field(..., description="Public site root used to build every URL")
    location: str = Field(..., min_length=1, description="Output directory tag used in index URLs")
    countries_path: Optional[Path] = Field(
        default=None, description="JSON file mapping country codes to slugs"
    )
    country: Optional[str] = Field(default=None, description="Only export this country code")
    output_dir: Path = Field(default=Path(DEFAULT_OUTPUT_DIR))
    dry_run: bool = Field(default=False, description="Log filenames without writing files")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=10000)
    scroll_timeout: str = Field(default=DEFAULT_SCROLL_TIMEOUT, pattern=r"^\d+(ms|s|m|h|d)$")
    request_timeout: float = Field(default=60.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=10, ge=0, description="Transport-level connection retries")
    compression: bool = Field(default=True)
    verify_tls: bool = Field(default=False)
    item_cap: int = Field(default=DEFAULT_ITEM_CAP, ge=1, le=50000)
    static_sitemap_url: Optional[str] = Field(default=DEFAULT_STATIC_SITEMAP_URL)
    fallback_last_modified: Optional[str] = Field(
        default=None, description="Last-modified used when a record has none"
    )
    kinds: tuple[RecordKind, ...] = Field(default=DEFAULT_KINDS)

    @field_validator("db_uri", "base_url")
    @classmethod
    def check_http_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"must be an http(s) URL: {v!r}")
        return v

    @field_validator("base_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        return v if v.endswith("/") else v + "/"

    @field_validator("kinds")
    @classmethod
    def check_kinds(cls, v: tuple[RecordKind, ...]) -> tuple[RecordKind, ...]:
        if not v:
            raise ValueError("at least one record kind is required")
        return v

    @classmethod
    def from_options(cls, **options: Any) -> "ExportConfig":
        """
        Build a config from CLI options, dropping unset values.

        Raises:
            ConfigurationError: If a required value is missing or invalid
        """
        values = {key: value for key, value in options.items() if value is not None}
        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"Invalid configuration: {problems}", original_error=e) from e


def select_kinds(preset: str = "default", names: Optional[str] = None) -> tuple[RecordKind, ...]:
    """
    Pick record kinds from a preset, optionally filtered by comma-separated names.

    Raises:
        ConfigurationError: On an unknown preset or kind name
    """
    if preset not in KIND_PRESETS:
        raise ConfigurationError(
            f"Unknown kind preset '{preset}'. Available: {', '.join(KIND_PRESETS)}"
        )
    kinds = KIND_PRESETS[preset]
    if not names:
        return kinds

    wanted = [name.strip() for name in names.split(",") if name.strip()]
    available = {kind.name for kind in kinds}
    unknown = [name for name in wanted if name not in available]
    if unknown:
        raise ConfigurationError(
            f"Unknown kind(s) {', '.join(unknown)} for preset '{preset}'. "
            f"Available: {', '.join(sorted(available))}"
        )
    return tuple(kind for kind in kinds if kind.name in wanted)
