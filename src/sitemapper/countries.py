"""Country reference data.

The reference file maps country codes to the slug used as the first path
segment of every partitioned URL::

    {"mx": {"slug": "mexico", "name": "México"}, ...}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator, Optional, Union

from sitemapper.errors import ReferenceDataError

logger = logging.getLogger(__name__)


class CountryLookup:
    """Read-only mapping from country code to URL slug."""

    def __init__(self, slugs: dict[str, str]):
        self._slugs = dict(slugs)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "CountryLookup":
        """
        Load the reference file.

        Raises:
            ReferenceDataError: If the file is missing, not valid JSON, or
                an entry has no string ``slug``
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ReferenceDataError(
                f"Error trying to read countries file {path}: {e}", original_error=e
            ) from e

        if not isinstance(data, dict):
            raise ReferenceDataError(f"Countries file {path} must contain a JSON object")

        slugs: dict[str, str] = {}
        for code, entry in data.items():
            slug = entry.get("slug") if isinstance(entry, dict) else None
            if not isinstance(slug, str) or not slug:
                raise ReferenceDataError(f"Countries file {path}: entry '{code}' has no slug")
            slugs[code] = slug

        logger.info("Loaded %d countries from %s", len(slugs), path)
        return cls(slugs)

    def slug_for(self, code: Optional[str]) -> Optional[str]:
        if code is None:
            return None
        return self._slugs.get(code)

    def __contains__(self, code: object) -> bool:
        return code in self._slugs

    def __len__(self) -> int:
        return len(self._slugs)


class ObservedCountries:
    """Countries actually seen during an export, in first-seen order."""

    def __init__(self):
        self._seen: dict[str, str] = {}

    def observe(self, code: str, slug: str) -> None:
        self._seen.setdefault(code, slug)

    def items(self) -> Iterator[tuple[str, str]]:
        return iter(self._seen.items())

    def slugs(self) -> list[str]:
        return list(self._seen.values())

    def __contains__(self, code: object) -> bool:
        return code in self._seen

    def __len__(self) -> int:
        return len(self._seen)
