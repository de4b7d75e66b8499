"""Sitemap exporter for search-engine collections.

This package provides:
- Pagers: cursor (scroll) and aggregation walks over a search index
- Projection: raw hits and buckets into sitemap URL descriptors
- Batching: per-country buffers flushed into capped sitemap files
- Index: the top-level sitemap index referencing every produced file
"""

__version__ = "0.1.0"
