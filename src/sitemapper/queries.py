"""Per-deployment query shapes and record kinds."""

from __future__ import annotations

from typing import Any, Optional

from sitemapper.models import KindRole, KindSource, LastModifiedCacheSpec, RecordKind

SUPPLIERS_INDEX = "sociedad_suppliers"
BUYERS_INDEX = "sociedad_buyers"
CONTRACTS_INDEX = "sociedad_contracts"

COUNTRY_FILTER_FIELD = "country.keyword"

SUPPLIER = RecordKind(
    name="supplier",
    role=KindRole.PROVIDER,
    source=KindSource.CURSOR,
    index=SUPPLIERS_INDEX,
    id_field="id",
    last_modified_field="updated_date",
    partition_field="country",
    cache=LastModifiedCacheSpec(
        index=CONTRACTS_INDEX,
        key_field="supplier.id.keyword",
        date_field="date",
    ),
)

BUYER = RecordKind(
    name="buyer",
    role=KindRole.ACTIVITY,
    source=KindSource.AGGREGATION,
    index=CONTRACTS_INDEX,
    id_field="buyer.id.keyword",
    last_modified_field="date",
    partition_field="country.keyword",
    unit_field="buyer.unit.id.keyword",
    unit_segment="unit",
    bucket_size=25_000,
    unit_bucket_size=1_000,
)

CONTRACT = RecordKind(
    name="contract",
    role=KindRole.ACTIVITY,
    source=KindSource.CURSOR,
    index=CONTRACTS_INDEX,
    id_field="id",
    last_modified_field="date",
    partition_field="country",
)

# Buyer records read directly from their own index, one sitemap entry per record.
BUYER_RECORDS = RecordKind(
    name="buyer",
    role=KindRole.ACTIVITY,
    source=KindSource.CURSOR,
    index=BUYERS_INDEX,
    id_field="id",
    last_modified_field="updated_date",
    partition_field="country",
)

# Run order: provider records, entity aggregation, transactional records.
DEFAULT_KINDS: tuple[RecordKind, ...] = (SUPPLIER, BUYER, CONTRACT)

KIND_PRESETS: dict[str, tuple[RecordKind, ...]] = {
    "default": DEFAULT_KINDS,
    "records": (BUYER_RECORDS, SUPPLIER.model_copy(update={"cache": None})),
}


def base_query(country: Optional[str] = None) -> dict[str, Any]:
    """Query selecting every document, or only those of one country."""
    if country:
        return {"query": {"match": {COUNTRY_FILTER_FIELD: country}}}
    return {"query": {"match_all": {}}}


def cursor_body(kind: RecordKind, query: dict[str, Any]) -> dict[str, Any]:
    """Request body for a cursor walk: only the bound fields are returned."""
    return {"fields": kind.requested_fields, **query}
