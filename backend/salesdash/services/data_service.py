"""
Collection resources for the dashboard data sets.

Each function is a fixed configuration of ``CollectionResource``: collection,
cache key, query shape and TTL.
"""
from datetime import datetime
from typing import Optional

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from salesdash.config import settings
from salesdash.schemas.records import CostRecord, FeeRecord, LogisticsRecord, SaleRecord
from salesdash.services.collection_service import CollectionResource, record_cache
from salesdash.utils.parsing import epoch_millis


def sales_cache_key(date_from: Optional[datetime], date_to: Optional[datetime]) -> str:
    return f"{settings.SALES_COLLECTION}-{epoch_millis(date_from)}-{epoch_millis(date_to)}"


def sales_resource(db, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None) -> CollectionResource:
    """Sales in the inclusive [date_from, date_to] range, newest first."""

    def build_query(collection_ref):
        query = collection_ref
        if date_from:
            query = query.where(filter=FieldFilter("data", ">=", date_from))
        if date_to:
            query = query.where(filter=FieldFilter("data", "<=", date_to))
        return query.order_by("data", direction=firestore.Query.DESCENDING).limit(settings.SALES_QUERY_LIMIT)

    return CollectionResource(
        db,
        settings.SALES_COLLECTION,
        sales_cache_key(date_from, date_to),
        build_query,
        settings.SALES_CACHE_TTL,
        model=SaleRecord,
    )


def logistics_resource(db) -> CollectionResource:
    """All logistics rows. They carry no date field, so there is no range filter."""
    return CollectionResource(
        db,
        settings.LOGISTICS_COLLECTION,
        logistics_cache_key(),
        lambda collection_ref: collection_ref.limit(settings.LOGISTICS_QUERY_LIMIT),
        settings.LOGISTICS_CACHE_TTL,
        model=LogisticsRecord,
    )


def logistics_cache_key() -> str:
    return f"{settings.LOGISTICS_COLLECTION}-all"


def full_collection_cache_key(collection: str) -> str:
    return f"{collection}-all"


def _full_collection(db, collection: str, model) -> CollectionResource:
    return CollectionResource(
        db,
        collection,
        full_collection_cache_key(collection),
        ttl=settings.FEES_CACHE_TTL,
        model=model,
    )


def fees_resource(db) -> CollectionResource:
    return _full_collection(db, settings.FEES_COLLECTION, FeeRecord)


def costs_resource(db) -> CollectionResource:
    return _full_collection(db, settings.COSTS_COLLECTION, CostRecord)


def packaging_costs_resource(db) -> CollectionResource:
    return _full_collection(db, settings.PACKAGING_COSTS_COLLECTION, CostRecord)


def clear_cache() -> None:
    record_cache.clear()
