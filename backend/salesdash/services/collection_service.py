"""
Collection fetcher.

A ``CollectionResource`` is one consumer's view of a Firestore collection
query: it consults the process-wide record cache before querying and keeps
loading/error/staleness state for the caller.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence, Type

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from salesdash.config import settings
from salesdash.schemas.records import RecordModel
from salesdash.services.cache import RecordCache

logger = logging.getLogger(__name__)

QueryBuilder = Callable[[Any], Any]

# Shared by every resource in the process
record_cache = RecordCache(capacity=settings.CACHE_CAPACITY)


def _identity_query(collection_ref):
    return collection_ref


class CollectionResource:

    def __init__(
        self,
        db,
        collection: str,
        cache_key: str,
        build_query: QueryBuilder = _identity_query,
        ttl: float = 5 * 60,
        *,
        model: Optional[Type[RecordModel]] = None,
        cache: Optional[RecordCache] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.db = db
        self.collection = collection
        self.cache_key = cache_key
        self.build_query = build_query
        self.ttl = ttl
        self.model = model
        self.cache = record_cache if cache is None else cache
        self.clock = clock

        self.data: Sequence = ()
        self.is_loading = True
        self.error: Optional[Exception] = None
        self.last_updated: Optional[datetime] = None

        self._refresh_trigger = 0
        self._consumed_trigger = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def refetch(self) -> None:
        """Bypass the cache on the next load, whatever the entry's age."""
        self._refresh_trigger += 1

    def close(self) -> None:
        """Tear the resource down; loads still in flight are discarded."""
        self._closed = True

    async def load(self) -> "CollectionResource":
        forced = self._refresh_trigger != self._consumed_trigger
        self._consumed_trigger = self._refresh_trigger

        if not forced:
            cached = self.cache.get(self.cache_key, self.ttl)
            if cached is not None:
                if not self._closed:
                    self._adopt(cached.records, cached.timestamp)
                return self

        self.is_loading = True
        self.error = None
        try:
            records = await run_in_threadpool(self._run_query)
            entry = self.cache.set(self.cache_key, records, self.ttl)
        except Exception as exc:
            logger.error("Error fetching %s: %s", self.collection, exc)
            if not self._closed:
                self.error = exc
                self.is_loading = False
            return self

        if not self._closed:
            self._adopt(entry.records, entry.timestamp)
        return self

    def _adopt(self, records: Sequence, timestamp: float) -> None:
        self.data = records
        self.is_loading = False
        self.last_updated = datetime.fromtimestamp(timestamp, tz=timezone.utc)

    def _run_query(self) -> tuple:
        collection_ref = self.db.collection(self.collection)
        query = self.build_query(collection_ref)
        records = []
        for snapshot in query.stream():
            document = {**(snapshot.to_dict() or {}), "id": snapshot.id}
            if self.model is None:
                records.append(document)
                continue
            try:
                records.append(self.model.model_validate(document))
            except ValidationError as exc:
                logger.warning("Skipping invalid %s document %s: %s", self.collection, snapshot.id, exc)
        logger.debug("Fetched %d documents from %s", len(records), self.collection)
        return tuple(records)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "data": [r.to_document() if isinstance(r, RecordModel) else r for r in self.data],
            "isLoading": self.is_loading,
            "error": str(self.error) if self.error else None,
            "lastUpdated": self.last_updated,
        }
