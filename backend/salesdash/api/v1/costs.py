"""
Cost Upload API Routes
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from salesdash.config import settings
from salesdash.database import get_db
from salesdash.dependencies import require_page
from salesdash.schemas.costs import OrganizeCostsRequest, OrganizeCostsResponse
from salesdash.services import data_service
from salesdash.services.collection_service import record_cache
from salesdash.services.costs_service import RowCountMismatch, organize_costs

logger = logging.getLogger(__name__)

router = APIRouter(tags=["costs"])


def _persist_costs(db, collection: str, rows: List[dict]) -> int:
    """Store each row as a new document, committing in batches."""
    collection_ref = db.collection(collection)
    size = settings.WRITE_BATCH_SIZE
    for start in range(0, len(rows), size):
        batch = db.batch()
        for row in rows[start:start + size]:
            ref = collection_ref.document()
            payload = {key: value for key, value in row.items() if key != "id"}
            payload["id"] = ref.id
            batch.set(ref, payload)
        batch.commit()
    if rows:
        record_cache.invalidate(data_service.full_collection_cache_key(collection))
    return len(rows)


@router.post("/organize", response_model=OrganizeCostsResponse,
             dependencies=[Depends(require_page("/dashboard/taxas"))])
async def organize_cost_rows(
    data: OrganizeCostsRequest,
    db=Depends(get_db),
):
    """
    Map the spreadsheet columns onto the stored cost fields.

    With ``persist`` the rows are written to the costs collection (or the
    packaging-costs collection when ``packaging`` is set).
    """
    try:
        rows = organize_costs(data.costsData)
    except RowCountMismatch as exc:
        logger.error("Cost organisation lost rows: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    persisted = 0
    if data.persist:
        collection = settings.PACKAGING_COSTS_COLLECTION if data.packaging else settings.COSTS_COLLECTION
        persisted = _persist_costs(db, collection, rows)
        logger.info("Persisted %d cost rows to %s", persisted, collection)

    return OrganizeCostsResponse(organizedData=rows, persisted=persisted)
