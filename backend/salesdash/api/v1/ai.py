"""
AI Flow API Routes: sales insights and logistics organisation
"""
import json
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from salesdash.api.v1.data import load_resource
from salesdash.config import settings
from salesdash.database import get_db
from salesdash.dependencies import get_gemini, require_page
from salesdash.schemas.ai import (
    InsightsRequest,
    InsightsResponse,
    OrganizeLogisticsRequest,
    OrganizeLogisticsResponse,
)
from salesdash.services import data_service
from salesdash.services.collection_service import record_cache
from salesdash.services.gemini_client import GenerationError
from salesdash.services.insights_service import generate_sales_insights
from salesdash.services.logistics_service import organize_logistics

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ai"])


def _api_key(requested) -> str:
    api_key = requested or settings.GEMINI_API_KEY
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Chave da API do Gemini não configurada",
        )
    return api_key


def _persist_logistics(db, records: List[dict], ids: List[str]) -> int:
    """Merge the organised fields of ``ids`` back into the collection."""
    wanted = set(ids)
    batch = db.batch()
    written = 0
    for record in records:
        if record.get("id") not in wanted:
            continue
        ref = db.collection(settings.LOGISTICS_COLLECTION).document(record["id"])
        batch.set(ref, {
            "entregador": record.get("entregador", ""),
            "valor": record.get("valor", 0),
            "logistica": record.get("logistica"),
        }, merge=True)
        written += 1
    if written:
        batch.commit()
        record_cache.invalidate(data_service.logistics_cache_key())
    return written


@router.post("/insights", response_model=InsightsResponse,
             dependencies=[Depends(require_page("/dashboard"))])
async def sales_insights(
    data: InsightsRequest,
    db=Depends(get_db),
    client=Depends(get_gemini),
):
    """Narrative insights over the sales in the requested window."""
    api_key = _api_key(data.apiKey)
    resource = await load_resource(data_service.sales_resource(db, data.dateFrom, data.dateTo))
    sales_json = json.dumps([s.to_document() for s in resource.data], ensure_ascii=False)
    try:
        insights = await generate_sales_insights(client, sales_json, api_key)
    except GenerationError as exc:
        logger.error("Insight generation failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return InsightsResponse(insights=insights, records=len(resource.data))


@router.post("/logistics/organize", response_model=OrganizeLogisticsResponse,
             dependencies=[Depends(require_page("/dashboard/logistica"))])
async def organize_logistics_records(
    data: OrganizeLogisticsRequest,
    db=Depends(get_db),
    client=Depends(get_gemini),
):
    """
    Fill delivery person and fee from the free-text logistics field.

    Records the parser cannot read go to the model when a key is available;
    with ``persist`` the organised fields are merged back into the collection.
    """
    if data.logisticsData is None:
        resource = await load_resource(data_service.logistics_resource(db))
        records = [r.to_document() for r in resource.data]
    else:
        records = [item.model_dump() for item in data.logisticsData]

    result = await organize_logistics(records, client, data.apiKey or settings.GEMINI_API_KEY)

    persisted = 0
    if data.persist:
        persisted = _persist_logistics(db, result.records, result.parsed_ids + result.ai_ids)
        logger.info("Persisted %d organised logistics records", persisted)

    return OrganizeLogisticsResponse(
        organizedData=result.records,
        parsedIds=result.parsed_ids,
        aiIds=result.ai_ids,
        unresolvedIds=result.unresolved_ids,
        persisted=persisted,
    )
