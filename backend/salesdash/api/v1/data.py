"""
Collection Data API Routes
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from salesdash.database import get_db
from salesdash.dependencies import require_page
from salesdash.schemas.data import CollectionResponse
from salesdash.services import data_service
from salesdash.services.collection_service import CollectionResource

router = APIRouter(tags=["data"])


async def load_resource(resource: CollectionResource, refresh: bool = False) -> CollectionResource:
    """Load ``resource`` once; a remote failure becomes a 503."""
    if refresh:
        resource.refetch()
    try:
        await resource.load()
    finally:
        resource.close()
    if resource.error is not None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Erro ao carregar {resource.collection}: {resource.error}",
        )
    return resource


@router.get("/sales", response_model=CollectionResponse,
            dependencies=[Depends(require_page("/dashboard/vendas"))])
async def get_sales(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    refresh: bool = Query(False),
    db=Depends(get_db),
):
    """Sales in the inclusive date range, newest first (max 5000)."""
    resource = await load_resource(data_service.sales_resource(db, date_from, date_to), refresh)
    return resource.as_dict()


@router.get("/logistics", response_model=CollectionResponse,
            dependencies=[Depends(require_page("/dashboard/logistica"))])
async def get_logistics(refresh: bool = Query(False), db=Depends(get_db)):
    resource = await load_resource(data_service.logistics_resource(db), refresh)
    return resource.as_dict()


@router.get("/fees", response_model=CollectionResponse,
            dependencies=[Depends(require_page("/dashboard/taxas"))])
async def get_fees(refresh: bool = Query(False), db=Depends(get_db)):
    resource = await load_resource(data_service.fees_resource(db), refresh)
    return resource.as_dict()


@router.get("/costs", response_model=CollectionResponse,
            dependencies=[Depends(require_page("/dashboard/taxas"))])
async def get_costs(refresh: bool = Query(False), db=Depends(get_db)):
    resource = await load_resource(data_service.costs_resource(db), refresh)
    return resource.as_dict()


@router.get("/packaging-costs", response_model=CollectionResponse,
            dependencies=[Depends(require_page("/dashboard/taxas"))])
async def get_packaging_costs(refresh: bool = Query(False), db=Depends(get_db)):
    resource = await load_resource(data_service.packaging_costs_resource(db), refresh)
    return resource.as_dict()
