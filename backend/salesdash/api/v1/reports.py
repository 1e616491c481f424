"""
Report API Routes: aggregated views over the sales collection
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from salesdash.api.v1.data import load_resource
from salesdash.database import get_db
from salesdash.dependencies import require_page
from salesdash.schemas.data import ReportResponse, SummaryResponse
from salesdash.services import aggregation_service, data_service

router = APIRouter(tags=["reports"], dependencies=[Depends(require_page("/dashboard/relatorios"))])


async def _sales(db, date_from: Optional[datetime], date_to: Optional[datetime], refresh: bool = False):
    return await load_resource(data_service.sales_resource(db, date_from, date_to), refresh)


def _check_comparison(compare_from: Optional[datetime], compare_to: Optional[datetime]) -> None:
    if (compare_from is None) != (compare_to is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="compare_from and compare_to must be given together",
        )


def _report(rows, resource) -> dict:
    return {"rows": rows, "total": len(rows), "lastUpdated": resource.last_updated}


@router.get("/abc", response_model=ReportResponse)
async def abc_curve(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    refresh: bool = False,
    db=Depends(get_db),
):
    """Products ranked by revenue with their ABC class."""
    resource = await _sales(db, date_from, date_to, refresh)
    return _report(aggregation_service.abc_classification(resource.data), resource)


@router.get("/vendors", response_model=ReportResponse)
async def vendor_ranking(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    top: Optional[int] = Query(None, ge=1),
    db=Depends(get_db),
):
    resource = await _sales(db, date_from, date_to)
    return _report(aggregation_service.rank_vendors(resource.data, top), resource)


@router.get("/customers", response_model=ReportResponse)
async def customer_ranking(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    top: Optional[int] = Query(None, ge=1),
    db=Depends(get_db),
):
    resource = await _sales(db, date_from, date_to)
    return _report(aggregation_service.rank_customers(resource.data, top), resource)


@router.get("/cities", response_model=ReportResponse)
async def city_ranking(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    top: Optional[int] = Query(None, ge=1),
    db=Depends(get_db),
):
    resource = await _sales(db, date_from, date_to)
    return _report(aggregation_service.rank_cities(resource.data, top), resource)


@router.get("/origins", response_model=ReportResponse)
async def origin_report(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db=Depends(get_db),
):
    resource = await _sales(db, date_from, date_to)
    return _report(aggregation_service.origin_breakdown(resource.data), resource)


@router.get("/monthly", response_model=ReportResponse)
async def monthly_report(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db=Depends(get_db),
):
    resource = await _sales(db, date_from, date_to)
    return _report(aggregation_service.monthly_totals(resource.data), resource)


@router.get("/products", response_model=ReportResponse)
async def product_report(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    compare_from: Optional[datetime] = None,
    compare_to: Optional[datetime] = None,
    db=Depends(get_db),
):
    """Product metrics, with revenue change when a comparison range is given."""
    _check_comparison(compare_from, compare_to)
    resource = await _sales(db, date_from, date_to)
    if compare_from is None:
        return _report(aggregation_service.product_metrics(resource.data), resource)
    previous = await _sales(db, compare_from, compare_to)
    return _report(aggregation_service.compare_products(resource.data, previous.data), resource)


@router.get("/summary", response_model=SummaryResponse)
async def sales_summary(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    compare_from: Optional[datetime] = None,
    compare_to: Optional[datetime] = None,
    db=Depends(get_db),
):
    """Revenue, orders, average ticket and items, with period change."""
    _check_comparison(compare_from, compare_to)
    resource = await _sales(db, date_from, date_to)
    previous = None
    if compare_from is not None:
        previous = (await _sales(db, compare_from, compare_to)).data
    summary = aggregation_service.sales_summary(resource.data, previous)
    summary["lastUpdated"] = resource.last_updated
    return summary
