"""
AI flow schemas
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel


class InsightsRequest(BaseModel):
    """Sales window to summarise; defaults to the cached unfiltered sales."""
    dateFrom: Optional[datetime] = None
    dateTo: Optional[datetime] = None
    apiKey: Optional[str] = None


class InsightsResponse(BaseModel):
    insights: str
    records: int


class LogisticsItem(BaseModel):
    id: str
    logistica: Optional[str] = None
    entregador: Optional[str] = ""
    valor: Optional[float] = 0

    model_config = {"extra": "allow"}


class OrganizeLogisticsRequest(BaseModel):
    """Records to organise; omitted means every record in the logistics collection."""
    logisticsData: Optional[List[LogisticsItem]] = None
    apiKey: Optional[str] = None
    persist: bool = False


class OrganizeLogisticsResponse(BaseModel):
    organizedData: List[Dict[str, Any]]
    parsedIds: List[str]
    aiIds: List[str]
    unresolvedIds: List[str]
    persisted: int = 0


class ChatRequest(BaseModel):
    question: Optional[str] = None
    apiKey: Optional[str] = None
    pathname: Optional[str] = "/dashboard"


class ChatResponse(BaseModel):
    answer: str
    dataUsed: List[Dict[str, Any]]
    queriesExecuted: List[Dict[str, Any]]
