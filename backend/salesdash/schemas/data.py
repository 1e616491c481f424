"""Collection and report response schemas."""
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel


class CollectionResponse(BaseModel):
    data: List[Dict[str, Any]]
    isLoading: bool
    error: Optional[str] = None
    lastUpdated: Optional[datetime] = None


class ReportResponse(BaseModel):
    rows: List[Dict[str, Any]]
    total: int
    lastUpdated: Optional[datetime] = None


class SummaryResponse(BaseModel):
    current: Dict[str, float]
    previous: Optional[Dict[str, float]] = None
    changes: Optional[Dict[str, Dict[str, Any]]] = None
    lastUpdated: Optional[datetime] = None
