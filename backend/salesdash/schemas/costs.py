"""
Cost upload schemas
"""
from typing import Any, Dict, List
from pydantic import BaseModel


class OrganizeCostsRequest(BaseModel):
    """Rows parsed from a cost spreadsheet, not yet stored."""
    costsData: List[Dict[str, Any]]
    packaging: bool = False
    persist: bool = False


class OrganizeCostsResponse(BaseModel):
    organizedData: List[Dict[str, Any]]
    persisted: int = 0
