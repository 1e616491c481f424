"""
Timezone conversion helpers for business-calendar grouping.
Sales timestamps are stored in UTC; reports bucket them by the store's local calendar.
"""
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from salesdash.config import settings


def utc_to_local(utc_dt: datetime, timezone_str: Optional[str] = None) -> datetime:
    """Convert a UTC datetime to the given zone, the business zone by default."""
    tz = ZoneInfo(timezone_str or settings.BUSINESS_TIMEZONE)
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=ZoneInfo("UTC"))
    return utc_dt.astimezone(tz)


def local_month(utc_dt: datetime, timezone_str: Optional[str] = None) -> str:
    """``YYYY-MM`` of the local calendar month containing ``utc_dt``."""
    return utc_to_local(utc_dt, timezone_str).strftime("%Y-%m")
