"""
Sales aggregation.

Pure reducers from sale records to the summaries the report pages chart:
ABC curve, vendor/customer/city rankings, product metrics, monthly totals
and period-over-period change.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from salesdash.schemas.records import SaleRecord
from salesdash.utils.timezone_helpers import local_month

ABC_CLASS_A_LIMIT = 80.0
ABC_CLASS_B_LIMIT = 95.0

NO_VENDOR = "Sem Vendedor"


def abc_class(cumulative_percentage: float) -> str:
    """A below 80% of cumulative revenue, B below 95%, C for the tail."""
    if cumulative_percentage < ABC_CLASS_A_LIMIT:
        return "A"
    if cumulative_percentage < ABC_CLASS_B_LIMIT:
        return "B"
    return "C"


def classify_abc(revenue_by_product: Dict[str, float]) -> List[dict]:
    """Rank products by revenue and tag each with its ABC class."""
    ranked = sorted(revenue_by_product.items(), key=lambda item: item[1], reverse=True)
    total = sum(revenue for _, revenue in ranked)
    rows = []
    running = 0.0
    for name, revenue in ranked:
        running += revenue
        cumulative = (running / total * 100) if total > 0 else 0.0
        # float sums can land a hair above a threshold
        cumulative = round(cumulative, 6)
        rows.append({
            "name": name,
            "revenue": revenue,
            "cumulativePercentage": cumulative,
            "class": abc_class(cumulative),
        })
    return rows


def abc_classification(sales: Iterable[SaleRecord]) -> List[dict]:
    revenue: Dict[str, float] = defaultdict(float)
    for sale in sales:
        if sale.product:
            revenue[sale.product] += sale.revenue
    return classify_abc(revenue)


def _rank(groups: Dict[str, dict], top: Optional[int]) -> List[dict]:
    rows = []
    for name, g in groups.items():
        orders = len(g["orders"])
        row = {
            "name": name,
            "revenue": g["revenue"],
            "orders": orders,
            "averageTicket": g["revenue"] / orders if orders else 0.0,
        }
        if "items" in g:
            row["items"] = g["items"]
            row["averageItemsPerOrder"] = g["items"] / orders if orders else 0.0
        rows.append(row)
    rows.sort(key=lambda r: r["revenue"], reverse=True)
    return rows[:top] if top else rows


def rank_vendors(sales: Iterable[SaleRecord], top: Optional[int] = None) -> List[dict]:
    groups: Dict[str, dict] = defaultdict(lambda: {"orders": set(), "revenue": 0.0, "items": 0.0})
    for sale in sales:
        g = groups[sale.vendor or NO_VENDOR]
        g["orders"].add(sale.order_key)
        g["revenue"] += sale.revenue
        g["items"] += sale.quantity
    return _rank(groups, top)


def rank_customers(sales: Iterable[SaleRecord], top: Optional[int] = None) -> List[dict]:
    groups: Dict[str, dict] = defaultdict(lambda: {"orders": set(), "revenue": 0.0})
    for sale in sales:
        if not sale.customer:
            continue
        g = groups[sale.customer]
        g["orders"].add(sale.order_key)
        g["revenue"] += sale.revenue
    return _rank(groups, top)


def rank_cities(sales: Iterable[SaleRecord], top: Optional[int] = None) -> List[dict]:
    groups: Dict[str, dict] = defaultdict(lambda: {"orders": set(), "revenue": 0.0})
    for sale in sales:
        if not sale.city:
            continue
        g = groups[sale.city]
        g["orders"].add(sale.order_key)
        g["revenue"] += sale.revenue
    total = sum(g["revenue"] for g in groups.values())
    rows = _rank(groups, top)
    for row in rows:
        row["percentage"] = (row["revenue"] / total * 100) if total > 0 else 0.0
    return rows


def origin_breakdown(sales: Iterable[SaleRecord]) -> List[dict]:
    """Revenue and orders per sales origin/channel."""
    groups: Dict[str, dict] = defaultdict(lambda: {"orders": set(), "revenue": 0.0})
    for sale in sales:
        g = groups[sale.origin or "Sem Origem"]
        g["orders"].add(sale.order_key)
        g["revenue"] += sale.revenue
    return _rank(groups, None)


def product_metrics(sales: Iterable[SaleRecord]) -> List[dict]:
    products: Dict[str, dict] = defaultdict(lambda: {"revenue": 0.0, "quantity": 0.0, "orders": set()})
    for sale in sales:
        if not sale.product:
            continue
        p = products[sale.product]
        p["revenue"] += sale.revenue
        p["quantity"] += sale.quantity
        p["orders"].add(sale.order_key)

    total = sum(p["revenue"] for p in products.values())
    rows = [
        {
            "name": name,
            "revenue": p["revenue"],
            "quantity": p["quantity"],
            "orders": len(p["orders"]),
            "averagePrice": p["revenue"] / p["quantity"] if p["quantity"] > 0 else 0.0,
            "share": (p["revenue"] / total * 100) if total > 0 else 0.0,
        }
        for name, p in products.items()
    ]
    return sorted(rows, key=lambda r: r["revenue"], reverse=True)


def compare_products(current: Sequence[SaleRecord], previous: Sequence[SaleRecord]) -> List[dict]:
    """Product metrics for ``current`` with each product's change against ``previous``."""
    previous_revenue = {row["name"]: row["revenue"] for row in product_metrics(previous)}
    rows = []
    for row in product_metrics(current):
        before = previous_revenue.get(row["name"], 0.0)
        rows.append({
            **row,
            "previousRevenue": before,
            "revenueChange": period_change(row["revenue"], before).as_dict(),
        })
    return rows


def monthly_totals(sales: Iterable[SaleRecord], timezone_str: Optional[str] = None) -> List[dict]:
    """Revenue and distinct orders per calendar month in the business timezone."""
    months: Dict[str, dict] = defaultdict(lambda: {"revenue": 0.0, "orders": set()})
    for sale in sales:
        if sale.date is None:
            continue
        m = months[local_month(sale.date, timezone_str)]
        m["revenue"] += sale.revenue
        m["orders"].add(sale.order_key)
    return [
        {"month": month, "revenue": m["revenue"], "orders": len(m["orders"])}
        for month, m in sorted(months.items())
    ]


@dataclass(frozen=True)
class PeriodChange:
    """
    Change between two periods.

    ``kind`` is ``"change"`` with a finite percentage, ``"new"`` when the
    previous period was zero and the current one is positive (unbounded
    growth), or ``"none"`` when both are zero.
    """
    kind: str
    percentage: Optional[float]

    def as_dict(self) -> dict:
        return {"kind": self.kind, "percentage": self.percentage}


def period_change(current: float, previous: float) -> PeriodChange:
    if previous:
        return PeriodChange("change", (current - previous) / previous * 100)
    if current > 0:
        return PeriodChange("new", None)
    return PeriodChange("none", 0.0)


def _totals(sales: Sequence[SaleRecord]) -> dict:
    revenue = sum(s.revenue for s in sales)
    orders = len({s.order_key for s in sales})
    return {
        "revenue": revenue,
        "orders": orders,
        "averageTicket": revenue / orders if orders else 0.0,
        "items": sum(s.quantity for s in sales),
    }


def sales_summary(current: Sequence[SaleRecord], previous: Optional[Sequence[SaleRecord]] = None) -> dict:
    """KPI totals for ``current`` and, given ``previous``, the change of each."""
    totals = _totals(current)
    summary = {"current": totals, "previous": None, "changes": None}
    if previous is not None:
        before = _totals(previous)
        summary["previous"] = before
        summary["changes"] = {
            key: period_change(totals[key], before[key]).as_dict()
            for key in ("revenue", "orders", "averageTicket", "items")
        }
    return summary
