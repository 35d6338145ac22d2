"""
Admin dashboard aggregation over donations and marketplace items.

Every function here is pure. The two ``calculate_*_stats`` entry points
never raise: on unexpected input they log and return zeroed stats.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Sequence

from kmwf.rules.certificates import group_indian
from kmwf.rules.validation import calculate_validation_status
from kmwf.schemas import DashboardStats, EnhancedDashboardStats, ItemFilters, ScrapItem

logger = logging.getLogger(__name__)

SORT_KEYS = ("name", "condition", "price", "status", "created")


def _has_price(item: ScrapItem) -> bool:
    price = item.marketplace_listing.demanded_price
    return price is not None and price > 0


def _is_pending(item: ScrapItem) -> bool:
    try:
        status = calculate_validation_status(item)
    except Exception:
        logger.warning("Validation failed for item %s, counting as pending", item.id, exc_info=True)
        return True
    return not status.can_list or not item.marketplace_listing.listed


def calculate_dashboard_stats(
    donations: Sequence[Any], items: Sequence[ScrapItem] = ()
) -> DashboardStats:
    try:
        items = list(items or [])
        listed = [i for i in items if i.marketplace_listing.listed and not i.marketplace_listing.sold]
        sold = [i for i in items if i.marketplace_listing.sold]
        revenue = sum(i.marketplace_listing.sale_price or 0 for i in sold)
        return DashboardStats(
            total_donations=len(donations or []),
            pending_items=sum(1 for i in items if _is_pending(i)),
            listed_items=len(listed),
            sold_items=len(sold),
            items_without_price=sum(1 for i in items if not _has_price(i)),
            total_revenue=revenue,
        )
    except Exception:
        logger.exception("Error calculating dashboard stats")
        return DashboardStats()


def calculate_enhanced_dashboard_stats(
    donations: Sequence[Any], items: Sequence[ScrapItem] = ()
) -> EnhancedDashboardStats:
    base = calculate_dashboard_stats(donations, items)
    try:
        items = list(items or [])
        sold = [i for i in items if i.marketplace_listing.sold]
        average = (
            sum(i.marketplace_listing.sale_price or 0 for i in sold) / len(sold) if sold else 0
        )
        repair_cost = sum(i.repairing_cost or 0 for i in sold)
        margin = (
            (base.total_revenue - repair_cost) / base.total_revenue * 100
            if base.total_revenue > 0
            else 0
        )
        # listed + sold, each item counted once
        ever_listed = sum(
            1 for i in items if i.marketplace_listing.listed or i.marketplace_listing.sold
        )
        conversion = base.sold_items / ever_listed * 100 if ever_listed > 0 else 0
        return EnhancedDashboardStats(
            **base.model_dump(),
            average_item_value=average,
            profit_margin=margin,
            conversion_rate=conversion,
        )
    except Exception:
        logger.exception("Error calculating enhanced dashboard stats")
        return EnhancedDashboardStats(**base.model_dump())


# ---------------------------------------------------------------------------
# Per-item helpers
# ---------------------------------------------------------------------------

def calculate_profit(item: ScrapItem) -> float:
    listing = item.marketplace_listing
    if not listing.sold or not listing.sale_price:
        return 0
    return listing.sale_price - (item.repairing_cost or 0)


def get_profit_margin(item: ScrapItem) -> float:
    listing = item.marketplace_listing
    if not listing.sold or not listing.sale_price:
        return 0
    return calculate_profit(item) / listing.sale_price * 100


def get_item_status_text(item: ScrapItem) -> str:
    if item.marketplace_listing.sold:
        return "Sold"
    if item.marketplace_listing.listed:
        return "Listed"
    if not calculate_validation_status(item).can_list:
        return "Invalid"
    return "Ready"


def apply_filters(items: Sequence[ScrapItem], filters: ItemFilters) -> list[ScrapItem]:
    result: list[ScrapItem] = []
    for item in items:
        listing = item.marketplace_listing
        if filters.q:
            q = filters.q.lower()
            if q not in item.name.lower() and q not in (listing.description or "").lower():
                continue
        if filters.condition and item.condition != filters.condition:
            continue
        if filters.item_status == "listed" and (not listing.listed or listing.sold):
            continue
        if filters.item_status == "unlisted" and (listing.listed or listing.sold):
            continue
        if filters.item_status == "sold" and not listing.sold:
            continue
        if filters.has_price is not None and filters.has_price != _has_price(item):
            continue
        if (
            filters.can_list is not None
            and filters.can_list != calculate_validation_status(item).can_list
        ):
            continue
        if filters.date_from and (item.created_at is None or item.created_at < filters.date_from):
            continue
        if filters.date_to and (item.created_at is None or item.created_at > filters.date_to):
            continue
        result.append(item)
    return result


def sort_items(
    items: Sequence[ScrapItem], sort_by: str = "created", order: str = "desc"
) -> list[ScrapItem]:
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_by}")

    def key(item: ScrapItem):
        if sort_by == "name":
            return item.name.lower()
        if sort_by == "condition":
            return item.condition
        if sort_by == "price":
            return item.marketplace_listing.demanded_price or 0
        if sort_by == "status":
            return get_item_status_text(item)
        return item.created_at.timestamp() if item.created_at else 0

    return sorted(items, key=key, reverse=(order == "desc"))


def group_items_by_status(items: Sequence[ScrapItem]) -> dict[str, list[ScrapItem]]:
    groups: dict[str, list[ScrapItem]] = defaultdict(list)
    for item in items:
        groups[get_item_status_text(item)].append(item)
    return dict(groups)


def format_currency(amount: float) -> str:
    """Whole rupees with Indian digit grouping, e.g. ``1234567 -> '₹12,34,567'``."""
    rupees = round(amount)
    if rupees < 0:
        return f"-₹{group_indian(-rupees)}"
    return f"₹{group_indian(rupees)}"


def format_number(num: float) -> str:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return f"{num:g}"
