"""
Marketplace item and admin dashboard endpoints.

POST /api/items                     - store an item
GET  /api/items                     - filtered, sorted item list
POST /api/items/validate            - validate an unsaved item
GET  /api/items/condition-rules     - rule table per condition
GET  /api/items/{id}/validation     - validate a stored item
GET  /api/admin/dashboard           - aggregated stats (admin)
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from kmwf.auth import CurrentUser, require_roles
from kmwf.database import get_db
from kmwf.models import DonationModel, ScrapItemModel
from kmwf.rules.dashboard import (
    SORT_KEYS,
    apply_filters,
    calculate_enhanced_dashboard_stats,
    sort_items,
)
from kmwf.rules.validation import (
    CONDITION_RULES,
    calculate_validation_status,
    format_validation_errors,
    validate_item_by_condition,
)
from kmwf.schemas import (
    ConditionRuleResponse,
    ConditionValidation,
    EnhancedDashboardStats,
    ItemCreate,
    ItemFilters,
    ItemPhotos,
    ItemResponse,
    MarketplaceListing,
    ScrapItem,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def to_scrap_item(row: ScrapItemModel) -> ScrapItem:
    return ScrapItem(
        id=row.id,
        name=row.name,
        description=row.description,
        condition=row.condition,
        marketplace_listing=MarketplaceListing(
            listed=bool(row.listed),
            sold=bool(row.sold),
            demanded_price=row.demanded_price,
            sale_price=row.sale_price,
            description=row.listing_description,
        ),
        photos=ItemPhotos(**(row.photos_json or {})),
        repairing_cost=row.repairing_cost,
        created_at=row.created_at,
    )


def _get_item(db: Session, item_id: str) -> ScrapItemModel:
    row = db.query(ScrapItemModel).filter(ScrapItemModel.id == item_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Item not found")
    return row


# ── POST /api/items ──────────────────────────────────────────────────────
@router.post("/items", response_model=ItemResponse, status_code=201)
def create_item(
    req: ItemCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_roles("admin", "moderator", "field_executive")),
):
    listing = req.marketplace_listing
    row = ScrapItemModel(
        id=str(uuid.uuid4()),
        donation_request_id=req.donation_request_id,
        name=req.name,
        description=req.description,
        condition=req.condition,
        listed=listing.listed,
        sold=listing.sold,
        demanded_price=listing.demanded_price,
        sale_price=listing.sale_price,
        listing_description=listing.description,
        photos_json=req.photos.model_dump(),
        repairing_cost=req.repairing_cost,
    )
    item = to_scrap_item(row)
    status = calculate_validation_status(item)
    if listing.listed and not status.can_list:
        raise HTTPException(status_code=400, detail=format_validation_errors(status) or "Item cannot be listed")

    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Stored item %s (%s) by %s", row.id, row.condition, user.user_id)
    return ItemResponse(item=to_scrap_item(row), validation_status=status)


# ── GET /api/items ───────────────────────────────────────────────────────
@router.get("/items", response_model=list[ScrapItem])
def list_items(
    q: Optional[str] = None,
    condition: Optional[str] = None,
    item_status: Optional[str] = Query(default=None, pattern="^(listed|unlisted|sold)$"),
    has_price: Optional[bool] = None,
    can_list: Optional[bool] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: str = "created",
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    if sort_by not in SORT_KEYS:
        raise HTTPException(status_code=400, detail=f"sort_by must be one of: {', '.join(SORT_KEYS)}")
    filters = ItemFilters(
        q=q, condition=condition, item_status=item_status, has_price=has_price,
        can_list=can_list, date_from=date_from, date_to=date_to,
    )
    items = [to_scrap_item(r) for r in db.query(ScrapItemModel).all()]
    result = sort_items(apply_filters(items, filters), sort_by, order)
    logger.info("Item list: %d of %d after filters", len(result), len(items))
    return result


# ── POST /api/items/validate ─────────────────────────────────────────────
@router.post("/items/validate", response_model=ConditionValidation)
def validate_item(item: ScrapItem):
    return validate_item_by_condition(item)


# ── GET /api/items/condition-rules ───────────────────────────────────────
@router.get("/items/condition-rules", response_model=list[ConditionRuleResponse])
def condition_rules():
    return [
        ConditionRuleResponse(
            condition=condition,
            label=rule.label,
            listable=rule.listable,
            required_fields=list(rule.required_fields),
            recommended_fields=list(rule.recommended_fields),
        )
        for condition, rule in CONDITION_RULES.items()
    ]


# ── GET /api/items/{item_id}/validation ──────────────────────────────────
@router.get("/items/{item_id}/validation", response_model=ConditionValidation)
def item_validation(item_id: str, db: Session = Depends(get_db)):
    return validate_item_by_condition(to_scrap_item(_get_item(db, item_id)))


# ── GET /api/admin/dashboard ─────────────────────────────────────────────
@router.get("/admin/dashboard", response_model=EnhancedDashboardStats)
def dashboard(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_roles("admin", "moderator")),
):
    donations = db.query(DonationModel).filter(DonationModel.status == "completed").all()
    items = [to_scrap_item(r) for r in db.query(ScrapItemModel).all()]
    stats = calculate_enhanced_dashboard_stats(donations, items)
    logger.info("Dashboard for %s: %d donations, %d items", user.user_id, len(donations), len(items))
    return stats
