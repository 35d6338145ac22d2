"""
kmwf schemas. All routers and rule modules produce and consume these
Pydantic v2 models.
"""
from kmwf.schemas.dashboard import DashboardStats, EnhancedDashboardStats
from kmwf.schemas.item import (
    ConditionRuleResponse,
    ConditionValidation,
    FieldValidation,
    ItemCreate,
    ItemFilters,
    ItemPhotos,
    ItemResponse,
    MarketplaceListing,
    ScrapItem,
    ValidationStatus,
)

__all__ = [
    "DashboardStats",
    "EnhancedDashboardStats",
    "ConditionRuleResponse",
    "ConditionValidation",
    "FieldValidation",
    "ItemCreate",
    "ItemFilters",
    "ItemPhotos",
    "ItemResponse",
    "MarketplaceListing",
    "ScrapItem",
    "ValidationStatus",
]
