"""
Marketplace item schemas
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class MarketplaceListing(BaseModel):
    listed: bool = False
    sold: bool = False
    demanded_price: Optional[float] = None
    sale_price: Optional[float] = None
    description: Optional[str] = None


class ItemPhotos(BaseModel):
    before: list[str] = Field(default_factory=list)
    after: list[str] = Field(default_factory=list)


class ScrapItem(BaseModel):
    """Item as seen by the rule engine and the dashboard."""
    id: str = ""
    name: str = ""
    description: Optional[str] = None
    condition: str = Field(
        default="good", description="new | good | repairable | scrap | not applicable"
    )
    marketplace_listing: MarketplaceListing = Field(default_factory=MarketplaceListing)
    photos: ItemPhotos = Field(default_factory=ItemPhotos)
    repairing_cost: Optional[float] = None
    created_at: Optional[datetime] = None


class ValidationStatus(BaseModel):
    can_list: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ConditionValidation(BaseModel):
    condition: str
    listable: bool
    is_valid: bool
    can_list: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    required_fields: list[str] = Field(default_factory=list)
    recommended_fields: list[str] = Field(default_factory=list)


class ConditionRuleResponse(BaseModel):
    condition: str
    label: str
    listable: bool
    required_fields: list[str]
    recommended_fields: list[str]


class ItemCreate(BaseModel):
    name: str
    description: Optional[str] = None
    condition: str = "good"
    donation_request_id: Optional[str] = None
    marketplace_listing: MarketplaceListing = Field(default_factory=MarketplaceListing)
    photos: ItemPhotos = Field(default_factory=ItemPhotos)
    repairing_cost: Optional[float] = Field(default=None, ge=0)


class ItemResponse(BaseModel):
    item: ScrapItem
    validation_status: ValidationStatus


class ItemFilters(BaseModel):
    q: Optional[str] = None
    condition: Optional[str] = None
    item_status: Optional[str] = Field(default=None, description="listed | unlisted | sold")
    has_price: Optional[bool] = None
    can_list: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @field_validator("date_from", "date_to")
    @classmethod
    def naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # stored timestamps are naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class FieldValidation(BaseModel):
    """Result of a single form field check."""
    is_valid: bool
    error: Optional[str] = None
