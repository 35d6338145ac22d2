"""
Gullak schemas
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class GullakCreate(BaseModel):
    """Install a new gullak"""
    address: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    landmark: Optional[str] = None
    caretaker_user_id: str
    installation_date: datetime
    description: Optional[str] = None
    notes: Optional[str] = None


class GullakUpdate(BaseModel):
    """Partial update"""
    address: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    landmark: Optional[str] = None
    caretaker_user_id: Optional[str] = None
    status: Optional[Literal["active", "inactive", "maintenance", "full"]] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class CaretakerInfo(BaseModel):
    user_id: str
    name: str
    phone: str
    assigned_at: datetime


class GullakResponse(BaseModel):
    id: str
    gullak_id: str
    address: str
    latitude: float
    longitude: float
    landmark: Optional[str] = None
    caretaker: CaretakerInfo
    status: str
    installation_date: datetime
    last_collection_date: Optional[datetime] = None
    total_collections: int
    total_amount_collected: float
    description: Optional[str] = None
    notes: Optional[str] = None


class Witness(BaseModel):
    name: str
    phone: Optional[str] = None


class CollectionCreate(BaseModel):
    """Cash collected from a gullak"""
    amount: float = Field(..., ge=0)
    collection_date: datetime
    witnesses: List[Witness] = Field(default_factory=list)
    notes: Optional[str] = None


class CollectionVerify(BaseModel):
    status: Literal["verified", "disputed"]
    notes: Optional[str] = None


class CollectionResponse(BaseModel):
    id: str
    collection_id: str
    gullak_id: str
    amount: float
    collection_date: datetime
    collected_by: str
    caretaker_present: str
    witnesses: List[Witness] = Field(default_factory=list)
    notes: Optional[str] = None
    verification_status: str
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    verification_notes: Optional[str] = None
    created_at: datetime


class GullakStats(BaseModel):
    total_gullaks: int = 0
    active: int = 0
    inactive: int = 0
    maintenance: int = 0
    full: int = 0
    total_collections: int = 0
    total_amount: float = 0
    this_month_collections: int = 0
    pending_verifications: int = 0
