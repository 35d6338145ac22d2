"""
Donated scrap item model
"""
from sqlalchemy import Column, String, Text, JSON, DateTime, Boolean, Float
from datetime import datetime
from kmwf.database import Base


class ScrapItemModel(Base):
    """Item collected from a donor, optionally sold on the marketplace"""
    __tablename__ = "scrap_items"

    id = Column(String, primary_key=True)
    donation_request_id = Column(String, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    condition = Column(String, nullable=False, default="good")  # new, good, repairable, scrap, not applicable

    # Marketplace listing
    listed = Column(Boolean, nullable=False, default=False)
    sold = Column(Boolean, nullable=False, default=False)
    demanded_price = Column(Float)
    sale_price = Column(Float)
    listing_description = Column(Text)

    photos_json = Column(JSON)  # {"before": [...], "after": [...]}
    repairing_cost = Column(Float)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
