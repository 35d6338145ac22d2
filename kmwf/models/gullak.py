"""
Gullak (donation box) models
"""
from sqlalchemy import Column, String, Text, JSON, DateTime, Integer, Float
from datetime import datetime
from kmwf.database import Base


class GullakModel(Base):
    """Physical donation box"""
    __tablename__ = "gullaks"

    id = Column(String, primary_key=True)
    gullak_id = Column(String, nullable=False, unique=True, index=True)  # GUL-001

    # Location
    address = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    landmark = Column(String)

    # Caretaker
    caretaker_user_id = Column(String, nullable=False, index=True)
    caretaker_name = Column(String, nullable=False)
    caretaker_phone = Column(String, nullable=False, default="")
    caretaker_assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    status = Column(String, nullable=False, default="active")  # active, inactive, maintenance, full
    installation_date = Column(DateTime, nullable=False)
    last_collection_date = Column(DateTime)
    total_collections = Column(Integer, nullable=False, default=0)
    total_amount_collected = Column(Float, nullable=False, default=0)
    description = Column(Text)
    notes = Column(Text)

    created_by = Column(String, nullable=False)
    updated_by = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class GullakCollectionModel(Base):
    """Cash collection event, append-only"""
    __tablename__ = "gullak_collections"

    id = Column(String, primary_key=True)
    collection_id = Column(String, nullable=False, unique=True, index=True)  # COL-001
    gullak_pk = Column(String, nullable=False, index=True)
    gullak_readable_id = Column(String, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    collection_date = Column(DateTime, nullable=False, index=True)

    collected_by_user_id = Column(String, nullable=False)
    collected_by_name = Column(String, nullable=False)
    caretaker_user_id = Column(String, nullable=False)
    caretaker_name = Column(String, nullable=False)
    witnesses_json = Column(JSON)  # [{name, phone}]
    notes = Column(Text)

    verification_status = Column(String, nullable=False, default="pending", index=True)  # pending, verified, disputed
    verified_by_user_id = Column(String)
    verified_by_name = Column(String)
    verified_at = Column(DateTime)
    verification_notes = Column(Text)

    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
