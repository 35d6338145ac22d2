"""
Donation and receipt counter models
"""
from sqlalchemy import Column, String, Text, JSON, DateTime, Integer, Boolean, Float, PrimaryKeyConstraint
from datetime import datetime
from kmwf.database import Base


class DonationModel(Base):
    """Money donation"""
    __tablename__ = "donations"

    id = Column(String, primary_key=True)

    # Donor
    donor_name = Column(String, nullable=False)
    donor_email = Column(String, index=True)
    donor_phone = Column(String)
    donor_pan = Column(String)
    donor_address = Column(Text)
    donor_city = Column(String)
    donor_state = Column(String)
    donor_pincode = Column(String)

    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="INR")
    program_name = Column(String)
    campaign_name = Column(String)
    wants_80g_receipt = Column(Boolean, nullable=False, default=False)

    status = Column(String, nullable=False, default="pending")  # pending, completed, failed
    gateway_order_id = Column(String, index=True)
    gateway_payment_id = Column(String)

    notifications_sent = Column(Boolean, nullable=False, default=False)

    # 80G certificate, written once
    certificate_number = Column(String, unique=True)
    certificate_financial_year = Column(String)
    certificate_sequence = Column(Integer)
    certificate_generated_at = Column(DateTime)
    certificate_delivery = Column(JSON)  # [{method, success, detail, attempted_at}]

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ReceiptCounterModel(Base):
    """Per financial year certificate sequence"""
    __tablename__ = "receipt_counters"
    __table_args__ = (
        PrimaryKeyConstraint("financial_year", "prefix", name="pk_receipt_counters"),
    )

    financial_year = Column(String, nullable=False)
    prefix = Column(String, nullable=False)
    sequence = Column(Integer, nullable=False, default=0)
    last_used = Column(DateTime, default=datetime.utcnow, nullable=False)
