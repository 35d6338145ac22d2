"""
Donation, 80G certificate and notification schemas
"""
from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from kmwf.rules.certificates import is_valid_pan, is_valid_pincode
from kmwf.rules.validation import validate_phone


# ---------------------------------------------------------------------------
# Donations
# ---------------------------------------------------------------------------

class DonationCreate(BaseModel):
    donor_name: str = Field(..., min_length=1)
    donor_email: Optional[str] = None
    donor_phone: Optional[str] = None
    amount: float = Field(..., gt=0)
    currency: str = "INR"
    program_name: Optional[str] = None
    campaign_name: Optional[str] = None
    gateway_order_id: Optional[str] = None

    wants_80g_receipt: bool = False
    donor_pan: Optional[str] = None
    donor_address: Optional[str] = None
    donor_city: Optional[str] = None
    donor_state: Optional[str] = None
    donor_pincode: Optional[str] = None

    @field_validator("donor_phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        check = validate_phone(v)
        if not check.is_valid:
            raise ValueError(check.error)
        return v.strip()

    @model_validator(mode="after")
    def check_80g_details(self) -> "DonationCreate":
        if not self.wants_80g_receipt:
            return self
        if not self.donor_pan or not is_valid_pan(self.donor_pan):
            raise ValueError("A valid PAN (e.g. ABCDE1234F) is required for an 80G receipt")
        if not all([self.donor_address, self.donor_city, self.donor_state, self.donor_pincode]):
            raise ValueError("Complete address is required for 80G certificate")
        if not is_valid_pincode(self.donor_pincode):
            raise ValueError("Pincode must be exactly 6 digits")
        return self


class DeliveryAttempt(BaseModel):
    method: str
    success: bool
    detail: Optional[str] = None
    attempted_at: str


class CertificateInfo(BaseModel):
    certificate_number: str
    financial_year: str
    sequence_number: int
    generated_at: datetime
    delivery_methods: list[DeliveryAttempt] = Field(default_factory=list)


class DonationResponse(BaseModel):
    id: str
    donor_name: str
    donor_email: Optional[str] = None
    donor_phone: Optional[str] = None
    amount: float
    currency: str
    program_name: Optional[str] = None
    campaign_name: Optional[str] = None
    wants_80g_receipt: bool
    status: str
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    notifications_sent: bool
    certificate: Optional[CertificateInfo] = None
    created_at: datetime


class PaymentVerification(BaseModel):
    order_id: str
    payment_id: str
    signature: str


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------

class CertificateNumber(BaseModel):
    certificate_number: str
    sequence_number: int = Field(..., description="0 when the fallback numbering was used")


class CertificateStats(BaseModel):
    financial_year: str
    total_issued: int = 0
    current_sequence: int = 0
    last_issued: Optional[datetime] = None


class CertificateData(BaseModel):
    """Everything printed on an 80G certificate."""
    donation_id: str
    donor_name: str
    donor_pan: str
    donor_email: Optional[str] = None
    donor_phone: Optional[str] = None
    donor_address: str
    donor_city: str
    donor_state: str
    donor_pincode: str
    amount: float
    currency: str = "INR"
    donation_date: datetime
    campaign_name: Optional[str] = None
    program_name: Optional[str] = None
    certificate_number: str
    financial_year: str


class FinancialYearResponse(BaseModel):
    date: date_type
    financial_year: str


class PanCheck(BaseModel):
    pan: str


class CertificateNumberCheck(BaseModel):
    certificate_number: str


class FormatCheckResponse(BaseModel):
    value: str
    is_valid: bool
    financial_year: Optional[str] = None
    sequence_number: Optional[int] = None


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationReport(BaseModel):
    donation_id: str
    skipped: bool = False
    channels: dict[str, str] = Field(
        default_factory=dict, description="channel -> sent | failed | skipped"
    )
