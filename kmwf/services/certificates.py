"""
80G certificate numbering and issuance.

Certificate numbers come from a per-(financial year, prefix) counter that
is incremented with one atomic upsert statement. If the counter cannot be
incremented the service degrades to a non-sequential number so that the
donation flow is never blocked.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from kmwf.config import settings
from kmwf.models import DonationModel, ReceiptCounterModel
from kmwf.rules.certificates import (
    format_certificate_number,
    get_financial_year,
    is_valid_pan,
    is_valid_pincode,
)
from kmwf.schemas.donation import (
    CertificateData,
    CertificateInfo,
    CertificateNumber,
    CertificateStats,
    DeliveryAttempt,
)

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class CertificateError(ValueError):
    """Donation is not eligible for an 80G certificate."""


class CounterUnavailable(RuntimeError):
    """The certificate counter cannot be incremented on this database."""


def _increment_counter(db: Session, financial_year: str, prefix: str) -> int:
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise CounterUnavailable(f"Atomic counter not supported on {dialect}")

    table = ReceiptCounterModel.__table__
    now = datetime.utcnow()
    stmt = (
        insert(table)
        .values(financial_year=financial_year, prefix=prefix, sequence=1, last_used=now)
        .on_conflict_do_update(
            index_elements=[table.c.financial_year, table.c.prefix],
            set_={"sequence": table.c.sequence + 1, "last_used": now},
        )
        .returning(table.c.sequence)
    )
    sequence = db.execute(stmt).scalar_one()
    db.commit()
    return sequence


def _fallback_suffix(donation_id: Optional[str]) -> str:
    if donation_id:
        return str(donation_id)[-8:]
    return str(int(time.time() * 1000))[-6:]


def generate_certificate_number(
    db: Session, financial_year: str, donation_id: Optional[str] = None
) -> CertificateNumber:
    """Next certificate number for ``financial_year``.

    ``sequence_number == 0`` means the counter was unavailable and a
    fallback number derived from the donation id (or clock) was returned.
    """
    prefix = settings.CERTIFICATE_PREFIX
    try:
        sequence = _increment_counter(db, financial_year, prefix)
    except Exception:
        logger.error("Certificate number generation failed for FY %s", financial_year, exc_info=True)
        db.rollback()
        number = f"{prefix}-{financial_year}-{_fallback_suffix(donation_id)}"
        return CertificateNumber(certificate_number=number, sequence_number=0)

    number = format_certificate_number(financial_year, sequence, prefix)
    logger.info("Issued certificate number %s", number)
    return CertificateNumber(certificate_number=number, sequence_number=sequence)


def get_certificate_stats(db: Session, financial_year: str) -> CertificateStats:
    try:
        counter = (
            db.query(ReceiptCounterModel)
            .filter(
                ReceiptCounterModel.financial_year == financial_year,
                ReceiptCounterModel.prefix == settings.CERTIFICATE_PREFIX,
            )
            .first()
        )
    except Exception:
        logger.error("Failed to read certificate stats for FY %s", financial_year, exc_info=True)
        return CertificateStats(financial_year=financial_year)

    if not counter:
        return CertificateStats(financial_year=financial_year)
    return CertificateStats(
        financial_year=financial_year,
        total_issued=counter.sequence,
        current_sequence=counter.sequence,
        last_issued=counter.last_used,
    )


# ---------------------------------------------------------------------------
# Donation-level helpers
# ---------------------------------------------------------------------------

def certificate_info(donation: DonationModel) -> Optional[CertificateInfo]:
    if not donation.certificate_number:
        return None
    return CertificateInfo(
        certificate_number=donation.certificate_number,
        financial_year=donation.certificate_financial_year,
        sequence_number=donation.certificate_sequence or 0,
        generated_at=donation.certificate_generated_at,
        delivery_methods=[DeliveryAttempt(**d) for d in donation.certificate_delivery or []],
    )


def certificate_data(donation: DonationModel) -> CertificateData:
    if not donation.certificate_number:
        raise CertificateError("No 80G certificate has been issued for this donation")
    return CertificateData(
        donation_id=donation.id,
        donor_name=donation.donor_name,
        donor_pan=donation.donor_pan,
        donor_email=donation.donor_email,
        donor_phone=donation.donor_phone,
        donor_address=donation.donor_address,
        donor_city=donation.donor_city,
        donor_state=donation.donor_state,
        donor_pincode=donation.donor_pincode,
        amount=donation.amount,
        currency=donation.currency or "INR",
        donation_date=donation.created_at,
        campaign_name=donation.campaign_name,
        program_name=donation.program_name,
        certificate_number=donation.certificate_number,
        financial_year=donation.certificate_financial_year,
    )


def check_eligibility(donation: DonationModel) -> None:
    if not donation.wants_80g_receipt or not donation.donor_pan:
        raise CertificateError("80G certificate not requested or PAN not provided")
    if not is_valid_pan(donation.donor_pan):
        raise CertificateError("Invalid PAN number format")
    if not all([donation.donor_address, donation.donor_city, donation.donor_state, donation.donor_pincode]):
        raise CertificateError("Complete address is required for 80G certificate")
    if not is_valid_pincode(donation.donor_pincode):
        raise CertificateError("Pincode must be exactly 6 digits")


def process_80g_certificate(db: Session, donation: DonationModel) -> CertificateInfo:
    """Issue the 80G certificate for ``donation``.

    Issuing twice returns the existing certificate, unless it carries a
    fallback number (sequence 0), in which case a counter number is tried
    again and replaces it once the counter is back.
    """
    existing = certificate_info(donation)
    if existing and existing.sequence_number:
        return existing

    check_eligibility(donation)

    financial_year = get_financial_year(donation.created_at or datetime.utcnow())
    number = generate_certificate_number(db, financial_year, donation.id)
    if existing and not number.sequence_number:
        return existing

    donation.certificate_number = number.certificate_number
    donation.certificate_financial_year = financial_year
    donation.certificate_sequence = number.sequence_number
    donation.certificate_generated_at = datetime.utcnow()
    donation.certificate_delivery = []
    db.commit()
    if existing:
        logger.info(
            "80G certificate %s reissued as %s for donation %s",
            existing.certificate_number, number.certificate_number, donation.id,
        )
    else:
        logger.info(
            "80G certificate %s issued for donation %s (sequence %d)",
            number.certificate_number, donation.id, number.sequence_number,
        )
    return certificate_info(donation)


def record_delivery(
    db: Session,
    donation: DonationModel,
    method: str,
    success: bool,
    detail: Optional[str] = None,
) -> None:
    """Append a certificate delivery attempt to the donation."""
    attempt = DeliveryAttempt(
        method=method,
        success=success,
        detail=detail,
        attempted_at=datetime.utcnow().isoformat(),
    )
    # reassign so the JSON column is flagged dirty
    donation.certificate_delivery = list(donation.certificate_delivery or []) + [attempt.model_dump()]
    db.commit()
