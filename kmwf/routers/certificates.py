"""
80G certificate endpoints.

GET  /api/certificates/financial-year          - FY for a date
POST /api/certificates/validate-pan            - PAN format check
POST /api/certificates/validate-number         - certificate number check
GET  /api/certificates/stats/{financial_year}  - counter stats (admin)
POST /api/donations/{id}/certificate           - issue 80G certificate (admin)
GET  /api/donations/{id}/certificate.html      - rendered certificate
"""
from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from kmwf.auth import CurrentUser, require_roles
from kmwf.config import settings
from kmwf.database import get_db
from kmwf.models import DonationModel
from kmwf.rules.certificates import (
    extract_financial_year_from_certificate,
    extract_sequence_from_certificate,
    get_financial_year,
    is_valid_certificate_number,
    is_valid_pan,
)
from kmwf.schemas.donation import (
    CertificateInfo,
    CertificateNumberCheck,
    CertificateStats,
    FinancialYearResponse,
    FormatCheckResponse,
    PanCheck,
)
from kmwf.services import certificates as certificate_service
from kmwf.services.documents import render_80g_certificate_html

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_donation(db: Session, donation_id: str) -> DonationModel:
    row = db.query(DonationModel).filter(DonationModel.id == donation_id).first()
    if not row:
        logger.warning("Donation not found: %s", donation_id)
        raise HTTPException(status_code=404, detail="Donation not found")
    return row


# ── GET /api/certificates/financial-year ─────────────────────────────────
@router.get("/certificates/financial-year", response_model=FinancialYearResponse)
def financial_year(date: Optional[date_type] = Query(default=None)):
    when = date or date_type.today()
    return FinancialYearResponse(date=when, financial_year=get_financial_year(when))


# ── POST /api/certificates/validate-pan ──────────────────────────────────
@router.post("/certificates/validate-pan", response_model=FormatCheckResponse)
def validate_pan(req: PanCheck):
    return FormatCheckResponse(value=req.pan, is_valid=is_valid_pan(req.pan))


# ── POST /api/certificates/validate-number ───────────────────────────────
@router.post("/certificates/validate-number", response_model=FormatCheckResponse)
def validate_number(req: CertificateNumberCheck):
    value = req.certificate_number
    prefix = settings.CERTIFICATE_PREFIX
    return FormatCheckResponse(
        value=value,
        is_valid=is_valid_certificate_number(value, prefix),
        financial_year=extract_financial_year_from_certificate(value, prefix),
        sequence_number=extract_sequence_from_certificate(value, prefix),
    )


# ── GET /api/certificates/stats/{financial_year} ─────────────────────────
@router.get("/certificates/stats/{financial_year}", response_model=CertificateStats)
def certificate_stats(
    financial_year: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_roles("admin", "moderator")),
):
    return certificate_service.get_certificate_stats(db, financial_year)


# ── POST /api/donations/{donation_id}/certificate ────────────────────────
@router.post("/donations/{donation_id}/certificate", response_model=CertificateInfo)
def issue_certificate(
    donation_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_roles("admin", "moderator")),
):
    donation = _get_donation(db, donation_id)
    if donation.status != "completed":
        raise HTTPException(status_code=400, detail="Certificates are issued for completed donations only")
    try:
        info = certificate_service.process_80g_certificate(db, donation)
    except certificate_service.CertificateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Certificate %s requested by %s", info.certificate_number, user.user_id)
    return info


# ── GET /api/donations/{donation_id}/certificate.html ────────────────────
@router.get("/donations/{donation_id}/certificate.html", response_class=HTMLResponse)
def certificate_html(donation_id: str, db: Session = Depends(get_db)):
    donation = _get_donation(db, donation_id)
    try:
        data = certificate_service.certificate_data(donation)
    except certificate_service.CertificateError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return HTMLResponse(
        render_80g_certificate_html(data, issued_on=donation.certificate_generated_at)
    )
