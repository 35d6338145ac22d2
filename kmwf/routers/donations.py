"""
Donation endpoints.

POST /api/donations                         - record a donation (pending)
GET  /api/donations/{id}                    - get one donation
POST /api/donations/{id}/verify-payment     - gateway signature check + completion
POST /api/donations/{id}/notify             - thank-you notifications, ?force=true resends (admin)
"""
from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from kmwf.auth import CurrentUser, require_roles
from kmwf.database import get_db
from kmwf.models import DonationModel
from kmwf.schemas.donation import (
    DonationCreate,
    DonationResponse,
    NotificationReport,
    PaymentVerification,
)
from kmwf.services import certificates as certificate_service
from kmwf.services.notifications import send_donation_thank_you
from kmwf.services.payments import verify_payment_signature
from kmwf.services.transports import Transports, get_transports

logger = logging.getLogger(__name__)
router = APIRouter()


def _to_response(row: DonationModel) -> DonationResponse:
    return DonationResponse(
        id=row.id,
        donor_name=row.donor_name,
        donor_email=row.donor_email,
        donor_phone=row.donor_phone,
        amount=row.amount,
        currency=row.currency,
        program_name=row.program_name,
        campaign_name=row.campaign_name,
        wants_80g_receipt=row.wants_80g_receipt,
        status=row.status,
        gateway_order_id=row.gateway_order_id,
        gateway_payment_id=row.gateway_payment_id,
        notifications_sent=row.notifications_sent,
        certificate=certificate_service.certificate_info(row),
        created_at=row.created_at,
    )


def _get_donation(db: Session, donation_id: str) -> DonationModel:
    row = db.query(DonationModel).filter(DonationModel.id == donation_id).first()
    if not row:
        logger.warning("Donation not found: %s", donation_id)
        raise HTTPException(status_code=404, detail="Donation not found")
    return row


# ── POST /api/donations ──────────────────────────────────────────────────
@router.post("/donations", response_model=DonationResponse, status_code=201)
def create_donation(req: DonationCreate, db: Session = Depends(get_db)):
    row = DonationModel(
        id=uuid.uuid4().hex,
        status="pending",
        notifications_sent=False,
        **req.model_dump(),
    )
    if row.donor_pan:
        row.donor_pan = row.donor_pan.upper()
    db.add(row)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to store donation from %s", req.donor_email)
        raise HTTPException(status_code=500, detail="Failed to record donation")
    db.refresh(row)
    logger.info("Stored donation %s: %s %.2f (80G=%s)", row.id, row.currency, row.amount, row.wants_80g_receipt)
    return _to_response(row)


# ── GET /api/donations/{donation_id} ─────────────────────────────────────
@router.get("/donations/{donation_id}", response_model=DonationResponse)
def get_donation(donation_id: str, db: Session = Depends(get_db)):
    return _to_response(_get_donation(db, donation_id))


# ── POST /api/donations/{donation_id}/verify-payment ─────────────────────
@router.post("/donations/{donation_id}/verify-payment", response_model=DonationResponse)
def verify_payment(
    donation_id: str,
    req: PaymentVerification,
    db: Session = Depends(get_db),
    transports: Transports = Depends(get_transports),
):
    donation = _get_donation(db, donation_id)
    if donation.gateway_order_id and donation.gateway_order_id != req.order_id:
        raise HTTPException(status_code=400, detail="Order id does not match this donation")
    if not verify_payment_signature(req.order_id, req.payment_id, req.signature):
        raise HTTPException(status_code=400, detail="Invalid payment signature")

    if donation.status != "completed":
        donation.status = "completed"
        donation.gateway_order_id = req.order_id
        donation.gateway_payment_id = req.payment_id
        db.commit()
        logger.info("Donation %s completed (payment %s)", donation.id, req.payment_id)

    # --- side effects, never fail the request ---
    if donation.wants_80g_receipt:
        try:
            certificate_service.process_80g_certificate(db, donation)
        except Exception:
            logger.exception("80G certificate failed for donation %s", donation.id)
            db.rollback()

    try:
        send_donation_thank_you(db, donation, transports)
    except Exception:
        logger.exception("Thank-you notifications failed for donation %s", donation.id)
        db.rollback()

    db.refresh(donation)
    return _to_response(donation)


# ── POST /api/donations/{donation_id}/notify ─────────────────────────────
@router.post("/donations/{donation_id}/notify", response_model=NotificationReport)
def notify(
    donation_id: str,
    force: bool = False,
    db: Session = Depends(get_db),
    transports: Transports = Depends(get_transports),
    user: CurrentUser = Depends(require_roles("admin", "moderator")),
):
    donation = _get_donation(db, donation_id)
    if donation.status != "completed":
        raise HTTPException(status_code=400, detail="Only completed donations can be notified")
    logger.info("Notification run for %s requested by %s", donation.id, user.user_id)
    if force and donation.notifications_sent:
        # explicit resend: release the flag so the guard admits this run
        donation.notifications_sent = False
        db.commit()
    return send_donation_thank_you(db, donation, transports)
