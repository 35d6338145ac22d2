"""
Thank-you fan-out for completed donations.

The fan-out runs at most once per donation: the entry guard flips
``notifications_sent`` with a conditional UPDATE and only the caller that
changed the row goes on to send. Channels are independent; a failing
channel is logged and recorded, and the next one is still attempted.
"""
from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from kmwf.models import DonationModel, InAppNotificationModel, UserModel
from kmwf.schemas.donation import NotificationReport
from kmwf.services import certificates
from kmwf.services.documents import (
    in_app_thank_you,
    render_80g_certificate_html,
    render_thank_you_email,
    sms_thank_you_text,
    whatsapp_thank_you_text,
)
from kmwf.services.transports import Transports

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES = {"email": True, "whatsapp": True, "sms": False}

SENT = "sent"
FAILED = "failed"
SKIPPED = "skipped"


def claim_notifications(db: Session, donation_id: str) -> bool:
    """Atomically mark the donation as notified. True for the one caller
    that flipped the flag."""
    result = db.execute(
        update(DonationModel)
        .where(DonationModel.id == donation_id, DonationModel.notifications_sent.is_(False))
        .values(notifications_sent=True)
    )
    db.commit()
    return result.rowcount == 1


def _donor_profile(db: Session, donation: DonationModel) -> Optional[UserModel]:
    if not donation.donor_email:
        return None
    try:
        return db.query(UserModel).filter(UserModel.email == donation.donor_email).first()
    except Exception:
        logger.warning("User lookup failed for donation %s", donation.id, exc_info=True)
        db.rollback()
        return None


def _preferences(user: Optional[UserModel]) -> dict:
    prefs = dict(DEFAULT_PREFERENCES)
    if user and user.notification_preferences:
        prefs.update({k: bool(v) for k, v in user.notification_preferences.items() if k in prefs})
    return prefs


def _attempt(
    db: Session,
    donation: DonationModel,
    channel: str,
    send: Callable[[], Optional[str]],
) -> str:
    try:
        detail = send()
    except Exception as e:
        logger.error("Donation %s: %s notification failed", donation.id, channel, exc_info=True)
        db.rollback()
        status, detail = FAILED, str(e)
    else:
        logger.info("Donation %s: %s notification sent", donation.id, channel)
        status = SENT

    if donation.certificate_number:
        try:
            certificates.record_delivery(db, donation, channel, status == SENT, detail)
        except Exception:
            logger.error("Could not record %s delivery for donation %s", channel, donation.id, exc_info=True)
            db.rollback()
    return status


def _store_in_app(db: Session, user: UserModel, donation: DonationModel) -> str:
    message = in_app_thank_you(donation)
    row = InAppNotificationModel(
        id=str(uuid.uuid4()),
        user_id=user.external_user_id or user.id,
        **message,
    )
    db.add(row)
    db.commit()
    return row.id


def send_donation_thank_you(
    db: Session, donation: DonationModel, transports: Transports
) -> NotificationReport:
    if not claim_notifications(db, donation.id):
        logger.info("Donation %s already notified, skipping", donation.id)
        return NotificationReport(donation_id=donation.id, skipped=True)

    db.refresh(donation)
    user = _donor_profile(db, donation)
    prefs = _preferences(user)
    phone = (user.phone if user else None) or donation.donor_phone
    report = NotificationReport(donation_id=donation.id)

    # ── email ──
    if donation.donor_email and prefs["email"]:
        def send_email():
            certificate_html = None
            if donation.certificate_number:
                certificate_html = render_80g_certificate_html(certificates.certificate_data(donation))
            subject, html = render_thank_you_email(donation, certificate_html)
            return transports.email.send(donation.donor_email, subject, html)

        report.channels["email"] = _attempt(db, donation, "email", send_email)
    else:
        report.channels["email"] = SKIPPED

    # ── whatsapp ──
    if phone and prefs["whatsapp"]:
        report.channels["whatsapp"] = _attempt(
            db, donation, "whatsapp",
            lambda: transports.whatsapp.send(phone, whatsapp_thank_you_text(donation)),
        )
    else:
        report.channels["whatsapp"] = SKIPPED

    # ── sms ──
    if phone and prefs["sms"]:
        report.channels["sms"] = _attempt(
            db, donation, "sms",
            lambda: transports.sms.send(phone, sms_thank_you_text(donation)),
        )
    else:
        report.channels["sms"] = SKIPPED

    # ── in-app ──
    if user is not None:
        report.channels["in_app"] = _attempt(
            db, donation, "in_app", lambda: _store_in_app(db, user, donation)
        )
    else:
        report.channels["in_app"] = SKIPPED

    logger.info("Donation %s notifications: %s", donation.id, report.channels)
    return report
