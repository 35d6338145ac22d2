"""
Donor-facing documents: 80G certificate HTML, thank-you email HTML and the
plain-text WhatsApp / SMS / in-app messages.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from kmwf.config import settings
from kmwf.models import DonationModel
from kmwf.rules.certificates import group_indian, number_to_words
from kmwf.schemas.donation import CertificateData

env = Environment(
    loader=PackageLoader("kmwf", "templates"),
    autoescape=select_autoescape(["html"]),
)
env.filters["indian"] = group_indian

LABEL_STYLE = "padding: 10px; border: 1px solid #d1d5db; vertical-align: top; font-weight: bold; width: 35%; background: #f9fafb;"
CELL_STYLE = "padding: 10px; border: 1px solid #d1d5db; vertical-align: top;"


def _org() -> dict:
    return {
        "name": settings.ORGANIZATION_NAME,
        "address": settings.ORGANIZATION_ADDRESS,
        "pan": settings.ORGANIZATION_PAN,
        "registration": settings.ORGANIZATION_80G_REGISTRATION,
        "validity": settings.ORGANIZATION_80G_VALIDITY,
        "support_email": settings.SUPPORT_EMAIL,
        "support_phone": settings.SUPPORT_PHONE,
    }


def receipt_short_id(donation_id: str) -> str:
    """Receipt id shown to donors."""
    return str(donation_id)[-8:]


def render_80g_certificate_html(data: CertificateData, issued_on: Optional[datetime] = None) -> str:
    """Self-contained, inline-styled certificate document."""
    return env.get_template("certificate_80g.html").render(
        data=data,
        org=_org(),
        amount_in_words=number_to_words(data.amount),
        issued_on=issued_on or datetime.utcnow(),
        app_url=settings.APP_URL.rstrip("/"),
        label_style=LABEL_STYLE,
        cell_style=CELL_STYLE,
    )


def render_thank_you_email(
    donation: DonationModel, certificate_html: Optional[str] = None
) -> tuple[str, str]:
    """Return ``(subject, html)``."""
    subject = f"Thank you for your donation - Receipt #{receipt_short_id(donation.id)}"
    html = env.get_template("donation_thank_you.html").render(
        donation=donation,
        org=_org(),
        receipt_id=receipt_short_id(donation.id),
        app_url=settings.APP_URL.rstrip("/"),
        certificate_html=certificate_html,
    )
    return subject, html


def whatsapp_thank_you_text(donation: DonationModel) -> str:
    amount = f"{donation.currency} {group_indian(donation.amount)}"
    lines = [
        f"*{settings.ORGANIZATION_NAME}*",
        "",
        "*Donation Received Successfully!*",
        "",
        f"Dear {donation.donor_name or 'Donor'},",
        "",
        f"Thank you for your generous donation of *{amount}*",
        "",
        "*Receipt Details:*",
        f"• Amount: {amount}",
        f"• Program: {donation.program_name or 'General Donation'}",
        f"• Date: {donation.created_at.strftime('%d/%m/%Y')}",
        f"• Receipt ID: {receipt_short_id(donation.id)}",
    ]
    if donation.certificate_number:
        lines.append(f"• 80G Certificate: {donation.certificate_number}")
    lines += [
        "",
        "Your contribution makes a real difference. May Allah bless you!",
        "",
        settings.APP_URL,
    ]
    return "\n".join(lines)


def sms_thank_you_text(donation: DonationModel) -> str:
    return (
        f"Thank you {donation.donor_name or 'Donor'}! Your donation of "
        f"{donation.currency} {group_indian(donation.amount)} to Khadim-e-Millat has been "
        f"received. Receipt: {receipt_short_id(donation.id)}. May Allah bless you!"
    )


def in_app_thank_you(donation: DonationModel) -> dict:
    return {
        "title": "Thank You for Your Donation!",
        "body": (
            f"Your donation of {donation.currency} {group_indian(donation.amount)} has been "
            f"received successfully. Receipt ID: {receipt_short_id(donation.id)}"
        ),
        "url": f"/donations/{donation.id}",
        "type": "donation_success",
    }
