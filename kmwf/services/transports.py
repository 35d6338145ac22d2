"""
Thin HTTP clients for the outbound notification providers.

Each client owns (or is handed) an ``httpx.Client`` and exposes one
``send`` method that returns the provider's message id. Any problem,
including a transport that is disabled or missing credentials, surfaces
as :class:`TransportError`.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from kmwf.config import settings

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Provider could not accept the message."""


def _check(resp: httpx.Response, provider: str) -> dict:
    if resp.status_code >= 400:
        logger.error("%s API error: status=%d body=%s", provider, resp.status_code, resp.text[:200])
        raise TransportError(f"{provider} API error: {resp.status_code}")
    try:
        return resp.json()
    except ValueError:
        return {}


class _HttpClient:
    provider = "HTTP"

    def __init__(self, client: Optional[httpx.Client] = None):
        self._client = client or httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)

    @property
    def configured(self) -> bool:
        return False

    def _post(self, url: str, payload: dict, token: str) -> dict:
        if not self.configured:
            raise TransportError(f"{self.provider} transport is disabled or not configured")
        try:
            resp = self._client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{self.provider} request failed: {e}") from e
        return _check(resp, self.provider)

    def close(self) -> None:
        self._client.close()


# ── Email (Resend) ───────────────────────────────────────────────────────
class EmailClient(_HttpClient):
    provider = "Resend"

    def __init__(
        self,
        api_key: str = "",
        api_url: str = "",
        sender: str = "",
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(client)
        self.api_key = api_key
        self.api_url = api_url
        self.sender = sender

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_url)

    def send(self, to: str, subject: str, html: str) -> str:
        data = self._post(
            self.api_url,
            {"from": self.sender, "to": [to], "subject": subject, "html": html},
            self.api_key,
        )
        message_id = str(data.get("id") or "sent")
        logger.info("Email sent to %s (id=%s)", to, message_id)
        return message_id


# ── SMS (generic bearer-token gateway) ───────────────────────────────────
class SmsClient(_HttpClient):
    provider = "SMS"

    def __init__(
        self,
        api_url: str = "",
        api_key: str = "",
        sender_id: str = "",
        enabled: bool = False,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(client)
        self.api_url = api_url
        self.api_key = api_key
        self.sender_id = sender_id
        self.enabled = enabled

    @property
    def configured(self) -> bool:
        return bool(self.enabled and self.api_url and self.api_key)

    def send(self, to: str, message: str) -> str:
        phone = re.sub(r"[^\d+]", "", to)
        data = self._post(
            self.api_url,
            {"to": phone, "message": message, "sender_id": self.sender_id},
            self.api_key,
        )
        message_id = str(data.get("message_id") or data.get("id") or "sent")
        logger.info("SMS sent to %s (id=%s)", phone, message_id)
        return message_id


# ── WhatsApp (Meta Cloud API) ────────────────────────────────────────────
class WhatsAppClient(_HttpClient):
    provider = "WhatsApp"

    def __init__(
        self,
        api_url: str = "",
        access_token: str = "",
        phone_number_id: str = "",
        enabled: bool = False,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(client)
        self.api_url = api_url.rstrip("/")
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.enabled = enabled

    @property
    def configured(self) -> bool:
        return bool(self.enabled and self.api_url and self.access_token and self.phone_number_id)

    def send(self, to: str, message: str) -> str:
        phone = re.sub(r"\D", "", to)
        data = self._post(
            f"{self.api_url}/{self.phone_number_id}/messages",
            {
                "messaging_product": "whatsapp",
                "to": phone,
                "type": "text",
                "text": {"body": message},
            },
            self.access_token,
        )
        messages = data.get("messages") or [{}]
        message_id = str(messages[0].get("id") or "sent")
        logger.info("WhatsApp message sent to %s (id=%s)", phone, message_id)
        return message_id


@dataclass
class Transports:
    email: EmailClient
    sms: SmsClient
    whatsapp: WhatsAppClient

    @classmethod
    def from_settings(cls) -> "Transports":
        return cls(
            email=EmailClient(
                api_key=settings.RESEND_API_KEY,
                api_url=settings.RESEND_API_URL,
                sender=f"{settings.NOTIFICATION_FROM_NAME} <{settings.NOTIFICATION_EMAIL}>",
            ),
            sms=SmsClient(
                api_url=settings.SMS_API_URL,
                api_key=settings.SMS_API_KEY,
                sender_id=settings.SMS_SENDER_ID,
                enabled=settings.SMS_ENABLED,
            ),
            whatsapp=WhatsAppClient(
                api_url=settings.WHATSAPP_API_URL,
                access_token=settings.WHATSAPP_ACCESS_TOKEN,
                phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
                enabled=settings.WHATSAPP_ENABLED,
            ),
        )

    def close(self) -> None:
        for client in (self.email, self.sms, self.whatsapp):
            client.close()


def get_transports():
    """Transports dependency"""
    transports = Transports.from_settings()
    try:
        yield transports
    finally:
        transports.close()
