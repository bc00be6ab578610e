from __future__ import annotations

import logging

import httpx

from salon.config import settings
from salon.services.session_store import phone_digits

logger = logging.getLogger(__name__)

COUNTRY_PREFIX = "972"


def format_recipient(phone: str) -> str:
    """Normalize a local number to the gateway's ``9725XXXXXXXX`` form."""
    digits = phone_digits(phone)
    if digits.startswith("0"):
        digits = digits[1:]
    if not digits.startswith(COUNTRY_PREFIX):
        digits = COUNTRY_PREFIX + digits
    return digits


def verification_message(code: str) -> str:
    return f"Your Adar verification code is: {code}"


async def send_sms(
    phone: str, message: str, transport: httpx.AsyncBaseTransport | None = None
) -> bool:
    """Send *message* through the SMS gateway. Returns False on any failure."""
    payload = {
        "key": settings.sms_key,
        "user": settings.sms_user,
        "pass": settings.sms_pass,
        "sender": settings.sms_sender,
        "recipient": format_recipient(phone),
        "msg": message,
    }
    try:
        async with httpx.AsyncClient(
            timeout=settings.sms_timeout_seconds, transport=transport
        ) as client:
            resp = await client.post(settings.sms_api_url, json=payload)
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("SMS to %s failed: %s", payload["recipient"], exc)
        return False

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if isinstance(data, dict) and (data.get("status") == "error" or data.get("success") is False):
        logger.warning("SMS gateway rejected message to %s: %s", payload["recipient"], data)
        return False
    return True


async def send_verification_code(
    phone: str, code: str, transport: httpx.AsyncBaseTransport | None = None
) -> bool:
    return await send_sms(phone, verification_message(code), transport=transport)
