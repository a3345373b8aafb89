import logging
import re
import requests
from dataclasses import dataclass
from typing import Optional
from django.conf import settings

logger = logging.getLogger(__name__)

GRAPH_URL = 'https://graph.facebook.com'


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[int] = None


def format_phone(phone: str) -> str:
    """Normalise a phone number to E.164; bare 10 digit numbers are Indian."""
    if not phone:
        return ''
    normalized = re.sub(r'^whatsapp:', '', phone.strip()).strip()
    normalized = re.sub(r'[^\d+]', '', normalized)
    if not normalized:
        return ''
    if not normalized.startswith('+'):
        if len(normalized) == 10:
            normalized = f'+91{normalized}'
        else:
            normalized = f'+{normalized}'
    return normalized


def mask_phone(phone: str) -> str:
    return (phone or '')[:3] + '***'


def is_configured() -> bool:
    return bool(settings.META_WHATSAPP_ACCESS_TOKEN and settings.META_WHATSAPP_PHONE_NUMBER_ID)


def missing_settings() -> list[str]:
    missing = []
    if not settings.META_WHATSAPP_ACCESS_TOKEN:
        missing.append('META_WHATSAPP_ACCESS_TOKEN')
    if not settings.META_WHATSAPP_PHONE_NUMBER_ID:
        missing.append('META_WHATSAPP_PHONE_NUMBER_ID')
    return missing


def send_text(to: str, body: str) -> SendResult:
    """Send a plain text WhatsApp message through the Meta Cloud API."""
    if not is_configured():
        return SendResult(False, error=f"WhatsApp not configured. Missing: {', '.join(missing_settings())}")
    phone = format_phone(to)
    if not phone:
        return SendResult(False, error='Invalid phone number')

    url = f'{GRAPH_URL}/{settings.META_WHATSAPP_API_VERSION}/{settings.META_WHATSAPP_PHONE_NUMBER_ID}/messages'
    payload = {
        'messaging_product': 'whatsapp',
        'to': phone,
        'type': 'text',
        'text': {'body': body},
    }
    headers = {'Authorization': f'Bearer {settings.META_WHATSAPP_ACCESS_TOKEN}'}
    try:
        r = requests.post(url, json=payload, headers=headers, timeout=settings.WHATSAPP_TIMEOUT)
        data = r.json() if r.content else {}
    except (requests.RequestException, ValueError) as e:
        logger.warning('WhatsApp send to %s failed: %s', mask_phone(phone), e)
        return SendResult(False, error=str(e))

    if not r.ok:
        err = data.get('error') or {}
        logger.warning('WhatsApp API error %s for %s: %s', r.status_code, mask_phone(phone), err.get('message'))
        return SendResult(False, error=err.get('message') or 'Failed to send message', error_code=err.get('code'))

    messages = data.get('messages') or [{}]
    return SendResult(True, message_id=messages[0].get('id'))
