import logging
import re
from typing import Optional

from twilio.rest import Client

from oludeniz_tours.config import Config
from oludeniz_tours.services.send_result import SendResult

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\+?\d{10,15}$")


def clean_phone(number: str) -> str:
    """Strip spaces, dashes, dots and brackets from a phone number."""
    return re.sub(r"[\s\-\(\)\.]", "", number or "")


def is_valid_whatsapp_number(number: str) -> bool:
    return bool(_PHONE_RE.match(clean_phone(number)))


def _twilio_client() -> Optional[Client]:
    if not (Config.TWILIO_ACCOUNT_SID and Config.TWILIO_AUTH_TOKEN and Config.TWILIO_WHATSAPP_FROM):
        return None
    return Client(Config.TWILIO_ACCOUNT_SID, Config.TWILIO_AUTH_TOKEN)


def send_whatsapp_message(to: str, body: str, media_url: Optional[str] = None, client: Optional[Client] = None) -> SendResult:
    """Send a WhatsApp message through Twilio. Never raises; failures come back in the result."""
    try:
        client = client or _twilio_client()
        if client is None:
            return SendResult(success=False, error="WhatsApp credentials not configured")

        phone = clean_phone(to)
        if not is_valid_whatsapp_number(phone):
            return SendResult(success=False, error="Invalid phone number format")
        if not phone.startswith("+"):
            phone = "+" + phone

        kwargs = {"from_": Config.TWILIO_WHATSAPP_FROM, "to": f"whatsapp:{phone}", "body": body}
        if media_url:
            kwargs["media_url"] = [media_url]
        message = client.messages.create(**kwargs)
        logger.info("WhatsApp message sent to %s (sid=%s)", phone, message.sid)
        return SendResult(success=True, message_id=message.sid)
    except Exception as e:
        logger.error("Error sending WhatsApp message to %s: %s", to, e)
        return SendResult(success=False, error=str(e))
