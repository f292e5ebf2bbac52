import logging
from typing import Optional

import requests

from oludeniz_tours.config import Config
from oludeniz_tours.booking_app.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

DEFAULT_REPLY = "Thank you for your message. How can I assist you further?"


def ask_chatbot(message: str, session_id: str, webhook_url: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """Forward one chat message to the chatbot webhook and return its reply."""
    url = webhook_url or Config.CHAT_WEBHOOK_URL
    if not url:
        raise UpstreamServiceError("Chat webhook is not configured")
    try:
        resp = requests.post(
            url,
            json={"chatInput": message, "sessionId": session_id},
            timeout=timeout or Config.CHAT_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("chat webhook call failed: %s", e)
        raise UpstreamServiceError("Failed to communicate with chatbot service") from e

    if isinstance(data, list) and data:
        data = data[0]
    if not isinstance(data, dict):
        return DEFAULT_REPLY
    return data.get("output") or data.get("response") or data.get("message") or DEFAULT_REPLY
