import logging
from typing import Any, Dict, Optional

import requests

from oludeniz_tours.config import Config

logger = logging.getLogger(__name__)


class AuthServiceClient:
    """Thin client for the hosted auth service: token -> user record."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or Config.AUTH_BASE_URL or "").rstrip("/")
        self.api_key = api_key or Config.AUTH_API_KEY
        self.timeout = timeout or Config.AUTH_TIMEOUT_SECONDS

    def get_user(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the user dict for ``token`` or None when the token is rejected.

        Network and configuration problems raise ``requests.RequestException`` /
        ``RuntimeError``; the caller decides how to report them.
        """
        if not self.base_url:
            raise RuntimeError("AUTH_BASE_URL is not configured")
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        resp = requests.get(f"{self.base_url}/auth/v1/user", headers=headers, timeout=self.timeout)
        if resp.status_code in (401, 403):
            logger.info("auth service rejected token (status=%s)", resp.status_code)
            return None
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return data
