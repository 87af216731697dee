"""
Module to contain base class for webhook delivery channels
"""
import logging
from typing import Any, Dict

import httpx

from core.errors import DeliveryError

logger = logging.getLogger(__name__)


class WebhookChannel:
    """
    JSON POST to a configured webhook endpoint.
    ``post`` raises DeliveryError on failure; callers decide whether that matters.
    """

    name: str = "webhook"

    def __init__(self, url: str, timeout: float = 30.0):
        self.url = url
        self.timeout = timeout

    async def post(self, payload: Dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DeliveryError(
                f"{self.name} webhook returned {e.response.status_code}",
                url=self.url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise DeliveryError(f"{self.name} webhook unreachable: {e}", url=self.url) from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text
