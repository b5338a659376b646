"""Webhook notifications."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class Notifier:
    """Send webhook notifications for dependency events."""

    def __init__(self, webhook_url: str = "", events: list[str] | None = None):
        self.webhook_url = webhook_url
        self.events = events or []
        self.client = httpx.AsyncClient()

    async def notify(self, event: str, text: str, **payload) -> None:
        if not self.webhook_url or event not in self.events:
            return

        body = {"event": event, "text": text, **payload}
        try:
            response = await self.client.post(self.webhook_url, json=body, timeout=10)
            response.raise_for_status()
        except httpx.HTTPError as e:
            # Delivery failures must not affect the task update
            logger.warning("Webhook delivery failed for %s: %s", event, e)

    async def close(self) -> None:
        await self.client.aclose()
