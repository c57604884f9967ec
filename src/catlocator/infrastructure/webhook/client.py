"""Webhook client for boot and cat-location notifications."""

import asyncio
import logging
from typing import Optional

import aiohttp
from aiohttp import ClientSession

from ...config.settings import Settings
from ...domain.exceptions import NotificationDeliveryException
from ...domain.models import InferenceResult
from .messages import boot_message, location_message

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"


class WebhookNotifier:
    """Best-effort poster of notification texts.

    Delivery failures, including unexpected client errors, are logged and
    swallowed; callers only ever see a boolean.
    """

    def __init__(self, settings: Settings, session: Optional[ClientSession] = None):
        self.settings = settings
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "WebhookNotifier":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.notify_timeout_seconds)
            )
            self._owns_session = True

    async def close(self) -> None:
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def _post(self, url: str, text: str) -> None:
        if not self.session:
            raise NotificationDeliveryException(url, "no session available")

        try:
            async with self.session.post(
                url,
                json={"value1": text},
                headers={"Content-Type": JSON_CONTENT_TYPE},
                timeout=aiohttp.ClientTimeout(total=self.settings.notify_timeout_seconds),
            ) as response:
                if response.status >= 300:
                    raise NotificationDeliveryException(url, f"HTTP {response.status}")

        except aiohttp.ClientError as e:
            raise NotificationDeliveryException(url, str(e)) from e
        except asyncio.TimeoutError as e:
            raise NotificationDeliveryException(
                url, f"timed out after {self.settings.notify_timeout_seconds}s"
            ) from e

    async def send(self, url: str, text: str) -> bool:
        """Post ``text`` to ``url``. Returns False if delivery failed."""
        try:
            await self._post(url, text)
        except NotificationDeliveryException as e:
            logger.warning(e.message)
            return False
        except Exception as e:
            logger.exception(f"Unexpected error posting notification to {url}: {e}")
            return False

        logger.debug(f"Delivered notification to {url}")
        return True

    async def notify_boot(self, room: str) -> bool:
        return await self.send(self.settings.boot_webhook_url, boot_message(room))

    async def notify_location(self, result: InferenceResult) -> bool:
        text = location_message(result)
        if text is None:
            return False
        return await self.send(self.settings.location_webhook_url, text)
