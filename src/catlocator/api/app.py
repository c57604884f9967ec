"""aiohttp application exposing the beacon endpoints."""

import logging
from typing import AsyncIterator, Optional

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config.settings import Settings
from ..domain.exceptions import (
    InvalidReadingException,
    StorageException,
    UnknownDeviceException,
)
from ..domain.inference import parse_signal_strengths
from ..infrastructure.database.connection import (
    close_database_engine,
    get_async_session_factory,
)
from ..infrastructure.webhook.client import WebhookNotifier
from ..services.boot import BootService
from ..services.inference import InferenceService

logger = logging.getLogger(__name__)

SETTINGS_KEY = web.AppKey("settings", Settings)
INFERENCE_KEY = web.AppKey("inference_service", InferenceService)
BOOT_KEY = web.AppKey("boot_service", BootService)


def _device_id(request: web.Request) -> str:
    device_id = request.query.get("macAddress", "")
    if not device_id:
        raise web.HTTPBadRequest(
            text='{"error": "macAddress is required"}',
            content_type="application/json",
        )
    return device_id


async def health(request: web.Request) -> web.Response:
    return web.Response(status=200)


async def submit_readings(request: web.Request) -> web.Response:
    device_id = _device_id(request)
    try:
        samples = parse_signal_strengths(request.query.get("rssi"))
        await request.app[INFERENCE_KEY].submit_readings(device_id, samples)
    except (UnknownDeviceException, InvalidReadingException) as e:
        logger.info(f"Rejected readings from {device_id}: {e.message}")
        return web.json_response({"error": e.message}, status=400)
    except StorageException as e:
        return web.Response(status=500, text=f"Error processing readings: {e.message!r}")

    return web.Response(status=200)


async def report_boot(request: web.Request) -> web.Response:
    device_id = _device_id(request)
    try:
        await request.app[BOOT_KEY].report_boot(device_id)
    except UnknownDeviceException as e:
        return web.json_response({"error": e.message}, status=400)
    except StorageException as e:
        return web.json_response({"error": e.message}, status=500)

    return web.Response(status=200)


def create_app(
    settings: Settings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    notifier: Optional[WebhookNotifier] = None,
) -> web.Application:
    """Build the application.

    Without an injected session factory the shared database engine is used
    and disposed on cleanup. The notifier's HTTP session lives as long as
    the application runs.
    """
    owns_database = session_factory is None
    factory = session_factory or get_async_session_factory(settings)
    webhook = notifier or WebhookNotifier(settings)

    app = web.Application()
    app[SETTINGS_KEY] = settings
    app[INFERENCE_KEY] = InferenceService(settings, factory, webhook)
    app[BOOT_KEY] = BootService(factory, webhook)

    async def resources_ctx(app: web.Application) -> AsyncIterator[None]:
        await webhook.start()
        logger.info(f"Tracking {settings.room_count} rooms")

        yield

        await webhook.close()
        if owns_database:
            await close_database_engine()

    app.cleanup_ctx.append(resources_ctx)

    app.router.add_get("/", health)
    app.router.add_post("/beacon", submit_readings)
    app.router.add_post("/notify/boot", report_boot)

    return app
