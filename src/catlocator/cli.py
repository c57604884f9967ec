"""Command line entry point."""

import logging
from typing import Optional

import typer
from aiohttp import web

from .config.settings import Settings
from .api.app import create_app

app = typer.Typer(help="Cat locator beacon service")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.callback()
def main() -> None:
    """Cat locator beacon service."""


@app.command()
def serve(
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Listen port (default: $PORT)"
    )
):
    """Run the HTTP service."""
    settings = Settings()
    configure_logging(settings.log_level)

    web.run_app(
        create_app(settings),
        port=port or settings.port,
        access_log=logging.getLogger("catlocator.access"),
    )


if __name__ == "__main__":
    app()
