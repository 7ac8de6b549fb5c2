#!/usr/bin/env python3
"""
Opsbot search service

Entry point that configures logging, reports which credentials are loaded
and keeps the search caches warm until the process is interrupted. The chat
layer imports ``get_search_manager()`` from the same process.
"""

import asyncio
import logging
import sys

import structlog

from .config.settings import Settings, get_settings, log_env_status
from .integrations.client_manager import get_search_manager

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structured logging for the process"""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


async def run(settings: Settings) -> None:
    """Run the warm scheduler until cancelled"""
    log_env_status(settings)
    manager = get_search_manager()

    async with manager:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            logger.info("Stop requested")


def main():
    """Main entry point for the opsbot service."""
    settings = get_settings()
    configure_logging(settings.log_level.value, settings.log_json)
    logger.info("Starting opsbot search service", version=settings.app_version)

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception as e:
        logger.error("Service failed", error=str(e))
        raise


if __name__ == "__main__":
    main()
