#!/usr/bin/env python3
"""
live-hls-proxy - Main Entry Point
Resolves a channel's live HLS manifest and proxies master, variant and segment
requests back through this server.
"""

import asyncio
import logging
import os
import sys

import uvicorn

# Local modules live in src/ and are imported as top-level modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from config import settings, VERSION

logger = logging.getLogger("live-hls-proxy")


def install_uvloop() -> bool:
    """Use uvloop when the optional extra is installed."""
    try:
        import uvloop
    except ImportError:
        return False
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    return True


def log_startup(use_uvloop: bool):
    logger.info(f"Starting live-hls-proxy v{VERSION} on {settings.HOST}:{settings.PORT}")
    logger.info(f"Log level: {settings.LOG_LEVEL}, event loop: {'uvloop' if use_uvloop else 'asyncio'}")
    logger.info(
        f"Upstream timeouts: {settings.UPSTREAM_TIMEOUT}s pages/playlists, "
        f"{settings.SEGMENT_TIMEOUT}s segments"
    )
    logger.info(
        f"Segment relay: {settings.SEGMENT_MAX_ATTEMPTS} attempts, "
        f"{settings.SEGMENT_RETRY_DELAY}s linear backoff"
    )
    if settings.PUBLIC_URL:
        logger.info(f"Proxy links built from PUBLIC_URL {settings.PUBLIC_URL}")
    if settings.API_TOKEN:
        logger.info("Management endpoints require an API token")
    if settings.RELOAD:
        logger.info("Auto-reload is enabled")


def main():
    use_uvloop = install_uvloop()

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    log_startup(use_uvloop)

    uvicorn.run(
        "api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
        loop="uvloop" if use_uvloop and not settings.RELOAD else "asyncio"
    )


if __name__ == "__main__":
    main()
