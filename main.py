"""
Visitor insight entry point.
Serves the profile, auction and visitor-tracking API with uvicorn.
"""

import sys

import uvicorn
from loguru import logger

from insight.api import create_app
from insight.settings import global_settings


def main() -> None:
    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level.upper())

    logger.info("Starting visitor insight server...")
    app = create_app(settings=global_settings)
    uvicorn.run(
        app,
        host=global_settings.host,
        port=global_settings.port,
        log_level=global_settings.log_level.lower(),
    )
    logger.info("Visitor insight server exited")


if __name__ == "__main__":
    main()
