#!/usr/bin/env python3
"""Main entry point for TrustGate."""

import uvicorn

from trustgate.common.logging import get_logger
from trustgate.common.config import get_config

logger = get_logger(__name__, get_config().log_level.value)


def main():
    """Start the API gateway."""
    config = get_config()
    logger.info(f"TrustGate starting in {config.environment.value} mode")
    logger.info(f"Project root: {config.project_root}")
    uvicorn.run(
        "trustgate.api.gateway:app",
        host=config.api_host,
        port=config.api_port,
        log_level=config.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
