"""FastAPI server runner."""

import uvicorn

from signal_desk.config import config_path, load_config
from signal_desk.logging import get_logger, setup_logging

logger = get_logger(__name__)


def main():
    """Run the FastAPI server."""
    config = load_config(config_path())
    setup_logging(config.logging.level, config.logging.format)

    from signal_desk.api.app import create_app

    logger.info("api_starting", host=config.api.host, port=config.api.port)

    try:
        uvicorn.run(
            create_app(config),
            host=config.api.host,
            port=config.api.port,
            log_config=None,  # Use our structlog setup
        )
    except Exception as e:
        logger.error("api_start_failed", error=str(e))
        raise


if __name__ == "__main__":
    main()
