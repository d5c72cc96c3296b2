"""structlog configuration shared by the web app and the CLI."""
import logging

import structlog

from policyqa import config


def configure_logging(level: str = None) -> None:
    """Configure structured JSON logging.

    Args:
        level: Log level name (default from config.LOG_LEVEL)
    """
    level_name = (level or config.LOG_LEVEL).upper()
    logging.basicConfig(format="%(message)s", level=getattr(logging, level_name, logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
