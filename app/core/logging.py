"""
Logging setup - one console handler for every "shenv.*" logger.

Modules create their own named loggers:
    logger = logging.getLogger("shenv.services.discovery")

and main.py calls configure_logging() once at startup. Context goes in
`extra={...}`; tokens and service-account keys are never logged.
"""

import logging
import sys

LOGGER_NAME = "shenv"

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach a stdout handler to the root "shenv" logger.

    Safe to call more than once (tests create the app repeatedly);
    the handler is only added the first time.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    return logger
