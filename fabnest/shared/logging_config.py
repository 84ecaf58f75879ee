# fabnest/shared/logging_config.py

import logging
import sys

from fabnest.shared.config import settings

logger = logging.getLogger("fabnest")

def setup_logging():
    """
    Configures the root logger for the application.
    Called once at startup from main.py.
    """
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
        stream=sys.stdout,
    )
    # Silence noisy libraries
    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
