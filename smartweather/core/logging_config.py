# smartweather/core/logging_config.py

import logging

from smartweather.core.config import settings

# Operator-side diagnostics: downgrades, retries and oracle failures.
# Nothing logged here is shown to dashboard users.
logger = logging.getLogger("smartweather")
logger.setLevel(settings.LOG_LEVEL.upper())

# Guard against a second handler when uvicorn --reload re-imports the app
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    )
    logger.addHandler(console_handler)
