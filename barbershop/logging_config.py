# barbershop/logging_config.py

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(log_level: str = "INFO") -> None:
    """Configure root logging once for the API process."""
    logging.basicConfig(
        format=LOG_FORMAT,
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    # uvicorn access lines already carry the request path
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
