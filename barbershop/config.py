# barbershop/config.py

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./barber.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# Auth
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Scheduling
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))
# New bookings go straight from pending to confirmed when true
AUTO_CONFIRM_APPOINTMENTS = os.getenv("AUTO_CONFIRM_APPOINTMENTS", "true").lower() == "true"

# Barber notification inbox
NOTIFICATION_INBOX_LIMIT = int(os.getenv("NOTIFICATION_INBOX_LIMIT", "50"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
