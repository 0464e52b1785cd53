import os
from decimal import Decimal

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "studio_pos_test"),
}

STUDIO_TIMEZONE = "America/New_York"
TAX_RATE = Decimal("0.06625")

SQUARE_ACCESS_TOKEN = ""
SQUARE_LOCATION_ID = ""
SQUARE_ENVIRONMENT = "sandbox"

LOG_LEVEL = "WARNING"
DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "change-me-now")
