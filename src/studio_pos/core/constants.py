"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_TAX_RATE = Decimal("0.06625")
DEFAULT_HISTORY_LIMIT = 20
DEFAULT_TREND_DAYS = 30
DEFAULT_SUMMARY_MONTHS = 6
EXPIRING_SOON_DAYS = 7
LOW_BALANCE_THRESHOLD = 2

MAX_ADMIN_PASS_CLASSES = 100
ADMIN_PASS_CARD_NAME = "Admin Pass"

QR_PREFIX = "ELDC"
CHECK_IN_CODE_CHARS = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
CHECK_IN_CODE_LENGTH = 4

BIRTHDAY_NOTE = "Birthday check-in - Free class!"
