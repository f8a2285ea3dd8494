"""Application-wide constants.

Centralizes validation limits, retry defaults and other magic numbers.
"""

# --- Validation Limits ---
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MIN_MILEAGE = 0
MAX_MILEAGE = 1_000_000
MIN_FUEL_AMOUNT = 0.1  # gallons
MAX_FUEL_AMOUNT = 500
MIN_FUEL_COST = 0.01  # dollars
MAX_FUEL_COST = 10_000
MAX_NOTES_LENGTH = 500
MAX_STOCK_NUMBER_LENGTH = 50

# --- Vehicle Identification ---
# I, O and Q never appear in a VIN
VIN_PATTERN = r"^[A-HJ-NPR-Za-hj-npr-z0-9]{17}$"

# --- API Retry Configuration ---
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY_MS = 1000
DEFAULT_RETRY_MAX_DELAY_MS = 30000
DEFAULT_API_TIMEOUT_MS = 10000

# --- Roles ---
ROLE_ADMIN = "admin"
ROLE_PORTER = "porter"
ROLES = (ROLE_ADMIN, ROLE_PORTER)

# --- Photos ---
MAX_PHOTO_SIZE = 5 * 1024 * 1024  # 5MB
DEMO_PHOTO_URL = "https://via.placeholder.com/300x200?text=Demo+Receipt"
DEMO_PHOTO_PATH = "demo/receipt.jpg"

# --- Backend ---
DEFAULT_FUNCTION_SLUG = "make-server-218dc5b7"
EXPORT_FILENAME_TEMPLATE = "fueltrakr-export-{date}.csv"

# --- Search Index ---
DEFAULT_INDEX_PREFIX = "fueltrakr"
DEFAULT_SEARCH_LIMIT = 100
