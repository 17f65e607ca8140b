"""Constants for crform"""

# ==================== File Paths ====================
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_LOG_FILE = "data/crform.log"
BUNDLED_SCHEMA = "api_config.json"

# ==================== Service ====================
DEFAULT_API_BASE_URL = "http://localhost:8080/api/v1"
API_PREFIX = "/api/v1"

# ==================== Timeouts (seconds) ====================
TIMEOUT_HTTP_REQUEST = 30  # 30 seconds - HTTP requests

# ==================== Field Paths ====================
PATH_SEPARATOR = "."

# ==================== Validation ====================
URL_PATTERN = r"^https?://.+"

MSG_REQUIRED = "{label} is required"
MSG_INVALID_URL = "Must be a valid HTTP/HTTPS URL"
