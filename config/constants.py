"""Application constants.

Centralized location for all magic numbers and strings used by the client,
the validators and the flow nodes.
"""

# ============================================================================
# API Configuration
# ============================================================================

# Open Food Facts endpoints
OFF_API_BASE_URL = "https://world.openfoodfacts.org"
ROBOTOFF_API_BASE_URL = "https://robotoff.openfoodfacts.org"

# API paths (relative to the configured endpoint)
PRODUCT_PATH = "/api/v0/product/{barcode}"
SEARCH_PATH = "/cgi/search.pl"
ADD_PRODUCT_PATH = "/cgi/product_jqm2.pl"
UPLOAD_PHOTO_PATH = "/cgi/product_image_upload.pl"
TAXONOMY_PATH = "/data/taxonomies/{name}.json"
RANDOM_QUESTIONS_PATH = "/api/v1/questions/random"

SECURE_SCHEME_PREFIX = "https://"

# Timeouts (seconds)
API_CONNECT_TIMEOUT = 3.05
API_READ_TIMEOUT_DEFAULT = 20.0

# Transport-level retries (connection failures and idempotent GETs only)
API_MAX_RETRY_ATTEMPTS = 2
API_RETRY_BACKOFF_FACTOR = 0.5
API_RETRY_STATUS_CODES = (502, 503, 504)

# Connection pooling
API_POOL_CONNECTIONS = 4
API_POOL_MAXSIZE = 4

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "off-flow-client"
APP_VERSION = "0.3.0"
USER_AGENT = f"{APP_NAME}/{APP_VERSION}"

# ============================================================================
# Barcode Validation
# ============================================================================

BARCODE_MIN_LENGTH = 8
BARCODE_MAX_LENGTH = 13

# ============================================================================
# Search Configuration
# ============================================================================

SEARCH_INPUT_MAX_LENGTH = 100
SEARCH_DEFAULT_ACTION = "process"

# Recognised code match modes; anything else is sent as the default
CODE_MATCH_MODES = ("contains", "starts", "ends")
CODE_MATCH_DEFAULT = "exact"

# ============================================================================
# Image Upload
# ============================================================================

IMAGE_MAX_SIZE_BYTES = 10 * 1024 * 1024
IMAGE_ALLOWED_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

# JPEG needs 3 bytes, PNG 4, WebP 12 (RIFF + size + WEBP)
IMAGE_SIGNATURE_BYTES = 16

JPEG_SIGNATURE = b"\xff\xd8\xff"
PNG_SIGNATURE = b"\x89PNG"
RIFF_SIGNATURE = b"RIFF"
WEBP_IDENTIFIER = b"WEBP"
WEBP_IDENTIFIER_OFFSET = 8

PHOTO_FIELDS = ("front", "ingredients", "nutrition")

# ============================================================================
# Product Lookup
# ============================================================================

# Subset of the nested ``product`` object returned by get_product
PRODUCT_FIELDS = (
    "code",
    "product_name",
    "brands",
    "quantity",
    "serving_size",
    "packaging",
    "storage_conditions",
    "conservation_conditions",
    "expiration_date_format",
    "categories",
    "labels",
    "food_groups",
)

# ============================================================================
# Taxonomies
# ============================================================================

TAXONOMY_ADDITIVES = "additives"
TAXONOMY_ALLERGENS = "allergens"
TAXONOMY_BRANDS = "brands"

# ============================================================================
# Flow Nodes
# ============================================================================

FLOW_RETRY_MAX_ATTEMPTS = 3
FLOW_RETRY_BACKOFF_BASE = 0.128
FLOW_RETRY_BACKOFF_MAX = 30.0
