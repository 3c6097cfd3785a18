"""
System-Wide Constants for bucketfs

All magic numbers and configuration defaults centralized here.
"""

from typing import Final

# =============================================================================
# TIME UNITS
# =============================================================================
SECOND: Final[int] = 1
MINUTE: Final[int] = 60 * SECOND
HOUR: Final[int] = 60 * MINUTE
DAY: Final[int] = 24 * HOUR

# =============================================================================
# URI SHAPE
# =============================================================================
SCHEME_SEPARATOR: Final[str] = "://"
PATH_SEPARATOR: Final[str] = "/"

# =============================================================================
# KEY LAYOUT
# =============================================================================
DEFAULT_PUBLIC_FOLDER: Final[str] = "s3fs-public"
DEFAULT_PRIVATE_FOLDER: Final[str] = "s3fs-private"

# =============================================================================
# EVENTUAL-CONSISTENCY WAITER
# =============================================================================
WAITER_MAX_ATTEMPTS: Final[int] = 10
WAITER_DELAY_SECONDS: Final[float] = 1.0

# =============================================================================
# URL POLICY
# =============================================================================
DEFAULT_PRESIGN_TIMEOUT_SECONDS: Final[int] = 60
# SigV4 presigned URLs are rejected past seven days.
MAX_PRESIGN_EXPIRY_SECONDS: Final[int] = 7 * DAY
# Signed requests that carry Response* overrides need an expiry.
RESPONSE_OVERRIDE_EXPIRY_SECONDS: Final[int] = MAX_PRESIGN_EXPIRY_SECONDS
CSS_PROXY_PREFIX: Final[str] = "s3fs-css"
JS_PROXY_PREFIX: Final[str] = "s3fs-js"
PRIVATE_DELIVERY_PREFIX: Final[str] = "system/files"
TORRENT_QUERY_ARG: Final[str] = "torrent"

# =============================================================================
# UPLOAD ATTRIBUTES
# =============================================================================
PUBLIC_READ_ACL: Final[str] = "public-read"
DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"

# =============================================================================
# METADATA INDEX
# =============================================================================
CACHE_TABLE: Final[str] = "bucketfs_file"
DEFAULT_CACHE_DB_PATH: Final[str] = "./data/bucketfs.db"
CACHE_BUSY_TIMEOUT_MS: Final[int] = 5000
