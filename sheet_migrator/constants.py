"""Centralized constants for sheet migration."""

# Row layout
DEFAULT_HEADER_ROWS = 1
DEFAULT_IDENTITY_PREFIX = "id-"

# Values accepted as "checked" for flag rules
TRUTHY_VALUES = frozenset({"true", "1", "yes", "y", "x", "✓", "✔"})

# Separator used when joining cells for the content checksum
CELL_SEPARATOR = "\x1f"
CHECKSUM_MASK = 0xFFFFFFFF

# Remote store status codes
RATE_LIMIT_STATUS = 429
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
RATE_LIMIT_REASONS = ("rateLimitExceeded", "userRateLimitExceeded", "RESOURCE_EXHAUSTED")

# Google Sheets API
SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]
METADATA_FIELDS = "sheets.properties(sheetId,title,gridProperties(rowCount,columnCount))"
VALUE_INPUT_OPTION = "RAW"
PASTE_NORMAL = "PASTE_NORMAL"

# Run stages, in execution order
STAGE_START = "start"
STAGE_PREPARE = "prepare"
STAGE_PLAN = "plan"
STAGE_COPY = "copy"
STAGE_VERIFY = "verify"
STAGE_DELETE = "delete"

# Retention reasons reported by the delete verifier
RETAIN_COPY_NOT_VISIBLE = "copy_not_visible"
RETAIN_SOURCE_CHANGED = "source_changed"
RETAIN_SOURCE_MISSING = "source_missing"
RETAIN_IDENTITY_CHANGED = "identity_changed"
RETAIN_COPY_DIFFERS = "copy_differs"
