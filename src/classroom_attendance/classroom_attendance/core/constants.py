"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_JOIN_TOKEN_TTL_SECONDS = 30
JOIN_TOKEN_BYTES = 16
HOURS_QUANTUM = "0.0001"
DEFAULT_REPORT_LIMIT = 500
JOIN_PATH_SEGMENT = "attend"
