"""
Warden - Centralized Constants
==============================

All magic numbers and limits are defined here.
Import from this module instead of hardcoding values.
"""

# =============================================================================
# Time Constants
# =============================================================================

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR
MS_PER_WEEK = 7 * MS_PER_DAY

MAX_SANCTION_DURATION_MS = 30 * MS_PER_DAY
"""Longest duration a temporary mute or ban may carry."""

# =============================================================================
# Case Constants
# =============================================================================

MAX_EVIDENCE_ITEMS = 5
MAX_REASON_LENGTH = 1000
REPORT_REASON_PREFIX = "[REPORT] "

# =============================================================================
# Channel Constants
# =============================================================================

DEFAULT_CHANNEL_GRACE_SECONDS = 2
TICKET_CHANNEL_PREFIX = "ticket-"
REPORT_CHANNEL_PREFIX = "report-"

# =============================================================================
# Transcript Constants
# =============================================================================

HISTORY_PAGE_SIZE = 100
TRANSCRIPT_CHUNK_SIZE = 1900
TRANSCRIPT_RULE_WIDTH = 50

# =============================================================================
# Welcome / Clear Constants
# =============================================================================

WELCOME_MESSAGE_MAX_LENGTH = 500
WELCOME_DEDUP_SECONDS = 60

BULK_DELETE_MAX_AGE_SECONDS = 14 * 24 * 60 * 60
"""Messages older than this cannot be bulk deleted and go one by one."""

# =============================================================================
# Database Constants
# =============================================================================

DB_CONNECTION_TIMEOUT = 30.0
SQLITE_BUSY_TIMEOUT = 5000            # milliseconds

# =============================================================================
# Network Constants
# =============================================================================

DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8085
WEBHOOK_TIMEOUT = 10
SHUTDOWN_TIMEOUT = 5.0

# =============================================================================
# Logging Constants
# =============================================================================

LOG_TRUNCATE_SHORT = 50
LOG_TRUNCATE_MEDIUM = 100
LOG_TRUNCATE_LONG = 200
