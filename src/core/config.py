"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(os.environ.get("CALENDAR_DB_PATH", PROJECT_ROOT / "data" / "db" / "calendar-journal.db"))
TOKEN_FILE = Path(os.environ.get("CALENDAR_TOKEN_FILE", PROJECT_ROOT / "data" / "session" / "token"))

# =============================================================================
# SERVER CONFIGURATION
# =============================================================================

API_URL = os.environ.get("CALENDAR_API_URL", "http://localhost:3001")
API_TOKEN = os.environ.get("CALENDAR_API_TOKEN", "")
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("CALENDAR_REQUEST_TIMEOUT", "10"))

EVENTS_PATH = "/events"
POSTPONED_PATH = "/postponed-events"
FRIEND_EVENTS_PATH = "/friends/{friend_id}/events"

# =============================================================================
# SYNC CONFIGURATION
# =============================================================================

EVENTS_POLL_SECONDS = float(os.environ.get("EVENTS_POLL_SECONDS", "10"))

# =============================================================================
# SELECTION / TRANSFER CONFIGURATION
# =============================================================================

SELECTION_SETTLE_SECONDS = 0.15  # let the drag gesture finish before opening bulk input
SORT_ORDERS = ("time", "priority")
TRANSFER_MODES = ("copy", "move")
DEFAULT_PARTITION = "all"

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
