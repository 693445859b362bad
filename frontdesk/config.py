# frontdesk/config.py
"""
Front Desk Visitor Log - Configuration Constants

All hardcoded values are centralized here for maintainability.
Environment variables can override default values.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ==========================================================
# Paths
# ==========================================================
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("FRONTDESK_DATA_DIR", BASE_DIR / "data"))
LOGS_DIR = Path(os.getenv("LOG_DIR", BASE_DIR / "logs"))

DB_FILE = Path(os.getenv("FRONTDESK_DB_FILE", DATA_DIR / "database.db"))
BACKUP_DIR_NAME = "backups"
UPLOADS_DIR_NAME = "uploads"

# ==========================================================
# Retention Policy
# ==========================================================
# Daily snapshots older than this are swept after each backup run
BACKUP_RETENTION_DAYS = 7
# Visits whose entry_time is older than this are purged (2 x 365 days)
DATA_RETENTION_DAYS = 2 * 365
# Restore attempts before startup gives up on a corrupt file
MAX_RESTORE_ATTEMPTS = 2

CLEANUP_ON_STARTUP = os.getenv("CLEANUP_ON_STARTUP", "1").lower() not in ("0", "false", "no")

# ==========================================================
# Server (can be overridden via .env)
# ==========================================================
API_PORT = int(os.getenv("API_PORT", 3001))

# ==========================================================
# Database Connection
# ==========================================================
DB_TIMEOUT = 10.0  # seconds
SLOW_QUERY_THRESHOLD_MS = 500  # Log WARNING for queries exceeding this

# ==========================================================
# Admin Passwords
# ==========================================================
MASTER_PASSWORD = (os.getenv("MASTER_PASSWORD") or "").strip() or None
HISTORY_PASSWORD = (
    os.getenv("HISTORY_PASSWORD") or os.getenv("MASTER_PASSWORD2") or ""
).strip() or None

AUTH_MAX_FAILURES = 5       # wrong passwords allowed per window
AUTH_LOCKOUT_WINDOW = 300   # seconds

# ==========================================================
# Uploads
# ==========================================================
MAX_PHOTO_BYTES = 5 * 1024 * 1024  # 5 MB
ALLOWED_PHOTO_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
}

# ==========================================================
# Input Limits
# ==========================================================
MAX_NAME_LENGTH = 100
MAX_TEXT_LENGTH = 500

# ==========================================================
# Logging
# ==========================================================
LOG_FILE = LOGS_DIR / "frontdesk.log"
LOG_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
LOG_BACKUP_COUNT = 10
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
