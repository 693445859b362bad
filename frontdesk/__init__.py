# frontdesk/__init__.py
"""
Front Desk Visitor Log - Core Package

This package provides the storage and maintenance layer behind the API:
- config: Application constants and settings
- database: VisitorStore connection and schema
- db_maintenance: Integrity check, restore and daily backups
- compliance: Data retention cleanup job and its audit record
- visitors: Visitor/visit repository functions
- logging_config: Centralized logging configuration
"""

from .config import (
    BASE_DIR,
    DATA_DIR,
    DB_FILE,
    API_PORT,
    DB_TIMEOUT,
    BACKUP_RETENTION_DAYS,
    DATA_RETENTION_DAYS,
    MAX_RESTORE_ATTEMPTS,
)

from .database import VisitorStore
from .db_maintenance import (
    check_integrity,
    create_daily_backup,
    ensure_healthy_database,
    restore_from_backup,
)
from .audit import AuditStatus, record_event, list_events
from .compliance import CleanupReport, run_compliance_cleanup
from .status import StatusTracker
from .startup import DatabaseUnrecoverableError, initialize_database, run_scheduled_cleanup
from .auth import AdminGate
from .logging_config import setup_logging, get_logger
from .validators import (
    validate_date_format,
    validate_date_range_exclusive,
    validate_length,
)

__all__ = [
    # config
    "BASE_DIR",
    "DATA_DIR",
    "DB_FILE",
    "API_PORT",
    "DB_TIMEOUT",
    "BACKUP_RETENTION_DAYS",
    "DATA_RETENTION_DAYS",
    "MAX_RESTORE_ATTEMPTS",
    # database
    "VisitorStore",
    # maintenance
    "check_integrity",
    "create_daily_backup",
    "ensure_healthy_database",
    "restore_from_backup",
    # audit / compliance
    "AuditStatus",
    "record_event",
    "list_events",
    "CleanupReport",
    "run_compliance_cleanup",
    # startup
    "StatusTracker",
    "DatabaseUnrecoverableError",
    "initialize_database",
    "run_scheduled_cleanup",
    # auth
    "AdminGate",
    # logging
    "setup_logging",
    "get_logger",
    # validators
    "validate_date_format",
    "validate_date_range_exclusive",
    "validate_length",
]
