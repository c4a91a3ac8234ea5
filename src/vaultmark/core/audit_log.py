# Core - Audit Logging
#
# Append-only audit trail for vault and bookmark import/export activity.
# Every event is one JSON line in audit_logs/audit_YYYY-MM-DD.log.
# Secrets (passwords, notes, master passwords, key material) are never logged.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog

AUDIT_LOGGER_NAME = "vaultmark.audit"


class EventType(str, Enum):
    """Types of events recorded in the audit trail."""
    # Vault lifecycle
    VAULT_CREATED = "vault.created"
    VAULT_UNLOCKED = "vault.unlocked"
    VAULT_LOCKED = "vault.locked"
    VAULT_UNLOCK_FAILED = "vault.unlock.failed"
    VAULT_ERROR = "vault.error"

    # Secret records
    SECRET_ADDED = "vault.secret.added"
    SECRET_EDITED = "vault.secret.edited"
    SECRET_ACCESSED = "vault.secret.accessed"
    SECRET_DELETED = "vault.secret.deleted"
    SECRET_UNDECRYPTABLE = "vault.secret.undecryptable"

    # Plaintext transfer
    VAULT_EXPORTED = "vault.exported"
    VAULT_IMPORTED = "vault.imported"

    # Bookmarks
    BOOKMARKS_IMPORTED = "bookmarks.imported"
    BOOKMARKS_EXPORTED = "bookmarks.exported"
    BOOKMARKS_IMPORT_FAILED = "bookmarks.import.failed"

    # System
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


class EventSeverity(str, Enum):
    """
    Severity levels for audit events.

    - INFO: Normal activity
    - WARNING: Something the user should know about (plaintext export, skips)
    - ALERT: Failed unlock, tamper or wrong-key decryption
    - CRITICAL: Operation failed unexpectedly
    """
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"
    CRITICAL = "critical"


class AuditLogger:
    """
    Append-only structured audit logger.

    Features:
    - Structured JSON lines (structlog)
    - Automatic timestamp and event ID
    - Default user/host context
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: ./audit_logs)
        """
        self.log_dir = Path(log_dir) if log_dir else Path("./audit_logs")
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self.log_file = self._setup_file_handler()
        self.logger = structlog.get_logger(AUDIT_LOGGER_NAME)

    def _setup_file_handler(self) -> Path:
        """Attach a daily file handler, replacing one from a previous instance."""
        today = datetime.now().strftime("%Y-%m-%d")
        log_file = self.log_dir / f"audit_{today}.log"

        audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        for handler in list(audit_logger.handlers):
            if getattr(handler, "_vaultmark_audit", False):
                audit_logger.removeHandler(handler)
                handler.close()

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))  # structlog renders
        file_handler._vaultmark_audit = True

        audit_logger.addHandler(file_handler)
        audit_logger.setLevel(logging.INFO)
        return log_file

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log an audit event.

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never secrets)
            user_context: User context (defaults to OS user and host)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }

        self.logger.info("audit_event", **event_data)
        return event_id

    def log_vault_event(
        self,
        event_type: EventType,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: EventSeverity = EventSeverity.INFO
    ) -> str:
        """Log a vault event. Details must never carry secret values."""
        return self.log_event(
            event_type=event_type,
            severity=severity,
            message=f"Vault: {message}",
            details=details
        )

    def _get_default_user_context(self) -> Dict[str, Any]:
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        from .config import get_settings
        _audit_logger = AuditLogger(log_dir=get_settings().audit_dir)
    return _audit_logger


def log_security_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Convenience function for logging audit events.

    Usage:
        log_security_event(
            EventType.BOOKMARKS_IMPORTED,
            EventSeverity.INFO,
            "Imported bookmarks",
            details={"count": 12, "skipped": 1}
        )
    """
    return get_audit_logger().log_event(event_type, severity, message, **kwargs)
