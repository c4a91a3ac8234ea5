# Vaultmark - Main Package
#
# Local password vault (AES-256-GCM envelopes under a PBKDF2 master key)
# and browser bookmark import/export (Netscape HTML and JSON).

__version__ = "0.3.0"
__author__ = "Vaultmark Team"
__description__ = "Encrypted password vault and bookmark interchange"

from .core import (
    EventSeverity,
    EventType,
    get_audit_logger,
    get_settings,
)

__all__ = [
    "__version__",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "get_settings",
]
