# Vault Module - Encrypted Password Records
#
# Client-side envelope encryption (AES-256-GCM) of every password record
# Master password with PBKDF2 key derivation, key held by a VaultSession

from .encryption import (
    EncryptionService,
    VaultKey,
    decrypt,
    derive_key,
    encrypt,
    verify_master_password,
)
from .errors import (
    CryptoUnavailable,
    DecryptionFailed,
    InvalidKey,
    MalformedImport,
    SecretNotFound,
    VaultError,
    VaultLocked,
)
from .models import EncryptedEnvelope, ImportReport, SecretListing, SecretRecord, StoredSecret
from .strength import calculate_password_strength, strength_label
from .session import VaultSession
from .vault_manager import VaultManager

__all__ = [
    "EncryptionService",
    "VaultKey",
    "VaultSession",
    "VaultManager",
    "encrypt",
    "decrypt",
    "derive_key",
    "verify_master_password",
    "EncryptedEnvelope",
    "SecretRecord",
    "SecretListing",
    "StoredSecret",
    "ImportReport",
    "calculate_password_strength",
    "strength_label",
    "VaultError",
    "CryptoUnavailable",
    "InvalidKey",
    "VaultLocked",
    "DecryptionFailed",
    "MalformedImport",
    "SecretNotFound",
]
