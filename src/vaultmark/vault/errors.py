"""
Vault exception classes.

Every failure is local to one operation on one record. None of these are
transient: callers must not retry a DecryptionFailed automatically.
"""


class VaultError(Exception):
    """Base exception for vault operations."""


class CryptoUnavailable(VaultError):
    """Raised when the secure random source or AES-GCM primitive is missing."""


class InvalidKey(VaultError):
    """Raised when key material is the wrong length/format or was destroyed."""


class VaultLocked(InvalidKey):
    """Raised when an operation needs the vault key but the vault is locked."""


class DecryptionFailed(VaultError):
    """Raised when an envelope cannot be authenticated with the given key.

    Covers a wrong key, a tampered ciphertext or iv, and an iv/ciphertext
    pair that does not belong together.
    """


class MalformedImport(VaultError):
    """Raised when a plaintext vault import is not a JSON array."""


class SecretNotFound(VaultError):
    """Raised when the requested secret id does not exist."""
