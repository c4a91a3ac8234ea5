# Vault - Key Session
#
# The unlocked vault key has one owner: a VaultSession. unlock() installs a
# key, clear() destroys it. Every swap bumps the generation counter so work
# started against an older key can tell it has been invalidated.

import threading
from typing import Optional

from .encryption import EncryptionService, KEY_LENGTH, VaultKey
from .errors import VaultLocked
from .models import EncryptedEnvelope


class VaultSession:
    """Holds the vault key for one running client."""

    def __init__(self):
        self._lock = threading.Lock()
        self._key: Optional[VaultKey] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_unlocked(self) -> bool:
        key = self._key
        return key is not None and not key.destroyed

    def unlock(self, key: VaultKey) -> int:
        """
        Install ``key`` as the session key.

        A previously installed key is destroyed first.

        Returns:
            The new generation number
        """
        if not isinstance(key, VaultKey):
            key = VaultKey(key)
        with self._lock:
            if self._key is not None:
                self._key.destroy()
            self._generation += 1
            key.generation = self._generation
            self._key = key
            return self._generation

    def clear(self) -> None:
        """Destroy the key material. New operations fail with VaultLocked."""
        with self._lock:
            if self._key is not None:
                self._key.destroy()
                self._key = None
                self._generation += 1

    lock = clear

    def key(self) -> VaultKey:
        """The live key; raises VaultLocked when there is none."""
        with self._lock:
            key = self._key
        if key is None or key.destroyed:
            raise VaultLocked("Vault is locked. Unlock vault first.")
        return key

    def is_current(self, generation: int) -> bool:
        """True while no lock/unlock happened since ``generation`` was read."""
        return self.is_unlocked and generation == self._generation

    def encrypt(self, plaintext: str) -> EncryptedEnvelope:
        return EncryptionService.encrypt(self.key(), plaintext)

    def decrypt(self, envelope: EncryptedEnvelope) -> str:
        return EncryptionService.decrypt(self.key(), envelope)

    def __repr__(self) -> str:
        state = "unlocked" if self.is_unlocked else "locked"
        return f"<VaultSession generation={self._generation} {state} key_bits={KEY_LENGTH * 8}>"
