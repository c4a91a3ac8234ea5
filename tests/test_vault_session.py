"""Tests for VaultSession: key ownership, lock semantics, generations."""

import os
import threading

import pytest

from vaultmark.vault import InvalidKey, VaultKey, VaultLocked, VaultSession
from vaultmark.vault.encryption import KEY_LENGTH


def _new_key():
    return VaultKey(os.urandom(KEY_LENGTH))


class TestVaultSession:
    def test_starts_locked(self):
        session = VaultSession()
        assert not session.is_unlocked
        assert session.generation == 0
        with pytest.raises(VaultLocked):
            session.key()

    def test_unlock_installs_key_and_bumps_generation(self):
        session = VaultSession()
        key = _new_key()
        generation = session.unlock(key)
        assert generation == 1
        assert session.is_unlocked
        assert session.key() is key
        assert key.generation == 1

    def test_lock_scenario(self):
        """Encrypt works while unlocked; after clear() the same call fails."""
        session = VaultSession()
        session.unlock(_new_key())
        envelope = session.encrypt("record")
        assert session.decrypt(envelope) == "record"

        session.clear()

        assert not session.is_unlocked
        with pytest.raises(InvalidKey):
            session.encrypt("record")
        with pytest.raises(VaultLocked):
            session.decrypt(envelope)

    def test_clear_destroys_key_material(self):
        session = VaultSession()
        key = _new_key()
        session.unlock(key)
        session.lock()
        assert key.destroyed
        with pytest.raises(InvalidKey):
            key.material()

    def test_clear_when_locked_is_noop(self):
        session = VaultSession()
        session.clear()
        assert session.generation == 0

    def test_reunlock_destroys_previous_key(self):
        session = VaultSession()
        first, second = _new_key(), _new_key()
        session.unlock(first)
        session.unlock(second)
        assert first.destroyed
        assert not second.destroyed
        assert session.generation == 2

    def test_is_current_tracks_lock_and_unlock(self):
        session = VaultSession()
        generation = session.unlock(_new_key())
        assert session.is_current(generation)

        session.clear()
        assert not session.is_current(generation)

        newer = session.unlock(_new_key())
        assert newer > generation
        assert not session.is_current(generation)
        assert session.is_current(newer)

    def test_unlock_accepts_raw_bytes(self):
        session = VaultSession()
        session.unlock(os.urandom(KEY_LENGTH))
        assert isinstance(session.key(), VaultKey)

    def test_repr_hides_key(self):
        session = VaultSession()
        key = _new_key()
        session.unlock(key)
        assert "unlocked" in repr(session)
        assert key.material().hex() not in repr(session)

    def test_concurrent_lock_never_yields_live_destroyed_key(self):
        session = VaultSession()
        session.unlock(_new_key())
        errors = []

        def worker():
            for _ in range(200):
                try:
                    session.encrypt("x")
                except InvalidKey:
                    pass
                except Exception as e:  # pragma: no cover
                    errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        session.clear()
        for t in threads:
            t.join()

        assert errors == []
        assert not session.is_unlocked
