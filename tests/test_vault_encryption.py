"""Tests for vault envelope encryption: VaultKey, EncryptionService,
master password rules and strength scoring."""

import base64
import os

import pytest

from vaultmark.vault import (
    DecryptionFailed,
    EncryptedEnvelope,
    EncryptionService,
    InvalidKey,
    VaultKey,
    calculate_password_strength,
    decrypt,
    encrypt,
    strength_label,
    verify_master_password,
)
from vaultmark.vault.encryption import KEY_LENGTH, NONCE_LENGTH, SALT_LENGTH

TEST_ITERATIONS = 1_000


def _flip_byte(b64_text: str, index: int = 0) -> str:
    raw = bytearray(base64.b64decode(b64_text))
    raw[index] ^= 0x01
    return base64.b64encode(bytes(raw)).decode("ascii")


@pytest.fixture
def key():
    return VaultKey(os.urandom(KEY_LENGTH))


# ── Key Derivation ──────────────────────────────────────────────────


class TestDeriveKey:
    def test_same_password_and_salt_give_same_key(self):
        salt = EncryptionService.generate_salt()
        k1 = EncryptionService.derive_key("hunter22hunter", salt, TEST_ITERATIONS)
        k2 = EncryptionService.derive_key("hunter22hunter", salt, TEST_ITERATIONS)
        assert k1.material() == k2.material()
        assert len(k1.material()) == KEY_LENGTH

    def test_different_salt_gives_different_key(self):
        k1 = EncryptionService.derive_key("hunter22hunter", b"a" * SALT_LENGTH, TEST_ITERATIONS)
        k2 = EncryptionService.derive_key("hunter22hunter", b"b" * SALT_LENGTH, TEST_ITERATIONS)
        assert k1.material() != k2.material()

    def test_default_iterations_come_from_settings(self):
        salt = b"s" * SALT_LENGTH
        implicit = EncryptionService.derive_key("pw-pw-pw-pw", salt)
        explicit = EncryptionService.derive_key("pw-pw-pw-pw", salt, TEST_ITERATIONS)
        assert implicit.material() == explicit.material()

    def test_salt_is_random(self):
        assert EncryptionService.generate_salt() != EncryptionService.generate_salt()
        assert len(EncryptionService.generate_salt()) == SALT_LENGTH


# ── VaultKey ────────────────────────────────────────────────────────


class TestVaultKey:
    @pytest.mark.parametrize("length", [0, 16, 31, 33, 64])
    def test_wrong_length_rejected(self, length):
        with pytest.raises(InvalidKey):
            VaultKey(b"\x00" * length)

    def test_non_bytes_rejected(self):
        with pytest.raises(InvalidKey):
            VaultKey("x" * KEY_LENGTH)

    def test_destroy_zeroes_and_refuses_use(self, key):
        key.destroy()
        assert key.destroyed
        assert bytes(key._material) == b"\x00" * KEY_LENGTH
        with pytest.raises(InvalidKey):
            key.material()

    def test_repr_never_shows_material(self, key):
        text = repr(key)
        assert "live" in text
        assert key.material().hex() not in text


# ── Encrypt / Decrypt ───────────────────────────────────────────────


class TestEnvelope:
    def test_roundtrip(self, key):
        plaintext = '{"service":"GitHub","password":"p@ss wörd"}'
        envelope = encrypt(key, plaintext)
        assert decrypt(key, envelope) == plaintext

    def test_roundtrip_empty_string(self, key):
        assert decrypt(key, encrypt(key, "")) == ""

    def test_envelope_fields_are_base64(self, key):
        envelope = encrypt(key, "hello")
        assert len(base64.b64decode(envelope.iv)) == NONCE_LENGTH
        # GCM appends a 16 byte tag
        assert len(base64.b64decode(envelope.ciphertext)) == len("hello") + 16
        assert envelope.to_dict() == {"encryptedData": envelope.ciphertext, "iv": envelope.iv}

    def test_nonce_is_fresh_per_encryption(self, key):
        envelopes = [encrypt(key, "same plaintext") for _ in range(20)]
        assert len({e.iv for e in envelopes}) == 20
        assert len({e.ciphertext for e in envelopes}) == 20

    def test_raw_bytes_key_accepted(self):
        raw = os.urandom(KEY_LENGTH)
        envelope = encrypt(raw, "data")
        assert decrypt(VaultKey(raw), envelope) == "data"

    def test_wrong_length_raw_key_rejected(self):
        with pytest.raises(InvalidKey):
            encrypt(b"short", "data")

    def test_wrong_key_fails(self, key):
        envelope = encrypt(key, "secret")
        with pytest.raises(DecryptionFailed):
            decrypt(VaultKey(os.urandom(KEY_LENGTH)), envelope)

    def test_tampered_ciphertext_fails(self, key):
        envelope = encrypt(key, "secret payload")
        tampered = EncryptedEnvelope(ciphertext=_flip_byte(envelope.ciphertext, 3), iv=envelope.iv)
        with pytest.raises(DecryptionFailed):
            decrypt(key, tampered)

    def test_tampered_tag_fails(self, key):
        envelope = encrypt(key, "secret payload")
        tampered = EncryptedEnvelope(ciphertext=_flip_byte(envelope.ciphertext, -1), iv=envelope.iv)
        with pytest.raises(DecryptionFailed):
            decrypt(key, tampered)

    def test_tampered_iv_fails(self, key):
        envelope = encrypt(key, "secret payload")
        tampered = EncryptedEnvelope(ciphertext=envelope.ciphertext, iv=_flip_byte(envelope.iv))
        with pytest.raises(DecryptionFailed):
            decrypt(key, tampered)

    def test_swapped_iv_fails(self, key):
        first = encrypt(key, "one")
        second = encrypt(key, "two")
        with pytest.raises(DecryptionFailed):
            decrypt(key, EncryptedEnvelope(ciphertext=first.ciphertext, iv=second.iv))

    def test_bad_base64_fails(self, key):
        with pytest.raises(DecryptionFailed):
            decrypt(key, EncryptedEnvelope(ciphertext="not base64!!", iv="AAAAAAAAAAAAAAAA"))

    def test_wrong_iv_length_fails(self, key):
        envelope = encrypt(key, "x")
        short_iv = base64.b64encode(b"\x00" * 8).decode("ascii")
        with pytest.raises(DecryptionFailed):
            decrypt(key, EncryptedEnvelope(ciphertext=envelope.ciphertext, iv=short_iv))

    def test_destroyed_key_cannot_encrypt_or_decrypt(self, key):
        envelope = encrypt(key, "before lock")
        key.destroy()
        with pytest.raises(InvalidKey):
            encrypt(key, "after lock")
        with pytest.raises(InvalidKey):
            decrypt(key, envelope)


# ── Key Verifier ────────────────────────────────────────────────────


class TestKeyVerifier:
    def test_verifier_accepts_right_key(self, key):
        verifier = EncryptionService.create_key_verifier(key)
        assert EncryptionService.verify_key(key, verifier)

    def test_verifier_rejects_wrong_key(self, key):
        verifier = EncryptionService.create_key_verifier(key)
        assert not EncryptionService.verify_key(VaultKey(os.urandom(KEY_LENGTH)), verifier)


# ── Master Password Rules ───────────────────────────────────────────


class TestMasterPassword:
    def test_default_minimum_is_eight(self):
        assert verify_master_password("12345678") == (True, "")
        ok, message = verify_master_password("1234567")
        assert not ok
        assert "8 characters" in message

    def test_blank_rejected(self):
        assert verify_master_password("") == (False, "Master password is required")
        assert verify_master_password("          ")[0] is False

    def test_configured_minimum(self, monkeypatch):
        from vaultmark.core import reset_settings

        monkeypatch.setenv("VAULTMARK_MIN_MASTER_LENGTH", "12")
        reset_settings()
        assert not verify_master_password("elevenchars")[0]
        assert verify_master_password("twelve chars")[0]


# ── Strength ────────────────────────────────────────────────────────


class TestStrength:
    @pytest.mark.parametrize(
        "password,score,label",
        [
            ("", 0, ""),
            ("abc", 0, ""),
            ("abcdefgh", 1, "Weak"),
            ("abcdefgh1", 2, "Weak"),
            ("Abcdefgh1", 3, "Medium"),
            ("Abcdefgh1!", 4, "Strong"),
            ("Abcdefghijk1!", 5, "Strong"),
        ],
    )
    def test_scores(self, password, score, label):
        assert calculate_password_strength(password) == score
        assert strength_label(score) == label
