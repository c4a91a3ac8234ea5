# Vault - Encryption Service
#
# Master password -> vault key (PBKDF2-HMAC-SHA256, per-vault salt)
# Record payload -> envelope (AES-256-GCM, fresh 96-bit nonce per encryption)
# Envelope fields are base64 text so they can sit in any document store.

import base64
import binascii
import os
import threading
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import CryptoUnavailable, DecryptionFailed, InvalidKey
from .models import EncryptedEnvelope

KEY_LENGTH = 32  # 256 bits for AES-256
SALT_LENGTH = 16
NONCE_LENGTH = 12  # 96-bit nonce for GCM (recommended)

VERIFICATION_TOKEN = "VERIFICATION_TOKEN"


class VaultKey:
    """
    In-memory AES-256 key material.

    The material lives in a bytearray so destroy() can zero it in place.
    After destroy() every attempt to use the key raises InvalidKey; callers
    that already took a snapshot via material() may finish their operation.
    """

    __slots__ = ("_material", "_destroyed", "_lock", "generation")

    def __init__(self, material: Union[bytes, bytearray], generation: int = 0):
        if not isinstance(material, (bytes, bytearray)):
            raise InvalidKey(f"Key material must be bytes, got {type(material).__name__}")
        if len(material) != KEY_LENGTH:
            raise InvalidKey(
                f"Key material must be {KEY_LENGTH} bytes, got {len(material)}"
            )
        self._material = bytearray(material)
        self._destroyed = False
        self._lock = threading.Lock()
        self.generation = generation

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def material(self) -> bytes:
        """Snapshot of the key bytes. Raises InvalidKey once destroyed."""
        with self._lock:
            if self._destroyed:
                raise InvalidKey("Vault key has been destroyed (vault is locked)")
            return bytes(self._material)

    def destroy(self) -> None:
        """Zero the key material and refuse all further use."""
        with self._lock:
            for i in range(len(self._material)):
                self._material[i] = 0
            self._destroyed = True

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else "live"
        return f"<VaultKey generation={self.generation} {state}>"


KeyLike = Union[VaultKey, bytes, bytearray]


def _key_material(key: KeyLike) -> bytes:
    if isinstance(key, VaultKey):
        return key.material()
    if isinstance(key, (bytes, bytearray)):
        if len(key) != KEY_LENGTH:
            raise InvalidKey(f"Key material must be {KEY_LENGTH} bytes, got {len(key)}")
        return bytes(key)
    raise InvalidKey(f"Unsupported key type: {type(key).__name__}")


def _cipher(material: bytes) -> AESGCM:
    try:
        return AESGCM(material)
    except UnsupportedAlgorithm as e:
        raise CryptoUnavailable("AES-GCM is not supported by this cryptography backend") from e


def _random_bytes(length: int) -> bytes:
    try:
        return os.urandom(length)
    except NotImplementedError as e:
        raise CryptoUnavailable("No secure random source available") from e


class EncryptionService:
    """
    Handles key derivation and envelope encryption for vault records.

    Flow:
    1. User enters master password
    2. PBKDF2 derives 256-bit key from password + salt
    3. AES-256-GCM encrypts/decrypts record payloads
    4. Each encryption gets a unique nonce
    """

    @staticmethod
    def derive_key(
        master_password: str,
        salt: bytes,
        iterations: Optional[int] = None,
    ) -> VaultKey:
        """
        Derive the vault key from master password using PBKDF2.

        Args:
            master_password: User's master password
            salt: Random salt (stored with vault)
            iterations: PBKDF2 work factor (default: configured value)

        Returns:
            256-bit VaultKey
        """
        if iterations is None:
            from ..core.config import get_settings
            iterations = get_settings().pbkdf2_iterations

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=iterations,
            backend=default_backend()
        )
        return VaultKey(kdf.derive(master_password.encode('utf-8')))

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically random salt."""
        return _random_bytes(SALT_LENGTH)

    @staticmethod
    def encrypt(key: KeyLike, plaintext: str) -> EncryptedEnvelope:
        """
        Encrypt plaintext using AES-256-GCM.

        Args:
            key: Unlocked vault key
            plaintext: Serialized record payload

        Returns:
            EncryptedEnvelope with base64 ciphertext and iv

        Raises:
            InvalidKey: Key destroyed or wrong length
            CryptoUnavailable: No random source or AES-GCM primitive
        """
        aesgcm = _cipher(_key_material(key))
        nonce = _random_bytes(NONCE_LENGTH)
        ciphertext = aesgcm.encrypt(nonce, plaintext.encode('utf-8'), None)

        return EncryptedEnvelope(
            ciphertext=EncryptionService.encode_for_storage(ciphertext),
            iv=EncryptionService.encode_for_storage(nonce),
        )

    @staticmethod
    def decrypt(key: KeyLike, envelope: EncryptedEnvelope) -> str:
        """
        Decrypt an envelope using AES-256-GCM.

        Returns:
            The original plaintext

        Raises:
            InvalidKey: Key destroyed or wrong length
            DecryptionFailed: Wrong key, tampered envelope or mismatched iv
        """
        aesgcm = _cipher(_key_material(key))

        try:
            nonce = EncryptionService.decode_from_storage(envelope.iv)
            ciphertext = EncryptionService.decode_from_storage(envelope.ciphertext)
        except (binascii.Error, ValueError, TypeError, AttributeError) as e:
            raise DecryptionFailed("Envelope is not valid base64") from e

        if len(nonce) != NONCE_LENGTH:
            raise DecryptionFailed(
                f"Envelope iv must be {NONCE_LENGTH} bytes, got {len(nonce)}"
            )

        try:
            plaintext_bytes = aesgcm.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionFailed("Decryption failed. Wrong key or corrupted data.") from e

        try:
            return plaintext_bytes.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecryptionFailed("Decrypted payload is not UTF-8 text") from e

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """Encode binary data as base64 text for storage."""
        return base64.b64encode(data).decode('ascii')

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode base64 text from storage."""
        return base64.b64decode(data.encode('ascii'), validate=True)

    @staticmethod
    def create_key_verifier(key: KeyLike) -> EncryptedEnvelope:
        """Encrypt a known token so a later unlock can check the key."""
        return EncryptionService.encrypt(key, VERIFICATION_TOKEN)

    @staticmethod
    def verify_key(key: KeyLike, verifier: EncryptedEnvelope) -> bool:
        """True if ``key`` opens the verifier. Wrong keys return False."""
        try:
            return EncryptionService.decrypt(key, verifier) == VERIFICATION_TOKEN
        except DecryptionFailed:
            return False


# Module-level codec entry points
encrypt = EncryptionService.encrypt
decrypt = EncryptionService.decrypt
derive_key = EncryptionService.derive_key


def verify_master_password(password: str, min_length: Optional[int] = None) -> Tuple[bool, str]:
    """
    Verify master password meets minimum requirements.

    Returns:
        (is_valid, error_message)
    """
    if min_length is None:
        from ..core.config import get_settings
        min_length = get_settings().min_master_length

    if not password or not password.strip():
        return False, "Master password is required"

    if len(password) < min_length:
        return False, f"Master password must be at least {min_length} characters long"

    return True, ""
