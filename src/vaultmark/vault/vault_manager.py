# Vault Manager - Encrypted Password Records
#
# SQLite table of envelope documents {id, encryptedData, iv, createdAt, updatedAt}.
# Encrypt-on-write, decrypt-on-read; plaintext fields never touch the table.
# Master password verified via an encrypted verification token.

import json
import sqlite3
from contextlib import closing
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core import EventSeverity, EventType, get_audit_logger, get_settings
from .encryption import EncryptionService, verify_master_password
from .errors import DecryptionFailed, MalformedImport, SecretNotFound
from .models import (
    EncryptedEnvelope,
    ImportReport,
    REQUIRED_FIELDS,
    SecretListing,
    SecretRecord,
    StoredSecret,
)
from .session import VaultSession

VAULT_VERSION = "1"


class VaultManager:
    """
    Manages the encrypted password vault.

    Security:
    - Each record's sensitive fields encrypted as one AES-256-GCM envelope
    - Master password verified via encrypted verification token
    - Master password never stored (only salt for key derivation)
    - Audit logging for all vault access
    """

    def __init__(
        self,
        vault_path: Optional[Path] = None,
        session: Optional[VaultSession] = None,
        iterations: Optional[int] = None,
        min_master_length: Optional[int] = None,
    ):
        """
        Initialize vault manager.

        Args:
            vault_path: Path to vault database file (default: <data_dir>/vault.db)
            session: Key session to use (default: a fresh one)
            iterations: PBKDF2 work factor (default: configured value)
            min_master_length: Shortest accepted master password
        """
        settings = get_settings()
        self.vault_path = Path(vault_path) if vault_path else settings.vault_path
        self.vault_path.parent.mkdir(parents=True, exist_ok=True)

        self.session = session or VaultSession()
        self.iterations = iterations or settings.pbkdf2_iterations
        self.min_master_length = min_master_length or settings.min_master_length

        # Rate limiting for unlock attempts (prevent brute force)
        self.failed_attempts = 0
        self.lockout_until: Optional[datetime] = None

        self.logger = get_audit_logger()

    # ── Storage ──────────────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.vault_path))
        conn.row_factory = sqlite3.Row
        return conn

    @property
    def vault_exists(self) -> bool:
        # 0-byte files are not valid vaults
        return self.vault_path.exists() and self.vault_path.stat().st_size > 0

    @property
    def is_unlocked(self) -> bool:
        return self.session.is_unlocked

    def _read_config(self, conn: sqlite3.Connection) -> Dict[str, str]:
        rows = conn.execute("SELECT key, value FROM vault_config").fetchall()
        return {row["key"]: row["value"] for row in rows}

    @staticmethod
    def _row_to_stored(row: sqlite3.Row) -> StoredSecret:
        return StoredSecret(
            id=row["id"],
            envelope=EncryptedEnvelope(ciphertext=row["encrypted_data"], iv=row["iv"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_stored(self, secret_id: str) -> Optional[StoredSecret]:
        """Fetch the stored envelope document for ``secret_id``."""
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM secrets WHERE id = ?", (secret_id,)
            ).fetchone()
        return self._row_to_stored(row) if row else None

    def _stored_documents(self) -> List[StoredSecret]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT * FROM secrets ORDER BY created_at, id"
            ).fetchall()
        return [self._row_to_stored(row) for row in rows]

    # ── Lifecycle ────────────────────────────────────────────────────

    def initialize_vault(self, master_password: str) -> Tuple[bool, str]:
        """
        Create a new vault and unlock it.

        Returns:
            (success, message)
        """
        is_valid, error_msg = verify_master_password(master_password, self.min_master_length)
        if not is_valid:
            return False, error_msg

        if self.vault_exists:
            return False, "Vault already exists. Use unlock_vault() instead."

        # Remove stale 0-byte file if present
        if self.vault_path.exists():
            self.vault_path.unlink()

        salt = EncryptionService.generate_salt()
        key = EncryptionService.derive_key(master_password, salt, self.iterations)
        verifier = EncryptionService.create_key_verifier(key)

        try:
            with closing(self._connect()) as conn, conn:
                conn.execute("""
                    CREATE TABLE vault_config (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE TABLE secrets (
                        id TEXT PRIMARY KEY,
                        encrypted_data TEXT NOT NULL,
                        iv TEXT NOT NULL,
                        created_at INTEGER NOT NULL,
                        updated_at INTEGER NOT NULL
                    )
                """)
                conn.executemany(
                    "INSERT INTO vault_config (key, value) VALUES (?, ?)",
                    [
                        ("salt", EncryptionService.encode_for_storage(salt)),
                        ("verify_ciphertext", verifier.ciphertext),
                        ("verify_iv", verifier.iv),
                        ("iterations", str(self.iterations)),
                        ("created_at", datetime.now(timezone.utc).isoformat()),
                        ("version", VAULT_VERSION),
                    ],
                )
        except sqlite3.Error as e:
            self.logger.log_vault_event(
                EventType.VAULT_ERROR,
                f"Failed to initialize vault: {e}",
                severity=EventSeverity.CRITICAL,
            )
            return False, f"Failed to create vault: {e}"

        self.session.unlock(key)
        self.logger.log_vault_event(EventType.VAULT_CREATED, "Vault initialized with master password")
        return True, "Vault created successfully!"

    def unlock_vault(self, master_password: str) -> Tuple[bool, str]:
        """
        Unlock vault with master password.

        Failed attempts back off exponentially: 1, 2, 4, 8 then 16 seconds.

        Returns:
            (success, message)
        """
        now = datetime.now()
        if self.lockout_until and now < self.lockout_until:
            remaining = max(1, int((self.lockout_until - now).total_seconds()))
            self.logger.log_vault_event(
                EventType.VAULT_UNLOCK_FAILED,
                f"Unlock attempt during lockout period ({remaining}s remaining)",
                severity=EventSeverity.ALERT,
            )
            return False, f"Too many failed attempts. Please wait {remaining} seconds."

        if not self.vault_exists:
            return False, "Vault does not exist. Initialize vault first."

        try:
            with closing(self._connect()) as conn:
                config = self._read_config(conn)
        except sqlite3.DatabaseError as e:
            return False, f"Failed to unlock vault: {e}"

        if not {"salt", "verify_ciphertext", "verify_iv"} <= config.keys():
            return False, "Corrupted vault: missing salt or verifier"

        try:
            salt = EncryptionService.decode_from_storage(config["salt"])
            iterations = int(config.get("iterations", self.iterations))
        except ValueError as e:
            return False, f"Corrupted vault: unreadable salt or iteration count ({e})"

        candidate_key = EncryptionService.derive_key(master_password, salt, iterations)
        verifier = EncryptedEnvelope(
            ciphertext=config["verify_ciphertext"], iv=config["verify_iv"]
        )

        if not EncryptionService.verify_key(candidate_key, verifier):
            candidate_key.destroy()
            return self._handle_failed_unlock()

        self.session.unlock(candidate_key)
        self.failed_attempts = 0
        self.lockout_until = None

        self.logger.log_vault_event(EventType.VAULT_UNLOCKED, "Vault unlocked successfully")
        return True, "Vault unlocked successfully!"

    def _handle_failed_unlock(self) -> Tuple[bool, str]:
        """Rate-limited failure response for wrong password attempts."""
        self.failed_attempts += 1
        delay_seconds = min(2 ** (self.failed_attempts - 1), 16)
        self.lockout_until = datetime.now() + timedelta(seconds=delay_seconds)

        self.logger.log_vault_event(
            EventType.VAULT_UNLOCK_FAILED,
            f"Unlock failed: incorrect password (attempt {self.failed_attempts}, {delay_seconds}s lockout)",
            severity=EventSeverity.ALERT,
        )

        if self.failed_attempts == 1:
            return False, "Incorrect master password"
        return False, f"Incorrect master password. Please wait {delay_seconds} seconds before trying again."

    def lock_vault(self) -> None:
        """Lock vault (destroy the in-memory key)."""
        self.session.clear()
        self.logger.log_vault_event(EventType.VAULT_LOCKED, "Vault locked")

    # ── Records ──────────────────────────────────────────────────────

    def add_secret(
        self,
        service: str,
        username: str,
        password: str,
        url: Optional[str] = None,
        notes: Optional[str] = None,
        tags: Iterable[str] = (),
    ) -> SecretRecord:
        """
        Encrypt and store a new secret.

        Raises:
            VaultLocked: Vault is locked
            ValueError: A required field is missing or empty
        """
        record = SecretRecord(
            service=service,
            username=username,
            password=password,
            url=url or None,
            notes=notes or None,
            tags=tags or (),
        )
        self._insert(record)

        self.logger.log_vault_event(
            EventType.SECRET_ADDED,
            f"Secret added: {record.service}",
            details={"secret_id": record.id},
        )
        return record

    def _insert(self, record: SecretRecord) -> None:
        envelope = self.session.encrypt(record.payload())
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO secrets (id, encrypted_data, iv, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (record.id, envelope.ciphertext, envelope.iv, record.created_at, record.updated_at),
            )

    def _open(self, stored: StoredSecret) -> SecretRecord:
        payload = self.session.decrypt(stored.envelope)
        try:
            return SecretRecord.from_payload(
                payload, stored.id, stored.created_at, stored.updated_at
            )
        except (ValueError, TypeError) as e:
            raise DecryptionFailed(f"Decrypted payload is not a valid record: {e}") from e

    def get_secret(self, secret_id: str) -> Optional[SecretRecord]:
        """
        Retrieve and decrypt a secret by ID.

        Returns:
            The record, or None if not found

        Raises:
            VaultLocked: Vault is locked
            DecryptionFailed: Stored envelope does not open with the vault key
        """
        self.session.key()
        stored = self.get_stored(secret_id)
        if stored is None:
            return None

        try:
            record = self._open(stored)
        except DecryptionFailed:
            self.logger.log_vault_event(
                EventType.SECRET_UNDECRYPTABLE,
                "Secret could not be decrypted",
                details={"secret_id": secret_id},
                severity=EventSeverity.ALERT,
            )
            raise

        self.logger.log_vault_event(
            EventType.SECRET_ACCESSED,
            f"Secret accessed: {record.service}",
            details={"secret_id": secret_id},
        )
        return record

    def edit_secret(self, secret_id: str, **changes: Any) -> SecretRecord:
        """
        Apply changes to a secret and re-encrypt it under a fresh iv.

        Raises:
            SecretNotFound: No such secret
            VaultLocked: Vault is locked
            DecryptionFailed: Existing envelope does not open
            ValueError: Unknown field or a required field emptied
        """
        self.session.key()
        stored = self.get_stored(secret_id)
        if stored is None:
            raise SecretNotFound(secret_id)

        updated = self._open(stored).edited(**changes)
        envelope = self.session.encrypt(updated.payload())

        with closing(self._connect()) as conn, conn:
            conn.execute(
                "UPDATE secrets SET encrypted_data = ?, iv = ?, updated_at = ? WHERE id = ?",
                (envelope.ciphertext, envelope.iv, updated.updated_at, secret_id),
            )

        self.logger.log_vault_event(
            EventType.SECRET_EDITED,
            f"Secret edited: {updated.service}",
            details={"secret_id": secret_id, "fields": sorted(changes)},
        )
        return updated

    def list_secrets(self) -> List[SecretListing]:
        """
        Decrypt every stored secret.

        An entry that fails to decrypt is reported as undecryptable; the
        listing itself carries on.

        Raises:
            VaultLocked: Vault is locked
        """
        self.session.key()
        listings = []
        for stored in self._stored_documents():
            try:
                record = self._open(stored)
            except DecryptionFailed as e:
                self.logger.log_vault_event(
                    EventType.SECRET_UNDECRYPTABLE,
                    "Secret could not be decrypted",
                    details={"secret_id": stored.id},
                    severity=EventSeverity.ALERT,
                )
                listings.append(SecretListing(
                    id=stored.id,
                    created_at=stored.created_at,
                    updated_at=stored.updated_at,
                    error=str(e),
                ))
                continue
            listings.append(SecretListing(
                id=stored.id,
                created_at=stored.created_at,
                updated_at=stored.updated_at,
                record=record,
            ))
        return listings

    def delete_secret(self, secret_id: str) -> bool:
        """Permanently delete a secret. Returns False if it did not exist."""
        self.session.key()
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute("DELETE FROM secrets WHERE id = ?", (secret_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            self.logger.log_vault_event(
                EventType.SECRET_DELETED,
                "Secret deleted from vault",
                details={"secret_id": secret_id},
            )
        return deleted

    # ── Plaintext transfer ───────────────────────────────────────────

    def export_plaintext(self) -> str:
        """
        Export every decryptable secret as a plaintext JSON array.

        The result is NOT encrypted. Undecryptable entries are left out.
        """
        listings = self.list_secrets()
        items = [l.record.to_export() for l in listings if l.record is not None]
        skipped = sum(1 for l in listings if l.record is None)

        self.logger.log_vault_event(
            EventType.VAULT_EXPORTED,
            "Vault exported as plaintext JSON",
            details={"count": len(items), "undecryptable": skipped},
            severity=EventSeverity.WARNING,
        )
        return json.dumps(items, indent=2, ensure_ascii=False)

    def import_plaintext(self, text: str) -> ImportReport:
        """
        Import secrets from a plaintext JSON array.

        Items without service, username and password are skipped.

        Raises:
            MalformedImport: Not valid JSON, or not an array
            VaultLocked: Vault is locked
        """
        self.session.key()
        try:
            parsed = json.loads(text)
        except (TypeError, ValueError) as e:
            raise MalformedImport(f"Invalid JSON: {e}") from e
        if not isinstance(parsed, list):
            raise MalformedImport("Invalid format: expected an array")

        report = ImportReport()
        for index, item in enumerate(parsed):
            if not isinstance(item, dict):
                report.skipped.append((index, "entry is not an object"))
                continue
            missing = [name for name in REQUIRED_FIELDS if not item.get(name)]
            if missing:
                report.skipped.append((index, f"missing {', '.join(missing)}"))
                continue
            try:
                record = SecretRecord(
                    service=item["service"],
                    username=item["username"],
                    password=item["password"],
                    url=item.get("url") or None,
                    notes=item.get("notes") or None,
                    tags=item.get("tags") or (),
                )
            except (TypeError, ValueError) as e:
                report.skipped.append((index, str(e)))
                continue
            self._insert(record)
            report.imported.append(record.id)

        self.logger.log_vault_event(
            EventType.VAULT_IMPORTED,
            "Vault imported from plaintext JSON",
            details={"count": len(report.imported), "skipped": len(report.skipped)},
        )
        return report
