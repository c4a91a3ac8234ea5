"""Vault data models.

EncryptedEnvelope is what leaves the process; SecretRecord is what the user
sees. The JSON payload that gets encrypted holds only the sensitive fields;
id and timestamps live in clear on the stored document.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

# Fields that make up the encrypted payload of a secret record
SENSITIVE_FIELDS = ("service", "username", "password", "url", "notes", "tags")
REQUIRED_FIELDS = ("service", "username", "password")


def now_ms() -> int:
    return int(time.time() * 1000)


def unique_tags(tags: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Trim, drop empties and duplicates, keep first-seen order."""
    if not tags:
        return ()
    if isinstance(tags, str):
        tags = tags.split(",")
    seen = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValueError(f"tags must be strings, got {type(tag).__name__}")
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)


@dataclass(frozen=True)
class EncryptedEnvelope:
    """Ciphertext plus the nonce it was sealed with, both base64 text."""
    ciphertext: str
    iv: str

    def to_dict(self) -> Dict[str, str]:
        return {"encryptedData": self.ciphertext, "iv": self.iv}


@dataclass(frozen=True)
class SecretRecord:
    """A decrypted password entry."""
    service: str
    username: str
    password: str
    url: Optional[str] = None
    notes: Optional[str] = None
    tags: Tuple[str, ...] = ()
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    def __post_init__(self):
        for name in REQUIRED_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} is required and must be a non-empty string")
        object.__setattr__(self, "tags", unique_tags(self.tags))

    def payload(self) -> str:
        """Serialize the sensitive fields for encryption."""
        return json.dumps(
            {
                "service": self.service,
                "username": self.username,
                "password": self.password,
                "url": self.url,
                "notes": self.notes,
                "tags": list(self.tags),
            },
            ensure_ascii=False,
            separators=(",", ":"),
        )

    @classmethod
    def from_payload(
        cls,
        payload: str,
        id: str,
        created_at: int,
        updated_at: int,
    ) -> "SecretRecord":
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError(f"payload is a JSON {type(data).__name__}, not an object")
        return cls(
            service=data.get("service"),
            username=data.get("username"),
            password=data.get("password"),
            url=data.get("url") or None,
            notes=data.get("notes") or None,
            tags=data.get("tags") or (),
            id=id,
            created_at=created_at,
            updated_at=updated_at,
        )

    def edited(self, **changes) -> "SecretRecord":
        """Copy with changes applied and a fresh updated_at; id is kept."""
        unknown = set(changes) - set(SENSITIVE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown secret fields: {', '.join(sorted(unknown))}")
        return replace(self, updated_at=max(now_ms(), self.updated_at + 1), **changes)

    def to_export(self) -> Dict[str, Any]:
        """Plaintext export shape: {service, username, password, url?, notes?, tags?}."""
        item: Dict[str, Any] = {
            "service": self.service,
            "username": self.username,
            "password": self.password,
        }
        if self.url:
            item["url"] = self.url
        if self.notes:
            item["notes"] = self.notes
        if self.tags:
            item["tags"] = list(self.tags)
        return item

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "service": self.service,
            "username": self.username,
            "password": self.password,
            "url": self.url,
            "notes": self.notes,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class StoredSecret:
    """The document persisted for a secret: envelope plus clear timestamps."""
    id: str
    envelope: EncryptedEnvelope
    created_at: int
    updated_at: int

    def to_dict(self) -> Dict[str, Any]:
        doc = {"id": self.id}
        doc.update(self.envelope.to_dict())
        doc["createdAt"] = self.created_at
        doc["updatedAt"] = self.updated_at
        return doc


@dataclass(frozen=True)
class SecretListing:
    """One row of a vault listing.

    ``record`` is None when the entry could not be decrypted; the listing
    still carries the id and timestamps so the UI can show it as such.
    """
    id: str
    created_at: int
    updated_at: int
    record: Optional[SecretRecord] = None
    error: Optional[str] = None

    @property
    def undecryptable(self) -> bool:
        return self.record is None

    def to_dict(self) -> Dict[str, Any]:
        if self.record is None:
            return {
                "id": self.id,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "undecryptable": True,
                "error": self.error,
            }
        item = self.record.to_dict()
        item.pop("password")
        item["undecryptable"] = False
        return item


@dataclass
class ImportReport:
    """Outcome of a plaintext vault import."""
    imported: List[str] = field(default_factory=list)
    skipped: List[Tuple[int, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": len(self.imported),
            "ids": list(self.imported),
            "skipped": [{"index": i, "reason": r} for i, r in self.skipped],
        }
