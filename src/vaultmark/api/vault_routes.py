# Vault API - RESTful endpoints for password records
#
# - Initialize/unlock/lock vault
# - CRUD for secrets (records are decrypted server side, on this machine)
# - Plaintext JSON export/import
# Every record operation needs the vault unlocked (403 otherwise).

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from ..vault import (
    DecryptionFailed,
    MalformedImport,
    SecretNotFound,
    VaultLocked,
    VaultManager,
    calculate_password_strength,
    strength_label,
)

router = APIRouter(prefix="/api/vault", tags=["vault"])

# ── Singleton ────────────────────────────────────────────────────────

_vault_manager: Optional[VaultManager] = None


def get_vault_manager() -> VaultManager:
    """Lazy singleton, created on first use."""
    global _vault_manager
    if _vault_manager is None:
        _vault_manager = VaultManager()
    return _vault_manager


def set_vault_manager(manager: Optional[VaultManager]):
    global _vault_manager
    _vault_manager = manager


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"password-vault-export-{today.isoformat()}.json"


# ── Pydantic Models ──────────────────────────────────────────────────


class MasterPasswordRequest(BaseModel):
    master_password: str


class AddSecretRequest(BaseModel):
    service: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    url: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class EditSecretRequest(BaseModel):
    service: Optional[str] = Field(None, min_length=1, max_length=200)
    username: Optional[str] = Field(None, min_length=1)
    password: Optional[str] = Field(None, min_length=1)
    url: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None


class VaultStatusResponse(BaseModel):
    is_unlocked: bool
    vault_exists: bool


def _locked() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Vault is locked. Unlock vault first.",
    )


def _record_response(record) -> dict:
    item = record.to_dict()
    score = calculate_password_strength(record.password)
    item["strength"] = {"score": score, "label": strength_label(score)}
    return item


# ── Lifecycle ────────────────────────────────────────────────────────


@router.get("/status", response_model=VaultStatusResponse)
async def get_vault_status():
    """Whether the vault exists and is unlocked."""
    mgr = get_vault_manager()
    return VaultStatusResponse(is_unlocked=mgr.is_unlocked, vault_exists=mgr.vault_exists)


@router.post("/initialize")
async def initialize_vault(body: MasterPasswordRequest):
    """Create a new vault with a master password. The vault is left unlocked."""
    success, message = get_vault_manager().initialize_vault(body.master_password)
    if not success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
    return {"success": True, "message": message}


@router.post("/unlock")
async def unlock_vault(body: MasterPasswordRequest):
    success, message = get_vault_manager().unlock_vault(body.master_password)
    if not success:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)
    return {"success": True, "message": message}


@router.post("/lock")
async def lock_vault():
    """Lock vault (the in-memory key is destroyed)."""
    get_vault_manager().lock_vault()
    return {"success": True, "message": "Vault locked"}


# ── Secrets ──────────────────────────────────────────────────────────


@router.get("/secrets")
async def list_secrets():
    """
    List all secrets without their passwords.

    Entries that fail to decrypt are listed with ``undecryptable: true``.
    """
    try:
        listings = get_vault_manager().list_secrets()
    except VaultLocked:
        raise _locked()
    secrets = [listing.to_dict() for listing in listings]
    return {"secrets": secrets, "total": len(secrets)}


@router.post("/secrets", status_code=status.HTTP_201_CREATED)
async def add_secret(body: AddSecretRequest):
    try:
        record = get_vault_manager().add_secret(
            service=body.service,
            username=body.username,
            password=body.password,
            url=body.url,
            notes=body.notes,
            tags=body.tags,
        )
    except VaultLocked:
        raise _locked()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"success": True, "secret_id": record.id}


@router.get("/secrets/{secret_id}")
async def get_secret(secret_id: str):
    """Get one secret, password included."""
    try:
        record = get_vault_manager().get_secret(secret_id)
    except VaultLocked:
        raise _locked()
    except DecryptionFailed as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Secret not found")
    return _record_response(record)


@router.put("/secrets/{secret_id}")
async def edit_secret(secret_id: str, body: EditSecretRequest):
    """Apply the given fields; the record is re-encrypted under a fresh iv."""
    changes = body.model_dump(exclude_unset=True)
    if "tags" in changes and changes["tags"] is None:
        changes["tags"] = ()
    try:
        record = get_vault_manager().edit_secret(secret_id, **changes)
    except VaultLocked:
        raise _locked()
    except SecretNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Secret not found")
    except DecryptionFailed as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _record_response(record)


@router.delete("/secrets/{secret_id}")
async def delete_secret(secret_id: str):
    try:
        deleted = get_vault_manager().delete_secret(secret_id)
    except VaultLocked:
        raise _locked()
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Secret not found")
    return {"success": True, "message": "Secret deleted"}


# ── Plaintext Export / Import ────────────────────────────────────────


@router.get("/export")
async def export_vault():
    """Download every decryptable secret as an UNENCRYPTED JSON file."""
    try:
        text = get_vault_manager().export_plaintext()
    except VaultLocked:
        raise _locked()
    return Response(
        content=text,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/import")
async def import_vault(request: Request):
    """Import a plaintext JSON array; the request body is the file text."""
    raw = await request.body()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is not UTF-8 text")
    try:
        report = get_vault_manager().import_plaintext(text)
    except VaultLocked:
        raise _locked()
    except MalformedImport as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"success": True, **report.to_dict()}
