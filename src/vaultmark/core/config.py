# Core - Runtime Configuration
#
# Settings come from environment variables. An optional .env file in the
# working directory is loaded first (python-dotenv), real environment wins.

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "VAULTMARK_"

DEFAULT_PBKDF2_ITERATIONS = 600_000  # OWASP 2023 for PBKDF2-SHA256
DEFAULT_MIN_MASTER_LENGTH = 8
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _env(name: str, default: str) -> str:
    return os.environ.get(ENV_PREFIX + name, default)


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one process.

    Attributes:
        data_dir: Directory holding vault.db
        audit_dir: Directory for daily audit log files
        pbkdf2_iterations: Work factor for master password key derivation
        min_master_length: Shortest accepted master password
        host: API bind address
        port: API port
    """
    data_dir: Path
    audit_dir: Path
    pbkdf2_iterations: int = DEFAULT_PBKDF2_ITERATIONS
    min_master_length: int = DEFAULT_MIN_MASTER_LENGTH
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def vault_path(self) -> Path:
        return self.data_dir / "vault.db"

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> "Settings":
        load_dotenv(dotenv_path=dotenv_path, override=False)

        data_dir = Path(_env("DATA_DIR", "./data"))
        return cls(
            data_dir=data_dir,
            audit_dir=Path(_env("AUDIT_DIR", str(data_dir / "audit_logs"))),
            pbkdf2_iterations=_env_int("PBKDF2_ITERATIONS", DEFAULT_PBKDF2_ITERATIONS),
            min_master_length=_env_int("MIN_MASTER_LENGTH", DEFAULT_MIN_MASTER_LENGTH),
            host=_env("HOST", DEFAULT_HOST),
            port=_env_int("PORT", DEFAULT_PORT),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get process settings (loaded once)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
