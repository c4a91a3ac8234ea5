"""Tests for configuration loading and the audit logger."""

import json
from pathlib import Path

import pytest

from vaultmark.core import (
    AuditLogger,
    EventSeverity,
    EventType,
    Settings,
    get_audit_logger,
    get_settings,
    log_security_event,
    reset_settings,
)


# ── Settings ────────────────────────────────────────────────────────


class TestSettings:
    def test_reads_environment(self, tmp_path):
        settings = get_settings()
        assert settings.data_dir == tmp_path / "data"
        assert settings.audit_dir == tmp_path / "audit_logs"
        assert settings.vault_path == tmp_path / "data" / "vault.db"
        assert settings.pbkdf2_iterations == 1_000

    def test_defaults(self, monkeypatch):
        for name in ("DATA_DIR", "AUDIT_DIR", "PBKDF2_ITERATIONS"):
            monkeypatch.delenv(f"VAULTMARK_{name}")
        settings = Settings.from_env(dotenv_path=Path("/nonexistent/.env"))
        assert settings.data_dir == Path("./data")
        assert settings.audit_dir == Path("./data") / "audit_logs"
        assert settings.pbkdf2_iterations == 600_000
        assert settings.min_master_length == 8
        assert (settings.host, settings.port) == ("127.0.0.1", 8000)

    def test_cached_until_reset(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("VAULTMARK_PORT", "9001")
        assert get_settings() is first
        reset_settings()
        assert get_settings().port == 9001

    def test_dotenv_file_fills_gaps(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("VAULTMARK_PORT=8123\nVAULTMARK_DATA_DIR=/ignored\n")
        # Registered with monkeypatch so the value load_dotenv sets is undone
        monkeypatch.setenv("VAULTMARK_PORT", "1")
        monkeypatch.delenv("VAULTMARK_PORT")
        settings = Settings.from_env(dotenv_path=env_file)
        assert settings.port == 8123
        # Real environment wins over the file
        assert settings.data_dir == tmp_path / "data"

    @pytest.mark.parametrize("raw", ["abc", "0", "-5"])
    def test_bad_integer_rejected(self, monkeypatch, raw):
        monkeypatch.setenv("VAULTMARK_PBKDF2_ITERATIONS", raw)
        with pytest.raises(ValueError):
            Settings.from_env(dotenv_path=Path("/nonexistent/.env"))


# ── Audit Logger ────────────────────────────────────────────────────


class TestAuditLogger:
    def test_writes_json_lines(self, tmp_path):
        logger = AuditLogger(log_dir=tmp_path / "logs")
        event_id = logger.log_event(
            EventType.BOOKMARKS_IMPORTED,
            EventSeverity.INFO,
            "Imported bookmarks",
            details={"count": 3},
        )

        (line,) = logger.log_file.read_text(encoding="utf-8").splitlines()
        event = json.loads(line)
        assert event["event_id"] == event_id
        assert event["event_type"] == "bookmarks.imported"
        assert event["severity"] == "info"
        assert event["details"] == {"count": 3}
        assert "hostname" in event["user_context"]
        assert logger.log_file.name.startswith("audit_")

    def test_vault_events_are_prefixed(self, tmp_path):
        logger = AuditLogger(log_dir=tmp_path / "logs")
        logger.log_vault_event(EventType.VAULT_LOCKED, "Vault locked")
        event = json.loads(logger.log_file.read_text(encoding="utf-8"))
        assert event["message"] == "Vault: Vault locked"

    def test_new_instance_replaces_file_handler(self, tmp_path):
        first = AuditLogger(log_dir=tmp_path / "one")
        second = AuditLogger(log_dir=tmp_path / "two")
        second.log_event(EventType.SYSTEM_START, EventSeverity.INFO, "started")
        assert first.log_file.read_text(encoding="utf-8") == ""
        assert "system.start" in second.log_file.read_text(encoding="utf-8")

    def test_singleton_uses_configured_dir(self, tmp_path):
        assert get_audit_logger() is get_audit_logger()
        log_security_event(EventType.SYSTEM_STOP, EventSeverity.INFO, "stopped")
        assert get_audit_logger().log_file.parent == tmp_path / "audit_logs"
        assert "system.stop" in get_audit_logger().log_file.read_text(encoding="utf-8")
