"""
Shared pytest fixtures for the Vaultmark test suite.

Autouse fixtures below isolate tests from live application data:
  - Settings      -> temp data/audit directories, cheap PBKDF2
  - Audit logger  -> fresh singleton writing under tmp_path
  - Vault manager -> API singleton reset per test
"""

import pytest

# Low work factor keeps key derivation fast; never use outside tests
TEST_ITERATIONS = 1_000


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path, monkeypatch):
    """Point every configurable path at tmp_path and reload settings."""
    from vaultmark.core import config

    monkeypatch.setenv("VAULTMARK_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("VAULTMARK_AUDIT_DIR", str(tmp_path / "audit_logs"))
    monkeypatch.setenv("VAULTMARK_PBKDF2_ITERATIONS", str(TEST_ITERATIONS))
    monkeypatch.delenv("VAULTMARK_MIN_MASTER_LENGTH", raising=False)
    monkeypatch.delenv("VAULTMARK_HOST", raising=False)
    monkeypatch.delenv("VAULTMARK_PORT", raising=False)

    config.reset_settings()
    yield
    config.reset_settings()


@pytest.fixture(autouse=True)
def _isolate_audit_logs(_isolate_settings):
    """Fresh audit logger singleton for every test.

    Without this, the singleton from an earlier test keeps writing into
    that test's (already removed) temp directory.
    """
    import vaultmark.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None
    yield
    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_vault_manager():
    import vaultmark.api.vault_routes as vault_mod

    old_manager = vault_mod._vault_manager
    vault_mod._vault_manager = None
    yield
    vault_mod._vault_manager = old_manager


@pytest.fixture
def vault_manager(tmp_path):
    """An initialized, unlocked vault under tmp_path."""
    from vaultmark.vault import VaultManager

    mgr = VaultManager(vault_path=tmp_path / "vault.db")
    ok, message = mgr.initialize_vault("correct horse battery")
    assert ok, message
    return mgr
