"""Shared fixtures for the vault keeper test suite."""

import pytest

from vault_keeper.data_models import VaultMetadata


@pytest.fixture
def anyio_backend():
    """Delete backups are purged via the asyncio loop, so tests pin asyncio."""
    return "asyncio"


@pytest.fixture
def vault_path(tmp_path):
    path = tmp_path / "vault"
    path.mkdir()
    return path


@pytest.fixture
def vault(vault_path):
    return VaultMetadata(name="test", path=vault_path)


@pytest.fixture
def other_vault(tmp_path):
    path = tmp_path / "other"
    path.mkdir()
    return VaultMetadata(name="other", path=path)
