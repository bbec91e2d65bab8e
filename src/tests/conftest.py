"""Pytest configuration and shared fixtures."""

import os

import pytest

# Test environment defaults
os.environ["ENV"] = "development"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOG_FORMAT"] = "text"

REQUIRED_VARIABLES = (
    "PC_CLUSTER_NAME",
    "PC_CLUSTER_URL",
    "CREDENTIAL_BACKEND",
    "VAULT_ADDR",
    "VAULT_ROLE_ID",
    "VAULT_SECRET_ID",
    "VAULT_NAMESPACE",
    "VAULT_ENGINE_NAME",
    "PE_TASK_ACCOUNT",
    "PC_TASK_ACCOUNT",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> pytest.MonkeyPatch:
    """Environment without any exporter variables, outside any .env file."""
    for name in REQUIRED_VARIABLES + ("PC_API_VERSION", "CLUSTER_PREFIX", "REFRESH_PERIOD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def vault_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Complete production environment using the Vault backend."""
    values = {
        "PC_CLUSTER_NAME": "PC-01",
        "PC_CLUSTER_URL": "https://pc.example.com:9440",
        "VAULT_ADDR": "https://vault.example.com",
        "VAULT_ROLE_ID": "role-id",
        "VAULT_SECRET_ID": "secret-id",
        "VAULT_NAMESPACE": "infra",
        "VAULT_ENGINE_NAME": "nutanix",
        "PE_TASK_ACCOUNT": "pe-task",
        "PC_TASK_ACCOUNT": "pc-task",
    }
    for name, value in values.items():
        clean_env.setenv(name, value)
    return clean_env


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
