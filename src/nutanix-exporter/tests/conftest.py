"""Test fixtures for Nutanix Exporter tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from app.clients import create_client
from app.credentials import EnvCredentialProvider
from app.metrics import MetricDefinitionSource
from app.services import Cluster

from shared.config import CredentialBackend, Settings
from shared.models import ClusterRole, Credentials

ELEMENT_URL = "https://10.0.0.1:9440"
CENTRAL_URL = "https://pc.example.com:9440"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def credentials():
    return Credentials(username="task-account", secret="s3cret")


@pytest.fixture
def provider(credentials):
    """Static credential provider for a central and an element cluster."""
    return EnvCredentialProvider(
        credentials={
            ("PC-01", ClusterRole.CENTRAL): credentials,
            ("DS-East", ClusterRole.ELEMENT): credentials,
            ("DS-West", ClusterRole.ELEMENT): credentials,
        }
    )


@pytest.fixture
def make_cluster(credentials):
    """Factory for clusters whose HTTP traffic goes to a mock transport."""

    def factory(
        handler: Handler,
        name: str = "DS-East",
        role: ClusterRole = ClusterRole.ELEMENT,
        url: str = ELEMENT_URL,
    ) -> Cluster:
        api = create_client(role, url, credentials)
        api._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Cluster(name, url, api)

    return factory


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Allow-list directory with a small definition set per entity type."""
    (tmp_path / "cluster.yaml").write_text(
        "- name: num_nodes\n"
        "  help: Number of nodes\n"
        "- name: stats_hypervisor_cpu_usage_ppm\n"
    )
    (tmp_path / "host.yaml").write_text(
        "- name: total_entities\n"
        "- name: stats_num_iops\n"
    )
    (tmp_path / "vm.yaml").write_text(
        "- name: power_state\n"
        "- name: memory_mb\n"
    )
    (tmp_path / "storage_container.yaml").write_text(
        "- name: storage_usage_bytes\n"
        "  help: Container used space in bytes\n"
    )
    return tmp_path


@pytest.fixture
def definitions(config_dir: Path) -> MetricDefinitionSource:
    return MetricDefinitionSource(config_dir)


@pytest.fixture
def settings(config_dir: Path) -> Settings:
    """Exporter settings using the environment credential backend."""
    return Settings(
        pc_cluster_name="PC-01",
        pc_cluster_url=CENTRAL_URL,
        cluster_prefix="DS",
        refresh_period="10ms",
        credential_backend=CredentialBackend.ENV,
        metrics_config_dir=config_dir,
    )
