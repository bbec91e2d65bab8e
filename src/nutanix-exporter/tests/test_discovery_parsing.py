"""Tests for Prism Central cluster discovery."""

import json

import httpx
import pytest
from app.services import (
    DiscoveryError,
    DiscoveryService,
    parse_v3_clusters,
    parse_v4_clusters,
    select_clusters,
)

from shared.models import ApiVersion, ClusterRole, DiscoveredCluster

CENTRAL_URL = "https://pc.example.com:9440"


def v4_record(name, ip):
    return {"name": name, "network": {"externalAddress": {"ipv4": {"value": ip}}}}


def v3_record(name, ip):
    return {
        "spec": {"name": name},
        "status": {"resources": {"network": {"external_ip": ip}}},
    }


V4_PAYLOAD = {"data": [v4_record("Unnamed", "10.0.0.9"), v4_record("Prod-01", "10.0.0.2")]}
V3_PAYLOAD = {"entities": [v3_record("Unnamed", "10.0.0.9"), v3_record("Prod-01", "10.0.0.2")]}


class TestParsers:
    def test_v4_payload(self):
        """Test the v4 sample yields only the named cluster."""
        clusters = select_clusters(parse_v4_clusters(V4_PAYLOAD))

        assert clusters == {"Prod-01": "https://10.0.0.2:9440"}

    def test_v3_payload(self):
        """Test the v3 sample yields the same result."""
        clusters = select_clusters(parse_v3_clusters(V3_PAYLOAD))

        assert clusters == {"Prod-01": "https://10.0.0.2:9440"}

    def test_v4_skips_malformed_records(self):
        """Test records missing a name or address are skipped."""
        payload = {
            "data": [
                {"name": "No-Network"},
                {"name": "No-Ip", "network": {"externalAddress": {"ipv6": {"value": "::1"}}}},
                {"network": {"externalAddress": {"ipv4": {"value": "10.0.0.3"}}}},
                "garbage",
                v4_record("Good", "10.0.0.4"),
            ]
        }

        assert parse_v4_clusters(payload) == [DiscoveredCluster(name="Good", ip="10.0.0.4")]

    def test_v3_skips_malformed_records(self):
        """Test v3 records without spec or status are skipped."""
        payload = {
            "entities": [
                {"spec": {"name": "No-Status"}},
                {"status": {"resources": {"network": {"external_ip": "10.0.0.5"}}}},
                {"spec": {"name": "No-Ip"}, "status": {"resources": {"network": {}}}},
                v3_record("Good", "10.0.0.6"),
            ]
        }

        assert parse_v3_clusters(payload) == [DiscoveredCluster(name="Good", ip="10.0.0.6")]

    @pytest.mark.parametrize(
        ("parser", "payload"),
        [
            (parse_v4_clusters, {"entities": []}),
            (parse_v4_clusters, {"data": None}),
            (parse_v3_clusters, {"data": []}),
            (parse_v3_clusters, {}),
        ],
    )
    def test_missing_list_raises(self, parser, payload):
        """Test a response without the cluster list is an error."""
        with pytest.raises(DiscoveryError, match="unexpected response format"):
            parser(payload)


class TestSelectClusters:
    def test_prefix_filter(self):
        """Test only clusters starting with the prefix are kept."""
        clusters = [
            DiscoveredCluster(name="DS-East", ip="10.0.1.1"),
            DiscoveredCluster(name="Prod-01", ip="10.0.0.2"),
        ]

        assert select_clusters(clusters, "DS") == {"DS-East": "https://10.0.1.1:9440"}

    def test_no_prefix_keeps_all_named(self):
        """Test every named cluster is kept without a prefix."""
        clusters = [
            DiscoveredCluster(name="DS-East", ip="10.0.1.1"),
            DiscoveredCluster(name="Unnamed", ip="10.0.0.9"),
            DiscoveredCluster(name="Prod-01", ip="10.0.0.2"),
        ]

        assert list(select_clusters(clusters)) == ["DS-East", "Prod-01"]


class TestDiscoveryService:
    async def test_v4_request(self, make_cluster):
        """Test v4 discovery issues a GET to the clustermgmt API."""
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json=V4_PAYLOAD)

        central = make_cluster(handler, name="PC-01", role=ClusterRole.CENTRAL, url=CENTRAL_URL)
        service = DiscoveryService(central, api_version=ApiVersion.V4)

        assert await service.fetch_clusters() == {"Prod-01": "https://10.0.0.2:9440"}
        assert seen == [("GET", "/api/clustermgmt/v4.0.b1/config/clusters")]

    async def test_v3_request(self, make_cluster):
        """Test v3 discovery posts a list query."""
        bodies = []

        def handler(request):
            assert request.method == "POST"
            assert request.url.path == "/api/nutanix/v3/clusters/list"
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=V3_PAYLOAD)

        central = make_cluster(handler, name="PC-01", role=ClusterRole.CENTRAL, url=CENTRAL_URL)
        service = DiscoveryService(central, api_version="v3", cluster_prefix="Prod")

        assert await service.fetch_clusters() == {"Prod-01": "https://10.0.0.2:9440"}
        assert bodies == [{"kind": "cluster", "length": 100, "offset": 0}]

    def test_unknown_version_selects_v4(self, make_cluster):
        """Test versions other than v3 use the v4 API."""
        central = make_cluster(lambda request: httpx.Response(200, json={}))

        assert DiscoveryService(central, api_version="v5").api_version == ApiVersion.V4

    async def test_request_failure_wrapped(self, make_cluster):
        """Test API errors surface as DiscoveryError."""
        central = make_cluster(
            lambda request: httpx.Response(503),
            name="PC-01",
            role=ClusterRole.CENTRAL,
            url=CENTRAL_URL,
        )

        with pytest.raises(DiscoveryError, match="cluster list request failed"):
            await DiscoveryService(central).fetch_clusters()
