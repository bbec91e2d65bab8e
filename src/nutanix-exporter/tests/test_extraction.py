"""Tests for value coercion, key normalization and flattening."""

import pytest
from app.metrics import MetricExtractor, Sample, coerce_numeric, flatten, normalize_key
from prometheus_client import CollectorRegistry

from shared.models import EntityType, MetricDefinition


class TestCoerceNumeric:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("on", 1.0),
            ("off", 0.0),
            ("OFF", 0.0),
            ("3.5", 3.5),
            ("garbage", 0.0),
            (5.0, 5.0),
            (42, 42.0),
            (True, 1.0),
            (False, 0.0),
            (None, 0.0),
            ([1, 2], 0.0),
            (10**400, 0.0),
            (-(10**400), 0.0),
            (str(10**400), float("inf")),
        ],
    )
    def test_coercion(self, value, expected):
        """Test JSON scalar coercion to floats."""
        assert coerce_numeric(value) == expected

    def test_on_is_case_sensitive(self):
        """Test only lower-case "on" maps to 1."""
        assert coerce_numeric("ON") == 0.0


class TestNormalizeKey:
    def test_replaces_separators(self):
        """Test dots, dashes and colons become underscores."""
        assert normalize_key("Storage.Usage-Bytes:Total") == "storage_usage_bytes_total"

    @pytest.mark.parametrize(
        "key",
        ["storage.usage_bytes", "A-B:C.D", "already_normal", "", "MiXeD.case"],
    )
    def test_idempotent(self, key):
        """Test normalizing twice equals normalizing once."""
        assert normalize_key(normalize_key(key)) == normalize_key(key)


class TestFlatten:
    def test_nested_keys_joined(self):
        """Test nested mappings collapse into parent_child keys."""
        document = {"a": 1, "b": {"c": 2, "d": {"e": "x"}}}

        assert flatten("", document) == {"a": 1, "b_c": 2, "b_d_e": "x"}

    def test_prefix(self):
        """Test a non-empty prefix is prepended to every key."""
        assert flatten("stats", {"cpu": 1, "io": {"bw": 2}}) == {"stats_cpu": 1, "stats_io_bw": 2}

    def test_idempotent_on_flat_document(self):
        """Test an already flat document comes back unchanged."""
        document = {"a": 1, "b": "on", "c": None, "d": [1, 2]}

        assert flatten("", document) == document
        assert flatten("", flatten("", document)) == flatten("", document)

    def test_deep_nesting_produces_no_mappings(self):
        """Test very deep documents flatten fully."""
        document = {"leaf": 1}
        for _ in range(2000):
            document = {"n": document}

        flat = flatten("", document)

        assert len(flat) == 1
        key, value = next(iter(flat.items()))
        assert value == 1
        assert key.endswith("_leaf")
        assert not any(isinstance(v, dict) for v in flat.values())

    def test_collision_last_write_wins(self):
        """Test colliding flat keys keep the later value."""
        document = {"a_b": 1, "a": {"b": 2}}

        assert flatten("", document) == {"a_b": 2}

    def test_empty_nested_mapping(self):
        """Test empty nested mappings contribute nothing."""
        assert flatten("", {"a": {}, "b": 1}) == {"b": 1}


class TestMetricExtractor:
    @pytest.fixture
    def extractor(self):
        definitions = [MetricDefinition(name="memory_mb"), MetricDefinition(name="power_state")]
        return MetricExtractor(
            EntityType.VM, definitions, ("cluster_name", "vm_name"), CollectorRegistry()
        )

    def test_allows(self, extractor):
        """Test only allow-listed keys are accepted."""
        assert extractor.allows("memory_mb")
        assert not extractor.allows("num_vcpus")

    def test_extract_filters_by_allow_list(self, extractor):
        """Test keys outside the allow-list produce no samples."""
        samples = extractor.extract(
            {"memory_mb": 4096, "num_vcpus": 2, "power_state": "on"},
            ("DS-East", "vm-1"),
        )

        assert samples == [
            Sample("memory_mb", ("DS-East", "vm-1"), 4096.0),
            Sample("power_state", ("DS-East", "vm-1"), 1.0),
        ]

    def test_extract_normalizes_keys(self):
        """Test source keys are normalized before the allow-list check."""
        extractor = MetricExtractor(
            EntityType.STORAGE_CONTAINER,
            [MetricDefinition(name="storage_usage_bytes")],
            ("cluster_name", "container_name"),
            CollectorRegistry(),
        )

        samples = extractor.extract({"storage.usage_bytes": "100"}, ("c", "ctr1"))

        assert samples == [Sample("storage_usage_bytes", ("c", "ctr1"), 100.0)]

    def test_apply_replaces_previous_values(self):
        """Test apply drops label sets missing from the new samples."""
        registry = CollectorRegistry()
        extractor = MetricExtractor(
            EntityType.VM, [MetricDefinition(name="memory_mb")], ("cluster_name", "vm_name"), registry
        )

        extractor.apply([Sample("memory_mb", ("c", "vm-1"), 1.0)])
        extractor.apply([Sample("memory_mb", ("c", "vm-2"), 2.0)])

        labels = {"cluster_name": "c", "vm_name": "vm-1"}
        assert registry.get_sample_value("nutanix_vm_memory_mb", labels) is None
        labels["vm_name"] = "vm-2"
        assert registry.get_sample_value("nutanix_vm_memory_mb", labels) == 2.0
