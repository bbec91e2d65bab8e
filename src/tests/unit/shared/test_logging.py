"""Unit tests for structured logging helpers."""

import structlog

from shared.observability import ScrapeContext, ServiceContext, setup_logging


class TestServiceContext:
    def test_adds_service_and_environment(self) -> None:
        """Test the processor tags every event."""
        processor = ServiceContext("nutanix-exporter", "production")

        event = processor(None, "info", {"event": "hello"})

        assert event["service"] == "nutanix-exporter"
        assert event["environment"] == "production"

    def test_environment_optional(self) -> None:
        """Test no environment key is added when unset."""
        event = ServiceContext("nutanix-exporter")(None, "info", {"event": "hello"})

        assert "environment" not in event


class TestScrapeContext:
    def test_binds_and_resets(self) -> None:
        """Test fields are bound inside the block only."""
        with ScrapeContext(cluster="DS-East", route="/metrics/DS-East"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["cluster"] == "DS-East"
            assert bound["route"] == "/metrics/DS-East"

        assert "cluster" not in structlog.contextvars.get_contextvars()

    async def test_async_context(self) -> None:
        """Test the async form binds the same fields."""
        async with ScrapeContext(cluster="DS-West"):
            assert structlog.contextvars.get_contextvars()["cluster"] == "DS-West"

        assert "cluster" not in structlog.contextvars.get_contextvars()


class TestSetupLogging:
    def test_json_and_text(self) -> None:
        """Test both renderers configure without error."""
        setup_logging(log_level="DEBUG", log_format="json")
        setup_logging(log_level="INFO", log_format="text")

        assert structlog.is_configured()
