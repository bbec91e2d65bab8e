"""Nutanix Exporter FastAPI Application.

The exporter provides:
- Periodic discovery of Prism Element clusters through Prism Central
- One Prometheus scrape route per discovered cluster
- Credential refresh when Prism rejects cached credentials
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI

from shared.config import ConfigurationError, Settings, load_settings
from shared.models import ClusterRole
from shared.observability import get_logger, setup_logging

from .api import health, metrics
from .credentials import build_provider
from .metrics import MetricDefinitionSource
from .services import Cluster, DiscoveryScheduler, RouteTable

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown of:
    - Metric allow-lists and the credential provider
    - The Prism Central cluster
    - Background discovery task
    """
    settings: Settings | None = getattr(app.state, "settings", None)
    if settings is None:
        settings = load_settings()
        setup_logging(
            service_name=settings.app_name,
            environment=settings.environment.value,
            log_level=settings.log_level,
            log_format=settings.log_format,
        )
        app.state.settings = settings

    logger.info("Starting Nutanix Exporter", version=settings.app_version)

    if not settings.refresh_period_valid:
        logger.warning(
            "Invalid refresh period, using default",
            refresh_period=settings.refresh_period,
            interval_seconds=settings.refresh_period_seconds,
        )

    definitions = MetricDefinitionSource(settings.metrics_config_dir)
    definitions.load_all()
    app.state.definitions = definitions

    provider = build_provider(settings)
    app.state.provider = provider

    try:
        central = await Cluster.create(
            settings.pc_cluster_name,
            settings.pc_cluster_url,
            provider,
            ClusterRole.CENTRAL,
            verify_ssl=not settings.skip_tls_verify,
            timeout=settings.request_timeout_seconds,
        )
    except Exception:
        await provider.close()
        raise
    app.state.central = central

    routes = RouteTable()
    app.state.routes = routes

    scheduler = DiscoveryScheduler(central, provider, definitions, routes, settings)
    app.state.scheduler = scheduler
    await scheduler.run_cycle()

    discovery_task = asyncio.create_task(scheduler.run_periodic())
    app.state.discovery_task = discovery_task

    logger.info("Nutanix Exporter started successfully", routes=len(routes))

    yield

    # Shutdown
    logger.info("Shutting down Nutanix Exporter")
    scheduler.stop()
    discovery_task.cancel()
    try:
        await discovery_task
    except asyncio.CancelledError:
        pass

    for cluster in routes.clusters():
        await cluster.close()
    await central.close()
    await provider.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Nutanix Exporter",
        description="Prometheus metrics for Nutanix Prism Element clusters",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    if settings is not None:
        app.state.settings = settings

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(metrics.router, tags=["Metrics"])

    return app


app = create_app()


def run() -> None:
    """Console entry point."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.error("Invalid configuration", error=str(e))
        raise SystemExit(1) from e

    setup_logging(
        service_name=settings.app_name,
        environment=settings.environment.value,
        log_level=settings.log_level,
        log_format=settings.log_format,
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
