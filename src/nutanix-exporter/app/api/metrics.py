"""Per-cluster scrape endpoints and the route index page."""

from __future__ import annotations

import html

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST

from shared.observability import ScrapeContext, get_logger

from ..services import metrics_route

logger = get_logger(__name__)

router = APIRouter()

SCRAPE_TIMEOUT_HEADER = "X-Prometheus-Scrape-Timeout-Seconds"

INDEX_TEMPLATE = """<html>
<head><title>Nutanix Exporter</title></head>
<body>
<h1>Nutanix Exporter</h1>
<ul>
{links}
</ul>
</body>
</html>
"""


def scrape_timeout(request: Request) -> float:
    """Scrape deadline from the Prometheus header, or the configured default."""
    default = request.app.state.settings.scrape_timeout_seconds
    header = request.headers.get(SCRAPE_TIMEOUT_HEADER)
    if header is None:
        return default

    try:
        timeout = float(header)
    except ValueError:
        logger.debug("Ignoring invalid scrape timeout header", value=header)
        return default
    return timeout if timeout > 0 else default


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(request: Request) -> HTMLResponse:
    """List every registered metrics route."""
    links = "\n".join(
        f'<li><a href="{html.escape(route)}">{html.escape(route)}</a></li>'
        for route in request.app.state.routes.routes()
    )
    return HTMLResponse(INDEX_TEMPLATE.format(links=links))


@router.get("/metrics/{cluster_name}")
async def scrape_cluster(request: Request, cluster_name: str) -> Response:
    """Collect and expose the metrics of one element cluster."""
    route = metrics_route(cluster_name)
    cluster = request.app.state.routes.get(route)
    if cluster is None:
        raise HTTPException(status_code=404, detail=f"No metrics route for {cluster_name}")

    async with ScrapeContext(cluster=cluster_name, route=route):
        logger.debug("Scrape started")
        body = await cluster.scrape(request.app.state.provider, scrape_timeout(request))

    return Response(content=body, media_type=CONTENT_TYPE_LATEST)
