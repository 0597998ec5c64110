"""
FastAPI Web Server for webtop.

Provides the polled REST API consumed by the dashboard:
- Host metrics snapshot (re-sampled on every request)
- Environment variable inspection
- Client polling options
- Health check
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uvicorn

from .. import __version__
from ..collectors.environment import EnvironmentInspector
from ..core.aggregator import CollectionError, MetricsAggregator
from ..core.config import Config


logger = logging.getLogger(__name__)

# Global state (will be initialized in lifespan)
config: Optional[Config] = None
aggregator: Optional[MetricsAggregator] = None
inspector: Optional[EnvironmentInspector] = None

router = APIRouter()


# Pydantic models for API
class CpuUsageInfo(BaseModel):
    core: int
    usage: int
    user: int
    system: int
    idle: int


class ProcessEntry(BaseModel):
    pid: int
    user: str
    cpu: float
    mem: float
    vsz: str
    rss: str
    tty: str
    stat: str
    start: str
    time: str
    command: str


class SystemMetricsResponse(BaseModel):
    hostname: str
    platform: str
    arch: str
    uptime: float
    loadAvg: List[float]
    cpuCount: int
    cpuModel: str
    cpuUsage: List[CpuUsageInfo]
    totalMem: int
    freeMem: int
    usedMem: int
    memPercent: int
    memStrategy: str
    processes: List[ProcessEntry]
    processCount: int
    timestamp: int


class EnvVariableInfo(BaseModel):
    name: str
    value: str


class EnvironmentResponse(BaseModel):
    variables: List[EnvVariableInfo]
    count: int
    redacted: bool


class PollingOptions(BaseModel):
    defaultIntervalMs: int
    intervalsMs: List[int]
    processLimit: int


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global config, aggregator, inspector

    # Startup
    logger.info("Starting web server...")

    if config is None:
        config = Config()

    if aggregator is None:
        aggregator = MetricsAggregator(config=config.collection)

    if inspector is None:
        inspector = EnvironmentInspector(config.environment)

    logger.info(
        f"Collecting with process limit {config.collection.process_limit}, "
        f"command timeout {config.collection.command_timeout_seconds}s, "
        f"parallel={config.collection.parallel}"
    )

    yield

    # Shutdown
    logger.info("Shutting down web server...")
    if aggregator:
        aggregator.close()
        aggregator = None


def create_app(app_config: Optional[Config] = None) -> FastAPI:
    """Create the FastAPI application."""
    cors = (app_config or config or Config()).cors

    application = FastAPI(
        title="webtop",
        description="Host metrics for the webtop dashboard",
        version=__version__,
        lifespan=lifespan,
    )

    # Add CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    application.include_router(router)
    return application


# API Endpoints

@router.get("/api/metrics")
async def get_metrics() -> SystemMetricsResponse:
    """Sample the host and return a fresh metrics snapshot."""
    try:
        metrics = await aggregator.collect_async()
    except CollectionError as e:
        logger.error(f"Metrics collection failed: {e}")
        raise HTTPException(status_code=503, detail=f"Metrics unavailable: {e}")

    return SystemMetricsResponse(**metrics.to_dict())


@router.get("/api/environment")
async def get_environment() -> EnvironmentResponse:
    """List the server's environment variables."""
    if not config.environment.enabled:
        raise HTTPException(status_code=404, detail="Environment inspection disabled")

    variables = inspector.variables()
    return EnvironmentResponse(
        variables=[EnvVariableInfo(**v.to_dict()) for v in variables],
        count=len(variables),
        redacted=config.environment.redact,
    )


@router.get("/api/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


@router.get("/api/config")
async def get_polling_options() -> PollingOptions:
    """Get refresh options for the dashboard client."""
    return PollingOptions(
        defaultIntervalMs=config.polling.default_interval_ms,
        intervalsMs=config.polling.intervals_ms,
        processLimit=config.collection.process_limit,
    )


app = create_app()


def start_web_server(
    host: str = "0.0.0.0",
    port: int = 3001,
    app_config: Optional[Config] = None,
):
    """Start the web server."""
    global config, app

    if app_config:
        config = app_config
        app = create_app(app_config)

    logger.info(f"Starting web server on http://{host}:{port}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=config.logging.level.lower() if config else "info",
    )
