"""Range Config server - hands out instance configuration by MAC address.

Endpoints:
- GET /config?mac=XX:XX:XX:XX:XX:XX  configuration for the owning instance
- POST /reload                       re-read the inventory file
- GET /status                        inventory size and idle time
- GET /health, GET /metrics

The server shuts itself down after ``settings.idle_timeout`` seconds without
requests, draining in-flight requests for ``settings.shutdown_grace_period``.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import traceback
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from rangeconfig.config import load_server_config, parse_listen, settings
from rangeconfig.errors import InstanceNotFoundError, InvalidMacError, InventoryLoadError
from rangeconfig.logging_config import correlation_id_var, generate_correlation_id, setup_logging
from rangeconfig.metrics import get_metrics
from rangeconfig.schemas import ConfigurationResponse, HealthResponse, ReloadResponse, StatusResponse
from rangeconfig.server.activity import IdleMonitor
from rangeconfig.server.service import ConfigService
from rangeconfig.version import __version__, get_commit

logger = logging.getLogger(__name__)

# Configuration service (lazy initialized)
_service: ConfigService | None = None

# Running uvicorn server, set by main() so the idle monitor can stop it
_uvicorn_server: uvicorn.Server | None = None


def get_service() -> ConfigService:
    """Lazy-initialize the configuration service."""
    global _service
    if _service is None:
        _service = ConfigService(settings.instances_file)
    return _service


def reset_service() -> None:
    """Drop the service singleton (mainly for testing)."""
    global _service
    _service = None


def request_shutdown() -> None:
    """Ask the running uvicorn server to exit gracefully.

    Without a handle from main() (app served by the uvicorn CLI), SIGTERM
    triggers the same graceful shutdown through uvicorn's signal handler.
    """
    if _uvicorn_server is None:
        logger.info("No server handle registered, sending SIGTERM to self")
        os.kill(os.getpid(), signal.SIGTERM)
        return
    _uvicorn_server.should_exit = True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the inventory on startup and run the idle monitor."""
    service = get_service()
    service.load()

    monitor: IdleMonitor | None = None
    if settings.idle_timeout > 0:
        monitor = IdleMonitor(service.tracker, settings.idle_timeout, request_shutdown)
        await monitor.start(interval=settings.idle_check_interval)

    logger.info(f"Instances file: {service.store.path}")
    logger.info("Endpoints: GET /config?mac=XX:XX:XX:XX:XX:XX, POST /reload, GET /status")

    yield

    if monitor:
        monitor.stop()
    logger.info("Server stopped")


app = FastAPI(
    title="Range Config Server",
    version=__version__,
    lifespan=lifespan,
)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propagate or generate X-Correlation-ID for request tracing."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            correlation_id_var.reset(token)


app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(InvalidMacError)
async def invalid_mac_handler(request: Request, exc: InvalidMacError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(InstanceNotFoundError)
async def not_found_handler(request: Request, exc: InstanceNotFoundError) -> Response:
    return Response(status_code=404)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unhandled exceptions with context and return a structured 500."""
    correlation_id = correlation_id_var.get()
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"Unhandled exception in request handler:\n"
        f"Correlation ID: {correlation_id}\n"
        f"Request: {request.method} {request.url.path}\n"
        f"Exception type: {type(exc).__name__}\n"
        f"Full traceback:\n{tb_str}"
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": type(exc).__name__,
            "correlation_id": correlation_id,
        },
    )


# --- Configuration endpoints ---

@app.get("/config", response_model=ConfigurationResponse)
def get_config(mac: str | None = Query(default=None)) -> ConfigurationResponse:
    """Return hostname and network configuration for the instance owning ``mac``."""
    return get_service().resolve(mac or "")


@app.post("/reload", response_model=ReloadResponse)
def reload_instances():
    """Re-read the inventory file. The previous inventory is kept on failure."""
    try:
        count = get_service().reload()
    except InventoryLoadError as e:
        return JSONResponse(
            status_code=500,
            content={"detail": "Failed to reload", "error": e.message},
        )
    return ReloadResponse(instances=count, message=f"Reloaded {count} instances")


@app.get("/status", response_model=StatusResponse)
def status() -> StatusResponse:
    return get_service().status()


# --- Health Endpoints ---

@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Basic health check. Does not count as activity."""
    return HealthResponse(version=__version__, commit=get_commit())


@app.get("/metrics")
def metrics_endpoint() -> Response:
    body, content_type = get_metrics()
    return Response(content=body, media_type=content_type)


# --- Entry point ---

def main(argv: list[str] | None = None) -> None:
    global _uvicorn_server

    parser = argparse.ArgumentParser(description="Range Config configuration server.")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML configuration file")
    parser.add_argument("--instances", default="", help="Path to instances JSON file (overrides config)")
    parser.add_argument("--listen", default="", help="Listen address, e.g. :8080 (overrides config)")
    parser.add_argument(
        "--idle-timeout",
        type=float,
        default=None,
        help="Shutdown after this many seconds of inactivity (0 to disable)",
    )
    args = parser.parse_args(argv)

    setup_logging("server")
    load_server_config(args.config)
    if args.instances:
        settings.instances_file = args.instances
    if args.listen:
        settings.server_host, settings.server_port = parse_listen(args.listen)
    if args.idle_timeout is not None:
        settings.idle_timeout = args.idle_timeout

    if not settings.instances_file:
        logger.error("No instances file specified")
        sys.exit(1)

    logger.info(f"Starting server on {settings.server_host}:{settings.server_port}")
    config = uvicorn.Config(
        app,
        host=settings.server_host,
        port=settings.server_port,
        timeout_graceful_shutdown=settings.shutdown_grace_period,
        log_config=None,
    )
    _uvicorn_server = uvicorn.Server(config)
    _uvicorn_server.run()

    if not _uvicorn_server.started:
        # Lifespan startup failed, e.g. unreadable inventory
        sys.exit(1)


if __name__ == "__main__":
    main()
