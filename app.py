"""
app.py

Responsibility: Process entry point. Builds the FastAPI app whose lifespan
verifies collaborators, runs the initial sync, and owns the sync scheduler.
Does NOT: contain DNS or address logic; that lives in services/.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from config import Settings, load_settings
from exceptions import ConfigLoadError, KubernetesError, ReconcileError, StartupCheckError
from logger import setup_logging
from providers.powerdns_client import PowerDnsClient
from routes.status_routes import router as status_router
from scheduler import create_scheduler, stop_scheduler
from services.kubernetes_service import KubernetesService
from services.status_service import StatusService
from services.sync_service import SyncService

logger = logging.getLogger(__name__)


def create_app(settings: Settings) -> FastAPI:
    """
    Builds the FastAPI application for the given settings.

    Args:
        settings: Validated runtime settings.

    Returns:
        The FastAPI app; collaborators are created when its lifespan starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as http_client:
            sync_service = SyncService(
                kubernetes_service=KubernetesService(
                    annotation_key=settings.annotation_key,
                    node_selector=settings.node_selector,
                    kubeconfig_path=settings.kubeconfig,
                ),
                dns_provider=PowerDnsClient(
                    http_client=http_client,
                    base_url=settings.powerdns_url,
                    api_key=settings.powerdns_api_key,
                    server_id=settings.powerdns_vhost,
                ),
                status_service=app.state.status_service,
                zone=settings.dns_zone,
                record=settings.dns_record,
                ttl=settings.dns_ttl,
            )

            await _start(sync_service)

            scheduler = create_scheduler(sync_service, settings.sync_interval)
            scheduler.start()
            try:
                yield
            finally:
                await stop_scheduler(scheduler, sync_service)

    app = FastAPI(title="k8s-external-ip-powerdns", lifespan=lifespan)
    app.state.build_info = settings.build
    app.state.status_service = StatusService()
    app.include_router(status_router)
    return app


async def _start(sync_service: SyncService) -> None:
    """
    Runs the startup checks and the initial sync. Any failure is fatal.

    Raises:
        StartupCheckError: Naming the check that failed.
    """
    try:
        await sync_service.preflight()
    except StartupCheckError as exc:
        logger.critical("Startup check '%s' failed: %s", exc.check, exc)
        raise

    logger.info("Performing initial DNS sync...")
    try:
        await sync_service.run_cycle()
    except (KubernetesError, ReconcileError) as exc:
        logger.critical("Initial sync failed: %s", exc)
        raise StartupCheckError("initial-sync", f"Initial sync failed: {exc}") from exc
    logger.info("Initial sync completed successfully")


def main() -> None:
    """
    Console entry point: loads settings, configures logging, and serves.

    Exits with status 1 on configuration errors. A failed startup check or
    initial sync aborts the lifespan, and uvicorn exits non-zero.
    """
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))
    logger.info("Starting k8s-external-ip-powerdns sync service...")

    try:
        settings = load_settings()
    except ConfigLoadError as exc:
        logger.critical("Failed to load configuration: %s", exc)
        sys.exit(1)

    setup_logging(settings.log_level)
    build = settings.build
    logger.info("Version: %s, Commit: %s, Build Date: %s", build.version, build.commit, build.build_date)
    logger.info("Configuration loaded:")
    for line in settings.describe():
        logger.info("  %s", line)

    uvicorn.run(
        create_app(settings),
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
        lifespan="on",
    )


if __name__ == "__main__":
    main()
