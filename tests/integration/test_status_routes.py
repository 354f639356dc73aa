"""
tests/integration/test_status_routes.py

Integration tests for routes/status_routes.py.
Mounts the router on a bare FastAPI app with hand-populated app.state, so no
lifespan, scheduler, or external collaborator is involved.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from config import BuildInfo
from routes.status_routes import router
from services.address_service import AddressFamily, aggregate_addresses
from services.dns_service import DELETED, UPSERTED, FamilyOutcome, ReconcileResult
from services.kubernetes_service import NodeAnnotationSet
from services.status_service import StatusService


@pytest.fixture()
def status_service() -> StatusService:
    return StatusService()


@pytest.fixture()
def client(status_service):
    app = FastAPI()
    app.state.build_info = BuildInfo(version="1.2.3", commit="abc1234", build_date="2026-01-01")
    app.state.status_service = status_service
    app.include_router(router)
    with TestClient(app) as test_client:
        yield test_client


def test_health_endpoint_returns_ok(client):
    """GET /health must return {"status": "ok"} with HTTP 200."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_status_reports_build_info(client):
    body = client.get("/status").json()
    assert body["build"] == {"version": "1.2.3", "commit": "abc1234", "build_date": "2026-01-01"}
    assert body["sync"]["cycles_run"] == 0


def test_status_reflects_last_cycle(client, status_service):
    """GET /status must show the addresses and record actions of the last cycle."""
    aggregated = aggregate_addresses([NodeAnnotationSet("n1", "10.0.0.2,10.0.0.1")])
    status_service.cycle_started()
    status_service.cycle_finished(
        aggregated,
        ReconcileResult(
            zone="example.com.",
            record="cluster.example.com.",
            outcomes=[
                FamilyOutcome(AddressFamily.IPV4, "A", UPSERTED, ("10.0.0.1", "10.0.0.2")),
                FamilyOutcome(AddressFamily.IPV6, "AAAA", DELETED),
            ],
        ),
    )

    sync = client.get("/status").json()["sync"]

    assert sync["cycles_run"] == 1
    assert sync["addresses"] == {"ipv4": ["10.0.0.1", "10.0.0.2"], "ipv6": []}
    assert sync["records"] == {"A": "upserted", "AAAA": "deleted"}
    assert sync["last_error"] is None
