"""
services/status_service.py

Responsibility: Keeps in-memory counters and the outcome of the most recent
sync cycle for the /status endpoint.
Does NOT: persist anything, touch the DNS API, or decide what to publish.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from services.address_service import AggregatedAddresses
from services.dns_service import ReconcileResult


@dataclass
class SyncStatus:
    """Process-local view of the sync loop; reset on restart."""

    cycles_run: int = 0
    cycles_failed: int = 0
    last_started: datetime | None = None
    last_finished: datetime | None = None
    last_success: datetime | None = None
    last_error: str | None = None
    ipv4: list[str] = field(default_factory=list)
    ipv6: list[str] = field(default_factory=list)
    outcomes: dict[str, str] = field(default_factory=dict)


class StatusService:
    """
    Records the start and result of every sync cycle.

    Only ever touched from the event loop thread, so no locking is needed.
    """

    def __init__(self) -> None:
        self._status = SyncStatus()

    def cycle_started(self) -> None:
        self._status.cycles_run += 1
        self._status.last_started = _now()

    def cycle_finished(
        self,
        aggregated: AggregatedAddresses | None,
        result: ReconcileResult | None,
        error: str | None = None,
    ) -> None:
        """
        Stores the result of the cycle that is ending.

        Args:
            aggregated: Addresses computed this cycle, if node listing succeeded.
            result: Per-family outcomes, if reconciliation ran.
            error: Failure message; None when the cycle fully succeeded.
        """
        status = self._status
        status.last_finished = _now()
        if aggregated is not None:
            status.ipv4 = [a.text for a in aggregated.ipv4]
            status.ipv6 = [a.text for a in aggregated.ipv6]
        if result is not None:
            status.outcomes = {o.record_type: o.action for o in result.outcomes}

        if error is None:
            status.last_success = status.last_finished
            status.last_error = None
        else:
            status.cycles_failed += 1
            status.last_error = error

    def snapshot(self) -> dict[str, Any]:
        """Returns the current status as a JSON-ready dict."""
        status = self._status
        return {
            "cycles_run": status.cycles_run,
            "cycles_failed": status.cycles_failed,
            "last_started": _iso(status.last_started),
            "last_finished": _iso(status.last_finished),
            "last_success": _iso(status.last_success),
            "last_error": status.last_error,
            "addresses": {"ipv4": list(status.ipv4), "ipv6": list(status.ipv6)},
            "records": dict(status.outcomes),
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
