"""
services/sync_service.py

Responsibility: Runs one reconciliation cycle (list nodes → aggregate
addresses → reconcile DNS) and the startup checks that must pass before the
first cycle.
Does NOT: schedule cycles, make HTTP calls directly, or keep address state
between cycles.
"""

from __future__ import annotations

import asyncio
import logging

from exceptions import DnsProviderError, KubernetesError, ReconcileError, StartupCheckError
from providers.dns_provider import DNSProvider
from services.address_service import AggregatedAddresses, aggregate_addresses
from services.dns_service import DnsService, ReconcileResult, normalize_fqdn
from services.kubernetes_service import KubernetesService
from services.status_service import StatusService

logger = logging.getLogger(__name__)


class SyncService:
    """
    Orchestrates a full reconciliation cycle.

    Cycles never overlap: run_cycle() holds an asyncio.Lock for its whole
    duration, and close() lets shutdown wait for an in-flight cycle
    instead of cutting a DNS call short.

    Collaborators:
        - KubernetesService: lists nodes and their external-IP annotations
        - DNSProvider: used directly for startup checks
        - DnsService: applies the per-family record changes
        - StatusService: records each cycle for the /status endpoint
    """

    def __init__(
        self,
        kubernetes_service: KubernetesService,
        dns_provider: DNSProvider,
        status_service: StatusService,
        zone: str,
        record: str,
        ttl: int,
    ) -> None:
        """
        Initialises the service with all required collaborators.

        Args:
            kubernetes_service: Source of node annotations.
            dns_provider: The DNS record store.
            status_service: Receives cycle results.
            zone: Target zone; normalized to FQDN.
            record: Target record name; normalized to FQDN.
            ttl: TTL in seconds for published record sets.
        """
        self._kubernetes = kubernetes_service
        self._provider = dns_provider
        self._dns = DnsService(dns_provider)
        self._status = status_service
        self._zone = normalize_fqdn(zone)
        self._record = normalize_fqdn(record)
        self._ttl = ttl
        self._lock = asyncio.Lock()
        self._closed = False

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    async def preflight(self) -> None:
        """
        Verifies both collaborators before the first cycle.

        Checks, in order: Kubernetes node access, PowerDNS API reachability,
        target zone exists.

        Raises:
            StartupCheckError: On the first failing check, naming it.
        """
        logger.info("Verifying Kubernetes permissions...")
        try:
            await self._kubernetes.verify_access()
        except KubernetesError as exc:
            raise StartupCheckError(
                "kubernetes-access",
                f"Failed to access Kubernetes nodes - check service account permissions: {exc}",
            ) from exc
        logger.info("Kubernetes permissions verified successfully")

        try:
            servers = await self._provider.list_servers()
        except DnsProviderError as exc:
            raise StartupCheckError(
                "powerdns-api",
                f"Failed to connect to PowerDNS API - check POWERDNS_URL and POWERDNS_API_KEY: {exc}",
            ) from exc
        logger.info("Connected to PowerDNS API, found %d server(s)", len(servers))

        try:
            await self._provider.get_zone(self._zone)
        except DnsProviderError as exc:
            raise StartupCheckError(
                "dns-zone",
                f"Failed to access DNS zone {self._zone} - check DNS_ZONE and POWERDNS_VHOST: {exc}",
            ) from exc
        logger.info("Successfully verified DNS zone: %s", self._zone)

    async def run_cycle(self) -> ReconcileResult:
        """
        Runs one full cycle against the current node state.

        Returns:
            The ReconcileResult when both families converged.

        Raises:
            KubernetesError: If nodes cannot be listed; DNS is left untouched.
            ReconcileError: If either family failed. Both families have been
                attempted by then.
        """
        async with self._lock:
            self._status.cycle_started()
            aggregated: AggregatedAddresses | None = None
            try:
                logger.info("Fetching external IP addresses from Kubernetes nodes...")
                nodes = await self._kubernetes.list_nodes()
                aggregated = aggregate_addresses(nodes)
                self._log_addresses(aggregated)

                logger.info("Updating DNS records for %s in zone %s...", self._record, self._zone)
                result = await self._dns.reconcile(self._zone, self._record, self._ttl, aggregated)
                if not result.ok:
                    raise ReconcileError(result)
            except ReconcileError as exc:
                self._status.cycle_finished(aggregated, exc.result, str(exc))
                raise
            except KubernetesError as exc:
                self._status.cycle_finished(None, None, str(exc))
                raise
            except Exception as exc:
                self._status.cycle_finished(aggregated, None, f"Unexpected error: {exc}")
                raise

            self._status.cycle_finished(aggregated, result)
            return result

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """
        Marks the service closed and waits for an in-flight cycle to finish.

        Callers must check closed before starting a new cycle.
        """
        self._closed = True
        async with self._lock:
            pass

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    @staticmethod
    def _log_addresses(aggregated: AggregatedAddresses) -> None:
        if aggregated.is_empty():
            logger.info("No external IP addresses found")
            return
        addresses = aggregated.all()
        logger.info("Found %d external IP address(es):", len(addresses))
        for address in addresses:
            logger.info("  %s (%s)", address.text, address.family.value)
