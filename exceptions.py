"""
exceptions.py

Responsibility: Defines all custom exception classes used across the application.
Does NOT: contain business logic, logging, or HTTP handling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from services.dns_service import ReconcileResult


class KubernetesError(Exception):
    """
    Raised by KubernetesService when nodes cannot be listed.

    Covers missing cluster credentials, an unreachable API server and any
    API error status. A 403 message includes the RBAC rule the service
    account needs.
    """


class DnsProviderError(Exception):
    """
    Raised by any DNSProvider implementation when a DNS API call fails.

    Includes a human-readable message describing the failure. Callers
    (typically DnsService) must catch this and report the affected family.
    """


class RecordNotFoundError(DnsProviderError):
    """
    Raised by a DNSProvider when a delete targets a record set that does
    not exist. DnsService treats this as already converged.
    """


class ConfigLoadError(Exception):
    """
    Raised by load_settings() when a required environment variable is
    missing or a value cannot be used.
    """


class StartupCheckError(Exception):
    """
    Raised by SyncService.preflight() when a startup verification fails.

    Attributes:
        check: Short name of the failed check, e.g. "kubernetes-access".
    """

    def __init__(self, check: str, message: str) -> None:
        super().__init__(message)
        self.check = check


class ReconcileError(Exception):
    """
    Raised by SyncService.run_cycle() when one or both address families
    could not be reconciled. Both families have been attempted by the time
    this is raised.

    Attributes:
        result: The ReconcileResult holding the per-family outcomes.
    """

    def __init__(self, result: ReconcileResult) -> None:
        failed = ", ".join(
            f"{outcome.record_type} ({outcome.error})" for outcome in result.failures
        )
        super().__init__(f"Failed to reconcile {failed}")
        self.result = result
