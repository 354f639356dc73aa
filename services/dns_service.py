"""
services/dns_service.py

Responsibility: Converges the A and AAAA record sets of one name with the
aggregated node addresses — one replace or delete per address family.
Does NOT: make HTTP calls directly, list nodes, parse addresses, or retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from exceptions import DnsProviderError, RecordNotFoundError
from providers.dns_provider import DNSProvider, RecordType
from services.address_service import AddressFamily, AggregatedAddresses

logger = logging.getLogger(__name__)

# Outcome values reported per family
UPSERTED = "upserted"
DELETED = "deleted"
ABSENT = "absent"
FAILED = "failed"


def normalize_fqdn(name: str) -> str:
    """
    Returns the name with exactly one trailing dot added when missing.

    Idempotent: normalize_fqdn(normalize_fqdn(x)) == normalize_fqdn(x).
    """
    if name.endswith("."):
        return name
    return name + "."


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordChange:
    """
    The single action planned for one address family.

    Attributes:
        family: Address family the change applies to.
        contents: Address texts to publish. Empty means delete the record set.
    """

    family: AddressFamily
    contents: tuple[str, ...]

    @property
    def record_type(self) -> RecordType:
        return RecordType.for_family(self.family)

    @property
    def is_delete(self) -> bool:
        return not self.contents


@dataclass(frozen=True)
class FamilyOutcome:
    """
    What happened to one record set during a reconcile.

    Attributes:
        family: Address family.
        record_type: "A" or "AAAA".
        action: UPSERTED, DELETED, ABSENT (delete of a missing record set)
            or FAILED.
        contents: Addresses written; empty for deletes.
        error: Provider error message when action is FAILED.
    """

    family: AddressFamily
    record_type: str
    action: str
    contents: tuple[str, ...] = ()
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.action == FAILED


@dataclass
class ReconcileResult:
    """Per-family outcomes of one reconcile, IPv4 first."""

    zone: str
    record: str
    outcomes: list[FamilyOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[FamilyOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    @property
    def ok(self) -> bool:
        return not self.failures


def plan_changes(aggregated: AggregatedAddresses) -> list[RecordChange]:
    """
    Builds exactly one RecordChange per address family, IPv4 first.

    Args:
        aggregated: The addresses for this cycle.

    Returns:
        Two changes; a family with no addresses gets a delete.
    """
    return [
        RecordChange(family=family, contents=tuple(aggregated.texts(family)))
        for family in (AddressFamily.IPV4, AddressFamily.IPV6)
    ]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class DnsService:
    """
    Drives a DNSProvider so that the record sets of one name match the
    aggregated addresses.

    Each family is handled in its own error boundary: a provider failure
    on the A record set never prevents the AAAA call and vice versa. No
    retries happen here; the next scheduled cycle is the retry.

    Collaborators:
        - DNSProvider: abstract interface satisfied by PowerDnsClient
    """

    def __init__(self, dns_provider: DNSProvider) -> None:
        """
        Initialises the service.

        Args:
            dns_provider: Any DNSProvider implementation (e.g. PowerDnsClient).
        """
        self._provider = dns_provider

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    async def reconcile(
        self,
        zone: str,
        record: str,
        ttl: int,
        aggregated: AggregatedAddresses,
    ) -> ReconcileResult:
        """
        Replaces or deletes the A and AAAA record sets for one name.

        Args:
            zone: Zone name; a trailing dot is added when missing.
            record: Record name; a trailing dot is added when missing.
            ttl: TTL in seconds for replaced record sets.
            aggregated: Desired addresses for this cycle.

        Returns:
            A ReconcileResult with one outcome per family. Failures are
            reported in the result, never raised.
        """
        zone = normalize_fqdn(zone)
        record = normalize_fqdn(record)
        result = ReconcileResult(zone=zone, record=record)

        for change in plan_changes(aggregated):
            result.outcomes.append(await self._apply(zone, record, ttl, change))

        return result

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _apply(self, zone: str, record: str, ttl: int, change: RecordChange) -> FamilyOutcome:
        rtype = change.record_type

        if change.is_delete:
            logger.info(
                "No %s addresses found, deleting %s record for %s",
                change.family.value,
                rtype.value,
                record,
            )
            try:
                await self._provider.delete_rrset(zone, record, rtype)
            except RecordNotFoundError:
                logger.info("%s record for %s does not exist (already deleted)", rtype.value, record)
                return FamilyOutcome(change.family, rtype.value, ABSENT)
            except DnsProviderError as exc:
                logger.error("Failed to delete %s record for %s: %s", rtype.value, record, exc)
                return FamilyOutcome(change.family, rtype.value, FAILED, error=str(exc))
            logger.info("Deleted %s record for %s", rtype.value, record)
            return FamilyOutcome(change.family, rtype.value, DELETED)

        logger.info(
            "Updating %s record for %s with %d %s address(es)",
            rtype.value,
            record,
            len(change.contents),
            change.family.value,
        )
        try:
            await self._provider.replace_rrset(zone, record, rtype, ttl, list(change.contents))
        except DnsProviderError as exc:
            logger.error("Failed to update %s record for %s: %s", rtype.value, record, exc)
            return FamilyOutcome(change.family, rtype.value, FAILED, change.contents, str(exc))
        logger.info("Successfully updated %s record for %s", rtype.value, record)
        return FamilyOutcome(change.family, rtype.value, UPSERTED, change.contents)
