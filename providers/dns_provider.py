"""
providers/dns_provider.py

Responsibility: Defines the DNSProvider Protocol and the RecordType value object.
Does NOT: make HTTP calls or implement any provider logic.
"""

from __future__ import annotations

import enum
from typing import Any, Protocol, runtime_checkable

from services.address_service import AddressFamily


# ---------------------------------------------------------------------------
# Value object — record type per address family
# ---------------------------------------------------------------------------


class RecordType(str, enum.Enum):
    """Address record types managed by this application."""

    A = "A"
    AAAA = "AAAA"

    @classmethod
    def for_family(cls, family: AddressFamily) -> RecordType:
        """
        Maps an address family to its record type.

        Args:
            family: IPV4 or IPV6.

        Returns:
            RecordType.A for IPV4, RecordType.AAAA for IPV6.
        """
        return cls.A if family is AddressFamily.IPV4 else cls.AAAA


# ---------------------------------------------------------------------------
# Abstract interface — all DNS providers must implement this contract
# ---------------------------------------------------------------------------


@runtime_checkable
class DNSProvider(Protocol):
    """
    Abstract protocol for the authoritative DNS record store.

    DnsService and SyncService depend on this abstraction, never on a
    concrete implementation. Every write is idempotent: repeating an
    identical replace or delete leaves the store in the same state.
    """

    async def list_servers(self) -> list[dict[str, Any]]:
        """
        Returns the servers exposed by the DNS API.

        Used at startup to prove the API is reachable and the key is valid.

        Raises:
            DnsProviderError: If the API call fails.
        """
        ...

    async def get_zone(self, zone: str) -> dict[str, Any]:
        """
        Fetches a zone by its fully-qualified name.

        Args:
            zone: Zone name with trailing dot, e.g. "example.com.".

        Returns:
            The zone object as returned by the API.

        Raises:
            DnsProviderError: If the zone does not exist or the call fails.
        """
        ...

    async def replace_rrset(
        self,
        zone: str,
        name: str,
        record_type: RecordType,
        ttl: int,
        contents: list[str],
    ) -> None:
        """
        Creates or replaces a whole record set in one call.

        Args:
            zone: Zone name with trailing dot.
            name: Record name with trailing dot.
            record_type: A or AAAA.
            ttl: TTL in seconds.
            contents: Every address the record set should hold.

        Raises:
            DnsProviderError: If the API call fails.
        """
        ...

    async def delete_rrset(self, zone: str, name: str, record_type: RecordType) -> None:
        """
        Deletes a record set.

        Args:
            zone: Zone name with trailing dot.
            name: Record name with trailing dot.
            record_type: A or AAAA.

        Raises:
            RecordNotFoundError: If the record set does not exist.
            DnsProviderError: If the API call fails for any other reason.
        """
        ...
