"""
services/address_service.py

Responsibility: Parses external-IP annotation values into typed addresses and
merges them across nodes into one deduplicated, deterministically ordered,
family-partitioned result.
Does NOT: talk to Kubernetes, call the DNS API, or keep state between cycles.
"""

from __future__ import annotations

import enum
import ipaddress
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from services.kubernetes_service import NodeAnnotationSet

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class AddressFamily(str, enum.Enum):
    """Address family of a parsed address."""

    IPV4 = "IPv4"
    IPV6 = "IPv6"


@dataclass(frozen=True)
class Address:
    """
    A single validated network address.

    The family is fixed when the token is parsed: only dotted-decimal
    IPv4 text produces IPV4. Every other valid form, including IPv4-mapped
    literals such as "::ffff:10.0.0.1", is IPV6.

    Attributes:
        text: The token exactly as validated (after trimming). Used as the
            dedup and sort key, and published to DNS as-is.
        packed: Binary form, 4 bytes for IPV4 and 16 bytes for IPV6.
        family: IPV4 or IPV6.
    """

    text: str
    packed: bytes
    family: AddressFamily

    @classmethod
    def parse(cls, token: str) -> Address:
        """
        Validates a single trimmed token.

        Args:
            token: Candidate address text, e.g. "10.0.0.1" or "2001:db8::1".

        Returns:
            The parsed Address.

        Raises:
            ValueError: If the token is not a valid IPv4 or IPv6 literal.
                Scoped literals ("fe80::1%eth0") are rejected as well.
        """
        ip = ipaddress.ip_address(token)
        if isinstance(ip, ipaddress.IPv4Address):
            return cls(text=token, packed=ip.packed, family=AddressFamily.IPV4)
        if ip.scope_id is not None:
            raise ValueError(f"scoped IPv6 address not allowed: {token!r}")
        return cls(text=token, packed=ip.packed, family=AddressFamily.IPV6)

    @property
    def is_ipv6(self) -> bool:
        return self.family is AddressFamily.IPV6


@dataclass(frozen=True)
class AggregatedAddresses:
    """
    Desired address state for one reconciliation cycle.

    Both sequences are deduplicated by text and sorted ascending by text.
    Either may be empty, meaning no address of that family exists.
    """

    ipv4: tuple[Address, ...] = ()
    ipv6: tuple[Address, ...] = ()

    def for_family(self, family: AddressFamily) -> tuple[Address, ...]:
        return self.ipv4 if family is AddressFamily.IPV4 else self.ipv6

    def texts(self, family: AddressFamily) -> list[str]:
        """Returns the textual forms for one family, in order."""
        return [address.text for address in self.for_family(family)]

    def all(self) -> tuple[Address, ...]:
        """Returns IPv4 addresses followed by IPv6 addresses."""
        return self.ipv4 + self.ipv6

    def is_empty(self) -> bool:
        return not self.ipv4 and not self.ipv6


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def parse_addresses(raw: str | None, node_name: str | None = None) -> list[Address]:
    """
    Parses a comma-separated annotation value into addresses.

    Tokens are trimmed; empty tokens are skipped silently. Tokens that are
    not valid addresses are skipped with a warning, so one bad value never
    aborts the cycle.

    Args:
        raw: The annotation value. None and "" yield an empty list.
        node_name: Node the value came from; only used in log messages.

    Returns:
        The valid addresses in the order they appear in the value.
    """
    if not raw:
        return []

    addresses: list[Address] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            addresses.append(Address.parse(token))
        except ValueError:
            if node_name:
                logger.warning("Invalid IP address format on node %s: %r", node_name, token)
            else:
                logger.warning("Invalid IP address format: %r", token)
    return addresses


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def aggregate_addresses(nodes: Iterable[NodeAnnotationSet]) -> AggregatedAddresses:
    """
    Merges the external IPs of all nodes into one AggregatedAddresses.

    Duplicates are collapsed by textual form; the first node seen is kept
    for log attribution only, so the surviving set does not depend on node
    order. Each family is sorted lexicographically by text.

    Args:
        nodes: Node snapshots for the current cycle.

    Returns:
        The deduplicated, sorted, family-partitioned addresses. Never raises.
    """
    seen: dict[str, tuple[Address, str]] = {}

    for node in nodes:
        if not node.external_ips:
            logger.info("Node %s does not have an external IP annotation", node.name)
            continue

        logger.info("Found external IPs for node %s: %s", node.name, node.external_ips)
        for address in parse_addresses(node.external_ips, node_name=node.name):
            first = seen.get(address.text)
            if first is not None:
                logger.debug(
                    "Address %s on node %s already reported by node %s",
                    address.text,
                    node.name,
                    first[1],
                )
                continue
            seen[address.text] = (address, node.name)

    unique = [address for address, _ in seen.values()]
    ipv4 = sorted((a for a in unique if a.family is AddressFamily.IPV4), key=lambda a: a.text)
    ipv6 = sorted((a for a in unique if a.family is AddressFamily.IPV6), key=lambda a: a.text)
    return AggregatedAddresses(ipv4=tuple(ipv4), ipv6=tuple(ipv6))
