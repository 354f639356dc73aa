"""
providers/powerdns_client.py

Responsibility: Implements the DNSProvider protocol using the PowerDNS
Authoritative HTTP API (v1). All PowerDNS HTTP calls are concentrated here —
no other file may call the PowerDNS API directly.
Does NOT: read configuration, decide which records to write, or schedule work.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from exceptions import DnsProviderError, RecordNotFoundError
from providers.dns_provider import RecordType

logger = logging.getLogger(__name__)

_API_PREFIX = "/api/v1"


class PowerDnsClient:
    """
    Implements DNSProvider for the PowerDNS Authoritative HTTP API.

    All outbound requests go through the injected httpx.AsyncClient,
    making this class fully testable without real network calls (use respx.mock).

    Collaborators:
        - httpx.AsyncClient: injected HTTP client; must be kept alive externally
        - DNSProvider: this class satisfies the protocol contract
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        server_id: str = "localhost",
    ) -> None:
        """
        Initialises the client.

        Args:
            http_client: A long-lived httpx.AsyncClient instance.
            base_url: PowerDNS API root, e.g. "http://powerdns-api:8081".
                "/api/v1" is appended unless already present.
            api_key: Value sent in the X-API-Key header.
            server_id: PowerDNS server (virtual host) id, usually "localhost".
        """
        self._client = http_client
        root = base_url.rstrip("/")
        if not root.endswith(_API_PREFIX):
            root += _API_PREFIX
        self._base = root
        self._server_id = server_id
        self._headers = {
            "X-API-Key": api_key,
            "Accept": "application/json",
        }

    # ---------------------------------------------------------------------------
    # DNSProvider implementation
    # ---------------------------------------------------------------------------

    async def list_servers(self) -> list[dict[str, Any]]:
        """
        Returns the servers known to the PowerDNS API.

        Raises:
            DnsProviderError: If the API returns an error.
        """
        url = f"{self._base}/servers"
        logger.debug("GET %s", url)
        response = await self._request("GET", url)
        return _json_body(response, "GET", url)

    async def get_zone(self, zone: str) -> dict[str, Any]:
        """
        Fetches a zone by name.

        Args:
            zone: Zone name with trailing dot.

        Returns:
            The zone object, including its rrsets.

        Raises:
            DnsProviderError: If the zone does not exist or the API returns an error.
        """
        url = self._zone_url(zone)
        logger.debug("GET %s", url)
        response = await self._request("GET", url)
        return _json_body(response, "GET", url)

    async def replace_rrset(
        self,
        zone: str,
        name: str,
        record_type: RecordType,
        ttl: int,
        contents: list[str],
    ) -> None:
        """
        Creates or replaces an rrset with a single PATCH (changetype REPLACE).

        Args:
            zone: Zone name with trailing dot.
            name: Record name with trailing dot.
            record_type: A or AAAA.
            ttl: TTL in seconds.
            contents: Every address the rrset should hold.

        Raises:
            DnsProviderError: If the API returns an error.
        """
        rrset: dict[str, Any] = {
            "name": name,
            "type": record_type.value,
            "ttl": ttl,
            "changetype": "REPLACE",
            "records": [{"content": content, "disabled": False} for content in contents],
        }
        url = self._zone_url(zone)
        logger.debug("PATCH %s rrset=%s", url, rrset)
        await self._request("PATCH", url, json={"rrsets": [rrset]})

    async def delete_rrset(self, zone: str, name: str, record_type: RecordType) -> None:
        """
        Deletes an rrset with a single PATCH (changetype DELETE).

        Args:
            zone: Zone name with trailing dot.
            name: Record name with trailing dot.
            record_type: A or AAAA.

        Raises:
            RecordNotFoundError: If PowerDNS reports the rrset as not found.
            DnsProviderError: If the API returns any other error.
        """
        rrset = {
            "name": name,
            "type": record_type.value,
            "changetype": "DELETE",
        }
        url = self._zone_url(zone)
        logger.debug("PATCH %s rrset=%s", url, rrset)
        try:
            await self._request("PATCH", url, json={"rrsets": [rrset]})
        except _StatusError as exc:
            if exc.status_code == 404 or "not found" in exc.detail.lower():
                raise RecordNotFoundError(
                    f"{record_type.value} record {name} not found in zone {zone}"
                ) from exc
            raise

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    def _zone_url(self, zone: str) -> str:
        return f"{self._base}/servers/{self._server_id}/zones/{zone}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Sends an authenticated HTTP request to the PowerDNS API.

        Args:
            method: HTTP verb ("GET", "PATCH").
            url: Full URL of the PowerDNS API endpoint.
            json: Optional JSON request body.

        Returns:
            The successful httpx.Response.

        Raises:
            DnsProviderError: If the HTTP call fails or returns a non-2xx
                status. Status failures are raised as _StatusError so
                delete_rrset can recognise "not found".
        """
        try:
            response = await self._client.request(method, url, headers=self._headers, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(exc.response)
            raise _StatusError(
                exc.response.status_code,
                detail,
                f"PowerDNS API error {exc.response.status_code} for {method} {url}: {detail}",
            ) from exc
        except httpx.RequestError as exc:
            raise DnsProviderError(
                f"Network error calling PowerDNS API ({method} {url}): {exc}"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DnsProviderError(
                f"PowerDNS API request failed ({method} {url}): {exc}"
            ) from exc
        return response


class _StatusError(DnsProviderError):
    """DnsProviderError carrying the HTTP status and PowerDNS error text."""

    def __init__(self, status_code: int, detail: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def _json_body(response: httpx.Response, method: str, url: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise DnsProviderError(
            f"PowerDNS API returned a non-JSON body for {method} {url}"
        ) from exc


def _error_detail(response: httpx.Response) -> str:
    # NOTE: PowerDNS error bodies look like {"error": "..."}; proxies in front
    # of it may answer with plain text instead.
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return response.text
