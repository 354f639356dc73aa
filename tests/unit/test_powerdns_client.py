"""
tests/unit/test_powerdns_client.py

Unit tests for providers/powerdns_client.py.
All PowerDNS API calls are intercepted by respx — no real network traffic.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from exceptions import DnsProviderError, RecordNotFoundError
from providers.dns_provider import DNSProvider, RecordType
from providers.powerdns_client import PowerDnsClient
from services.address_service import aggregate_addresses
from services.dns_service import FAILED, DnsService
from services.kubernetes_service import NodeAnnotationSet

_BASE = "http://pdns.test:8081/api/v1"
_ZONE = "example.com."
_RECORD = "cluster.example.com."
_ZONE_URL = f"{_BASE}/servers/localhost/zones/{_ZONE}"


def _client(http_client: httpx.AsyncClient, base_url: str = "http://pdns.test:8081") -> PowerDnsClient:
    return PowerDnsClient(http_client, base_url, api_key="secret")


async def test_client_satisfies_protocol(http_client):
    assert isinstance(_client(http_client), DNSProvider)


# ---------------------------------------------------------------------------
# list_servers / get_zone
# ---------------------------------------------------------------------------


async def test_list_servers_sends_api_key(mock_http, http_client):
    route = mock_http.get(f"{_BASE}/servers").mock(
        return_value=httpx.Response(200, json=[{"id": "localhost"}])
    )

    servers = await _client(http_client).list_servers()

    assert servers == [{"id": "localhost"}]
    assert route.calls.last.request.headers["X-API-Key"] == "secret"


async def test_base_url_with_api_prefix_is_not_doubled(mock_http, http_client):
    mock_http.get(f"{_BASE}/servers").mock(return_value=httpx.Response(200, json=[]))

    servers = await _client(http_client, base_url="http://pdns.test:8081/api/v1/").list_servers()

    assert servers == []


async def test_list_servers_raises_on_unauthorized(mock_http, http_client):
    mock_http.get(f"{_BASE}/servers").mock(
        return_value=httpx.Response(401, text="Unauthorized")
    )

    with pytest.raises(DnsProviderError, match="401"):
        await _client(http_client).list_servers()


async def test_list_servers_raises_on_network_error(mock_http, http_client):
    mock_http.get(f"{_BASE}/servers").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(DnsProviderError, match="Network error"):
        await _client(http_client).list_servers()


async def test_list_servers_raises_on_non_json_body(mock_http, http_client):
    mock_http.get(f"{_BASE}/servers").mock(return_value=httpx.Response(200, text="<html>"))

    with pytest.raises(DnsProviderError, match="non-JSON"):
        await _client(http_client).list_servers()


async def test_get_zone_returns_zone(mock_http, http_client):
    mock_http.get(_ZONE_URL).mock(
        return_value=httpx.Response(200, json={"id": _ZONE, "name": _ZONE, "rrsets": []})
    )

    zone = await _client(http_client).get_zone(_ZONE)

    assert zone["name"] == _ZONE


async def test_get_zone_raises_when_missing(mock_http, http_client):
    mock_http.get(_ZONE_URL).mock(
        return_value=httpx.Response(404, json={"error": "Could not find domain 'example.com.'"})
    )

    with pytest.raises(DnsProviderError, match="Could not find domain"):
        await _client(http_client).get_zone(_ZONE)


async def test_custom_server_id_is_used_in_zone_url(mock_http, http_client):
    route = mock_http.get(f"{_BASE}/servers/pdns-1/zones/{_ZONE}").mock(
        return_value=httpx.Response(200, json={"name": _ZONE})
    )

    client = PowerDnsClient(http_client, "http://pdns.test:8081", api_key="secret", server_id="pdns-1")
    await client.get_zone(_ZONE)

    assert route.called


# ---------------------------------------------------------------------------
# replace_rrset
# ---------------------------------------------------------------------------


async def test_replace_rrset_sends_single_replace(mock_http, http_client):
    route = mock_http.patch(_ZONE_URL).mock(return_value=httpx.Response(204))

    await _client(http_client).replace_rrset(
        _ZONE, _RECORD, RecordType.A, 300, ["10.0.0.1", "192.168.1.1"]
    )

    body = json.loads(route.calls.last.request.content)
    assert body == {
        "rrsets": [
            {
                "name": _RECORD,
                "type": "A",
                "ttl": 300,
                "changetype": "REPLACE",
                "records": [
                    {"content": "10.0.0.1", "disabled": False},
                    {"content": "192.168.1.1", "disabled": False},
                ],
            }
        ]
    }


async def test_replace_rrset_raises_on_server_error(mock_http, http_client):
    mock_http.patch(_ZONE_URL).mock(
        return_value=httpx.Response(422, json={"error": "RRset cluster.example.com. IN AAAA: bad content"})
    )

    with pytest.raises(DnsProviderError, match="422"):
        await _client(http_client).replace_rrset(_ZONE, _RECORD, RecordType.AAAA, 300, ["bogus"])


# ---------------------------------------------------------------------------
# delete_rrset
# ---------------------------------------------------------------------------


async def test_delete_rrset_sends_delete_changetype(mock_http, http_client):
    route = mock_http.patch(_ZONE_URL).mock(return_value=httpx.Response(204))

    await _client(http_client).delete_rrset(_ZONE, _RECORD, RecordType.AAAA)

    body = json.loads(route.calls.last.request.content)
    assert body == {"rrsets": [{"name": _RECORD, "type": "AAAA", "changetype": "DELETE"}]}


async def test_delete_rrset_404_raises_record_not_found(mock_http, http_client):
    mock_http.patch(_ZONE_URL).mock(return_value=httpx.Response(404, text="Not Found"))

    with pytest.raises(RecordNotFoundError):
        await _client(http_client).delete_rrset(_ZONE, _RECORD, RecordType.A)


async def test_delete_rrset_not_found_message_raises_record_not_found(mock_http, http_client):
    mock_http.patch(_ZONE_URL).mock(
        return_value=httpx.Response(422, json={"error": "RRset not found"})
    )

    with pytest.raises(RecordNotFoundError):
        await _client(http_client).delete_rrset(_ZONE, _RECORD, RecordType.A)


async def test_delete_rrset_other_errors_are_not_record_not_found(mock_http, http_client):
    mock_http.patch(_ZONE_URL).mock(return_value=httpx.Response(500, text="Internal Server Error"))

    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client).delete_rrset(_ZONE, _RECORD, RecordType.A)

    assert not isinstance(exc_info.value, RecordNotFoundError)


# ---------------------------------------------------------------------------
# Non-network httpx failures
# ---------------------------------------------------------------------------


def _failing_http_client(error: Exception) -> AsyncMock:
    http_client = AsyncMock(spec=httpx.AsyncClient)
    http_client.request.side_effect = error
    return http_client


@pytest.mark.parametrize(
    "error",
    [httpx.InvalidURL("Invalid port: 'abc'"), httpx.DecodingError("bad gzip")],
)
async def test_other_httpx_errors_raise_dns_provider_error(error):
    client = _client(_failing_http_client(error))

    with pytest.raises(DnsProviderError, match="request failed|Network error"):
        await client.replace_rrset(_ZONE, _RECORD, RecordType.A, 300, ["10.0.0.1"])


async def test_invalid_url_stays_inside_family_error_boundary():
    """An InvalidURL on the A record set must not stop the AAAA call."""
    http_client = _failing_http_client(httpx.InvalidURL("Invalid port: 'abc'"))
    aggregated = aggregate_addresses([NodeAnnotationSet("n1", "10.0.0.1,2001:db8::1")])

    result = await DnsService(_client(http_client)).reconcile(_ZONE, _RECORD, 300, aggregated)

    assert [outcome.action for outcome in result.outcomes] == [FAILED, FAILED]
    assert http_client.request.await_count == 2
