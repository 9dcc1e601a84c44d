"""Tests for LDAP server discovery."""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock, patch

import dns.asyncresolver
import dns.exception
import dns.name
import dns.rdata
import dns.resolver
import pytest

from cshldap.constants import LDAP_SRV_RECORD
from cshldap.discovery import discover_ldap_servers
from cshldap.exceptions import DiscoveryError


def build_resolver(*targets: str) -> Mock:
    """Build a mock resolver that answers with SRV records for targets."""
    records = [
        dns.rdata.from_text("IN", "SRV", f"0 100 389 {t}") for t in targets
    ]
    resolver = Mock(spec=dns.asyncresolver.Resolver)
    resolver.resolve = AsyncMock(return_value=records)
    return resolver


@pytest.mark.asyncio
async def test_discover() -> None:
    resolver = build_resolver("ldap02.csh.rit.edu.", "ldap01.csh.rit.edu.")
    servers = await discover_ldap_servers(resolver=resolver)
    assert servers == [
        "ldaps://ldap02.csh.rit.edu",
        "ldaps://ldap01.csh.rit.edu",
    ]
    resolver.resolve.assert_awaited_once_with(LDAP_SRV_RECORD, "SRV")

    resolver = build_resolver("ldap.example.com.", "ldap.example.com.")
    servers = await discover_ldap_servers(
        "_ldap._tcp.example.com", resolver=resolver
    )
    assert servers == ["ldaps://ldap.example.com", "ldaps://ldap.example.com"]


@pytest.mark.asyncio
async def test_default_resolver() -> None:
    resolver = build_resolver("ldap01.csh.rit.edu.")
    with patch.object(dns.asyncresolver, "Resolver") as mock_resolver:
        mock_resolver.return_value = resolver
        servers = await discover_ldap_servers()
    assert servers == ["ldaps://ldap01.csh.rit.edu"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        dns.resolver.NXDOMAIN(qnames=[dns.name.from_text(LDAP_SRV_RECORD)]),
        dns.resolver.NoAnswer(),
        dns.resolver.NoNameservers(),
        dns.exception.Timeout(),
    ],
)
async def test_resolver_error(error: dns.exception.DNSException) -> None:
    resolver = Mock(spec=dns.asyncresolver.Resolver)
    resolver.resolve = AsyncMock(side_effect=error)
    with pytest.raises(DiscoveryError):
        await discover_ldap_servers(resolver=resolver)


@pytest.mark.asyncio
async def test_no_servers() -> None:
    with pytest.raises(DiscoveryError):
        await discover_ldap_servers(resolver=build_resolver())
