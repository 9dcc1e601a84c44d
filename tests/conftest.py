"""Test fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from cshldap.client import DirectoryClient
from cshldap.pool import ConnectionPool

from .support.ldap import MockLDAP, MockLDAPConnection


@pytest.fixture(autouse=True)
def environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set default values of environment variables for testing."""
    monkeypatch.setenv("CSHLDAP_BIND_DN", "uid=drink,cn=users,dc=example")
    monkeypatch.setenv("CSHLDAP_PASSWORD", "some-password")


@pytest.fixture
def mock_ldap() -> MockLDAP:
    """Return a mock LDAP directory and connection manager."""
    return MockLDAP()


@pytest_asyncio.fixture
async def pool(
    mock_ldap: MockLDAP,
) -> AsyncIterator[ConnectionPool[MockLDAPConnection]]:
    """Return a connection pool using the mock LDAP directory."""
    pool = ConnectionPool(mock_ldap, max_size=5)
    yield pool
    await pool.aclose()


@pytest_asyncio.fixture
async def client(
    pool: ConnectionPool[MockLDAPConnection],
) -> DirectoryClient:
    """Return a directory client using the mock LDAP directory."""
    return DirectoryClient(pool)  # type: ignore[arg-type]
