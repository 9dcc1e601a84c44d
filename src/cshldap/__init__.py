"""Pooled asyncio client for CSH member records in LDAP."""

from .client import DirectoryClient
from .config import LDAPConfig
from .discovery import discover_ldap_servers
from .exceptions import (
    ConnectError,
    CSHLDAPError,
    DecodeError,
    DiscoveryError,
    ModifyError,
    PoolClosedError,
    PoolError,
    PoolExhaustedError,
    SearchError,
)
from .models.user import LDAPUser, LDAPUserChangeSet

__all__ = [
    "CSHLDAPError",
    "ConnectError",
    "DecodeError",
    "DirectoryClient",
    "DiscoveryError",
    "LDAPConfig",
    "LDAPUser",
    "LDAPUserChangeSet",
    "ModifyError",
    "PoolClosedError",
    "PoolError",
    "PoolExhaustedError",
    "SearchError",
    "discover_ldap_servers",
]
