"""Exceptions for the CSH LDAP client."""

from __future__ import annotations

from safir.slack.blockkit import SlackException

__all__ = [
    "CSHLDAPError",
    "ConnectError",
    "DecodeError",
    "DiscoveryError",
    "ModifyError",
    "PoolClosedError",
    "PoolError",
    "PoolExhaustedError",
    "SearchError",
]


class CSHLDAPError(SlackException):
    """Base class for LDAP client exceptions.

    LDAP is an external service that may be affected by an outage, so all of
    these exceptions support reporting to Slack and are never retried by the
    client. Retry policy is up to the caller.
    """


class DiscoveryError(CSHLDAPError):
    """The LDAP servers could not be found in DNS."""


class PoolError(CSHLDAPError):
    """A connection could not be obtained from the connection pool."""


class ConnectError(PoolError):
    """Connecting or binding to an LDAP server failed."""


class PoolExhaustedError(PoolError):
    """No connection became available before the checkout timeout."""


class PoolClosedError(PoolError):
    """The connection pool has been closed."""


class SearchError(CSHLDAPError):
    """An LDAP search failed or timed out."""


class DecodeError(CSHLDAPError):
    """An LDAP entry was missing a required attribute or was malformed."""


class ModifyError(CSHLDAPError):
    """An LDAP modify operation failed."""
