"""Discovery of LDAP servers via DNS."""

from __future__ import annotations

import dns.asyncresolver
import dns.exception
import structlog
from structlog.stdlib import BoundLogger

from .constants import LDAP_SRV_RECORD
from .exceptions import DiscoveryError

__all__ = ["discover_ldap_servers"]


async def discover_ldap_servers(
    srv_record: str = LDAP_SRV_RECORD,
    *,
    resolver: dns.asyncresolver.Resolver | None = None,
    logger: BoundLogger | None = None,
) -> list[str]:
    """Find the LDAP servers advertised in DNS.

    The servers are returned in the order DNS returned them. Priorities and
    weights are ignored and nothing checks whether the servers are up, since
    a connection to a dead server will fail and the pool will pick again on
    the next attempt.

    Parameters
    ----------
    srv_record
        Name of the SRV record to look up.
    resolver
        DNS resolver to use. If not given, one is created from the system
        resolver configuration.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.

    Returns
    -------
    list of str
        ``ldaps`` URLs of the servers.

    Raises
    ------
    DiscoveryError
        Raised if the DNS lookup failed or returned no servers.
    """
    logger = (logger or structlog.get_logger("cshldap")).bind(
        srv_record=srv_record
    )
    try:
        if not resolver:
            resolver = dns.asyncresolver.Resolver()
        answer = await resolver.resolve(srv_record, "SRV")
    except dns.exception.DNSException as e:
        msg = f"Cannot resolve {srv_record}: {e!s}"
        logger.exception("LDAP server discovery failed", error=str(e))
        raise DiscoveryError(msg) from e

    servers = [
        "ldaps://" + record.target.to_text().rstrip(".") for record in answer
    ]
    if not servers:
        msg = f"No LDAP servers found in {srv_record}"
        logger.error("LDAP server discovery failed", error=msg)
        raise DiscoveryError(msg)
    logger.debug("Discovered LDAP servers", ldap_servers=servers)
    return servers
