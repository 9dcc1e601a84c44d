"""Client for CSH member records in LDAP."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Self

import bonsai
import dns.asyncresolver
import structlog
from structlog.stdlib import BoundLogger

from .config import LDAPConfig
from .constants import LDAP_TIMEOUT, LOCK_ATTR, USER_ATTRS, USER_BASE_DN
from .discovery import discover_ldap_servers
from .exceptions import ModifyError, SearchError
from .filters import equality_filter, member_filter, substring_filter
from .models.ldap import LDAPEntryData
from .models.user import LDAPUser, LDAPUserChangeSet
from .pool import ConnectionPool
from .storage.ldap import LDAPConnection, LDAPConnectionManager

__all__ = ["DirectoryClient"]


class DirectoryClient:
    """Search and update CSH member records.

    Every operation borrows a connection from the pool for its duration. All
    searches are subtree searches of the user tree. Searches may limit the
    attributes retrieved, but the result must still include ``cn``, ``uid``
    and ``krbPrincipalName`` or decoding it fails.

    Parameters
    ----------
    pool
        Pool of bound LDAP connections.
    timeout
        Timeout (in seconds) for searches.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.
    """

    def __init__(
        self,
        pool: ConnectionPool[LDAPConnection],
        *,
        timeout: float = LDAP_TIMEOUT,
        logger: BoundLogger | None = None,
    ) -> None:
        self._pool = pool
        self._timeout = timeout
        self._logger = logger or structlog.get_logger("cshldap")

    @classmethod
    async def from_config(
        cls,
        config: LDAPConfig,
        *,
        resolver: dns.asyncresolver.Resolver | None = None,
        logger: BoundLogger | None = None,
    ) -> Self:
        """Discover the LDAP servers and create a client.

        The list of servers is resolved once here and never refreshed. Create
        a new client to pick up changes to DNS.

        Parameters
        ----------
        config
            Client configuration.
        resolver
            DNS resolver to use for discovery. If not given, the system
            resolver configuration is used.
        logger
            Logger to use. If not given, the default structlog logger will
            be used.

        Returns
        -------
        DirectoryClient
            Newly-created client. No connections are opened until first use.

        Raises
        ------
        DiscoveryError
            Raised if no LDAP servers could be found.
        """
        logger = logger or structlog.get_logger("cshldap")
        servers = await discover_ldap_servers(
            config.srv_record, resolver=resolver, logger=logger
        )
        timeout = config.timeout.total_seconds()
        manager = LDAPConnectionManager(
            servers,
            config.bind_dn,
            config.password.get_secret_value(),
            timeout=timeout,
            logger=logger,
        )
        pool = ConnectionPool(
            manager, max_size=config.pool_size, logger=logger
        )
        return cls(pool, timeout=timeout, logger=logger)

    async def aclose(self) -> None:
        """Close all LDAP connections.

        The client must not be used after calling this method.
        """
        await self._pool.aclose()

    async def activate_user(self, dn: str) -> None:
        """Unlock a user's account.

        Parameters
        ----------
        dn
            DN of the user.

        Raises
        ------
        ModifyError
            Raised if the LDAP modify failed.
        """
        await self._set_lock(dn, locked=False)

    async def deactivate_user(self, dn: str) -> None:
        """Lock a user's account.

        Parameters
        ----------
        dn
            DN of the user.

        Raises
        ------
        ModifyError
            Raised if the LDAP modify failed.
        """
        await self._set_lock(dn, locked=True)

    async def get_all_users(
        self, *, attributes: Iterable[str] | None = None
    ) -> list[LDAPUser]:
        """Retrieve every member.

        This is an expensive search and is not subject to the search timeout.
        It should only be used by batch jobs.

        Parameters
        ----------
        attributes
            Attributes to retrieve. Defaults to all of the user attributes.

        Returns
        -------
        list of LDAPUser
            All members.

        Raises
        ------
        DecodeError
            Raised if any entry is malformed.
        SearchError
            Raised if the LDAP search failed.
        """
        results = await self._search(
            member_filter(), attributes=attributes, bounded=False
        )
        return [LDAPUser.from_entry(r) for r in results]

    async def get_user(
        self, uid: str, *, attributes: Iterable[str] | None = None
    ) -> LDAPUser | None:
        """Look up a user by username.

        Parameters
        ----------
        uid
            Username of the user.
        attributes
            Attributes to retrieve. Defaults to all of the user attributes.

        Returns
        -------
        LDAPUser or None
            The user, or `None` if there was not exactly one match.

        Raises
        ------
        DecodeError
            Raised if the entry is malformed.
        SearchError
            Raised if the LDAP search failed.
        """
        return await self._get_unique(
            "uid", uid, attributes=attributes, user=uid
        )

    async def get_user_by_ibutton(
        self, ibutton: str, *, attributes: Iterable[str] | None = None
    ) -> LDAPUser | None:
        """Look up a user by iButton ID.

        Parameters
        ----------
        ibutton
            iButton ID.
        attributes
            Attributes to retrieve. Defaults to all of the user attributes.

        Returns
        -------
        LDAPUser or None
            The user, or `None` if there was not exactly one match.

        Raises
        ------
        DecodeError
            Raised if the entry is malformed.
        SearchError
            Raised if the LDAP search failed.
        """
        return await self._get_unique(
            "ibutton", ibutton, attributes=attributes
        )

    async def get_user_by_phone(
        self, phone: str, *, attributes: Iterable[str] | None = None
    ) -> LDAPUser | None:
        """Look up a user by mobile phone number.

        Parameters
        ----------
        phone
            Phone number, in the same format as stored in LDAP.
        attributes
            Attributes to retrieve. Defaults to all of the user attributes.

        Returns
        -------
        LDAPUser or None
            The user, or `None` if there was not exactly one match.

        Raises
        ------
        DecodeError
            Raised if the entry is malformed.
        SearchError
            Raised if the LDAP search failed.
        """
        return await self._get_unique("mobile", phone, attributes=attributes)

    async def search_users(
        self, query: str, *, attributes: Iterable[str] | None = None
    ) -> list[LDAPUser]:
        """Find users whose username or full name contains a string.

        Parameters
        ----------
        query
            String to search for.
        attributes
            Attributes to retrieve. Defaults to all of the user attributes.

        Returns
        -------
        list of LDAPUser
            Matching users, possibly empty.

        Raises
        ------
        DecodeError
            Raised if any matching entry is malformed.
        SearchError
            Raised if the LDAP search failed.
        """
        results = await self._search(
            substring_filter(query), attributes=attributes
        )
        return [LDAPUser.from_entry(r) for r in results]

    async def update_user(self, change_set: LDAPUserChangeSet) -> None:
        """Replace the attributes of a user that are set in a change set.

        A change set with no changes still sends an (empty) modify.

        Parameters
        ----------
        change_set
            Changes to make.

        Raises
        ------
        ModifyError
            Raised if the LDAP modify failed.
        """
        await self._modify(change_set.dn, change_set.to_modifications())

    async def _get_unique(
        self,
        attr: str,
        value: str,
        *,
        attributes: Iterable[str] | None = None,
        user: str | None = None,
    ) -> LDAPUser | None:
        """Search for a user by an attribute that should be unique.

        An ambiguous result is treated the same as no result rather than
        picking one of the matches.
        """
        results = await self._search(
            equality_filter(attr, value), attributes=attributes, user=user
        )
        if len(results) != 1:
            self._logger.debug(
                "No unique LDAP match",
                ldap_attr=attr,
                ldap_value=value,
                count=len(results),
            )
            return None
        return LDAPUser.from_entry(results[0])

    async def _modify(self, dn: str, changes: dict[str, list[str]]) -> None:
        """Replace attributes of an entry.

        Raises
        ------
        ModifyError
            Raised if the DN is empty or the LDAP modify failed.
        """
        if not dn:
            raise ModifyError("Cannot modify LDAP entry with empty DN")
        logger = self._logger.bind(dn=dn, ldap_attrs=list(changes))
        try:
            async with self._pool.connection() as conn:
                logger.debug("Modifying LDAP entry")
                await conn.modify(dn, changes)
        except bonsai.LDAPError as e:
            logger.exception("Cannot modify LDAP entry", error=str(e))
            raise ModifyError(f"Cannot modify {dn}: {e!s}", dn) from e
        logger.info("Modified LDAP entry")

    async def _search(
        self,
        filter_exp: str,
        *,
        attributes: Iterable[str] | None = None,
        bounded: bool = True,
        user: str | None = None,
    ) -> list[LDAPEntryData]:
        """Search the user tree.

        Parameters
        ----------
        filter_exp
            Search filter.
        attributes
            Attributes to retrieve, or `None` for all of the user attributes.
        bounded
            Whether to apply the search timeout.
        user
            Username being searched for, if known, for error reporting.

        Returns
        -------
        list of LDAPEntryData
            Matching entries.

        Raises
        ------
        SearchError
            Raised if the search failed or timed out.
        """
        attrlist = list(USER_ATTRS if attributes is None else attributes)
        timeout = self._timeout if bounded else None
        logger = self._logger.bind(
            ldap_base=USER_BASE_DN, ldap_search=filter_exp
        )
        try:
            async with self._pool.connection() as conn:
                logger.debug("Querying LDAP", ldap_attrs=attrlist)
                results = await conn.search(
                    USER_BASE_DN, filter_exp, attrlist, timeout=timeout
                )
        except (bonsai.LDAPError, TimeoutError) as e:
            logger.exception("Cannot query LDAP", error=str(e))
            msg = f"Error querying LDAP: {e!s}"
            raise SearchError(msg, user) from e
        logger.debug("LDAP search complete", count=len(results))
        return results

    async def _set_lock(self, dn: str, *, locked: bool) -> None:
        """Set or clear the account lock flag."""
        value = "true" if locked else "false"
        await self._modify(dn, {LOCK_ATTR: [value]})
