"""LDAP connections backed by bonsai."""

from __future__ import annotations

import random

import bonsai
import structlog
from bonsai import LDAPModOp, LDAPSearchScope
from bonsai.asyncio import AIOLDAPConnection
from structlog.stdlib import BoundLogger

from ..constants import LDAP_TIMEOUT, USER_ATTRS
from ..exceptions import ConnectError
from ..models.ldap import LDAPEntryData

__all__ = ["LDAPConnection", "LDAPConnectionManager"]


class LDAPConnection:
    """An authenticated LDAP connection.

    This is a thin layer over the bonsai connection that converts results to
    plain data. Exceptions from bonsai are passed through unchanged so that
    the connection pool can tell whether the connection is still usable.

    Parameters
    ----------
    conn
        Underlying bound bonsai connection.
    url
        URL of the server this connection is talking to.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.
    """

    def __init__(
        self,
        conn: AIOLDAPConnection,
        url: str,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._conn = conn
        self.url = url
        self._logger = logger or structlog.get_logger("cshldap")

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    async def modify(
        self,
        dn: str,
        changes: dict[str, list[str]],
        *,
        timeout: float | None = None,
    ) -> None:
        """Replace attributes of an entry.

        Parameters
        ----------
        dn
            DN of the entry to modify.
        changes
            Mapping of attribute names to their new values. Each attribute is
            replaced in full. An empty mapping sends an empty modify.
        timeout
            Timeout for the operation in seconds, or `None` for no timeout.

        Raises
        ------
        bonsai.LDAPError
            Raised if the modify failed.
        """
        entry = bonsai.LDAPEntry(dn, self._conn)
        for attr, values in changes.items():
            entry.change_attribute(attr, LDAPModOp.REPLACE, *values)
        await entry.modify(timeout)

    async def search(
        self,
        base: str,
        filter_exp: str,
        attrlist: list[str],
        *,
        timeout: float | None = None,
    ) -> list[LDAPEntryData]:
        """Search a subtree.

        Parameters
        ----------
        base
            Base DN of the search.
        filter_exp
            Search filter, already escaped.
        attrlist
            Attributes to retrieve.
        timeout
            Timeout for the search in seconds, or `None` for no timeout.

        Returns
        -------
        list of LDAPEntryData
            Matching entries.

        Raises
        ------
        bonsai.LDAPError
            Raised if the search failed or timed out.
        """
        results = await self._conn.search(
            base=base,
            scope=LDAPSearchScope.SUB,
            filter_exp=filter_exp,
            attrlist=attrlist,
            timeout=timeout,
        )
        return [self._convert_entry(r) for r in results]

    async def whoami(self) -> str:
        """Ask the server who this connection is bound as.

        Returns
        -------
        str
            Authorization identity of the connection.
        """
        return await self._conn.whoami(timeout=LDAP_TIMEOUT)

    def _convert_entry(self, entry: bonsai.LDAPEntry) -> LDAPEntryData:
        """Convert a bonsai search result to plain data.

        Values that are not valid UTF-8 are dropped with a warning, and an
        attribute with no remaining values is omitted. Whether that makes the
        entry unusable is decided when it is decoded into a user.
        """
        dn = str(entry.dn)
        attributes: dict[str, list[str]] = {}
        for name, values in entry.items():
            if name.lower() == "dn":
                continue
            decoded: list[str] = []
            for value in values:
                try:
                    decoded.append(_decode_value(value))
                except UnicodeDecodeError as e:
                    self._logger.warning(
                        "Ignoring invalid LDAP attribute value",
                        dn=dn,
                        ldap_attr=name,
                        error=str(e),
                    )
            if decoded:
                attributes[name] = decoded
        return LDAPEntryData(dn=dn, attributes=attributes)


class LDAPConnectionManager:
    """Creates and checks LDAP connections for the connection pool.

    Every connection returns the values of the user attributes as raw bytes
    so that bonsai does not convert values such as phone numbers to integers.

    Parameters
    ----------
    servers
        URLs of the LDAP servers. Each new connection picks one at random.
    bind_dn
        DN for the simple bind.
    password
        Password for the simple bind.
    timeout
        Timeout (in seconds) for connecting and binding.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.
    """

    def __init__(
        self,
        servers: list[str],
        bind_dn: str,
        password: str,
        *,
        timeout: float = LDAP_TIMEOUT,
        logger: BoundLogger | None = None,
    ) -> None:
        if not servers:
            raise ValueError("No LDAP servers provided")
        self._servers = list(servers)
        self._bind_dn = bind_dn
        self._password = password
        self._timeout = timeout
        self._logger = logger or structlog.get_logger("cshldap")

    @property
    def servers(self) -> list[str]:
        """URLs of the candidate LDAP servers."""
        return list(self._servers)

    def close(self, conn: LDAPConnection) -> None:
        """Close a connection being discarded by the pool."""
        self._logger.debug("Closing LDAP connection", ldap_url=conn.url)
        conn.close()

    async def create(self) -> LDAPConnection:
        """Connect and bind to a randomly chosen server.

        Returns
        -------
        LDAPConnection
            Newly bound connection.

        Raises
        ------
        ConnectError
            Raised if the connection or bind failed. The other servers are
            not tried.
        """
        url = random.choice(self._servers)
        logger = self._logger.bind(ldap_url=url)
        client = bonsai.LDAPClient(url)
        client.set_raw_attributes(list(USER_ATTRS))
        client.set_credentials(
            "SIMPLE", user=self._bind_dn, password=self._password
        )
        try:
            conn = await client.connect(is_async=True, timeout=self._timeout)
        except (bonsai.LDAPError, OSError) as e:
            logger.warning("Cannot connect to LDAP", error=str(e))
            raise ConnectError(f"Cannot connect to {url}: {e!s}") from e
        logger.debug("Opened LDAP connection")
        return LDAPConnection(conn, url, logger=self._logger)

    def is_fatal(self, exc: BaseException) -> bool:
        """Whether an exception means the connection is no longer usable."""
        return isinstance(exc, bonsai.ConnectionError)

    async def recycle(self, conn: LDAPConnection) -> None:
        """Check that an idle connection still works.

        Raises
        ------
        bonsai.LDAPError
            Raised if the server did not answer.
        """
        await conn.whoami()


def _decode_value(value: bytes | bool | int | str) -> str:
    """Turn a value returned by bonsai back into its LDAP string form.

    Attributes in `~cshldap.constants.USER_ATTRS` are returned by bonsai as
    raw bytes. Any other attribute may have been converted by bonsai to a
    boolean or an integer, which is reversed as far as possible.

    Raises
    ------
    UnicodeDecodeError
        Raised if the raw value is not valid UTF-8.
    """
    if isinstance(value, bytes):
        return value.decode()
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)
