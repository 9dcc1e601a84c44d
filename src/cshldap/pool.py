"""Bounded pool of connections with health-checked reuse."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Generic, Protocol, TypeVar

import structlog
from structlog.stdlib import BoundLogger

from .constants import LDAP_POOL_SIZE
from .exceptions import PoolClosedError, PoolError, PoolExhaustedError

T = TypeVar("T")
"""Type of connection managed by a pool."""

__all__ = ["ConnectionManager", "ConnectionPool", "T"]


class ConnectionManager(Protocol[T]):
    """Creates, checks, and disposes of connections on behalf of a pool."""

    async def create(self) -> T:
        """Create a new, ready-to-use connection.

        Raises
        ------
        ConnectError
            Raised if the connection could not be established.
        """

    async def recycle(self, conn: T) -> None:
        """Check that an idle connection is still usable.

        Raises
        ------
        Exception
            Any exception means the connection should be discarded.
        """

    def close(self, conn: T) -> None:
        """Close a connection that is being discarded."""

    def is_fatal(self, exc: BaseException) -> bool:
        """Whether an exception raised during use broke the connection."""


class ConnectionPool(Generic[T]):
    """A bounded pool of connections.

    Connections are created lazily up to ``max_size`` and at most that many
    are ever checked out at once. Idle connections are health-checked via the
    manager before being handed out again, and connections that fail that
    check are closed and replaced by a new one transparently.

    Parameters
    ----------
    manager
        Manager used to create, check, and close connections.
    max_size
        Maximum number of connections.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.
    """

    def __init__(
        self,
        manager: ConnectionManager[T],
        *,
        max_size: int = LDAP_POOL_SIZE,
        logger: BoundLogger | None = None,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"Invalid pool size {max_size}")
        self._manager = manager
        self._max_size = max_size
        self._logger = logger or structlog.get_logger("cshldap")

        # The semaphore counts reservations: a caller holds one from the time
        # checkout begins until the connection is released. Connections are
        # never held anywhere except _idle or _in_use.
        self._semaphore = asyncio.Semaphore(max_size)
        self._idle: deque[T] = deque()
        self._in_use: dict[int, T] = {}
        self._closed = False

    @property
    def available(self) -> int:
        """Number of idle connections."""
        return len(self._idle)

    @property
    def max_size(self) -> int:
        """Maximum number of connections."""
        return self._max_size

    @property
    def outstanding(self) -> int:
        """Number of connections currently checked out."""
        return len(self._in_use)

    @property
    def size(self) -> int:
        """Number of open connections, idle or checked out."""
        return len(self._idle) + len(self._in_use)

    async def aclose(self) -> None:
        """Close the pool.

        Idle connections are closed immediately and checked-out connections
        are closed when released. Further checkouts fail.
        """
        self._closed = True
        while self._idle:
            self._discard(self._idle.pop())

    async def checkout(self, timeout: float | None = None) -> T:
        """Get a connection from the pool.

        The caller owns the connection until it is passed to `release`.

        Parameters
        ----------
        timeout
            How long (in seconds) to wait for a connection, or `None` to
            wait indefinitely.

        Returns
        -------
        T
            A healthy connection.

        Raises
        ------
        ConnectError
            Raised if a new connection was needed and could not be created.
        PoolClosedError
            Raised if the pool has been closed.
        PoolExhaustedError
            Raised if no connection became available within the timeout.
        """
        if self._closed:
            raise PoolClosedError("Connection pool is closed")
        try:
            async with asyncio.timeout(timeout):
                await self._semaphore.acquire()
        except TimeoutError:
            msg = f"No connection available after {timeout}s"
            raise PoolExhaustedError(msg) from None

        try:
            if self._closed:
                raise PoolClosedError("Connection pool is closed")
            conn = await self._get_connection()
        except BaseException:
            self._semaphore.release()
            raise
        self._in_use[id(conn)] = conn
        return conn

    @asynccontextmanager
    async def connection(
        self, timeout: float | None = None
    ) -> AsyncIterator[T]:
        """Check out a connection for the duration of a context.

        If the body raises an exception that the manager considers fatal to
        the connection, or is cancelled, the connection is discarded instead
        of being returned to the pool.

        Parameters
        ----------
        timeout
            How long (in seconds) to wait for a connection, or `None` to
            wait indefinitely.

        Yields
        ------
        T
            A healthy connection.
        """
        conn = await self.checkout(timeout)
        try:
            yield conn
        except BaseException as e:
            fatal = isinstance(e, asyncio.CancelledError)
            self.release(conn, discard=fatal or self._manager.is_fatal(e))
            raise
        else:
            self.release(conn)

    def release(self, conn: T, *, discard: bool = False) -> None:
        """Return a connection to the pool.

        Parameters
        ----------
        conn
            Connection obtained from `checkout`.
        discard
            If true, close the connection instead of reusing it.

        Raises
        ------
        PoolError
            Raised if the connection is not checked out from this pool.
        """
        if self._in_use.pop(id(conn), None) is None:
            raise PoolError("Connection is not checked out of this pool")
        try:
            if discard or self._closed:
                self._discard(conn)
            else:
                self._idle.append(conn)
        finally:
            self._semaphore.release()

    def _discard(self, conn: T) -> None:
        """Close a connection, logging any failure."""
        try:
            self._manager.close(conn)
        except Exception as e:
            self._logger.warning("Error closing connection", error=str(e))

    async def _get_connection(self) -> T:
        """Find a healthy idle connection or create a new one.

        Must only be called while holding a reservation.
        """
        while self._idle:
            conn = self._idle.pop()
            try:
                await self._manager.recycle(conn)
            except Exception as e:
                msg = "Discarding connection that failed health check"
                self._logger.warning(msg, error=str(e))
                self._discard(conn)
                continue
            except BaseException:
                self._discard(conn)
                raise
            return conn
        conn = await self._manager.create()
        self._logger.debug("Created new connection", pool_size=self.size + 1)
        return conn
