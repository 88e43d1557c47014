"""
Idle-connection pool for an IAM-authenticated database.

The password is a token that expires minutes after issuance, so a generic
pool that reconnects with stored credentials cannot be used. Every new
physical connection gets its own freshly generated token; reused
connections are checked for liveness (and age) on every checkout.
"""

import asyncio
import logging
import time
import weakref
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, NamedTuple

from student_api.core.config import ConnectionConfig
from student_api.core.errors import (
    AuthError,
    DatabaseConnectionError,
    PermissionDeniedError,
    describe,
    is_mysql_access_denied,
)

from .connect import connect
from .health import is_open, ping_quiet
from .token import TokenProvider, classify_token_error

_log = logging.getLogger(__name__)


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float   # time.monotonic() when last returned to pool


class PoolManager:
    """Bounded idle pool; token refresh lives only in the create path."""

    def __init__(
        self,
        config: ConnectionConfig,
        *,
        token_provider: Any = None,
        connect_fn: Callable[[ConnectionConfig, str], Any] = connect,
    ) -> None:
        self._config = config
        self._token_provider = token_provider or TokenProvider(region=config.region)
        self._connect = connect_fn
        self._idle: list[_PoolEntry] = []
        self._lock = asyncio.Lock()
        self._created_at: "weakref.WeakKeyDictionary[Any, float]" = (
            weakref.WeakKeyDictionary()
        )
        # Driver calls still running in a worker thread, per connection.
        self._busy: "weakref.WeakKeyDictionary[Any, asyncio.Future[Any]]" = (
            weakref.WeakKeyDictionary()
        )

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    async def acquire(self) -> Any:
        """Return a live connection, reusing an idle one when possible."""
        while True:
            entry = await self._pop()
            if entry is None:
                break
            if self._is_expired(entry):
                _log.debug("Evicting idle connection past max age")
                await self._discard(entry.conn)
                continue
            if not is_open(entry.conn):
                _log.debug("Discarding closed idle connection")
                await self._discard(entry.conn)
                continue
            idle_sec = time.monotonic() - entry.last_used
            if idle_sec > self._config.ping_idle_threshold:
                try:
                    alive = await self.call(entry.conn, ping_quiet)
                except asyncio.CancelledError:
                    self._discard_when_done(entry.conn)
                    raise
            else:
                alive = True
            if not alive:
                _log.debug("Discarding idle connection that failed ping")
                await self._discard(entry.conn)
                continue
            return entry.conn

        return await self._open()

    async def release(self, conn: Any) -> None:
        """Return a connection to the pool, or close it if dead or the pool is full."""
        if conn is None:
            return
        if not is_open(conn):
            await self._discard(conn)
            return

        async with self._lock:
            if len(self._idle) < self._config.pool_size:
                created_at = self._created_at.get(conn, time.monotonic())
                self._idle.append(
                    _PoolEntry(conn=conn, created_at=created_at, last_used=time.monotonic())
                )
                return

        await self._discard(conn)

    async def call(self, conn: Any, fn: Callable[..., Any], *args: Any) -> Any:
        """
        Run blocking driver call ``fn(conn, *args)`` in a worker thread.

        Cancelling the caller does not stop the thread; the call stays
        registered as in flight on *conn* until it finishes.
        """
        fut = asyncio.ensure_future(asyncio.to_thread(fn, conn, *args))
        self._busy[conn] = fut
        try:
            return await asyncio.shield(fut)
        finally:
            if fut.done():
                self._busy.pop(conn, None)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Any]:
        """
        Acquire, yield, and always hand the connection back.

        A cancelled lease (request timeout) is never pooled again: its driver
        call may still be running, so it is closed once that call finishes.
        """
        conn = await self.acquire()
        try:
            yield conn
        except asyncio.CancelledError:
            self._discard_when_done(conn)
            raise
        except BaseException:
            await self.release(conn)
            raise
        else:
            await self.release(conn)

    async def dispose(self) -> int:
        """Close every idle connection. Returns how many were closed."""
        async with self._lock:
            entries = self._idle
            self._idle = []
        for e in entries:
            await self._discard(e.conn)
        return len(entries)

    def stats(self) -> dict[str, int]:
        """Return pool statistics for monitoring."""
        return {
            "idle_connections": len(self._idle),
            "pool_size": self._config.pool_size,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _pop(self) -> _PoolEntry | None:
        async with self._lock:
            if self._idle:
                return self._idle.pop()
        return None

    async def _open(self) -> Any:
        cfg = self._config
        try:
            token = await asyncio.to_thread(
                self._token_provider.get_token, cfg.host, cfg.port, cfg.user, cfg.region
            )
        except Exception as exc:
            raise classify_token_error(exc) from exc

        fut = asyncio.ensure_future(asyncio.to_thread(self._connect, cfg, token))
        try:
            conn = await asyncio.shield(fut)
        except asyncio.CancelledError:
            # Nobody will receive this connection; close it once it is open.
            fut.add_done_callback(_close_opened)
            raise
        except Exception as exc:
            if is_mysql_access_denied(exc):
                _log.warning("Database rejected IAM token for %s@%s: %s", cfg.user, cfg.host, exc)
                raise PermissionDeniedError(cause=exc) from exc
            if isinstance(exc, AuthError):
                raise
            _log.exception("Error getting database connection to %s:%s", cfg.host, cfg.port)
            raise DatabaseConnectionError(describe(exc), cause=exc) from exc

        self._created_at[conn] = time.monotonic()
        return conn

    def _is_expired(self, entry: _PoolEntry) -> bool:
        return (time.monotonic() - entry.created_at) > self._config.max_age

    async def _discard(self, conn: Any) -> None:
        self._created_at.pop(conn, None)
        await asyncio.to_thread(self._close_quiet, conn)

    def _discard_when_done(self, conn: Any) -> None:
        self._created_at.pop(conn, None)
        busy = self._busy.pop(conn, None)
        if busy is None or busy.done():
            self._close_quiet(conn)
            return
        busy.add_done_callback(lambda f: _close_after(f, conn))

    @staticmethod
    def _close_quiet(conn: Any) -> None:
        try:
            conn.close()
        except Exception:
            pass


def _close_after(fut: "asyncio.Future[Any]", conn: Any) -> None:
    if not fut.cancelled():
        fut.exception()  # mark retrieved
    PoolManager._close_quiet(conn)


def _close_opened(fut: "asyncio.Future[Any]") -> None:
    if fut.cancelled() or fut.exception() is not None:
        return
    PoolManager._close_quiet(fut.result())
