"""
Connection pool implementation for hstsguard.

This module provides classes for managing pools of connections to a single
origin. A pool performs exactly one HTTP exchange per ``urlopen`` call and
knows nothing about redirects or HSTS.
"""

from __future__ import annotations

import http.client
import logging
import socket
import ssl
import threading

from ._collections import HTTPHeaderDict
from .connection import HTTPConnection, HTTPSConnection
from .exceptions import (
    ClosedPoolError,
    ConnectTimeoutError,
    NewConnectionError,
    ProtocolError,
    ReadTimeoutError,
    SSLError,
)
from .response import HTTPResponse
from .util.timeout import Timeout

log = logging.getLogger(__name__)

# Errors that mean an idle keep-alive connection was closed by the server.
_STALE_CONNECTION_ERRORS = (
    http.client.RemoteDisconnected,
    BrokenPipeError,
    ConnectionResetError,
)


class ConnectionPool:
    """
    Base class for connection pools.

    This class provides a base for connection pools.
    """

    scheme: str | None = None

    def __init__(self, host, port=None):
        """
        Initialize a new ConnectionPool.

        :param host: Host to connect to
        :param port: Port to connect to
        """
        self.host = host
        self.port = port

    def __str__(self):
        return f"{type(self).__name__}(host={self.host!r}, port={self.port!r})"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self):
        """Close all connections in the pool."""
        pass


class HTTPConnectionPool(ConnectionPool):
    """
    Thread-safe connection pool for HTTP connections.

    Idle connections are kept for reuse, up to ``maxsize`` of them.
    """

    scheme = "http"
    ConnectionCls: type[HTTPConnection] | type[HTTPSConnection] = HTTPConnection

    def __init__(
        self,
        host,
        port=None,
        timeout=Timeout.DEFAULT_TIMEOUT,
        maxsize=1,
        **conn_kw,
    ):
        """
        Initialize a new HTTPConnectionPool.

        :param host: Host to connect to
        :param port: Port to connect to
        :param timeout: Socket timeout, a number or a :class:`Timeout`
        :param maxsize: Maximum number of idle connections to keep
        :param conn_kw: Additional parameters for the connection
        """
        super().__init__(host, port)
        self.timeout = Timeout.from_float(timeout)
        self.maxsize = maxsize
        self.conn_kw = conn_kw.copy()
        self.num_connections = 0
        self.num_requests = 0
        self.pool = []
        self.closed = False
        self._lock = threading.Lock()

    def close(self):
        """Close all connections in the pool."""
        with self._lock:
            self.closed = True
            pool, self.pool = self.pool, []
        for conn in pool:
            conn.close()

    def _new_conn(self):
        """Return a fresh connection."""
        self.num_connections += 1
        log.debug(
            "Starting new %s connection (%d): %s:%s",
            self.scheme.upper(),
            self.num_connections,
            self.host,
            self.port or self.ConnectionCls.default_port,
        )
        return self.ConnectionCls(host=self.host, port=self.port, **self.conn_kw)

    def _get_conn(self):
        """
        Get a connection from the pool.

        :return: An idle connection, or a new one if none is idle
        :raises ClosedPoolError: If the pool is closed
        """
        with self._lock:
            if self.closed:
                raise ClosedPoolError(self, "Pool is closed.")
            if self.pool:
                return self.pool.pop()
        return self._new_conn()

    def _put_conn(self, conn):
        """
        Put a connection back into the pool.

        :param conn: The connection to put back
        """
        with self._lock:
            if not self.closed and len(self.pool) < self.maxsize:
                self.pool.append(conn)
                return
        log.debug("Connection pool is full, discarding connection: %s", self.host)
        conn.close()

    def _connect(self, conn, timeout):
        conn.timeout = timeout.connect_timeout
        try:
            conn.connect()
        except socket.timeout as e:
            raise ConnectTimeoutError(
                f"Connection to {self.host} timed out. (connect timeout={timeout.connect_timeout})"
            ) from e
        except ssl.SSLError as e:
            raise SSLError(e) from e
        except OSError as e:
            raise NewConnectionError(f"Failed to establish a new connection: {e}") from e

    def _make_request(self, conn, method, url, body, headers, timeout):
        """
        Send one request on ``conn`` and read the whole response.

        :return: The ``http.client`` response and its body
        """
        if not conn.is_connected:
            self._connect(conn, timeout)
        conn.sock.settimeout(timeout.read_timeout)

        self.num_requests += 1
        conn.request(method, url, body=body, headers=dict(headers or {}))
        httplib_response = conn.getresponse()
        data = httplib_response.read()

        log.debug(
            '%s://%s:%s "%s %s HTTP/1.1" %s %s',
            self.scheme,
            self.host,
            self.port or self.ConnectionCls.default_port,
            method,
            url,
            httplib_response.status,
            len(data),
        )
        return httplib_response, data

    def urlopen(
        self,
        method,
        url,
        body=None,
        headers=None,
        timeout=None,
        request_url=None,
        request=None,
    ):
        """
        Perform one HTTP exchange using a connection from the pool.

        :param method: HTTP method
        :param url: Request target, path and query
        :param body: Request body
        :param headers: Request headers
        :param timeout: Override of the pool's timeout
        :param request_url: Absolute URL, recorded on the response
        :param request: The originating :class:`~hstsguard.request.Request`
        :return: HTTPResponse with the body preloaded
        """
        timeout_obj = self.timeout if timeout is None else Timeout.from_float(timeout)

        conn = self._get_conn()
        reused = conn.is_connected
        clean_exit = False
        try:
            try:
                httplib_response, data = self._make_request(conn, method, url, body, headers, timeout_obj)
            except _STALE_CONNECTION_ERRORS:
                if not reused:
                    raise
                # The server closed the idle connection; try once on a new one.
                log.debug("Stale connection to %s dropped, reconnecting", self.host)
                conn.close()
                conn = self._new_conn()
                httplib_response, data = self._make_request(conn, method, url, body, headers, timeout_obj)
            clean_exit = True
        except socket.timeout as e:
            raise ReadTimeoutError(
                f"Read timed out. (read timeout={timeout_obj.read_timeout})"
            ) from e
        except ssl.SSLError as e:
            raise SSLError(e) from e
        except (http.client.HTTPException, OSError) as e:
            raise ProtocolError("Connection aborted.", e) from e
        finally:
            if not clean_exit:
                conn.close()

        if httplib_response.will_close:
            conn.close()
        else:
            self._put_conn(conn)

        return HTTPResponse(
            body=data,
            headers=HTTPHeaderDict(httplib_response.getheaders()),
            status=httplib_response.status,
            version=httplib_response.version,
            reason=httplib_response.reason,
            request_url=request_url,
            request=request,
        )


class HTTPSConnectionPool(HTTPConnectionPool):
    """
    Thread-safe connection pool for HTTPS connections.

    This class manages a pool of HTTPS connections.
    """

    scheme = "https"
    ConnectionCls = HTTPSConnection
