"""
Connection pool management for hstsguard.

:class:`PoolManager` is the client most callers want. It keeps one
connection pool per origin, sends every request through an
:class:`~hstsguard.transport.HSTSTransport`, and follows redirects, which is
how HSTS upgrades take effect.
"""

from __future__ import annotations

import json as _json
import logging
import typing
from urllib.parse import urljoin

from ._collections import HTTPHeaderDict, RecentlyUsedContainer
from .connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from .exceptions import LocationValueError, MaxRetryError, URLSchemeUnknown
from .request import Request
from .response import HTTPResponse
from .transport import HSTSTransport
from .util.request import DEFAULT_USER_AGENT, make_headers, rewind_body, set_file_position
from .util.retry import Retry
from .util.timeout import Timeout
from .util.url import DEFAULT_PORTS, get_host, request_target

log = logging.getLogger(__name__)

pool_classes_by_scheme = {"http": HTTPConnectionPool, "https": HTTPSConnectionPool}

# Headers that describe a body, dropped when a redirect turns the request into a GET.
_BODY_HEADERS = (
    "Content-Encoding",
    "Content-Language",
    "Content-Location",
    "Content-Type",
    "Content-Length",
    "Digest",
    "Last-Modified",
)


class PoolManager:
    """
    Manages a pool of HTTP connections.

    :param num_pools: Number of connection pools to cache before
        discarding the least recently used one
    :param headers: Headers to include with every request
    :param hsts: ``True`` to enforce HSTS with a new
        :class:`~hstsguard.transport.HSTSTransport`, ``False`` to disable it,
        or an existing transport to share its policy cache
    :param preload: Preloaded HSTS hosts, see
        :class:`~hstsguard.util.hsts.HSTSCache`
    :param retries: Default :class:`~hstsguard.util.retry.Retry` configuration
    :param timeout: Default timeout for every pool
    :param connection_pool_kw: Additional parameters for connection pools

    Example:

    .. code-block:: python

        import hstsguard

        http = hstsguard.PoolManager(preload={"example.com": True})
        # Goes out as https://example.com/ after an internal redirect.
        r = http.request("GET", "http://example.com/")
    """

    def __init__(
        self,
        num_pools=10,
        headers=None,
        hsts: bool | HSTSTransport = True,
        preload: typing.Mapping[str, bool] | None = None,
        retries=None,
        timeout=Timeout.DEFAULT_TIMEOUT,
        **connection_pool_kw,
    ):
        self.connection_pool_kw = connection_pool_kw.copy()
        self.pools = RecentlyUsedContainer(num_pools, dispose_func=lambda pool: pool.close())
        self.headers = headers if headers is not None else make_headers(user_agent=DEFAULT_USER_AGENT)
        self.retries = retries
        self.timeout = timeout

        if isinstance(hsts, HSTSTransport):
            self.hsts = hsts
        elif hsts:
            self.hsts = HSTSTransport(self.send, preload=preload)
        else:
            self.hsts = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.clear()
        return False

    def clear(self):
        """Close and forget every pool. HSTS policies are kept."""
        self.pools.clear()

    def connection_from_host(self, host, port=None, scheme="http"):
        """
        Get a connection pool for an origin, creating it on first use.

        :param host: Host to connect to
        :param port: Port, defaults to the scheme's default port
        :param scheme: ``http`` or ``https``
        :return: The connection pool for the origin
        """
        if not host:
            raise LocationValueError("No host specified.")

        scheme = scheme.lower()
        pool_cls = pool_classes_by_scheme.get(scheme)
        if pool_cls is None:
            raise URLSchemeUnknown(scheme)

        port = port or DEFAULT_PORTS[scheme]
        pool_key = (scheme, host.lower(), port)

        with self.pools.lock:
            try:
                return self.pools[pool_key]
            except KeyError:
                pass
            pool = pool_cls(host, port, timeout=self.timeout, **self.connection_pool_kw)
            self.pools[pool_key] = pool
            return pool

    def connection_from_url(self, url):
        """
        Get a connection pool for a URL.

        :param url: Absolute URL
        :return: Connection pool for the URL's origin
        """
        scheme, host, port = get_host(url)
        return self.connection_from_host(host, port=port, scheme=scheme)

    def send(self, request: Request) -> HTTPResponse:
        """
        Perform exactly one HTTP exchange, without HSTS or redirects.

        This is the sender wrapped by the HSTS transport.

        :param request: The request to send
        :return: HTTPResponse
        """
        pool = self.connection_from_url(request.url)
        return pool.urlopen(
            request.method,
            request_target(request.url),
            body=request.body,
            headers=request.headers,
            request_url=request.url,
            request=request,
        )

    def urlopen(self, method, url, body=None, headers=None, redirect=True, retries=None):
        """
        Make a request, applying HSTS and following redirects.

        :param method: HTTP method
        :param url: Absolute URL to request
        :param body: Request body
        :param headers: Headers merged over the manager's default headers
        :param redirect: Whether to follow redirects, HSTS upgrades included
        :param retries: Retry configuration or number of redirects allowed
        :return: HTTPResponse, with earlier responses in ``history``
        """
        merged = HTTPHeaderDict(self.headers)
        for key, value in (headers or {}).items():
            merged[key] = value

        request = Request(method, url, headers=merged, body=body)
        retries = Retry.from_int(retries, default=self.retries)
        return self._urlopen(request, redirect, retries, set_file_position(body))

    def _urlopen(self, request, redirect, retries, body_pos):
        sender = self.hsts.send if self.hsts is not None else self.send
        response = sender(request)

        redirect_location = redirect and response.get_redirect_location()
        if not redirect_location:
            return response

        redirect_location = urljoin(request.url, redirect_location)

        method = request.method
        body = request.body
        headers = request.headers.copy()
        if response.status == 303 and method != "HEAD":
            method = "GET"
            body = None
            body_pos = None
            for header in _BODY_HEADERS:
                headers.discard(header)

        if get_host(redirect_location)[1].lower() != request.host.lower():
            for header in retries.remove_headers_on_redirect:
                headers.discard(header)

        try:
            retries = retries.increment(method, request.url, response=response, _pool=self)
        except MaxRetryError:
            if retries.raise_on_redirect:
                raise
            return response

        if body_pos is not None:
            rewind_body(body, body_pos)

        log.debug("Redirecting %s -> %s", request.url, redirect_location)
        response.release_conn()

        new_request = request.copy(method=method, url=redirect_location, headers=headers, body=body)
        new_response = self._urlopen(new_request, redirect, retries, body_pos)
        new_response.history.insert(0, response)
        return new_response

    def request(self, method, url, body=None, headers=None, json=None, **urlopen_kw):
        """
        Make a request using the appropriate connection pool.

        :param method: HTTP method
        :param url: URL to request
        :param body: Request body
        :param headers: Request headers
        :param json: Object serialized as the JSON request body
        :param urlopen_kw: ``redirect`` and ``retries``, see :meth:`urlopen`
        :return: HTTPResponse
        """
        if json is not None:
            if body is not None:
                raise TypeError("request got values for both 'body' and 'json' parameters which are mutually exclusive")
            headers = HTTPHeaderDict(headers or {})
            headers.setdefault("Content-Type", "application/json")
            body = _json.dumps(json, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

        return self.urlopen(method, url, body=body, headers=headers, **urlopen_kw)
