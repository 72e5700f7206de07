"""
Exceptions for hstsguard.

This module contains all exceptions raised by hstsguard.

Nothing in the HSTS engine itself raises: malformed policy headers are
ignored. These exceptions belong to the client stack around it.
"""

from __future__ import annotations


class HTTPError(Exception):
    """Base exception used by this module."""
    pass


class PoolError(HTTPError):
    """Base exception for errors caused within a pool."""

    def __init__(self, pool, message):
        self.pool = pool
        super().__init__(f"{pool}: {message}")


class RequestError(PoolError):
    """Base exception for PoolErrors that have associated URLs."""

    def __init__(self, pool, url, message):
        self.url = url
        super().__init__(pool, f"{url}: {message}")


class SSLError(HTTPError):
    """Raised when SSL certificate fails verification."""
    pass


class TimeoutError(HTTPError):
    """Raised when a socket timeout occurs."""
    pass


class ConnectionError(HTTPError):
    """Raised when there is an error with a connection."""
    pass


class ConnectTimeoutError(ConnectionError, TimeoutError):
    """Raised when a socket timeout occurs while connecting to a server."""
    pass


class ReadTimeoutError(ConnectionError, TimeoutError):
    """Raised when a socket timeout occurs while receiving data from a server."""
    pass


class NewConnectionError(ConnectionError):
    """Raised when we fail to establish a new connection to a server."""
    pass


class ClosedPoolError(PoolError):
    """Raised when a request is made on a closed pool."""
    pass


class LocationValueError(ValueError, HTTPError):
    """Raised when there is something wrong with a given URL input."""
    pass


class LocationParseError(LocationValueError):
    """Raised when get_host or similar fails to parse the URL input."""

    def __init__(self, location):
        message = f"Failed to parse: {location}"
        super().__init__(message)

        self.location = location


class URLSchemeUnknown(LocationValueError):
    """Raised when a URL input has an unsupported scheme."""

    def __init__(self, scheme):
        message = f"Not supported URL scheme {scheme}"
        super().__init__(message)

        self.scheme = scheme


class ResponseError(HTTPError):
    """Used as a container for an error reason supplied in a MaxRetryError."""
    pass


class MaxRetryError(RequestError):
    """Raised when the maximum number of retries is exceeded."""

    def __init__(self, pool, url, reason=None):
        self.reason = reason

        message = f"Max retries exceeded with url: {url}"
        if reason:
            message += f" (Caused by {reason!r})"

        super().__init__(pool, url, message)


class ProtocolError(HTTPError):
    """Raised when something unexpected happens mid-request/response."""
    pass


class UnrewindableBodyError(HTTPError):
    """
    Raised when a request body cannot be rewound.

    This happens when a redirect has to resend a body that was read from a
    file-like object which does not support seeking.
    """
    pass


class PreloadError(HTTPError):
    """
    Raised when an HSTS preload list cannot be loaded.

    The list is consumed at construction time only, so this never escapes
    from a request.
    """
    pass
