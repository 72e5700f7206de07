"""
HTTP response handling for hstsguard.

This module provides classes for handling HTTP responses.
"""

from __future__ import annotations

import io
import logging

from ._collections import HTTPHeaderDict

log = logging.getLogger(__name__)


class HTTPResponse(io.IOBase):
    """
    HTTP Response container.

    This class provides a container for HTTP responses, including
    status, headers, and body. The body is always preloaded by the
    connection pools, so ``read()`` never touches the network.
    """

    REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

    def __init__(
        self,
        body=b"",
        headers=None,
        status=0,
        version=0,
        reason=None,
        request_url=None,
        request=None,
        connection=None,
    ):
        """
        Initialize a new HTTPResponse.

        :param body: Response body
        :param headers: Response headers
        :param status: Response status code
        :param version: Response HTTP version (``11`` for HTTP/1.1)
        :param reason: Response reason phrase
        :param request_url: URL of the request that produced this response
        :param request: The :class:`~hstsguard.request.Request` itself
        :param connection: Connection to release when the response is closed
        """
        self.headers = HTTPHeaderDict(headers or {})
        self.status = status
        self.version = version
        self.reason = reason
        self.request = request
        self.request_url = request_url if request_url is not None else getattr(request, "url", None)
        self.connection = connection

        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body or b""
        self._fp = io.BytesIO(self._body)

        #: Responses that led to this one, filled in by the PoolManager
        #: when it follows redirects.
        self.history: list[HTTPResponse] = []

    def __repr__(self):
        return f"<{type(self).__name__} [{self.status}] {self.request_url}>"

    def get_redirect_location(self):
        """
        Get the redirect location from the response.

        :return: The ``Location`` value for redirect statuses, ``None`` for
            redirect statuses without one, and ``False`` otherwise.
        """
        if self.status in self.REDIRECT_STATUSES:
            return self.headers.get("location")
        return False

    def release_conn(self):
        """Release the connection back to the pool."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def close(self):
        """Close the response."""
        self.release_conn()
        super().close()

    def readable(self):
        return True

    @property
    def data(self):
        """Get the response body."""
        return self._body

    def read(self, amt=None):
        """
        Read response data.

        :param amt: Amount of data to read, everything left when ``None``
        :return: Response data
        """
        if amt is None or amt < 0:
            return self._fp.read()
        return self._fp.read(amt)
