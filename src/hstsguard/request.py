"""
HTTP request container for hstsguard.

A :class:`Request` is what flows through the HSTS transport and into the
sender it wraps. The transport never mutates one in place; upgrades are
expressed as a synthetic redirect instead.
"""

from __future__ import annotations

import typing
from urllib.parse import urlsplit

from ._collections import HTTPHeaderDict
from .util.url import split_authority


class Request:
    """
    A single outgoing HTTP request.

    :param method: HTTP method, upper-cased on construction
    :param url: Absolute URL
    :param headers: Request headers
    :param body: Request body (bytes, str, or a file-like object)
    """

    def __init__(
        self,
        method: str,
        url: str,
        headers: typing.Mapping[str, str] | None = None,
        body: typing.Any = None,
    ) -> None:
        self.method = method.upper()
        self.url = url
        self.headers = HTTPHeaderDict(headers or {})
        self.body = body

    def __repr__(self) -> str:
        return f"<{type(self).__name__} [{self.method} {self.url}]>"

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme.lower()

    @property
    def authority(self) -> str:
        """The authority component of the URL, as given."""
        return urlsplit(self.url).netloc

    @property
    def host(self) -> str:
        """The host, without userinfo or port and with its case preserved."""
        return split_authority(self.authority)[0]

    @property
    def port(self) -> str | None:
        """The explicit port as written in the URL, or ``None``."""
        return split_authority(self.authority)[1]

    def copy(self, **changes: typing.Any) -> Request:
        """
        Return a copy of this request with some attributes replaced.

        :param changes: ``method``, ``url``, ``headers`` or ``body``
        """
        params = {
            "method": self.method,
            "url": self.url,
            "headers": self.headers.copy(),
            "body": self.body,
        }
        params.update(changes)
        return type(self)(**params)
