"""
URL helpers for hstsguard.

Host names are kept exactly as they appear in the URL. ``urlparse`` lower-cases
``hostname``, so the authority is split by hand instead.
"""

from __future__ import annotations

import typing
from urllib.parse import urlsplit, urlunsplit

from ..exceptions import LocationParseError

#: Default ports for the schemes hstsguard can send.
DEFAULT_PORTS = {"http": 80, "https": 443}


def split_authority(authority: str) -> tuple[str, str | None]:
    """
    Split a URL authority into host and port, dropping any userinfo.

    The port is returned as the raw string found after the colon, or
    ``None`` when no explicit port is present. IPv6 literals keep their
    brackets.

    >>> split_authority("user@Example.com:8080")
    ('Example.com', '8080')
    >>> split_authority("[::1]")
    ('[::1]', None)
    """
    hostport = authority.rpartition("@")[2]
    if hostport.startswith("["):
        end = hostport.find("]")
        if end == -1:
            raise LocationParseError(authority)
        host, rest = hostport[: end + 1], hostport[end + 1 :]
        if not rest:
            return host, None
        if not rest.startswith(":"):
            raise LocationParseError(authority)
        return host, rest[1:]

    host, sep, port = hostport.partition(":")
    return host, (port if sep else None)


def get_host(url: str) -> tuple[str, str, int | None]:
    """
    Get ``(scheme, host, port)`` from a URL.

    The port is ``None`` when the URL does not carry an explicit one.

    :raises LocationParseError: If the port is not a number.
    """
    parsed = urlsplit(url)
    host, port = split_authority(parsed.netloc)
    if port is None or port == "":
        return parsed.scheme.lower(), host, None
    if not port.isdigit():
        raise LocationParseError(url)
    return parsed.scheme.lower(), host, int(port)


def request_target(url: str) -> str:
    """Return the origin-form request target (path and query) of a URL."""
    parsed = urlsplit(url)
    target = parsed.path or "/"
    if parsed.query:
        target += "?" + parsed.query
    return target


def replace_scheme_and_port(url: str, scheme: str, port: typing.Optional[str]) -> str:
    """
    Rebuild ``url`` with a new scheme and explicit port.

    Userinfo, host, path, query and fragment are carried over untouched.
    ``port=None`` drops the explicit port.
    """
    parsed = urlsplit(url)
    userinfo, at, _ = parsed.netloc.rpartition("@")
    host, _old_port = split_authority(parsed.netloc)
    netloc = host if port is None else f"{host}:{port}"
    if at:
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit((scheme, netloc, parsed.path, parsed.query, parsed.fragment))
