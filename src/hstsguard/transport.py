"""
HSTS enforcement around an HTTP sender.

:class:`HSTSTransport` wraps any callable that performs one HTTP exchange
(``sender(request) -> HTTPResponse``). Before a request is sent, the
transport checks its :class:`~hstsguard.util.hsts.HSTSCache`; a request to a
host with a known policy is answered with a synthetic ``307`` redirect to the
HTTPS URL instead of going out in plaintext. After a response is received,
its ``Strict-Transport-Security`` header updates the cache.

The synthetic redirect keeps the upgraded exchange visible to the caller's
own redirect handling, so callers must follow redirects for the upgrade to
take effect. :class:`~hstsguard.poolmanager.PoolManager` does.
"""

from __future__ import annotations

import logging
import typing
from urllib.parse import urlsplit

from .request import Request
from .response import HTTPResponse
from .util.hsts import HSTSCache, parse_hsts_header
from .util.timeout import current_time
from .util.url import replace_scheme_and_port, split_authority

log = logging.getLogger(__name__)

Sender = typing.Callable[[Request], HTTPResponse]


class HSTSTransport:
    """
    Adds HTTP Strict Transport Security to an existing sender.

    It is safe for concurrent use by multiple threads: the policy cache is
    locked only while it is read or updated, never while the wrapped sender
    is running.

    :param wrap: The sender to wrap. Defaults to a plain
        :class:`~hstsguard.poolmanager.PoolManager` without HSTS.
    :param preload: Mapping of host to ``include_subdomains`` for hosts that
        are known to require HTTPS before any response is seen
    :param clock: Callable returning the current POSIX time
    :param https_only: Only learn policies from responses to HTTPS requests,
        as RFC 6797 section 8.1 asks of user agents
    """

    def __init__(
        self,
        wrap: Sender | None = None,
        preload: typing.Mapping[str, bool] | None = None,
        clock: typing.Callable[[], float] = current_time,
        https_only: bool = False,
    ) -> None:
        if wrap is None:
            from .poolmanager import PoolManager

            wrap = PoolManager(hsts=False).send

        self.wrap = wrap
        self.clock = clock
        self.https_only = https_only
        self.cache = HSTSCache(preload=preload, clock=clock)

    def send(self, request: Request) -> HTTPResponse:
        """
        Execute a single HTTP exchange with HSTS applied.

        Errors raised by the wrapped sender propagate unchanged.

        :param request: The request to send
        :return: The response, or a synthetic redirect to the HTTPS URL
        """
        prepared = self.prepare(request)
        if isinstance(prepared, HTTPResponse):
            return prepared

        response = self.wrap(prepared)
        self.observe(response)
        return response

    __call__ = send

    def secure_url(self, url: str) -> str:
        """
        Upgrade a URL to HTTPS if required by HSTS policy.

        The scheme ``http`` becomes ``https`` and an explicit port 80 becomes
        443 (RFC 6797 section 8.3). Any other port is kept as is.

        :param url: The URL to potentially upgrade
        :return: The upgraded URL, or the original URL if no policy applies
        """
        parsed = urlsplit(url)
        host, original_port = split_authority(parsed.netloc)
        if self.cache.get_matching_policy(host) is None:
            return url

        scheme = parsed.scheme.lower()
        if scheme == "http":
            scheme = "https"

        port = original_port
        if port is not None and port.isdigit() and int(port) == 80:
            port = "443"

        if scheme == parsed.scheme.lower() and port == original_port:
            return url
        return replace_scheme_and_port(url, scheme, port)

    def prepare(self, request: Request) -> Request | HTTPResponse:
        """
        Request phase: decide whether ``request`` may go out as it is.

        :param request: The outgoing request
        :return: ``request`` itself, or a ``307`` response pointing at the
            upgraded URL when a policy applies and the URL is not secure yet
        """
        location = self.secure_url(request.url)
        if location == request.url:
            return request

        log.debug("HSTS upgrade %s -> %s", request.url, location)
        return HTTPResponse(
            body=b"",
            headers={"Location": location},
            status=307,
            version=11,
            reason="Internal Redirect",
            request=request,
        )

    def observe(self, response: HTTPResponse) -> None:
        """
        Response phase: learn, refresh or forget the origin's policy.

        Only the first ``Strict-Transport-Security`` field is processed
        (RFC 6797 section 8.1). Headers that do not parse are ignored, and
        so are headers received over plain HTTP when the transport was
        created with ``https_only=True``.

        :param response: The response received for a request
        """
        fields = response.headers.getlist("Strict-Transport-Security")
        if not fields:
            return
        header = _first_field(fields[0])

        url = response.request_url
        if url is None:
            return

        parsed = urlsplit(url)
        if self.https_only and parsed.scheme.lower() != "https":
            log.debug("Ignoring Strict-Transport-Security received over %s", parsed.scheme)
            return

        policy = parse_hsts_header(header, now=self.clock())
        if policy is None:
            log.debug("Ignoring invalid Strict-Transport-Security header: %r", header)
            return

        # A max-age of 0 is handled by the cache as an instruction to forget.
        self.cache.add(split_authority(parsed.netloc)[0], policy)


def _first_field(value: str) -> str:
    """
    Cut a folded header value at the first comma outside a quoted-string.

    Senders that join repeated fields hand over ``a, b`` as one value; only
    ``a`` counts.
    """
    quoted = escaped = False
    for i, char in enumerate(value):
        if escaped:
            escaped = False
        elif quoted and char == "\\":
            escaped = True
        elif char == '"':
            quoted = not quoted
        elif char == "," and not quoted:
            return value[:i]
    return value
