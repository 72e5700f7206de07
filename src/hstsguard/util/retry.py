"""
Retry utility for hstsguard.

This module tracks how many redirects a request may still follow. HSTS
upgrades are delivered as redirects, so each upgrade uses up one.
"""

from __future__ import annotations

import logging
import typing
from dataclasses import dataclass
from typing import Any, Iterable

from ..exceptions import MaxRetryError, ResponseError

if typing.TYPE_CHECKING:
    from ..response import HTTPResponse

log = logging.getLogger(__name__)


@dataclass
class RequestHistory:
    """Object to store information about previous requests."""

    method: str | None
    url: str | None
    error: Exception | None
    status: int | None
    redirect_location: str | None


class Retry:
    """Retry configuration.

    :param total:
        Total number of retries to allow. Takes precedence over other counts.
        Set to ``None`` to remove this constraint and fall back on other counts.
        Set to ``0`` to fail on the first redirect.

    :param redirect:
        How many redirects to allow. A redirect is a HTTP response with a status
        code 301, 302, 303, 307 or 308.
        Set to ``0`` to fail on the first redirect.
        Set to ``None`` to use the value of ``total``.

    :param raise_on_redirect:
        Whether, if the number of redirects is exhausted, to raise a
        :class:`~hstsguard.exceptions.MaxRetryError`, or to return a response with a
        response code in the 3xx range.

    :param remove_headers_on_redirect:
        Sequence of headers to remove from the request when a response
        indicating a redirect is returned before firing off the redirected
        request to a different host.
    """

    #: Headers dropped when a redirect leaves the original host
    DEFAULT_REMOVE_HEADERS_ON_REDIRECT = frozenset({"cookie", "authorization", "proxy-authorization"})

    #: Used when no retry configuration is given
    DEFAULT: typing.ClassVar[Retry]

    def __init__(
        self,
        total: int | None = 10,
        redirect: int | None = None,
        raise_on_redirect: bool = True,
        remove_headers_on_redirect: Iterable[str] = DEFAULT_REMOVE_HEADERS_ON_REDIRECT,
        history: tuple[RequestHistory, ...] | None = None,
    ) -> None:
        self.total = total
        self.redirect = redirect
        self.raise_on_redirect = raise_on_redirect
        self.remove_headers_on_redirect = frozenset(
            header.lower() for header in remove_headers_on_redirect
        )
        self.history = history or tuple()

    def new(self, **kw: Any) -> Retry:
        """
        Create a new Retry object with the same settings.

        :param kw: Same arguments as for Retry constructor.
        :return: A new Retry object with the same settings and updated with the new parameters.
        """
        params = {
            "total": self.total,
            "redirect": self.redirect,
            "raise_on_redirect": self.raise_on_redirect,
            "remove_headers_on_redirect": self.remove_headers_on_redirect,
            "history": self.history,
        }
        params.update(kw)
        return type(self)(**params)  # type: ignore[arg-type]

    @classmethod
    def from_int(cls, retries: Retry | int | None, default: Retry | int | None = None) -> Retry:
        """Backwards-compatibility for the old retries format."""
        if retries is None:
            retries = default if default is not None else cls.DEFAULT

        if isinstance(retries, Retry):
            return retries

        new_retries = cls(retries)
        log.debug("Converted retries value: %r -> %r", retries, new_retries)
        return new_retries

    def is_exhausted(self) -> bool:
        """
        Check if the retry configuration is exhausted.

        :return: True if the retry configuration is exhausted, False otherwise.
        """
        retry_counts = [x for x in (self.total, self.redirect) if x is not None]
        if not retry_counts:
            return False

        return min(retry_counts) < 0

    def increment(
        self,
        method: str | None = None,
        url: str | None = None,
        response: HTTPResponse | None = None,
        error: Exception | None = None,
        _pool: Any = None,
    ) -> Retry:
        """
        Return a new Retry object with incremented retry counters.

        :param method: The HTTP method.
        :param url: The URL that was requested.
        :param response: The response from the server, if any.
        :param error: The error that occurred, if any.
        :param _pool: The pool or manager that made the request, for error messages.
        :return: A new Retry object with incremented retry counters.
        :raises MaxRetryError: If the retry configuration is exhausted.
        """
        total = self.total
        if total is not None:
            total -= 1

        redirect = self.redirect
        cause = "unknown"
        status = None
        redirect_location = None

        if error is not None:
            cause = repr(error)
        elif response is not None and response.get_redirect_location():
            if redirect is not None:
                redirect -= 1
            cause = "too many redirects"
            status = response.status
            redirect_location = response.get_redirect_location()
        elif response is not None:
            status = response.status

        history = self.history + (RequestHistory(method, url, error, status, redirect_location),)

        new_retry = self.new(total=total, redirect=redirect, history=history)

        if new_retry.is_exhausted():
            raise MaxRetryError(_pool, url, error or ResponseError(cause))

        log.debug("Incremented Retry for (url='%s'): %r", url, new_retry)

        return new_retry

    def __repr__(self) -> str:
        return f"{type(self).__name__}(total={self.total}, redirect={self.redirect})"


#: Three redirects or retries in total.
Retry.DEFAULT = Retry(3)
