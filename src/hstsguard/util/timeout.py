"""
Timeouts and the clock for hstsguard.

Connection pools take a :class:`Timeout`; the HSTS cache and transport
take any callable clock and default to :func:`current_time`.
"""

from __future__ import annotations

import socket
import time


class _TYPE_DEFAULT:
    def __repr__(self):
        return "DEFAULT_TIMEOUT"


class Timeout:
    """
    Connect and read timeouts for one exchange.

    ``connect`` and ``read`` fall back to ``total`` when unset, and to the
    global socket default when ``total`` is unset too.

    :param total: Fallback for both phases
    :param connect: Seconds allowed to establish the connection
    :param read: Seconds allowed between bytes of the response
    """

    #: Use the global socket default for both phases.
    DEFAULT_TIMEOUT = _TYPE_DEFAULT()

    def __init__(self, total=None, connect=None, read=None):
        self._connect = connect
        self._read = read
        self._total = total

    @classmethod
    def from_float(cls, timeout):
        """
        Turn a number, ``None``, :attr:`DEFAULT_TIMEOUT` or a Timeout into a Timeout.

        A number applies to the connect and the read phase alike.
        """
        if isinstance(timeout, Timeout):
            return timeout
        if timeout is None or timeout is cls.DEFAULT_TIMEOUT:
            return cls()
        return cls(connect=timeout, read=timeout)

    @property
    def total(self):
        if self._total is None:
            return socket.getdefaulttimeout()
        return self._total

    @property
    def connect_timeout(self):
        return self.total if self._connect is None else self._connect

    @property
    def read_timeout(self):
        return self.total if self._read is None else self._read


def current_time() -> float:
    """Seconds since the epoch; the default clock for HSTS expiry."""
    return time.time()
