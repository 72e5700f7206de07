"""
hstsguard - HTTP Strict Transport Security for Python HTTP clients.

hstsguard keeps plaintext requests away from hosts that asked for HTTPS only.
It provides:
- Parsing of the Strict-Transport-Security header (RFC 6797)
- A thread-safe policy cache with subdomain matching and expiry
- A transport that wraps any sender and upgrades requests to HTTPS
- Preloaded hosts from Chromium's transport security state list
- A small connection-pooling client that follows the upgrade redirects
"""

from __future__ import annotations

import logging
import threading
from logging import NullHandler

from . import exceptions
from ._collections import HTTPHeaderDict
from ._version import __version__
from .poolmanager import PoolManager
from .request import Request
from .response import HTTPResponse
from .transport import HSTSTransport
from .util.hsts import HSTSCache, HSTSPolicy, parse_hsts_header
from .util.preload import load_preload_list, parse_preload_list
from .util.retry import Retry
from .util.timeout import Timeout

# Set default logging handler to avoid "No handler found" warnings.
logging.getLogger(__name__).addHandler(NullHandler())

__all__ = (
    "HTTPHeaderDict",
    "HTTPResponse",
    "HSTSCache",
    "HSTSPolicy",
    "HSTSTransport",
    "PoolManager",
    "Request",
    "Retry",
    "Timeout",
    "__version__",
    "add_stderr_logger",
    "exceptions",
    "load_preload_list",
    "parse_hsts_header",
    "parse_preload_list",
    "request",
)


def add_stderr_logger(level=logging.DEBUG):
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


# One default PoolManager per thread, created on first use.
_DEFAULT_POOL = threading.local()


def request(method, url, *, body=None, headers=None, json=None, redirect=True, retries=None):
    """
    A convenience, top-level request method. It uses a module-global ``PoolManager``
    instance per thread, so HSTS policies learned by one call apply to the
    next call made from the same thread.
    """
    pool = getattr(_DEFAULT_POOL, "manager", None)
    if pool is None:
        pool = _DEFAULT_POOL.manager = PoolManager()
    return pool.request(
        method,
        url,
        body=body,
        headers=headers,
        json=json,
        redirect=redirect,
        retries=retries,
    )
