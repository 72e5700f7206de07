"""
Utility functions for hstsguard.
"""

from __future__ import annotations

from .hsts import HSTSCache, HSTSPolicy, parse_hsts_header
from .preload import load_preload_list, parse_preload_list
from .request import make_headers
from .retry import Retry
from .timeout import Timeout
from .url import get_host, split_authority

__all__ = (
    "HSTSCache",
    "HSTSPolicy",
    "Retry",
    "Timeout",
    "get_host",
    "load_preload_list",
    "make_headers",
    "parse_hsts_header",
    "parse_preload_list",
    "split_authority",
)
