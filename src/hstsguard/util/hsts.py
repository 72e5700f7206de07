"""
HTTP Strict Transport Security (HSTS) policies for hstsguard.

This module parses ``Strict-Transport-Security`` headers (RFC 6797
section 6.1) into :class:`HSTSPolicy` records and keeps them in an
:class:`HSTSCache` that answers subdomain-aware lookups.
"""

from __future__ import annotations

import logging
import re
import sys
import threading
import typing
from dataclasses import dataclass

from .timeout import current_time

log = logging.getLogger(__name__)

_MAX_AGE_RE = re.compile(r"[0-9]+")

#: max-age given to preloaded policies. The preload list requires at least
#: one year; preloaded policies never expire regardless.
PRELOAD_MAX_AGE = 31536000

#: Upper bound for max-age; larger values, of any length, are clamped to it.
MAX_AGE_LIMIT = sys.maxsize


@dataclass(frozen=True)
class HSTSPolicy:
    """
    HTTP Strict Transport Security policy.

    ``received_at`` is ``None`` for preloaded policies, which never expire.
    Policies learned from a response expire once ``max_age`` seconds have
    passed since ``received_at``.
    """

    max_age: int
    include_subdomains: bool = False
    received_at: float | None = None

    @property
    def is_preloaded(self) -> bool:
        return self.received_at is None

    @property
    def expires(self) -> float | None:
        """POSIX time after which the policy no longer applies, or ``None``."""
        if self.received_at is None:
            return None
        return self.received_at + min(self.max_age, MAX_AGE_LIMIT)

    def is_expired(self, now: float | None = None) -> bool:
        """Check if the policy has expired."""
        expires = self.expires
        if expires is None:
            return False
        if now is None:
            now = current_time()
        return now > expires


def _unquote(value: str) -> str:
    """
    Unquote an RFC 7230 quoted-string.

    :raises ValueError: If the value is not a well-formed quoted-string.
    """
    if len(value) < 2 or value[0] != '"' or value[-1] != '"':
        raise ValueError(f"unterminated quoted-string: {value!r}")

    chars = []
    escaped = False
    for char in value[1:-1]:
        if escaped:
            chars.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            raise ValueError(f"unescaped quote in quoted-string: {value!r}")
        else:
            chars.append(char)

    if escaped:
        # The backslash swallowed the closing quote.
        raise ValueError(f"unterminated quoted-string: {value!r}")
    return "".join(chars)


def _clamp_max_age(digits: str) -> int:
    digits = digits.lstrip("0") or "0"
    if len(digits) > len(str(MAX_AGE_LIMIT)):
        return MAX_AGE_LIMIT
    return min(int(digits), MAX_AGE_LIMIT)


def parse_hsts_header(header_value: str, now: float | None = None) -> HSTSPolicy | None:
    """
    Parse a ``Strict-Transport-Security`` header value.

    Non-conformant directives are ignored rather than reported, as RFC 6797
    section 6.1 requires:

    - empty fields are skipped;
    - directive names are case-insensitive, values are not;
    - only the first occurrence of a directive name counts, even when its
      value turns out to be invalid;
    - values may be quoted-strings; a malformed one voids that directive;
    - unknown directives such as ``preload`` are ignored.

    :param header_value: The value of the Strict-Transport-Security header
    :param now: Time of receipt, defaults to the current time
    :return: The policy, or ``None`` when no valid ``max-age`` was found
    """
    max_age = None
    include_subdomains = False
    seen = set()

    for field in header_value.split(";"):
        field = field.strip()
        if not field:
            continue

        name, _, value = field.partition("=")
        name = name.strip().lower()
        value = value.strip()

        if name in seen:
            log.debug("Ignoring duplicate HSTS directive: %s", field)
            continue
        seen.add(name)

        if value.startswith('"'):
            try:
                value = _unquote(value)
            except ValueError:
                log.debug("Ignoring HSTS directive with bad quoting: %s", field)
                continue

        if name == "max-age":
            if _MAX_AGE_RE.fullmatch(value):
                max_age = _clamp_max_age(value)
            else:
                log.debug("Invalid max-age in HSTS header: %s", field)
        elif name == "includesubdomains":
            if value:
                log.debug("includeSubDomains takes no value: %s", field)
            else:
                include_subdomains = True

    if max_age is None:
        return None

    if now is None:
        now = current_time()

    return HSTSPolicy(
        max_age=max_age,
        include_subdomains=include_subdomains,
        received_at=now,
    )


class HSTSCache:
    """
    Cache of HSTS policies.

    This class stores HSTS policies keyed by host and answers whether a host
    is covered, either by its own policy or by an ancestor's policy that
    includes subdomains. Expired policies are dropped lazily when they are
    looked up; there is no background sweep.

    A single lock guards every read and write, so one cache can be shared by
    any number of threads issuing requests through the same transport.

    :param preload: Mapping of host to ``include_subdomains`` seeded as
        permanent policies
    :param clock: Callable returning the current POSIX time
    """

    def __init__(
        self,
        preload: typing.Mapping[str, bool] | None = None,
        clock: typing.Callable[[], float] = current_time,
    ) -> None:
        self._policies: dict[str, HSTSPolicy] = {}
        self._lock = threading.RLock()
        self.clock = clock

        if preload:
            for host, include_subdomains in preload.items():
                self._policies[host] = HSTSPolicy(
                    max_age=PRELOAD_MAX_AGE,
                    include_subdomains=bool(include_subdomains),
                )
            log.debug("Seeded HSTS cache with %d preloaded hosts", len(self._policies))

    def __len__(self) -> int:
        with self._lock:
            return len(self._policies)

    def __contains__(self, host: object) -> bool:
        return isinstance(host, str) and self.get(host) is not None

    def add(self, host: str, policy: HSTSPolicy) -> None:
        """
        Add an HSTS policy to the cache, replacing any policy for ``host``.

        A policy with ``max_age == 0`` is a removal instruction and deletes
        the existing entry instead.

        :param host: The host the policy applies to
        :param policy: The policy to add
        """
        with self._lock:
            if policy.max_age == 0:
                if self._policies.pop(host, None) is not None:
                    log.debug("Removed HSTS policy for %s", host)
                return
            self._policies[host] = policy
        log.debug(
            "Stored HSTS policy for %s (max-age=%d, includeSubDomains=%s)",
            host,
            policy.max_age,
            policy.include_subdomains,
        )

    def delete(self, host: str) -> None:
        """
        Remove the policy for ``host``, if any.

        :param host: The host to forget
        """
        with self._lock:
            self._policies.pop(host, None)

    def get(self, host: str, now: float | None = None) -> HSTSPolicy | None:
        """
        Get the HSTS policy for exactly ``host``.

        :param host: The host to get the policy for
        :param now: Time to check expiry against, defaults to the clock
        :return: The policy, or None if no unexpired policy exists
        """
        if now is None:
            now = self.clock()

        with self._lock:
            policy = self._policies.get(host)

            if policy is not None and policy.is_expired(now):
                del self._policies[host]
                log.debug("HSTS policy for %s expired", host)
                return None

            return policy

    def has_policy(self, host: str) -> bool:
        """
        Check if a host has a valid HSTS policy of its own.

        :param host: The host to check
        :return: True if the host has a valid policy
        """
        return self.get(host) is not None

    def get_matching_policy(self, host: str, now: float | None = None) -> HSTSPolicy | None:
        """
        Get the HSTS policy that covers ``host``.

        The exact host is tried first. Then one label at a time is stripped
        from the left, and a policy found for an ancestor only counts when
        it includes subdomains. The whole walk runs under one lock
        acquisition.

        :param host: The host to get a policy for
        :param now: Time to check expiry against, defaults to the clock
        :return: The matching policy, or None if no policy matches
        """
        if now is None:
            now = self.clock()

        with self._lock:
            candidate = host
            exact = True
            while True:
                policy = self.get(candidate, now)
                if policy is not None and (exact or policy.include_subdomains):
                    return policy

                dot = candidate.find(".")
                if dot == -1:
                    return None
                candidate = candidate[dot + 1 :]
                exact = False

    def clear(self) -> None:
        """Clear all policies from the cache."""
        with self._lock:
            self._policies.clear()
