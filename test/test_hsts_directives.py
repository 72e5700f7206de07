"""
Tests for Strict-Transport-Security header parsing.
"""

from __future__ import annotations

import pytest

from hstsguard.util.hsts import MAX_AGE_LIMIT, HSTSPolicy, parse_hsts_header

NOW = 1700000000.0


class TestParseValid:
    """Tests for headers that produce a policy."""

    @pytest.mark.parametrize(
        "header, max_age, include_subdomains",
        [
            ("max-age=0", 0, False),
            ("max-age=1234", 1234, False),
            ('max-age="5678"', 5678, False),
            ("max-age=1234; includeSubDomains", 1234, True),
            ("includeSubDomains; max-age=1234", 1234, True),
            ("MaX-AgE=1234; InClUdEsUbDoMaInS", 1234, True),
            ("max-age=1234; max-age=0", 1234, False),
            (" \t ; \t max-age=1234 \t ; \t ; \t includeSubDomains \t ; \t ", 1234, True),
            ("max-age=31536000; includeSubDomains; preload", 31536000, True),
            ("max-age = 60", 60, False),
        ],
    )
    def test_directives(self, header, max_age, include_subdomains):
        """Test the directive combinations from RFC 6797 section 6.1."""
        policy = parse_hsts_header(header, now=NOW)

        assert policy is not None
        assert policy.max_age == max_age
        assert policy.include_subdomains is include_subdomains

    def test_received_at(self):
        """Test that the policy records when it was received."""
        policy = parse_hsts_header("max-age=10", now=NOW)
        assert policy.received_at == NOW
        assert policy.expires == NOW + 10
        assert not policy.is_preloaded

    def test_received_at_defaults_to_now(self):
        """Test that the current time is used when none is given."""
        policy = parse_hsts_header("max-age=10")
        assert policy.received_at is not None
        assert not policy.is_expired()

    def test_idempotent(self):
        """Test that parsing the same header at the same time gives equal policies."""
        header = "max-age=3600; includeSubDomains"
        assert parse_hsts_header(header, now=NOW) == parse_hsts_header(header, now=NOW)

    def test_unknown_directive_ignored(self):
        """Test that unknown directives do not affect the policy."""
        policy = parse_hsts_header('max-age=10; report-uri="https://example.com/r"', now=NOW)
        assert policy == HSTSPolicy(max_age=10, include_subdomains=False, received_at=NOW)

    def test_bad_quoting_only_voids_its_directive(self):
        """Test that a malformed quoted-string does not abort the parse."""
        policy = parse_hsts_header('foo="bad\\"; max-age=5', now=NOW)
        assert policy is not None
        assert policy.max_age == 5

    def test_quoted_pair(self):
        """Test that quoted-pairs are unescaped."""
        policy = parse_hsts_header('max-age="12\\34"', now=NOW)
        assert policy.max_age == 1234

    def test_include_subdomains_with_value_ignored(self):
        """Test that includeSubDomains with a value is ignored."""
        policy = parse_hsts_header("max-age=10; includeSubDomains=yes", now=NOW)
        assert policy is not None
        assert policy.include_subdomains is False

    def test_first_include_subdomains_wins(self):
        """Test that a later valid includeSubDomains cannot override an invalid first one."""
        policy = parse_hsts_header("max-age=10; includeSubDomains=1; includeSubDomains", now=NOW)
        assert policy.include_subdomains is False

    @pytest.mark.parametrize("digits", [400, 5000])
    def test_huge_max_age_is_clamped(self, digits):
        """Test that a max-age too large for a float or for int() is clamped."""
        policy = parse_hsts_header("max-age=" + "9" * digits + "; includeSubDomains", now=NOW)

        assert policy.max_age == MAX_AGE_LIMIT
        assert policy.include_subdomains is True
        assert not policy.is_expired(NOW + 10**9)

    def test_leading_zeros(self):
        """Test that leading zeros do not count towards the clamp."""
        policy = parse_hsts_header("max-age=" + "0" * 5000 + "42", now=NOW)
        assert policy.max_age == 42

    def test_max_age_at_limit(self):
        policy = parse_hsts_header(f"max-age={MAX_AGE_LIMIT}", now=NOW)
        assert policy.max_age == MAX_AGE_LIMIT


class TestParseInvalid:
    """Tests for headers that produce no policy."""

    @pytest.mark.parametrize(
        "header",
        [
            "max-age='1234'",
            "includeSubDomains",
            "",
            " \t ; ; ",
            "max-age",
            "max-age=",
            "max-age=-5",
            "max-age=12.5",
            "max-age=1e3",
            'max-age="123',
            'max-age="1"2"',
            "max-age=abc; max-age=10",
        ],
    )
    def test_invalid(self, header):
        """Test headers without a valid max-age directive."""
        assert parse_hsts_header(header, now=NOW) is None


class TestHSTSPolicy:
    """Tests for the HSTSPolicy class."""

    def test_expiry_boundary(self):
        """Test that a policy expires strictly after received_at + max_age."""
        policy = HSTSPolicy(max_age=1, received_at=100.0)
        assert not policy.is_expired(100.0)
        assert not policy.is_expired(101.0)
        assert policy.is_expired(101.001)

    def test_preloaded_never_expires(self):
        """Test that a policy without received_at never expires."""
        policy = HSTSPolicy(max_age=1, include_subdomains=True)
        assert policy.is_preloaded
        assert policy.expires is None
        assert not policy.is_expired(1e12)

    def test_expiry_with_oversized_max_age(self):
        """Test that expiry stays finite for a max-age built by hand."""
        policy = HSTSPolicy(max_age=10**400, received_at=100.0)
        assert policy.expires == 100.0 + MAX_AGE_LIMIT
        assert not policy.is_expired(1e12)
