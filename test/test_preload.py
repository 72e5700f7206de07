"""
Tests for HSTS preload list loading.
"""

from __future__ import annotations

import base64

import pytest

from hstsguard.exceptions import PreloadError
from hstsguard.util.hsts import HSTSCache
from hstsguard.util.preload import load_preload_list, parse_preload_list

DOCUMENT = """\
// Copyright header
// More comments
{
  // The static pinsets.
  "pinsets": [],
  "entries": [
    { "name": "example.com", "policy": "custom", "mode": "force-https", "include_subdomains": true },
    { "name": "pinned.example", "policy": "custom", "pins": "google" },
    { "name": "plain.example", "policy": "custom", "mode": "force-https" },
    { "name": "plain.example", "policy": "custom", "mode": "force-https", "include_subdomains": true }
  ]
}
"""


class TestParsePreloadList:
    """Tests for parse_preload_list."""

    def test_parse(self):
        """Test that only force-https entries are kept, last one winning."""
        hosts = parse_preload_list(DOCUMENT)

        assert hosts == {"example.com": True, "plain.example": True}

    def test_parse_bytes(self):
        """Test parsing a UTF-8 encoded document."""
        assert parse_preload_list(DOCUMENT.encode("utf-8")) == {"example.com": True, "plain.example": True}

    def test_parse_base64(self):
        """Test parsing a base64-encoded document as served by gitiles."""
        encoded = base64.b64encode(DOCUMENT.encode("utf-8"))

        assert parse_preload_list(encoded, encoded=True) == {"example.com": True, "plain.example": True}

    def test_include_subdomains_defaults_to_false(self):
        """Test that a missing include_subdomains means False."""
        document = '{"entries": [{"name": "a.example", "mode": "force-https"}]}'

        assert parse_preload_list(document) == {"a.example": False}

    @pytest.mark.parametrize(
        "document",
        [
            '{"entries": []}',
            '{"entries": [{"name": "a.example", "pins": "google"}]}',
            '{"entries": [{"mode": "force-https"}]}',
        ],
    )
    def test_empty_result(self, document):
        """Test that a list without force-https hosts is rejected."""
        with pytest.raises(PreloadError, match="empty"):
            parse_preload_list(document)

    @pytest.mark.parametrize("document", ["not json", "[1, 2]", '{"pinsets": []}', '{"entries": {}}'])
    def test_malformed(self, document):
        """Test that documents without an entries array are rejected."""
        with pytest.raises(PreloadError):
            parse_preload_list(document)

    def test_bad_base64(self):
        """Test that undecodable base64 is rejected."""
        with pytest.raises(PreloadError):
            parse_preload_list("!!!not base64", encoded=True)

    def test_bad_utf8(self):
        """Test that undecodable bytes are rejected."""
        with pytest.raises(PreloadError, match="UTF-8"):
            parse_preload_list(b"\xff\xfe{}")

    def test_seeds_cache(self):
        """Test that the parsed mapping seeds permanent policies."""
        cache = HSTSCache(preload=parse_preload_list(DOCUMENT))

        assert cache.get("example.com").is_preloaded
        assert cache.get_matching_policy("www.plain.example") is not None


class TestLoadPreloadList:
    """Tests for load_preload_list."""

    def test_load(self, tmp_path):
        """Test loading a document from a file."""
        path = tmp_path / "transport_security_state_static.json"
        path.write_text(DOCUMENT, encoding="utf-8")

        assert load_preload_list(path) == {"example.com": True, "plain.example": True}

    def test_load_encoded(self, tmp_path):
        """Test loading a base64-encoded document from a file."""
        path = tmp_path / "static.json.b64"
        path.write_bytes(base64.b64encode(DOCUMENT.encode("utf-8")))

        assert load_preload_list(str(path), encoded=True) == {"example.com": True, "plain.example": True}

    def test_missing_file(self, tmp_path):
        """Test that an unreadable file raises PreloadError."""
        with pytest.raises(PreloadError, match="Cannot read"):
            load_preload_list(tmp_path / "missing.json")
