"""
Tests for the PoolManager.
"""

from __future__ import annotations

import io
import json

import pytest

from hstsguard import HSTSTransport, HTTPResponse, PoolManager
from hstsguard.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from hstsguard.exceptions import LocationValueError, MaxRetryError, URLSchemeUnknown
from hstsguard.util.retry import Retry


class RoutingSender:
    """Answers requests from a table of ``url -> (status, headers)``."""

    def __init__(self, routes=None, hsts_header=None):
        self.routes = routes or {}
        self.hsts_header = hsts_header
        self.requests = []
        self.bodies = []

    def __call__(self, request):
        self.requests.append(request)
        body = request.body
        if hasattr(body, "read"):
            body = body.read()
        self.bodies.append(body)

        status, headers = self.routes.get(request.url, (200, {}))
        headers = dict(headers)
        if request.scheme == "https" and self.hsts_header:
            headers["Strict-Transport-Security"] = self.hsts_header
        return HTTPResponse(body=b"", headers=headers, status=status, request=request)


def manager_for(sender, **kw):
    preload = kw.pop("preload", None)
    return PoolManager(hsts=HSTSTransport(sender, preload=preload), **kw)


class TestHSTSRedirects:
    """Tests for following HSTS upgrades."""

    def test_preloaded_request_goes_out_over_https(self):
        """Test that the synthetic redirect is followed to the HTTPS URL."""
        sender = RoutingSender()
        http = manager_for(sender, preload={"example.com": True})

        response = http.request("GET", "http://www.example.com/a?b=c")

        assert response.status == 200
        assert response.request_url == "https://www.example.com/a?b=c"
        assert [r.status for r in response.history] == [307]
        assert [r.url for r in sender.requests] == ["https://www.example.com/a?b=c"]

    def test_learned_policy(self):
        """Test the end-to-end scenario through the PoolManager."""
        sender = RoutingSender(hsts_header="max-age=3600; includeSubDomains")
        http = manager_for(sender)

        assert http.request("GET", "http://example.com/").request_url == "http://example.com/"
        http.request("GET", "https://example.com/")

        assert http.request("GET", "http://example.com/").request_url == "https://example.com/"
        assert http.request("GET", "http://sub.example.com/").request_url == "https://sub.example.com/"
        assert [r.scheme for r in sender.requests] == ["http", "https", "https", "https"]

    def test_no_redirect(self):
        """Test that redirect=False hands the synthetic redirect to the caller."""
        sender = RoutingSender()
        http = manager_for(sender, preload={"example.com": False})

        response = http.request("GET", "http://example.com/", redirect=False)

        assert response.status == 307
        assert response.get_redirect_location() == "https://example.com/"
        assert sender.requests == []

    def test_method_and_body_kept(self):
        """Test that a 307 upgrade resends the same method and a rewound body."""
        sender = RoutingSender()
        http = manager_for(sender, preload={"example.com": False})
        body = io.BytesIO(b"payload")

        response = http.request("POST", "http://example.com/submit", body=body)

        assert response.status == 200
        assert sender.requests[0].method == "POST"
        assert sender.bodies == [b"payload"]

    def test_disabled(self):
        """Test that hsts=False sends plaintext requests as they are."""
        http = PoolManager(hsts=False)
        assert http.hsts is None

    def test_preload_argument(self):
        """Test that preload seeds the PoolManager's own transport."""
        http = PoolManager(preload={"example.com": True})
        assert http.hsts.cache.get("example.com").is_preloaded


class TestRedirects:
    """Tests for general redirect handling."""

    def test_303_becomes_get(self):
        """Test that a 303 turns the request into a GET without a body."""
        sender = RoutingSender({"https://example.com/form": (303, {"Location": "/done"})})
        http = manager_for(sender)

        response = http.request(
            "POST",
            "https://example.com/form",
            body=b"a=1",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.request_url == "https://example.com/done"
        second = sender.requests[1]
        assert second.method == "GET"
        assert second.body is None
        assert "Content-Type" not in second.headers

    def test_cross_host_redirect_strips_credentials(self):
        """Test that Authorization is not forwarded to another host."""
        sender = RoutingSender({"https://example.com/": (302, {"Location": "https://other.example/"})})
        http = manager_for(sender)

        http.request("GET", "https://example.com/", headers={"Authorization": "Bearer x", "X-Keep": "1"})

        second = sender.requests[1]
        assert "Authorization" not in second.headers
        assert second.headers["X-Keep"] == "1"

    def test_same_host_redirect_keeps_credentials(self):
        """Test that Authorization survives a redirect on the same host."""
        sender = RoutingSender({"https://example.com/": (301, {"Location": "/home"})})
        http = manager_for(sender)

        http.request("GET", "https://example.com/", headers={"Authorization": "Bearer x"})
        assert sender.requests[1].headers["Authorization"] == "Bearer x"

    def test_too_many_redirects(self):
        """Test that a redirect loop raises MaxRetryError."""
        sender = RoutingSender(
            {
                "https://example.com/a": (302, {"Location": "/b"}),
                "https://example.com/b": (302, {"Location": "/a"}),
            }
        )
        http = manager_for(sender)

        with pytest.raises(MaxRetryError):
            http.request("GET", "https://example.com/a", retries=2)

    def test_too_many_redirects_without_raising(self):
        """Test that the last redirect is returned when raising is disabled."""
        sender = RoutingSender(
            {
                "https://example.com/a": (302, {"Location": "/b"}),
                "https://example.com/b": (302, {"Location": "/a"}),
            }
        )
        http = manager_for(sender)

        response = http.request("GET", "https://example.com/a", retries=Retry(1, raise_on_redirect=False))

        assert response.status == 302
        assert len(sender.requests) == 2

    def test_unrewindable_body(self):
        """Test that a body whose position cannot be recorded fails the redirect."""
        from hstsguard.exceptions import UnrewindableBodyError

        class NoTell(io.BytesIO):
            def tell(self):
                raise OSError("no tell")

        sender = RoutingSender()
        http = manager_for(sender, preload={"example.com": False})

        with pytest.raises(UnrewindableBodyError):
            http.request("PUT", "http://example.com/", body=NoTell(b"data"))


class TestPoolManager:
    """Tests for pool selection and request building."""

    def test_default_headers(self):
        """Test that a User-Agent is sent by default and can be overridden."""
        sender = RoutingSender()
        http = manager_for(sender)

        http.request("GET", "https://example.com/")
        http.request("GET", "https://example.com/", headers={"user-agent": "custom"})

        assert sender.requests[0].headers["User-Agent"].startswith("python-hstsguard/")
        assert sender.requests[1].headers["User-Agent"] == "custom"

    def test_json_body(self):
        """Test that json= serializes the body and sets Content-Type."""
        sender = RoutingSender()
        http = manager_for(sender)

        http.request("POST", "https://example.com/api", json={"name": "value"})

        request = sender.requests[0]
        assert json.loads(request.body) == {"name": "value"}
        assert request.headers["Content-Type"] == "application/json"

    def test_json_and_body_conflict(self):
        """Test that body and json cannot both be given."""
        http = manager_for(RoutingSender())
        with pytest.raises(TypeError):
            http.request("POST", "https://example.com/", body=b"x", json={})

    def test_connection_from_url(self):
        """Test that pools are created per origin and reused."""
        http = PoolManager(hsts=False)

        pool = http.connection_from_url("http://example.com/a")
        assert isinstance(pool, HTTPConnectionPool)
        assert (pool.host, pool.port) == ("example.com", 80)
        assert http.connection_from_url("http://EXAMPLE.com:80/b") is pool

        secure = http.connection_from_url("https://example.com:8443/")
        assert isinstance(secure, HTTPSConnectionPool)
        assert secure.port == 8443

    def test_pools_are_bounded(self):
        """Test that the least recently used pool is closed and dropped."""
        http = PoolManager(num_pools=1, hsts=False)
        first = http.connection_from_url("http://a.example/")
        http.connection_from_url("http://b.example/")

        assert first.closed
        assert len(http.pools) == 1

    def test_unknown_scheme(self):
        """Test that unsupported schemes are rejected."""
        http = PoolManager(hsts=False)
        with pytest.raises(URLSchemeUnknown):
            http.connection_from_url("ftp://example.com/")

    def test_no_host(self):
        """Test that URLs without a host are rejected."""
        http = PoolManager(hsts=False)
        with pytest.raises(LocationValueError):
            http.connection_from_url("http:///path")

    def test_clear(self):
        """Test that clear() closes pools but keeps HSTS policies."""
        http = PoolManager(preload={"example.com": True})
        pool = http.connection_from_url("https://example.com/")

        with http:
            pass

        assert pool.closed
        assert http.hsts.cache.get("example.com") is not None
