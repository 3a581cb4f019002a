"""
Tests for endpoint resolution.
"""

from __future__ import annotations

import logging
import socket
import ssl
import urllib.parse
from unittest import mock

import pytest

import wsdial
from wsdial.exceptions import (
    EmptyHostError,
    LocationParseError,
    LocationValueError,
    URLSchemeUnknown,
)
from wsdial.factory import (
    SSLSocketFactory,
    default_socket_factory,
    default_ssl_socket_factory,
)
from wsdial.resolver import (
    EndpointResolver,
    FactoryConfiguration,
    ResolvedTarget,
    build_host_header,
    build_request_path,
    determine_path,
    determine_port,
    is_secure_scheme,
)
from wsdial.util.url import Url


def make_factory():
    """A socket factory double handing out mock sockets."""
    factory = mock.Mock()
    factory.create_socket.return_value = mock.Mock(spec=socket.socket)
    return factory


class TestIsSecureScheme:
    """Tests for scheme classification."""

    @pytest.mark.parametrize("scheme", ["wss", "WSS", "Wss", "https", "HTTPS", "HtTpS"])
    def test_secure(self, scheme):
        """Test schemes that ask for TLS."""
        assert is_secure_scheme(scheme) is True

    @pytest.mark.parametrize("scheme", ["ws", "WS", "wS", "http", "HTTP", "Http"])
    def test_plain(self, scheme):
        """Test schemes that ask for a plain connection."""
        assert is_secure_scheme(scheme) is False

    @pytest.mark.parametrize("scheme", [None, ""])
    def test_empty(self, scheme):
        """Test that a missing scheme is rejected."""
        with pytest.raises(LocationValueError, match="scheme part is empty"):
            is_secure_scheme(scheme)

    @pytest.mark.parametrize("scheme", ["ftp", "file", "wsx", "ws ", "httpss", "tcp"])
    def test_bad_scheme(self, scheme):
        """Test that unknown schemes are rejected."""
        with pytest.raises(URLSchemeUnknown, match="Bad scheme") as excinfo:
            is_secure_scheme(scheme)

        assert excinfo.value.scheme == scheme
        assert isinstance(excinfo.value, LocationValueError)


class TestDeterminePath:
    """Tests for path normalization."""

    @pytest.mark.parametrize(
        "path, expected",
        [
            (None, "/"),
            ("", "/"),
            ("/", "/"),
            ("/a/b", "/a/b"),
            ("a/b", "/a/b"),
            ("chat", "/chat"),
        ],
    )
    def test_determine_path(self, path, expected):
        """Test that every path gets a leading slash."""
        assert determine_path(path) == expected


class TestDeterminePort:
    """Tests for port resolution."""

    @pytest.mark.parametrize("port", [0, 1, 80, 443, 8080, 65535])
    @pytest.mark.parametrize("secure", [True, False])
    def test_explicit_port(self, port, secure):
        """Test that an explicit port is kept whatever the scheme."""
        assert determine_port(port, secure) == port

    @pytest.mark.parametrize("port", [None, -1, -100])
    def test_default_port(self, port):
        """Test the scheme default ports."""
        assert determine_port(port, True) == 443
        assert determine_port(port, False) == 80


class TestAssembly:
    """Tests for the Host header and Request-URI values."""

    def test_host_header(self):
        """Test that a known port is appended."""
        assert build_host_header("example.com", 443) == "example.com:443"

    @pytest.mark.parametrize("port", [None, -1])
    def test_host_header_no_port(self, port):
        """Test that an unknown port is left out."""
        assert build_host_header("example.com", port) == "example.com"

    def test_host_header_ipv6(self):
        """Test that IPv6 literals are bracketed."""
        assert build_host_header("::1", 80) == "[::1]:80"
        assert build_host_header("[::1]", 80) == "[::1]:80"

    def test_request_path_with_query(self):
        """Test that the query is appended after '?'."""
        assert build_request_path("/chat", "id=1") == "/chat?id=1"

    def test_request_path_without_query(self):
        """Test that the path is unchanged without a query."""
        assert build_request_path("/chat", None) == "/chat"

    def test_request_path_empty_query(self):
        """Test that an empty query keeps its '?'."""
        assert build_request_path("/chat", "") == "/chat?"


class TestEndpointResolver:
    """Tests for EndpointResolver.resolve."""

    def test_plain_endpoint(self):
        """Test resolving a ws:// URI without port."""
        factory = make_factory()
        resolver = EndpointResolver(socket_factory=factory)

        target = resolver.resolve("ws://example.com/chat")

        factory.create_socket.assert_called_once_with("example.com", 80)
        assert target.socket is factory.create_socket.return_value
        assert target.secure is False
        assert target.port == 80
        assert target.host_header == "example.com:80"
        assert target.request_path == "/chat"
        assert target.user_info is None

    def test_secure_endpoint(self):
        """Test resolving a wss:// URI with port and query."""
        factory = make_factory()
        resolver = EndpointResolver(ssl_socket_factory=factory)

        target = resolver.resolve("wss://example.com:9443/socket?x=1")

        factory.create_socket.assert_called_once_with("example.com", 9443)
        assert target.secure is True
        assert target.port == 9443
        assert target.host_header == "example.com:9443"
        assert target.request_path == "/socket?x=1"

    def test_https_uses_default_port(self):
        """Test that https:// is treated like wss://."""
        factory = make_factory()
        resolver = EndpointResolver(ssl_socket_factory=factory)

        target = resolver.resolve("HTTPS://example.com")

        factory.create_socket.assert_called_once_with("example.com", 443)
        assert target.host_header == "example.com:443"
        assert target.request_path == "/"

    def test_bad_scheme(self):
        """Test that an unknown scheme fails before dialing."""
        factory = make_factory()
        resolver = EndpointResolver(socket_factory=factory, ssl_socket_factory=factory)

        with pytest.raises(URLSchemeUnknown, match="ftp"):
            resolver.resolve("ftp://example.com")

        factory.create_socket.assert_not_called()

    def test_empty_host(self):
        """Test that a URI without host fails before dialing."""
        factory = make_factory()
        resolver = EndpointResolver(socket_factory=factory)

        with pytest.raises(EmptyHostError, match="host part is empty"):
            resolver.resolve("ws://")

        factory.create_socket.assert_not_called()

    @pytest.mark.parametrize(
        "uri", ["ws://example.com/a[b]", "ws://example.com/p#a#b", "ws://a@b@example.com/"]
    )
    def test_malformed_uri(self, uri):
        """Test that a URI breaking the URI grammar fails before dialing."""
        factory = make_factory()
        resolver = EndpointResolver(socket_factory=factory)

        with pytest.raises(LocationParseError):
            resolver.resolve(uri)

        factory.create_socket.assert_not_called()

    def test_missing_scheme(self):
        """Test that a reference without scheme is rejected."""
        with pytest.raises(LocationValueError, match="scheme part is empty"):
            EndpointResolver().resolve("example.com/chat")

    def test_none(self):
        """Test that None is rejected."""
        with pytest.raises(LocationValueError):
            EndpointResolver().resolve(None)

    def test_user_info_passthrough(self):
        """Test that user info is handed through untouched."""
        resolver = EndpointResolver(socket_factory=make_factory())

        target = resolver.resolve("ws://alice:secret@example.com/")

        assert target.user_info == "alice:secret"
        assert target.host_header == "example.com:80"

    def test_ipv6_endpoint(self):
        """Test that an IPv6 literal is dialed bare and bracketed in Host."""
        factory = make_factory()
        resolver = EndpointResolver(socket_factory=factory)

        target = resolver.resolve("ws://[::1]:8080/")

        factory.create_socket.assert_called_once_with("::1", 8080)
        assert target.host_header == "[::1]:8080"

    def test_urllike_reference(self):
        """Test resolving a URL-like object."""
        factory = make_factory()
        resolver = EndpointResolver(socket_factory=factory)

        target = resolver.resolve(urllib.parse.urlsplit("http://example.com:8000/a?b=c"))

        factory.create_socket.assert_called_once_with("example.com", 8000)
        assert target.request_path == "/a?b=c"

    def test_url_reference(self):
        """Test resolving an already split Url."""
        factory = make_factory()
        resolver = EndpointResolver(ssl_socket_factory=factory)

        target = resolver.resolve(Url(scheme="WSS", host="example.com", port=-1, path="socket"))

        factory.create_socket.assert_called_once_with("example.com", 443)
        assert target.request_path == "/socket"
        assert target.host_header == "example.com:443"

    def test_connect_error_propagates(self):
        """Test that dial errors reach the caller unchanged."""
        error = ConnectionRefusedError(111, "Connection refused")
        factory = mock.Mock()
        factory.create_socket.side_effect = error
        resolver = EndpointResolver(socket_factory=factory)

        with pytest.raises(ConnectionRefusedError) as excinfo:
            resolver.resolve("ws://example.com/")

        assert excinfo.value is error
        factory.create_socket.assert_called_once()

    def test_debug_logging(self, caplog):
        """Test that the dial attempt is logged."""
        caplog.set_level(logging.DEBUG, logger="wsdial")
        resolver = EndpointResolver(socket_factory=make_factory())

        resolver.resolve("ws://example.com/")

        assert "Starting new plain connection: example.com:80" in caplog.text


class TestDetermineSocketFactory:
    """Tests for socket factory precedence."""

    def test_ssl_context_wins(self):
        """Test that the context's factory is used over an explicit one."""
        context = mock.Mock(spec=ssl.SSLContext)
        context_factory = make_factory()
        ssl_factory = make_factory()
        resolver = EndpointResolver(ssl_socket_factory=ssl_factory, ssl_context=context)

        with mock.patch(
            "wsdial.resolver.socket_factory_from_context", return_value=context_factory
        ) as from_context:
            resolver.resolve("wss://example.com/")

        from_context.assert_called_once_with(context)
        context_factory.create_socket.assert_called_once_with("example.com", 443)
        ssl_factory.create_socket.assert_not_called()

    def test_ssl_context_factory(self):
        """Test that the factory derived from a context wraps with it."""
        context = mock.Mock(spec=ssl.SSLContext)
        resolver = EndpointResolver(ssl_context=context)

        factory = resolver.determine_socket_factory(True)

        assert isinstance(factory, SSLSocketFactory)
        assert factory.ssl_context is context

    def test_ssl_socket_factory(self):
        """Test that an explicit TLS factory beats the default."""
        ssl_factory = make_factory()
        resolver = EndpointResolver(ssl_socket_factory=ssl_factory)

        assert resolver.determine_socket_factory(True) is ssl_factory

    def test_default_ssl_socket_factory(self):
        """Test falling back to the process-wide TLS factory."""
        resolver = EndpointResolver()

        assert resolver.determine_socket_factory(True) is default_ssl_socket_factory()

    def test_socket_factory(self):
        """Test that an explicit plain factory beats the default."""
        plain_factory = make_factory()
        resolver = EndpointResolver(socket_factory=plain_factory)

        assert resolver.determine_socket_factory(False) is plain_factory

    def test_default_socket_factory(self):
        """Test falling back to the process-wide plain factory."""
        resolver = EndpointResolver()

        assert resolver.determine_socket_factory(False) is default_socket_factory()

    def test_plain_ignores_secure_overrides(self):
        """Test that TLS overrides are not used for plain endpoints."""
        ssl_factory = make_factory()
        resolver = EndpointResolver(
            ssl_socket_factory=ssl_factory, ssl_context=mock.Mock(spec=ssl.SSLContext)
        )

        assert resolver.determine_socket_factory(False) is default_socket_factory()

    def test_config_is_not_mutated(self):
        """Test that selecting a factory leaves the configuration alone."""
        resolver = EndpointResolver()

        resolver.determine_socket_factory(True)
        resolver.determine_socket_factory(False)

        assert resolver.config == FactoryConfiguration()

    def test_overrides_can_change_between_calls(self):
        """Test that attributes write through to the configuration."""
        first = make_factory()
        second = make_factory()
        resolver = EndpointResolver(socket_factory=first)

        resolver.resolve("ws://example.com/")
        resolver.socket_factory = second
        resolver.resolve("ws://example.com/")

        assert resolver.config.socket_factory is second
        first.create_socket.assert_called_once()
        second.create_socket.assert_called_once()

    def test_attributes(self):
        """Test the configuration attributes."""
        context = mock.Mock(spec=ssl.SSLContext)
        ssl_factory = make_factory()
        resolver = EndpointResolver()

        resolver.ssl_context = context
        resolver.ssl_socket_factory = ssl_factory

        assert resolver.ssl_context is context
        assert resolver.ssl_socket_factory is ssl_factory
        assert resolver.socket_factory is None
        assert resolver.config == FactoryConfiguration(
            ssl_socket_factory=ssl_factory, ssl_context=context
        )


class TestResolvedTarget:
    """Tests for ResolvedTarget."""

    def test_context_manager_closes_socket(self):
        """Test that leaving the with block closes the socket."""
        sock = mock.Mock(spec=socket.socket)

        with ResolvedTarget(sock, "example.com:80", "/") as target:
            assert target.socket is sock

        sock.close.assert_called_once_with()


class TestTopLevel:
    """Tests for the package-level helpers."""

    def test_resolve(self):
        """Test the module-level resolve helper."""
        factory = make_factory()

        target = wsdial.resolve("ws://example.com/chat?id=1", socket_factory=factory)

        factory.create_socket.assert_called_once_with("example.com", 80)
        assert target.request_path == "/chat?id=1"

    def test_add_stderr_logger(self):
        """Test attaching a stderr handler to the package logger."""
        logger = logging.getLogger("wsdial")
        level = logger.level

        handler = wsdial.add_stderr_logger()
        try:
            assert handler in logger.handlers
            assert logger.level == logging.DEBUG
        finally:
            logger.removeHandler(handler)
            logger.setLevel(level)
