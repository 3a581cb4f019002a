"""
Endpoint resolution for wsdial.

This module turns an endpoint reference for a WebSocket-style connection
into a connected socket plus the addressing strings the opening handshake
needs (``Host`` header value and Request-URI).
"""

from __future__ import annotations

import logging
import socket
import ssl
import typing
from dataclasses import dataclass

from .exceptions import EmptyHostError, LocationValueError, URLSchemeUnknown
from .factory import (
    SocketFactory,
    default_socket_factory,
    default_ssl_socket_factory,
    socket_factory_from_context,
)
from .util.url import normalize_reference

log = logging.getLogger(__name__)

SECURE_SCHEMES = ("wss", "https")
PLAIN_SCHEMES = ("ws", "http")

DEFAULT_PORTS = {True: 443, False: 80}


@dataclass
class FactoryConfiguration:
    """
    Socket factory overrides.

    On the secure path ``ssl_context`` wins over ``ssl_socket_factory``,
    which wins over the platform default. On the plain path
    ``socket_factory`` wins over the platform default.
    """

    socket_factory: SocketFactory | None = None
    ssl_socket_factory: SocketFactory | None = None
    ssl_context: ssl.SSLContext | None = None


@dataclass
class ResolvedTarget:
    """
    A connected socket and the addressing data of the endpoint it reaches.

    Closing the target closes the socket.
    """

    socket: socket.socket
    host_header: str
    request_path: str
    user_info: str | None = None
    secure: bool = False
    host: str = ""
    port: int = -1

    def close(self) -> None:
        """Close the underlying socket."""
        self.socket.close()

    def __enter__(self) -> "ResolvedTarget":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: typing.Any,
    ) -> None:
        self.close()


def is_secure_scheme(scheme: str | None) -> bool:
    """
    Tell whether *scheme* asks for a TLS connection.

    :raises LocationValueError: If the scheme is missing or empty
    :raises URLSchemeUnknown: If the scheme is not ws, wss, http or https
    """
    if not scheme:
        raise LocationValueError("The scheme part is empty.")

    lowered = scheme.lower()
    if lowered in SECURE_SCHEMES:
        return True
    if lowered in PLAIN_SCHEMES:
        return False

    raise URLSchemeUnknown(scheme)


def determine_path(path: str | None) -> str:
    """Return *path* with a guaranteed leading slash (``"/"`` if empty)."""
    if not path:
        return "/"

    if path.startswith("/"):
        return path

    return "/" + path


def determine_port(port: int | None, secure: bool) -> int:
    """Return *port*, or the scheme default when it is unspecified."""
    if port is not None and port >= 0:
        return port

    return DEFAULT_PORTS[secure]


def build_host_header(host: str, port: int | None) -> str:
    """Value for the ``Host`` header: ``host`` or ``host:port``."""
    if ":" in host and not host.startswith("["):
        # IPv6 literal
        host = f"[{host}]"

    if port is None or port < 0:
        return host

    return f"{host}:{port}"


def build_request_path(path: str, query: str | None) -> str:
    """Value for the Request-URI: ``path`` or ``path?query``."""
    if query is None:
        return path

    return f"{path}?{query}"


class EndpointResolver:
    """
    Resolves endpoint references into connected sockets.

    The socket factory overrides live in :attr:`config` and are also
    exposed as plain attributes. They may be changed between calls to
    :meth:`resolve`, but not while a call is in flight.

    :param socket_factory: Factory for ``ws``/``http`` endpoints
    :param ssl_socket_factory: Factory for ``wss``/``https`` endpoints
    :param ssl_context: Context for ``wss``/``https`` endpoints, used in
        preference to *ssl_socket_factory*
    """

    def __init__(
        self,
        socket_factory: SocketFactory | None = None,
        ssl_socket_factory: SocketFactory | None = None,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self.config = FactoryConfiguration(
            socket_factory=socket_factory,
            ssl_socket_factory=ssl_socket_factory,
            ssl_context=ssl_context,
        )

    @property
    def socket_factory(self) -> SocketFactory | None:
        return self.config.socket_factory

    @socket_factory.setter
    def socket_factory(self, factory: SocketFactory | None) -> None:
        self.config.socket_factory = factory

    @property
    def ssl_socket_factory(self) -> SocketFactory | None:
        return self.config.ssl_socket_factory

    @ssl_socket_factory.setter
    def ssl_socket_factory(self, factory: SocketFactory | None) -> None:
        self.config.ssl_socket_factory = factory

    @property
    def ssl_context(self) -> ssl.SSLContext | None:
        return self.config.ssl_context

    @ssl_context.setter
    def ssl_context(self, context: ssl.SSLContext | None) -> None:
        self.config.ssl_context = context

    def resolve(self, reference: typing.Any) -> ResolvedTarget:
        """
        Resolve *reference* and dial the endpoint it names.

        :param reference: A URI string, a URL-like object (anything with
            ``geturl()``) or a :class:`~wsdial.util.url.Url`
        :return: The connected socket and its addressing data
        :raises LocationValueError: If the reference is invalid. Nothing
            has been dialed in that case.
        :raises OSError: If connecting fails. The error of the socket
            factory is raised as is.
        """
        url = normalize_reference(reference)

        secure = is_secure_scheme(url.scheme)

        if not url.host:
            raise EmptyHostError(str(url))

        path = determine_path(url.path)
        port = determine_port(url.port, secure)
        factory = self.determine_socket_factory(secure)

        log.debug(
            "Starting new %s connection: %s:%d",
            "secure" if secure else "plain",
            url.host,
            port,
        )
        sock = factory.create_socket(url.host, port)

        return ResolvedTarget(
            socket=sock,
            host_header=build_host_header(url.host, port),
            request_path=build_request_path(path, url.query),
            user_info=url.user_info,
            secure=secure,
            host=url.host,
            port=port,
        )

    def determine_socket_factory(self, secure: bool) -> SocketFactory:
        """
        Pick the socket factory for a secure or plain connection.

        The first configured provider wins; the platform default comes
        last.
        """
        config = self.config

        providers: tuple[typing.Callable[[], SocketFactory | None], ...]
        if secure:
            providers = (
                self._context_socket_factory,
                lambda: config.ssl_socket_factory,
                default_ssl_socket_factory,
            )
        else:
            providers = (
                lambda: config.socket_factory,
                default_socket_factory,
            )

        for provider in providers[:-1]:
            factory = provider()
            if factory is not None:
                return factory

        return providers[-1]()

    def _context_socket_factory(self) -> SocketFactory | None:
        if self.config.ssl_context is None:
            return None
        return socket_factory_from_context(self.config.ssl_context)
