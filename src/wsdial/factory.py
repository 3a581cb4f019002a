"""
Socket factories for wsdial.

A socket factory is any object with a ``create_socket(host, port)`` method
returning a connected socket. This module provides the plain and TLS
strategies, plus the process-wide defaults used when nothing else is
configured.
"""

from __future__ import annotations

import logging
import socket
import ssl
import threading
import typing

from .util.connection import (
    _DEFAULT_TIMEOUT,
    _TYPE_SOCKET_OPTIONS,
    _TYPE_TIMEOUT,
    create_connection,
)
from .util.ssl_ import create_wsdial_context, ssl_wrap_socket

log = logging.getLogger(__name__)


class SocketFactory(typing.Protocol):
    """Anything that can open a connected socket to ``(host, port)``."""

    def create_socket(self, host: str, port: int) -> socket.socket:
        ...


class PlainSocketFactory:
    """
    Opens plain TCP sockets.

    :param timeout: Connect timeout in seconds, ``None`` to block forever.
        Defaults to the global socket default.
    :param source_address: ``(host, port)`` to bind to before connecting
    :param socket_options: ``(level, optname, value)`` triples set on the
        socket before connecting
    """

    def __init__(
        self,
        timeout: _TYPE_TIMEOUT = _DEFAULT_TIMEOUT,
        source_address: tuple[str, int] | None = None,
        socket_options: _TYPE_SOCKET_OPTIONS | None = None,
    ) -> None:
        self.timeout = timeout
        self.source_address = source_address
        self.socket_options = socket_options

    def create_socket(self, host: str, port: int) -> socket.socket:
        """Connect to ``(host, port)`` and return the socket."""
        return create_connection(
            (host, port),
            self.timeout,
            source_address=self.source_address,
            socket_options=self.socket_options,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(timeout={self.timeout!r})"


class SSLSocketFactory(PlainSocketFactory):
    """
    Opens TCP sockets and wraps them with TLS.

    The handshake completes inside :meth:`create_socket`, with *host* used
    for SNI and certificate hostname matching.

    :param ssl_context: Context to wrap sockets with. When omitted, one is
        created on first use with :func:`~wsdial.util.ssl_.create_wsdial_context`.
    """

    def __init__(
        self,
        ssl_context: ssl.SSLContext | None = None,
        timeout: _TYPE_TIMEOUT = _DEFAULT_TIMEOUT,
        source_address: tuple[str, int] | None = None,
        socket_options: _TYPE_SOCKET_OPTIONS | None = None,
    ) -> None:
        super().__init__(
            timeout=timeout,
            source_address=source_address,
            socket_options=socket_options,
        )
        self._ssl_context = ssl_context
        self._context_lock = threading.Lock()

    @property
    def ssl_context(self) -> ssl.SSLContext:
        """
        The context sockets are wrapped with.

        :raises NoDefaultFactoryError: If no context was given and the
            default one cannot be built
        """
        if self._ssl_context is None:
            with self._context_lock:
                if self._ssl_context is None:
                    log.debug("Creating default SSL context")
                    self._ssl_context = create_wsdial_context()
        return self._ssl_context

    def create_socket(self, host: str, port: int) -> socket.socket:
        """Connect to ``(host, port)``, wrap with TLS and return the socket."""
        context = self.ssl_context
        sock = super().create_socket(host, port)
        try:
            return ssl_wrap_socket(sock, context, server_hostname=host)
        except OSError:
            log.debug("TLS handshake with %s:%d failed, socket closed", host, port)
            raise


def socket_factory_from_context(ssl_context: ssl.SSLContext) -> SSLSocketFactory:
    """Derive a TLS socket factory from an :class:`ssl.SSLContext`."""
    return SSLSocketFactory(ssl_context)


_default_lock = threading.Lock()
_default_socket_factory: PlainSocketFactory | None = None
_default_ssl_socket_factory: SSLSocketFactory | None = None


def default_socket_factory() -> PlainSocketFactory:
    """Return the process-wide plain socket factory."""
    global _default_socket_factory

    if _default_socket_factory is None:
        with _default_lock:
            if _default_socket_factory is None:
                log.debug("Creating default plain socket factory")
                _default_socket_factory = PlainSocketFactory()
    return _default_socket_factory


def default_ssl_socket_factory() -> SSLSocketFactory:
    """
    Return the process-wide TLS socket factory.

    Its context is built lazily, so a platform that cannot provide one fails
    when the first socket is dialed, not here.
    """
    global _default_ssl_socket_factory

    if _default_ssl_socket_factory is None:
        with _default_lock:
            if _default_ssl_socket_factory is None:
                log.debug("Creating default SSL socket factory")
                _default_ssl_socket_factory = SSLSocketFactory()
    return _default_ssl_socket_factory
