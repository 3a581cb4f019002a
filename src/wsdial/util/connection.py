"""
Plain TCP connection helpers for wsdial.
"""

from __future__ import annotations

import socket
import typing

_TYPE_SOCKET_OPTIONS = typing.Sequence[typing.Tuple[int, int, typing.Union[int, bytes]]]
_TYPE_TIMEOUT = typing.Union[float, None, object]

# Sentinel for "leave the socket at the global default timeout"
_DEFAULT_TIMEOUT = socket._GLOBAL_DEFAULT_TIMEOUT  # type: ignore[attr-defined]


def create_connection(
    address: tuple[str, int],
    timeout: _TYPE_TIMEOUT = _DEFAULT_TIMEOUT,
    source_address: tuple[str, int] | None = None,
    socket_options: _TYPE_SOCKET_OPTIONS | None = None,
) -> socket.socket:
    """
    Connect to *address* and return the socket object.

    Like :func:`socket.create_connection`, every address returned by
    :func:`socket.getaddrinfo` is tried in turn, but *socket_options* are
    applied before connecting. A socket that fails to connect is closed.

    :param address: ``(host, port)`` pair
    :param timeout: Timeout applied to the socket before connecting
    :param source_address: ``(host, port)`` to bind to before connecting
    :param socket_options: ``(level, optname, value)`` triples for
        :meth:`socket.socket.setsockopt`
    :raises OSError: The error of the last address tried
    """
    host, port = address
    if host.startswith("["):
        host = host.strip("[]")

    err = None
    for res in socket.getaddrinfo(host, port, 0, socket.SOCK_STREAM):
        af, socktype, proto, canonname, sa = res
        sock = None
        try:
            sock = socket.socket(af, socktype, proto)

            _set_socket_options(sock, socket_options)

            if timeout is not _DEFAULT_TIMEOUT:
                sock.settimeout(timeout)  # type: ignore[arg-type]
            if source_address:
                sock.bind(source_address)
            sock.connect(sa)
            # Break explicitly a reference cycle
            err = None
            return sock

        except OSError as _:
            err = _
            if sock is not None:
                sock.close()

    if err is not None:
        try:
            raise err
        finally:
            # Break explicitly a reference cycle
            err = None
    else:
        raise OSError("getaddrinfo returns an empty list")


def _set_socket_options(
    sock: socket.socket, options: _TYPE_SOCKET_OPTIONS | None
) -> None:
    if options is None:
        return

    for opt in options:
        sock.setsockopt(*opt)
