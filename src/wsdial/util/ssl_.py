"""
SSL utilities for wsdial.
"""

from __future__ import annotations

import socket
import ssl
from typing import Optional, Union

import certifi

from ..exceptions import NoDefaultFactoryError


def resolve_cert_reqs(candidate: Optional[Union[int, str]]) -> int:
    """
    Resolves the certificate requirements.

    Accepts ``None`` (meaning :data:`ssl.CERT_REQUIRED`), a constant from
    the :mod:`ssl` module, or its name with or without the ``CERT_``
    prefix.

    Args:
        candidate: The candidate certificate requirements.

    Returns:
        The resolved certificate requirements.
    """
    if candidate is None:
        return ssl.CERT_REQUIRED

    if isinstance(candidate, str):
        res = getattr(ssl, candidate, None)
        if res is None:
            res = getattr(ssl, "CERT_" + candidate)
        return res

    return candidate


def create_wsdial_context(
    cert_reqs: Optional[Union[int, str]] = None,
    options: Optional[int] = None,
    ciphers: Optional[str] = None,
    ssl_minimum_version: Optional[int] = None,
    ssl_maximum_version: Optional[int] = None,
    ca_certs: Optional[str] = None,
) -> ssl.SSLContext:
    """
    Creates and configures an :class:`ssl.SSLContext` instance for use with wsdial.

    Unless *ca_certs* names another bundle, peers are verified against the
    CA bundle shipped by :mod:`certifi`.

    Args:
        cert_reqs: The certificate requirements.
        options: The SSL options.
        ciphers: The ciphers to use.
        ssl_minimum_version: The minimum TLS version to use.
        ssl_maximum_version: The maximum TLS version to use.
        ca_certs: Path to a CA bundle.

    Returns:
        The configured SSL context.

    Raises:
        NoDefaultFactoryError: If the CA bundle cannot be loaded.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

    cert_reqs = resolve_cert_reqs(cert_reqs)

    if options is None:
        # PROTOCOL_TLS_CLIENT already refuses SSLv2 and SSLv3.
        # Disable compression to prevent CRIME attacks
        options = getattr(ssl, "OP_NO_COMPRESSION", 0)

    context.options |= options

    if getattr(context, "post_handshake_auth", None) is not None:
        context.post_handshake_auth = True

    if cert_reqs == ssl.CERT_NONE:
        # check_hostname has to be off before verify_mode can be relaxed
        context.check_hostname = False
    context.verify_mode = cert_reqs

    if ssl_minimum_version is not None:
        context.minimum_version = ssl_minimum_version

    if ssl_maximum_version is not None:
        context.maximum_version = ssl_maximum_version

    if ciphers:
        context.set_ciphers(ciphers)

    if cert_reqs != ssl.CERT_NONE:
        try:
            context.load_verify_locations(cafile=ca_certs or certifi.where())
        except (IOError, OSError) as e:
            raise NoDefaultFactoryError(
                f"Unable to load CA certificates: {e}"
            ) from e

    return context


def ssl_wrap_socket(
    sock: socket.socket,
    ssl_context: ssl.SSLContext,
    server_hostname: Optional[str] = None,
) -> ssl.SSLSocket:
    """
    Wraps a connected socket with SSL and performs the handshake.

    The handshake runs immediately. If it fails, *sock* is closed before the
    error propagates, so no half-open socket is left behind.

    Args:
        sock: The connected socket to wrap.
        ssl_context: The SSL context to use.
        server_hostname: The server hostname for SNI and certificate
            hostname matching.

    Returns:
        The wrapped socket.
    """
    if server_hostname is not None and server_hostname.startswith("["):
        server_hostname = server_hostname.strip("[]")

    try:
        return ssl_context.wrap_socket(
            sock,
            server_hostname=server_hostname,
            do_handshake_on_connect=True,
        )
    except BaseException:
        sock.close()
        raise
