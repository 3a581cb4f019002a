#!/usr/bin/env python3
"""
Example demonstrating endpoint resolution with wsdial.

This script resolves a WebSocket URI into a connected socket and prints
the values the opening handshake would use.
"""

import logging
import ssl
import sys

import wsdial
from wsdial import EndpointResolver, PlainSocketFactory, SSLSocketFactory

logger = logging.getLogger(__name__)


def main():
    """Run the endpoint resolution example."""
    logging.basicConfig(level=logging.DEBUG)

    uri = sys.argv[1] if len(sys.argv) > 1 else "wss://echo.websocket.org/"

    # Bound connect time through the factories
    resolver = EndpointResolver(
        socket_factory=PlainSocketFactory(timeout=10),
        ssl_socket_factory=SSLSocketFactory(timeout=10),
    )

    try:
        target = resolver.resolve(uri)
    except wsdial.LocationValueError as e:
        logger.error(f"Invalid endpoint: {e}")
        return 2
    except OSError as e:
        logger.error(f"Could not connect: {e}")
        return 1

    with target:
        logger.info(f"Connected to {target.socket.getpeername()}")
        logger.info(f"Secure: {target.secure}")
        if isinstance(target.socket, ssl.SSLSocket):
            logger.info(f"TLS version: {target.socket.version()}")
        logger.info(f"Host header: {target.host_header}")
        logger.info(f"Request-URI: {target.request_path}")
        if target.user_info:
            logger.info(f"User info: {target.user_info}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
