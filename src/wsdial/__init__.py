"""
wsdial - endpoint resolution for WebSocket clients.

wsdial turns a ``ws://``, ``wss://``, ``http://`` or ``https://`` reference
into a connected socket, ready for a WebSocket opening handshake. It
provides:
- URI, IRI and URL-like input normalization
- Plain and TLS socket factories with configurable precedence
- ``Host`` header and Request-URI values for the handshake

:license: MIT, see LICENSE for more details.
"""

from __future__ import annotations

# Import version
from ._version import __version__

# Set default logging handler to avoid "No handler found" warnings.
import logging
from logging import NullHandler

logging.getLogger(__name__).addHandler(NullHandler())

# Import exceptions first to avoid circular imports
from . import exceptions

from .factory import (
    PlainSocketFactory,
    SocketFactory,
    SSLSocketFactory,
    default_socket_factory,
    default_ssl_socket_factory,
)
from .resolver import EndpointResolver, FactoryConfiguration, ResolvedTarget
from .util.url import Url, parse_url

__all__ = (
    "__version__",
    "EndpointResolver",
    "FactoryConfiguration",
    "ResolvedTarget",
    "SocketFactory",
    "PlainSocketFactory",
    "SSLSocketFactory",
    "default_socket_factory",
    "default_ssl_socket_factory",
    "Url",
    "parse_url",
    "resolve",
    "add_stderr_logger",
)

# Import specific exceptions for convenience
from .exceptions import (
    DialError,
    EmptyHostError,
    LocationParseError,
    LocationValueError,
    NoDefaultFactoryError,
    URLSchemeUnknown,
)


def add_stderr_logger(level=logging.DEBUG):
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


def resolve(
    reference,
    *,
    socket_factory=None,
    ssl_socket_factory=None,
    ssl_context=None,
):
    """
    A convenience, top-level resolve method. It uses a throwaway
    ``EndpointResolver`` built from the given overrides.
    """
    resolver = EndpointResolver(
        socket_factory=socket_factory,
        ssl_socket_factory=ssl_socket_factory,
        ssl_context=ssl_context,
    )
    return resolver.resolve(reference)
