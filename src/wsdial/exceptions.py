"""
Exceptions for wsdial.

This module contains all exceptions raised by wsdial.
"""

from __future__ import annotations


class DialError(Exception):
    """Base exception used by this module."""
    pass


class LocationValueError(ValueError, DialError):
    """Raised when there is something wrong with a given URI input."""
    pass


class LocationParseError(LocationValueError):
    """Raised when a URI input does not follow the URI syntax."""

    def __init__(self, location, reason=None):
        message = f"Failed to parse: {location}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)

        self.location = location


class URLSchemeUnknown(LocationValueError):
    """Raised when a URI input has an unsupported scheme."""

    def __init__(self, scheme):
        message = f"Bad scheme: {scheme}"
        super().__init__(message)

        self.scheme = scheme


class EmptyHostError(LocationValueError):
    """Raised when a URI input has no host part."""

    def __init__(self, location=None):
        super().__init__("The host part is empty.")

        self.location = location


class NoDefaultFactoryError(DialError, OSError):
    """
    Raised when the platform cannot supply a default socket factory.

    This happens at dial time, typically when no TLS context can be built
    from the default CA bundle.
    """
    pass
