"""
Utility functions for wsdial.
"""

from __future__ import annotations

from .connection import create_connection  # noqa: F401
from .ssl_ import (  # noqa: F401
    create_wsdial_context,
    resolve_cert_reqs,
    ssl_wrap_socket,
)
from .url import (  # noqa: F401
    Url,
    normalize_reference,
    parse_url,
    url_from_urllike,
)
