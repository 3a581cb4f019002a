"""
URI handling for wsdial.

Endpoint references come in three shapes: URI strings, URL-like objects
(anything with a ``geturl()`` method, such as the results of
:func:`urllib.parse.urlsplit`) and already split :class:`Url` tuples. This
module reduces all of them to a :class:`Url`.
"""

from __future__ import annotations

import re
import typing
import urllib.parse

import idna

from ..exceptions import LocationParseError, LocationValueError

# All characters from the gen-delims and sub-delims sets in RFC 3986, plus
# "%" so that escapes already present survive quoting.
DELIMS = ":/?#[]@!$&'()*+,;=%"

# Characters that may not appear anywhere in a URI (RFC 3986, appendix A).
_ILLEGAL_CHARS_RE = re.compile(r'[\x00-\x20\x7f"<>\\^`{|}]')
_BAD_PERCENT_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

# Character sets of the individual components (RFC 3986, section 3).
# Escapes are checked separately by _BAD_PERCENT_RE.
_UNRESERVED = r"A-Za-z0-9\-._~"
_SUB_DELIMS = r"!$&'()*+,;="
_USERINFO_RE = re.compile(rf"^[{_UNRESERVED}{_SUB_DELIMS}%:]*\Z")
_PATH_RE = re.compile(rf"^[{_UNRESERVED}{_SUB_DELIMS}%:@/]*\Z")
_QUERY_RE = re.compile(rf"^[{_UNRESERVED}{_SUB_DELIMS}%:@/?]*\Z")


class Url(typing.NamedTuple):
    """
    A URI split into the parts needed to dial an endpoint.

    ``port`` is ``None`` (or negative) when the URI does not name one.
    ``path`` and ``query`` are kept in their raw, percent-encoded form.
    ``query`` is ``None`` when the URI has no ``?`` at all and ``""`` when
    the query is present but empty.
    """

    scheme: str | None = None
    user_info: str | None = None
    host: str | None = None
    port: int | None = None
    path: str | None = None
    query: str | None = None

    @property
    def netloc(self) -> str | None:
        """Authority component: ``[user_info@]host[:port]``."""
        if self.host is None:
            return None
        netloc = f"[{self.host}]" if ":" in self.host else self.host
        if self.user_info is not None:
            netloc = f"{self.user_info}@{netloc}"
        if self.port is not None and self.port >= 0:
            netloc += f":{self.port}"
        return netloc

    @property
    def url(self) -> str:
        """Convert self into a URI string."""
        url = ""
        if self.scheme is not None:
            url += self.scheme + ":"
        if self.netloc is not None:
            url += "//" + self.netloc
        if self.path:
            url += self.path
        if self.query is not None:
            url += "?" + self.query
        return url

    def __str__(self) -> str:
        return self.url


def _encode_host(host: str, location: str) -> str:
    if host.isascii():
        return host
    try:
        return idna.encode(host, uts46=True).decode("ascii")
    except idna.IDNAError as e:
        raise LocationParseError(location, f"invalid host {host!r}") from e


def _encode_component(component: str | None) -> str | None:
    if component is None or component.isascii():
        return component
    return urllib.parse.quote(component, safe=DELIMS)


def parse_url(url: str) -> Url:
    """
    Parse a URI string into a :class:`Url`.

    The string is checked against RFC 3986 syntax before it is split. An
    IRI (a URI with non-ASCII characters) is converted to a URI: the host is
    IDNA-encoded and the other components are percent-encoded as UTF-8.

    :param url: URI to parse
    :return: The split URI
    :raises LocationValueError: If ``url`` is ``None``
    :raises LocationParseError: If ``url`` is not a valid URI
    """
    if url is None:
        raise LocationValueError("The given URI is None.")

    if _ILLEGAL_CHARS_RE.search(url):
        raise LocationParseError(url, "illegal character")
    if _BAD_PERCENT_RE.search(url):
        raise LocationParseError(url, "malformed percent-encoding")

    try:
        split = urllib.parse.urlsplit(url)
        # The port is parsed lazily; a bad one only shows up here.
        port = split.port
    except ValueError as e:
        raise LocationParseError(url, str(e)) from e

    user_info = None
    if "@" in split.netloc:
        user_info = split.netloc.rpartition("@")[0]

    host = split.hostname
    if host is not None:
        host = _encode_host(host, url)

    # urlsplit() reports "" for both a missing and an empty query.
    query = None
    if "?" in url.partition("#")[0]:
        query = split.query

    user_info = _encode_component(user_info)
    path = _encode_component(split.path)
    query = _encode_component(query)

    for name, value, pattern in (
        ("user info", user_info, _USERINFO_RE),
        ("path", path, _PATH_RE),
        ("query", query, _QUERY_RE),
        ("fragment", _encode_component(split.fragment), _QUERY_RE),
    ):
        if value is not None and not pattern.match(value):
            raise LocationParseError(url, f"illegal character in {name}")

    return Url(
        scheme=split.scheme or None,
        user_info=user_info,
        host=host,
        port=port,
        path=path,
        query=query,
    )


def url_from_urllike(url: typing.Any) -> Url:
    """
    Convert a URL-like object into a :class:`Url`.

    :param url: Object with a ``geturl()`` method
    :raises LocationValueError: If ``url`` is ``None`` or is not
        representable as a valid URI
    """
    if url is None:
        raise LocationValueError("The given URL is None.")

    text = url.geturl()
    try:
        if isinstance(text, bytes):
            text = text.decode("ascii")
        return parse_url(text)
    except (LocationParseError, UnicodeDecodeError) as e:
        raise LocationValueError(
            f"Failed to convert the given URL into a URI: {text!r}"
        ) from e


def normalize_reference(reference: typing.Any) -> Url:
    """
    Reduce any accepted endpoint reference to a :class:`Url`.

    :param reference: A URI string, a URL-like object or a :class:`Url`
    :raises LocationValueError: If the reference is ``None``, invalid or of
        an unsupported type
    """
    if reference is None:
        raise LocationValueError("The given URI is None.")

    if isinstance(reference, Url):
        return reference

    if isinstance(reference, str):
        return parse_url(reference)

    if hasattr(reference, "geturl"):
        return url_from_urllike(reference)

    raise LocationValueError(
        f"Unsupported URI type: {type(reference).__name__}"
    )
