"""
URI value object for http_message.

This module parses, validates and percent-encodes the seven components of
a URI (RFC 3986). Uri instances are immutable: every ``with_*`` method
returns a new instance, and encoding is idempotent so that already encoded
``%XX`` triples survive any number of round trips.
"""

import re
from dataclasses import dataclass, replace
from typing import ClassVar, Dict, Optional, Pattern, Tuple, Union
from urllib.parse import quote, urlsplit

from .exceptions import InvalidArgumentError, describe_type


_UNRESERVED = r"a-zA-Z0-9_\-.~"
_SUB_DELIMS = r"!$&'()*+,;="

# Runs of characters outside each component's allowed set, plus any "%" that
# does not start a valid percent-encoded triple.
_USER_INFO_PATTERN = re.compile(
    rf"(?:[^{_UNRESERVED}{_SUB_DELIMS}%:]+|%(?![A-Fa-f0-9]{{2}}))"
)
_PATH_PATTERN = re.compile(
    rf"(?:[^{_UNRESERVED}{_SUB_DELIMS}%:@/]+|%(?![A-Fa-f0-9]{{2}}))"
)
_QUERY_PATTERN = re.compile(
    rf"(?:[^{_UNRESERVED}{_SUB_DELIMS}%:@/?]+|%(?![A-Fa-f0-9]{{2}}))"
)

_CONTROL_WHITESPACE_RE = re.compile(r"[\t\r\n]+")


def _encode(value: str, pattern: Pattern[str]) -> str:
    return pattern.sub(lambda match: quote(match.group(0), safe=""), value)


def encode_user_info(value: str) -> str:
    """Percent-encode the user-info component."""
    return _encode(value, _USER_INFO_PATTERN)


def encode_path(value: str) -> str:
    """Percent-encode a path, leaving valid ``%XX`` triples untouched."""
    return _encode(value, _PATH_PATTERN)


def encode_query(value: str) -> str:
    """Percent-encode a query string or fragment."""
    return _encode(value, _QUERY_PATTERN)


def _split_netloc(netloc: str) -> Tuple[str, str, Optional[int]]:
    """Split ``[userinfo@]host[:port]`` into its parts."""
    user_info, sep, host_port = netloc.rpartition("@")
    if not sep:
        user_info = ""

    if host_port.startswith("["):
        end = host_port.find("]")
        if end == -1:
            raise InvalidArgumentError(f"Invalid IPv6 host in authority: {netloc!r}")
        host, rest = host_port[: end + 1], host_port[end + 1 :]
        if rest and not rest.startswith(":"):
            raise InvalidArgumentError(f"Invalid authority: {netloc!r}")
        port_text = rest[1:]
    else:
        host, _, port_text = host_port.partition(":")

    if not port_text:
        return user_info, host, None
    if not port_text.isdigit():
        raise InvalidArgumentError(f"Invalid port in authority: {netloc!r}")
    return user_info, host, int(port_text)


@dataclass(frozen=True)
class Uri:
    """
    Immutable URI representation.

    Components are normalized on construction: scheme and host are
    lowercased, a port equal to the scheme's default port is dropped, and
    user info, path, query and fragment are percent-encoded. Use
    ``Uri.parse()`` to build an instance from a string.
    """

    scheme: str = ""
    user_info: str = ""
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""

    DEFAULT_PORTS: ClassVar[Dict[str, int]] = {"http": 80, "https": 443}

    def __post_init__(self) -> None:
        """Validate and normalize components after initialization."""
        for name in ("scheme", "user_info", "host", "path", "query", "fragment"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise InvalidArgumentError(
                    f"URI {name} must be a string, received {describe_type(value)}"
                )

        scheme = re.sub(r":(//)?$", "", self.scheme.lower())
        if scheme and scheme not in self.DEFAULT_PORTS:
            raise InvalidArgumentError(
                f"Unsupported URI scheme {scheme!r}; must be one of "
                f"{', '.join(sorted(self.DEFAULT_PORTS))} or empty"
            )

        port = self.port
        if port is not None:
            if isinstance(port, bool) or not isinstance(port, int):
                raise InvalidArgumentError(
                    f"URI port must be an integer, received {describe_type(port)}"
                )
            if not (1 <= port <= 65535):
                raise InvalidArgumentError(
                    f"URI port must be between 1 and 65535, got {port}"
                )
            if self.DEFAULT_PORTS.get(scheme) == port:
                port = None

        if "?" in self.path or "#" in self.path:
            raise InvalidArgumentError(
                "URI path must not contain a query string or fragment"
            )
        if "#" in self.query:
            raise InvalidArgumentError("URI query must not contain a fragment")

        object.__setattr__(self, "scheme", scheme)
        object.__setattr__(self, "host", self.host.lower())
        object.__setattr__(self, "port", port)
        object.__setattr__(self, "user_info", encode_user_info(self.user_info))
        object.__setattr__(self, "path", encode_path(self.path))
        object.__setattr__(self, "query", encode_query(self.query))
        object.__setattr__(self, "fragment", encode_query(self.fragment))

    @classmethod
    def parse(cls, uri: str) -> "Uri":
        """
        Create a Uri from a URI string.

        Args:
            uri: An absolute URI or a relative reference

        Returns:
            New Uri instance

        Raises:
            InvalidArgumentError: If the string cannot be parsed or uses an
                unsupported scheme
        """
        if not isinstance(uri, str):
            raise InvalidArgumentError(
                f"URI must be a string, received {describe_type(uri)}"
            )
        if not uri:
            return cls()

        # urlsplit strips these silently
        uri = _CONTROL_WHITESPACE_RE.sub(lambda match: quote(match.group(0), safe=""), uri)

        try:
            parts = urlsplit(uri)
        except ValueError as e:
            raise InvalidArgumentError(f"Unable to parse URI {uri!r}", cause=e) from e

        user_info, host, port = _split_netloc(parts.netloc)
        return cls(
            scheme=parts.scheme,
            user_info=user_info,
            host=host,
            port=port,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
        )

    @property
    def authority(self) -> str:
        """The ``[userinfo@]host[:port]`` part, empty when there is no host."""
        if not self.host:
            return ""

        authority = self.host
        if self.user_info:
            authority = f"{self.user_info}@{authority}"
        if self.port is not None:
            authority = f"{authority}:{self.port}"
        return authority

    def with_scheme(self, scheme: str) -> "Uri":
        """Create a new URI with a different scheme."""
        self._require_string("scheme", scheme)
        return replace(self, scheme=scheme)

    def with_user_info(self, user: str, password: Optional[str] = None) -> "Uri":
        """Create a new URI with different user information."""
        self._require_string("user", user)
        if password is not None:
            self._require_string("password", password)

        user_info = user
        if password:
            user_info = f"{user}:{password}"
        return replace(self, user_info=user_info)

    def with_host(self, host: str) -> "Uri":
        """Create a new URI with a different host."""
        self._require_string("host", host)
        return replace(self, host=host)

    def with_port(self, port: Union[int, str, None]) -> "Uri":
        """Create a new URI with a different port; None or "" removes it."""
        if port is None or port == "":
            return replace(self, port=None)
        if isinstance(port, str):
            if not port.isdigit():
                raise InvalidArgumentError(f"Invalid port: {port!r}")
            port = int(port)
        return replace(self, port=port)

    def with_path(self, path: str) -> "Uri":
        """Create a new URI with a different path."""
        self._require_string("path", path)
        return replace(self, path=path)

    def with_query(self, query: str) -> "Uri":
        """Create a new URI with a different query string."""
        self._require_string("query", query)
        if query.startswith("?"):
            query = query[1:]
        return replace(self, query=query)

    def with_fragment(self, fragment: str) -> "Uri":
        """Create a new URI with a different fragment."""
        self._require_string("fragment", fragment)
        if fragment.startswith("#"):
            fragment = fragment[1:]
        return replace(self, fragment=fragment)

    @staticmethod
    def _require_string(name: str, value: object) -> None:
        if not isinstance(value, str):
            raise InvalidArgumentError(
                f"URI {name} must be a string, received {describe_type(value)}"
            )

    def __str__(self) -> str:
        uri = ""
        if self.scheme:
            uri += f"{self.scheme}:"

        authority = self.authority
        if authority:
            uri += f"//{authority}"

        path = self.path
        if path:
            if authority and not path.startswith("/"):
                path = "/" + path
            elif not authority and path.startswith("//"):
                # A leading "//" would otherwise be read back as an authority.
                path = "/" + path.lstrip("/")
            elif not authority and not self.scheme and ":" in path.split("/", 1)[0]:
                # A colon in the first segment would otherwise be read back as a scheme.
                path = "./" + path
            uri += path

        if self.query:
            uri += f"?{self.query}"
        if self.fragment:
            uri += f"#{self.fragment}"
        return uri
