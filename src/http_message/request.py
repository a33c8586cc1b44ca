"""
HTTP request for http_message.

RequestMixin carries the method, URI and request-target behaviour shared by
Request and ServerRequest.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Tuple

from typing_extensions import Self

from .exceptions import InvalidArgumentError, describe_type
from .headers import HeadersInput
from .message import Message, MessageMixin
from .uri import Uri


VALID_METHODS: Tuple[str, ...] = (
    "HEAD",
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "PURGE",
    "OPTIONS",
    "TRACE",
    "CONNECT",
)

_WHITESPACE_RE = re.compile(r"\s")


def sanitize_method(method: Any) -> str:
    """
    Validate and uppercase an HTTP method.

    None maps to the empty string, which is always accepted.

    Raises:
        InvalidArgumentError: If the method is not a string or not one of
            VALID_METHODS
    """
    if method is None:
        return ""
    if not isinstance(method, str):
        raise InvalidArgumentError(
            f"HTTP method must be a string, received {describe_type(method)}"
        )

    method = method.upper()
    if method and method not in VALID_METHODS:
        raise InvalidArgumentError(
            f"Invalid HTTP method {method!r}; must be one of {', '.join(VALID_METHODS)}"
        )
    return method


def create_uri(uri: Any = None) -> Uri:
    """
    Convert a URI argument to a Uri.

    Raises:
        InvalidArgumentError: If ``uri`` is not None, a string or a Uri
    """
    if isinstance(uri, Uri):
        return uri
    if uri is None:
        return Uri()
    if isinstance(uri, str):
        return Uri.parse(uri)
    raise InvalidArgumentError(
        f"URI must be None, a string or a Uri, received {describe_type(uri)}"
    )


def format_host_header(uri: Uri) -> str:
    """
    Format the Host header value for a URI: its host plus any non-default port.

    Returns:
        "host" or "host:port", empty when the URI has no host
    """
    if uri.host and uri.port is not None:
        return f"{uri.host}:{uri.port}"
    return uri.host


def validate_request_target(target: Any) -> str:
    """
    Check a request target.

    Raises:
        InvalidArgumentError: If the target is not a string or contains
            whitespace
    """
    if not isinstance(target, str):
        raise InvalidArgumentError(
            f"Request target must be a string, received {describe_type(target)}"
        )
    if _WHITESPACE_RE.search(target):
        raise InvalidArgumentError(
            f"Invalid request target {target!r}; must not contain whitespace"
        )
    return target


class RequestMixin(MessageMixin):
    """Method, URI and request-target operations for request dataclasses."""

    method: str
    uri: Uri
    explicit_target: Optional[str]

    def _normalize_request(self) -> None:
        object.__setattr__(self, "method", sanitize_method(self.method))
        object.__setattr__(self, "uri", create_uri(self.uri))
        if self.explicit_target is not None:
            validate_request_target(self.explicit_target)
        if not isinstance(self.message, Message):
            raise InvalidArgumentError(
                f"message must be a Message, received {describe_type(self.message)}"
            )

    @property
    def request_target(self) -> str:
        """
        Get the request target.

        This is the target set with ``with_request_target``, or else the
        origin-form of the URI: its path ("/" when empty) plus the query.
        """
        if self.explicit_target:
            return self.explicit_target

        target = self.uri.path or "/"
        if self.uri.query:
            target += f"?{self.uri.query}"
        return target

    def with_request_target(self, request_target: str) -> Self:
        """Create a new request with an explicit request target."""
        validate_request_target(request_target)
        return replace(self, explicit_target=request_target)  # type: ignore[type-var]

    def with_method(self, method: Optional[str]) -> Self:
        """Create a new request with a different method."""
        return replace(self, method=sanitize_method(method))  # type: ignore[type-var]

    def with_uri(self, uri: Uri, preserve_host: bool = False) -> Self:
        """
        Create a new request with a different URI.

        The Host header is set from the new URI's host (and port) when the
        URI has a host, unless ``preserve_host`` is true and the request
        already has a non-empty Host header.

        Args:
            uri: The new Uri
            preserve_host: Keep an existing, non-empty Host header
        """
        if not isinstance(uri, Uri):
            raise InvalidArgumentError(f"URI must be a Uri, received {describe_type(uri)}")

        host = format_host_header(uri)

        message = self.message
        if host and not (preserve_host and message.headers.get_line("Host") != ""):
            message = message.with_header("Host", host)

        return replace(self, uri=uri, message=message)  # type: ignore[type-var]

    def _start_line(self) -> str:
        return f"{self.method} {self.request_target} HTTP/{self.protocol_version}"


@dataclass(frozen=True)
class Request(RequestMixin):
    """
    Immutable HTTP request representation.

    Once created, the request cannot be modified - any changes
    must create a new Request instance.
    """

    method: str = ""
    uri: Uri = field(default_factory=Uri)
    message: Message = field(default_factory=Message)
    explicit_target: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        self._normalize_request()

    @classmethod
    def create(
        cls,
        method: Optional[str] = None,
        uri: Any = None,
        body: Any = None,
        headers: Optional[HeadersInput] = None,
        protocol_version: Optional[str] = None,
    ) -> "Request":
        """
        Create a Request with proper type conversion.

        Args:
            method: HTTP method (GET, POST, etc.), None for no method
            uri: Uri, URI string or None
            body: Body stream, stream identifier, path or file object
            headers: Mapping or iterable of header pairs
            protocol_version: HTTP version, defaults to "1.1"

        Returns:
            New Request instance
        """
        return cls(
            method=sanitize_method(method),
            uri=create_uri(uri),
            message=Message.create(body, headers, protocol_version),
        )
