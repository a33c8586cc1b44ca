"""
HTTP message core for http_message.

Message holds the parts every HTTP message has: protocol version, headers
and body. Request, ServerRequest and Response embed a Message by value and
share MessageMixin, which exposes the Message operations on the embedding
instance and returns a new embedding instance from every ``with_*`` call.
"""

import os
import re
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Dict, List, Optional

from typing_extensions import Self

from .exceptions import InvalidArgumentError, describe_type
from .headers import HeaderBag, HeadersInput, HeaderValues
from .streams import Stream


DEFAULT_PROTOCOL_VERSION = "1.1"

_PROTOCOL_VERSION_RE = re.compile(r"^(?:1\.[01]|2\.0)$")


def validate_protocol_version(version: Any) -> str:
    """
    Check that ``version`` is a supported "major.minor" HTTP version.

    Raises:
        InvalidArgumentError: If the version is not "1.0", "1.1" or "2.0"
    """
    if not isinstance(version, str):
        raise InvalidArgumentError(
            f"Protocol version must be a string, received {describe_type(version)}"
        )
    if not _PROTOCOL_VERSION_RE.match(version):
        raise InvalidArgumentError(
            f"Unsupported HTTP protocol version {version!r}; "
            "must be 1.0, 1.1 or 2.0"
        )
    return version


def create_body(body: Any = None) -> Stream:
    """
    Convert a body argument to a Stream.

    Args:
        body: A Stream (used as is), None (new writable memory stream),
            ``Stream.MEMORY``/``Stream.TEMP`` (opened writable), a file path
            (opened for reading) or a binary file object

    Raises:
        InvalidArgumentError: If ``body`` is of an unsupported type
    """
    if isinstance(body, Stream):
        return body
    if body is None:
        return Stream(Stream.MEMORY, "wb+")
    if isinstance(body, str) and body in (Stream.MEMORY, Stream.TEMP):
        return Stream(body, "wb+")
    if isinstance(body, (str, os.PathLike)):
        return Stream(body, "rb")
    return Stream(body)


@dataclass(frozen=True)
class Message:
    """
    Immutable protocol version, headers and body of an HTTP message.

    The body Stream is shared by reference between instances derived from
    each other; only ``with_body`` swaps it.
    """

    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    headers: HeaderBag = field(default_factory=HeaderBag)
    body: Stream = field(default_factory=create_body)

    DEFAULT_PROTOCOL_VERSION: ClassVar[str] = DEFAULT_PROTOCOL_VERSION

    def __post_init__(self) -> None:
        """Validate message data after initialization."""
        validate_protocol_version(self.protocol_version)

        if not isinstance(self.headers, HeaderBag):
            object.__setattr__(self, "headers", HeaderBag.from_headers(self.headers))
        if not isinstance(self.body, Stream):
            object.__setattr__(self, "body", create_body(self.body))

    @classmethod
    def create(
        cls,
        body: Any = None,
        headers: Optional[HeadersInput] = None,
        protocol_version: Optional[str] = None,
    ) -> "Message":
        """
        Create a Message with proper type conversion.

        Args:
            body: Anything accepted by ``create_body``
            headers: Mapping or iterable of header pairs
            protocol_version: HTTP version, defaults to DEFAULT_PROTOCOL_VERSION

        Returns:
            New Message instance
        """
        if protocol_version is None:
            protocol_version = cls.DEFAULT_PROTOCOL_VERSION
        return cls(
            protocol_version=protocol_version,
            headers=HeaderBag.from_headers(headers),
            body=create_body(body),
        )

    def with_protocol_version(self, version: str) -> "Message":
        """Create a new message with a different protocol version."""
        return replace(self, protocol_version=validate_protocol_version(version))

    def with_header(self, name: str, value: HeaderValues) -> "Message":
        """Create a new message with ``name`` replaced by ``value``."""
        return replace(self, headers=self.headers.with_header(name, value))

    def with_added_header(self, name: str, value: HeaderValues) -> "Message":
        """Create a new message with ``value`` appended to ``name``."""
        return replace(self, headers=self.headers.with_added_header(name, value))

    def without_header(self, name: str) -> "Message":
        """Create a new message without the header ``name``."""
        return replace(self, headers=self.headers.without_header(name))

    def with_body(self, body: Stream) -> "Message":
        """Create a new message with a different body stream."""
        if not isinstance(body, Stream):
            raise InvalidArgumentError(
                f"Body must be a Stream, received {describe_type(body)}"
            )
        return replace(self, body=body)


class MessageMixin:
    """
    Message operations for dataclasses that embed a ``message`` field.

    Every ``with_*`` method returns a new instance of the embedding class
    with only the Message replaced.
    """

    message: Message

    def _with_message(self, message: Message) -> Self:
        return replace(self, message=message)  # type: ignore[type-var]

    @property
    def protocol_version(self) -> str:
        """Get the HTTP protocol version, e.g. "1.1"."""
        return self.message.protocol_version

    @property
    def headers(self) -> HeaderBag:
        """Get the header bag."""
        return self.message.headers

    @property
    def body(self) -> Stream:
        """Get the body stream."""
        return self.message.body

    def get_headers(self) -> Dict[str, List[str]]:
        """Get all headers as ``{name: [values]}`` in their stored case."""
        return self.message.headers.as_dict()

    def has_header(self, name: str) -> bool:
        """Check if a header exists (case-insensitive)."""
        return self.message.headers.has(name)

    def get_header(self, name: str) -> List[str]:
        """Get the values of a header (case-insensitive)."""
        return self.message.headers.get(name)

    def get_header_line(self, name: str) -> str:
        """Get the values of a header joined with ", "."""
        return self.message.headers.get_line(name)

    def with_protocol_version(self, version: str) -> Self:
        """Create a new instance with a different protocol version."""
        return self._with_message(self.message.with_protocol_version(version))

    def with_header(self, name: str, value: HeaderValues) -> Self:
        """Create a new instance with the header ``name`` replaced."""
        return self._with_message(self.message.with_header(name, value))

    def with_added_header(self, name: str, value: HeaderValues) -> Self:
        """Create a new instance with values appended to ``name``."""
        return self._with_message(self.message.with_added_header(name, value))

    def without_header(self, name: str) -> Self:
        """Create a new instance without the header ``name``."""
        return self._with_message(self.message.without_header(name))

    def with_body(self, body: Stream) -> Self:
        """Create a new instance with a different body stream."""
        return self._with_message(self.message.with_body(body))

    def _start_line(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        """Render the message head and body text; never raises."""
        head = "\r\n".join([self._start_line()] + self.message.headers.lines())
        return f"{head}\r\n\r\n{self.message.body}"
