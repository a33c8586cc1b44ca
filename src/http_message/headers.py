"""
Header storage for http_message.

HeaderBag keeps header names case-insensitively unique while preserving the
case they were registered with, and validates every name and value on the
way in so that no stored header can smuggle an extra header line.
"""

import re
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from .exceptions import InvalidArgumentError, describe_type


HeaderValue = Union[str, int, float]
HeaderValues = Union[HeaderValue, List[HeaderValue], Tuple[HeaderValue, ...]]
HeadersInput = Union[Mapping[str, HeaderValues], Iterable[Tuple[str, HeaderValues]]]

# RFC 7230 token
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# A CR or LF is only allowed as part of CRLF followed by SP or HTAB
# (obsolete line folding).
_BAD_LINE_BREAK_RE = re.compile(r"(?:(?<!\r)\n)|(?:\r(?!\n))|(?:\r\n(?![ \t]))")


def validate_header_name(name: Any) -> str:
    """
    Check that a header name is a non-empty RFC 7230 token.

    Raises:
        InvalidArgumentError: If the name is not a string or not a token
    """
    if not isinstance(name, str):
        raise InvalidArgumentError(
            f"Header name must be a string, received {describe_type(name)}"
        )
    if not _TOKEN_RE.match(name):
        raise InvalidArgumentError(f"Invalid header name: {name!r}")
    return name


def is_valid_header_value(value: str) -> bool:
    """Check a header value for CRLF injection and control characters."""
    if _BAD_LINE_BREAK_RE.search(value):
        return False

    for char in value:
        code = ord(char)
        if (code < 32 and code not in (9, 10, 13)) or code == 127 or code > 255:
            return False
    return True


def normalize_header_values(value: Any) -> Tuple[str, ...]:
    """
    Convert a header value, or a list of values, to a tuple of strings.

    Strings, integers and floats are accepted; booleans, None and
    containers other than list/tuple are rejected.

    Raises:
        InvalidArgumentError: If a value has the wrong type or contains an
            illegal line break or control character
    """
    items = value if isinstance(value, (list, tuple)) else [value]

    values = []
    for item in items:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise InvalidArgumentError(
                "Header values must be strings or numbers, "
                f"received {describe_type(item)}"
            )
        text = str(item)
        if not is_valid_header_value(text):
            raise InvalidArgumentError(f"Invalid header value: {text!r}")
        values.append(text)
    return tuple(values)


@dataclass(frozen=True)
class HeaderBag:
    """
    Immutable, ordered collection of HTTP headers.

    Entries are ``(name, values)`` pairs where ``name`` keeps the case it
    was registered with. Lookups are case-insensitive.
    """

    entries: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()

    @classmethod
    def from_headers(cls, headers: Optional[HeadersInput] = None) -> "HeaderBag":
        """
        Create a HeaderBag from a mapping or an iterable of pairs.

        Repeated names (in any case) have their values appended.

        Args:
            headers: Mapping of name to value(s), or iterable of
                ``(name, value)`` pairs

        Returns:
            New HeaderBag instance
        """
        bag = cls()
        if headers is None:
            return bag

        if isinstance(headers, Mapping):
            pairs: Iterable[Any] = headers.items()
        elif isinstance(headers, (str, bytes)) or not isinstance(headers, Iterable):
            raise InvalidArgumentError(
                "Headers must be a mapping or an iterable of (name, value) pairs, "
                f"received {describe_type(headers)}"
            )
        else:
            pairs = headers

        for pair in pairs:
            if not isinstance(pair, tuple) or len(pair) != 2:
                raise InvalidArgumentError("Header pairs must be (name, value) tuples")
            bag = bag.with_added_header(*pair)
        return bag

    def _index(self, name: Any) -> int:
        if not isinstance(name, str):
            return -1
        lowered = name.lower()
        for index, (stored, _) in enumerate(self.entries):
            if stored.lower() == lowered:
                return index
        return -1

    def has(self, name: str) -> bool:
        """Check if a header exists (case-insensitive)."""
        return self._index(name) != -1

    def get(self, name: str) -> List[str]:
        """Get the values of a header, or an empty list when absent."""
        index = self._index(name)
        if index == -1:
            return []
        return list(self.entries[index][1])

    def get_line(self, name: str) -> str:
        """Get the values of a header joined with ", "."""
        return ", ".join(self.get(name))

    def with_header(self, name: str, value: HeaderValues) -> "HeaderBag":
        """
        Create a new bag where ``name`` holds exactly ``value``.

        Existing values under any case of ``name`` are replaced and the case
        given here becomes the stored case.
        """
        name = validate_header_name(name)
        values = normalize_header_values(value)

        entries = list(self.entries)
        index = self._index(name)
        if index == -1:
            entries.append((name, values))
        else:
            entries[index] = (name, values)
        return HeaderBag(tuple(entries))

    def with_added_header(self, name: str, value: HeaderValues) -> "HeaderBag":
        """
        Create a new bag with ``value`` appended to ``name``.

        The case of an already registered name is kept.
        """
        name = validate_header_name(name)
        values = normalize_header_values(value)

        index = self._index(name)
        if index == -1:
            return HeaderBag(self.entries + ((name, values),))

        entries = list(self.entries)
        stored, existing = entries[index]
        entries[index] = (stored, existing + values)
        return HeaderBag(tuple(entries))

    def without_header(self, name: str) -> "HeaderBag":
        """Create a new bag without ``name``; absent names are a no-op."""
        index = self._index(name)
        if index == -1:
            return self
        return HeaderBag(self.entries[:index] + self.entries[index + 1 :])

    def as_dict(self) -> Dict[str, List[str]]:
        """Return ``{name: [values]}`` using the stored case."""
        return {name: list(values) for name, values in self.entries}

    def items(self) -> Iterator[Tuple[str, str]]:
        """Iterate over ``(name, value)`` pairs, one per value."""
        for name, values in self.entries:
            for value in values:
                yield name, value

    def lines(self) -> List[str]:
        """Format each header as a ``Name: v1, v2`` line."""
        return [f"{name}: {', '.join(values)}" for name, values in self.entries]

    def __contains__(self, name: object) -> bool:
        return self._index(name) != -1

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self.entries)

    def __len__(self) -> int:
        return len(self.entries)
