"""
Server-side HTTP request for http_message.

ServerRequest is a request as seen by the server that received it: on top of
the Request data it carries server parameters, cookies, query parameters,
uploaded files, the parsed body and attributes added while it is handled.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from .exceptions import InvalidArgumentError, describe_type
from .headers import HeadersInput
from .message import Message
from .request import RequestMixin, create_uri, sanitize_method
from .uploaded_file import UploadedFile
from .uri import Uri


UploadedFiles = Union[Dict[str, Any], List[Any]]


def _freeze_mapping(name: str, value: Any) -> Mapping[str, Any]:
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, Mapping):
        raise InvalidArgumentError(
            f"{name} must be a mapping, received {describe_type(value)}"
        )
    return MappingProxyType(dict(value))


def copy_uploaded_files(tree: Any, depth: int = 0) -> Any:
    """
    Validate and copy a tree of uploaded files.

    The tree is made of dicts, lists and tuples whose leaves are all
    UploadedFile instances; the containers are copied, the leaves are not.

    Raises:
        InvalidArgumentError: If a leaf is not an UploadedFile or the root is
            not a container
    """
    if isinstance(tree, UploadedFile) and depth > 0:
        return tree
    if isinstance(tree, Mapping):
        return {key: copy_uploaded_files(value, depth + 1) for key, value in tree.items()}
    if isinstance(tree, (list, tuple)):
        return type(tree)(copy_uploaded_files(value, depth + 1) for value in tree)
    raise InvalidArgumentError(
        "Uploaded files must be a nested structure of UploadedFile instances, "
        f"found {describe_type(tree)}"
    )


def validate_parsed_body(data: Any) -> Any:
    """
    Check a parsed body.

    Raises:
        InvalidArgumentError: If ``data`` is a scalar (bool, number, string)
    """
    if data is None:
        return data
    if isinstance(data, (bool, int, float, complex, str, bytes)):
        raise InvalidArgumentError(
            "Parsed body must be None, a mapping, a sequence or an object, "
            f"received {describe_type(data)}"
        )
    return data


@dataclass(frozen=True)
class ServerRequest(RequestMixin):
    """
    Immutable server-side HTTP request.

    Server parameters are fixed at construction. Cookie and query parameters,
    uploaded files, the parsed body and attributes can be replaced through
    the ``with_*`` methods, each returning a new instance.
    """

    method: str = ""
    uri: Uri = field(default_factory=Uri)
    message: Message = field(default_factory=Message)
    explicit_target: Optional[str] = None
    server_params: Mapping[str, Any] = field(default_factory=dict)
    cookie_params: Mapping[str, Any] = field(default_factory=dict)
    query_params: Mapping[str, Any] = field(default_factory=dict)
    uploaded_files: UploadedFiles = field(default_factory=dict)
    parsed_body: Any = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate server request data after initialization."""
        self._normalize_request()
        object.__setattr__(
            self, "server_params", _freeze_mapping("Server params", self.server_params)
        )
        object.__setattr__(
            self, "cookie_params", _freeze_mapping("Cookie params", self.cookie_params)
        )
        object.__setattr__(
            self, "query_params", _freeze_mapping("Query params", self.query_params)
        )
        object.__setattr__(
            self, "attributes", _freeze_mapping("Attributes", self.attributes)
        )
        object.__setattr__(
            self, "uploaded_files", copy_uploaded_files(self.uploaded_files)
        )
        validate_parsed_body(self.parsed_body)

    @classmethod
    def create(
        cls,
        method: Optional[str] = None,
        uri: Any = None,
        body: Any = None,
        server_params: Optional[Mapping[str, Any]] = None,
        cookie_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        uploaded_files: Optional[UploadedFiles] = None,
        headers: Optional[HeadersInput] = None,
        protocol_version: Optional[str] = None,
    ) -> "ServerRequest":
        """
        Create a ServerRequest with proper type conversion.

        Args:
            method: HTTP method, None for no method
            uri: Uri, URI string or None
            body: Body stream, stream identifier, path or file object
            server_params: Server environment, fixed for the request's lifetime
            cookie_params: Cookies sent by the client
            query_params: Deserialized query string arguments
            uploaded_files: Nested dicts/lists of UploadedFile instances
            headers: Mapping or iterable of header pairs
            protocol_version: HTTP version, defaults to "1.1"

        Returns:
            New ServerRequest instance
        """
        return cls(
            method=sanitize_method(method),
            uri=create_uri(uri),
            message=Message.create(body, headers, protocol_version),
            server_params=server_params,
            cookie_params=cookie_params,
            query_params=query_params,
            uploaded_files=uploaded_files if uploaded_files is not None else {},
        )

    def with_cookie_params(self, cookies: Mapping[str, Any]) -> "ServerRequest":
        """Create a new request with different cookie parameters."""
        return replace(self, cookie_params=_freeze_mapping("Cookie params", cookies))

    def with_query_params(self, query: Mapping[str, Any]) -> "ServerRequest":
        """Create a new request with different query parameters."""
        return replace(self, query_params=_freeze_mapping("Query params", query))

    def with_uploaded_files(self, uploaded_files: UploadedFiles) -> "ServerRequest":
        """
        Create a new request with a different uploaded files tree.

        Raises:
            InvalidArgumentError: If any leaf of the tree is not an UploadedFile
        """
        return replace(self, uploaded_files=copy_uploaded_files(uploaded_files))

    def with_parsed_body(self, data: Any) -> "ServerRequest":
        """
        Create a new request with a different parsed body.

        Args:
            data: None, a mapping, a sequence or an object
        """
        return replace(self, parsed_body=validate_parsed_body(data))

    def get_attribute(self, name: str, default: Any = None) -> Any:
        """Get a single attribute, or ``default`` when it is not set."""
        return self.attributes.get(name, default)

    def with_attribute(self, name: str, value: Any) -> "ServerRequest":
        """Create a new request with the attribute ``name`` set to ``value``."""
        if not isinstance(name, str):
            raise InvalidArgumentError(
                f"Attribute name must be a string, received {describe_type(name)}"
            )
        attributes = dict(self.attributes)
        attributes[name] = value
        return replace(self, attributes=attributes)

    def without_attribute(self, name: str) -> "ServerRequest":
        """Create a new request without the attribute ``name``."""
        attributes = dict(self.attributes)
        attributes.pop(name, None)
        return replace(self, attributes=attributes)
