"""
http_message - Immutable HTTP message model

Value objects for URIs, headers, requests, server requests, responses,
body streams and uploaded files, with converters to and from h11 events.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .uri import Uri
from .headers import HeaderBag
from .streams import Stream
from .message import Message
from .request import Request
from .server_request import ServerRequest
from .response import Response
from .status_codes import REASON_PHRASES, get_reason_phrase
from .uploaded_file import FileMover, LocalFileMover, UploadedFile, UploadErrorStatus
from .exceptions import (
    HTTPMessageError,
    InvalidArgumentError,
    MessageRuntimeError,
    ProtocolError,
    StreamError,
    UploadError,
)
from .h11_adapter import (
    from_h11_request,
    from_h11_response,
    iter_body_events,
    to_h11_request,
    to_h11_response,
)

__all__ = [
    "Uri",
    "HeaderBag",
    "Stream",
    "Message",
    "Request",
    "ServerRequest",
    "Response",
    "REASON_PHRASES",
    "get_reason_phrase",
    "FileMover",
    "LocalFileMover",
    "UploadedFile",
    "UploadErrorStatus",
    "HTTPMessageError",
    "InvalidArgumentError",
    "MessageRuntimeError",
    "ProtocolError",
    "StreamError",
    "UploadError",
    "from_h11_request",
    "from_h11_response",
    "iter_body_events",
    "to_h11_request",
    "to_h11_response",
]
