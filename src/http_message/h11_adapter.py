"""
h11 interoperability for http_message.

This module converts messages to and from h11 events so that a transport
built on h11 can send and receive them. Only HTTP/1.0 and HTTP/1.1 can be
expressed as h11 events.
"""

import logging
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl

import h11

from .exceptions import InvalidArgumentError, ProtocolError, describe_type
from .message import Message, MessageMixin
from .request import RequestMixin, format_host_header
from .response import Response
from .server_request import ServerRequest
from .streams import Stream
from .uri import Uri

logger = logging.getLogger(__name__)


H11_VERSIONS = ("1.0", "1.1")

RawHeaders = List[Tuple[bytes, bytes]]


def _check_version(version: str) -> bytes:
    if version not in H11_VERSIONS:
        raise ProtocolError(f"HTTP/{version} cannot be expressed as an h11 event")
    return version.encode("ascii")


def _encode_headers(message: MessageMixin) -> RawHeaders:
    try:
        return [
            (name.encode("ascii"), value.encode("latin-1"))
            for name, value in message.headers.items()
        ]
    except UnicodeEncodeError as e:
        raise ProtocolError("Header cannot be encoded for the wire", e) from e


def _decode_headers(
    event: Union[h11.Request, h11.Response, h11.InformationalResponse]
) -> List[Tuple[str, str]]:
    # raw_items() keeps the case the peer sent
    return [
        (name.decode("ascii"), value.decode("latin-1"))
        for name, value in event.headers.raw_items()
    ]


def to_h11_request(request: RequestMixin) -> h11.Request:
    """
    Convert a Request or ServerRequest to an h11.Request event.

    A Host header is added from the URI when the request has none.

    Raises:
        ProtocolError: If the request has no method, uses an HTTP version h11
            does not speak, or h11 rejects the event
    """
    if not isinstance(request, RequestMixin):
        raise ProtocolError(f"Expected a request, received {describe_type(request)}")
    if not request.method:
        raise ProtocolError("Request method is required")

    http_version = _check_version(request.protocol_version)
    headers = _encode_headers(request)

    host = format_host_header(request.uri)
    if host and not request.has_header("Host"):
        headers.insert(0, (b"Host", host.encode("ascii")))

    try:
        event = h11.Request(
            method=request.method.encode("ascii"),
            target=request.request_target.encode("ascii"),
            headers=headers,
            http_version=http_version,
        )
    except UnicodeEncodeError as e:
        raise ProtocolError("Request target cannot be encoded for the wire", e) from e
    except h11.LocalProtocolError as e:
        raise ProtocolError(str(e), e) from e

    logger.debug(f"Converted request to h11 event: {request.method} {request.request_target}")
    return event


def to_h11_response(response: Response) -> Union[h11.Response, h11.InformationalResponse]:
    """
    Convert a Response to an h11 event.

    Returns:
        h11.InformationalResponse for 1xx status codes, h11.Response otherwise

    Raises:
        ProtocolError: If the response uses an HTTP version h11 does not
            speak, or h11 rejects the event
    """
    if not isinstance(response, Response):
        raise ProtocolError(f"Expected a Response, received {describe_type(response)}")

    http_version = _check_version(response.protocol_version)
    event_class = h11.InformationalResponse if response.status_code < 200 else h11.Response

    try:
        event = event_class(
            status_code=response.status_code,
            headers=_encode_headers(response),
            reason=response.reason_phrase.encode("latin-1"),
            http_version=http_version,
        )
    except UnicodeEncodeError as e:
        raise ProtocolError("Reason phrase cannot be encoded for the wire", e) from e
    except h11.LocalProtocolError as e:
        raise ProtocolError(str(e), e) from e

    logger.debug(f"Converted response to h11 event: {response.status_code}")
    return event


def _parse_cookies(headers: List[Tuple[str, str]]) -> Dict[str, str]:
    cookie = SimpleCookie()
    for name, value in headers:
        if name.lower() == "cookie":
            try:
                cookie.load(value)
            except CookieError as e:
                raise ProtocolError(f"Malformed Cookie header: {value!r}", e) from e
    return {key: morsel.value for key, morsel in cookie.items()}


def _build_uri(target: str, headers: List[Tuple[str, str]], scheme: str) -> Uri:
    if "://" in target:
        return Uri.parse(target)
    if not target.startswith("/"):
        # authority-form (CONNECT) and asterisk-form targets carry no path
        return Uri()

    host = next((value for name, value in headers if name.lower() == "host"), "")
    if host:
        return Uri.parse(f"{scheme}://{host}{target}")
    return Uri.parse(target)


def from_h11_request(
    event: h11.Request,
    body: Any = None,
    server_params: Optional[Mapping[str, Any]] = None,
    scheme: str = "http",
) -> ServerRequest:
    """
    Convert a received h11.Request event to a ServerRequest.

    Args:
        event: The h11.Request event
        body: Body stream (or anything Message accepts); an empty writable
            memory stream by default
        server_params: Server environment for the request
        scheme: Scheme of the connection the request arrived on

    Returns:
        New ServerRequest whose request target is the one received

    Raises:
        ProtocolError: If ``event`` is not an h11.Request or its contents are
            not a valid request
    """
    if not isinstance(event, h11.Request):
        raise ProtocolError(f"Expected an h11.Request, received {describe_type(event)}")

    target = event.target.decode("ascii")
    headers = _decode_headers(event)

    try:
        uri = _build_uri(target, headers, scheme)
        request = ServerRequest.create(
            method=event.method.decode("ascii"),
            uri=uri,
            body=body,
            server_params=server_params,
            cookie_params=_parse_cookies(headers),
            query_params=dict(parse_qsl(uri.query, keep_blank_values=True)),
            headers=headers,
            protocol_version=event.http_version.decode("ascii"),
        )
        request = request.with_request_target(target)
    except InvalidArgumentError as e:
        raise ProtocolError(f"Invalid request: {e.message}", e) from e

    logger.debug(f"Received request from h11 event: {request.method} {target}")
    return request


def from_h11_response(
    event: Union[h11.Response, h11.InformationalResponse], body: Any = None
) -> Response:
    """
    Convert a received h11 response event to a Response.

    Raises:
        ProtocolError: If ``event`` is not a response event or its contents
            are not a valid response
    """
    if not isinstance(event, (h11.Response, h11.InformationalResponse)):
        raise ProtocolError(f"Expected an h11 response, received {describe_type(event)}")

    try:
        response = Response(
            status_code=event.status_code,
            reason_phrase=event.reason.decode("latin-1"),
            message=Message.create(
                body, _decode_headers(event), event.http_version.decode("ascii")
            ),
        )
    except InvalidArgumentError as e:
        raise ProtocolError(f"Invalid response: {e.message}", e) from e

    logger.debug(f"Received response from h11 event: {response.status_code}")
    return response


def iter_body_events(
    message: MessageMixin, chunk_size: int = Stream.DEFAULT_CHUNK_SIZE
) -> Iterator[Union[h11.Data, h11.EndOfMessage]]:
    """
    Iterate over the body of a message as h11 events.

    The body is read from its beginning when it is seekable.

    Yields:
        h11.Data for each non-empty chunk, then a single h11.EndOfMessage
    """
    if chunk_size <= 0:
        raise InvalidArgumentError(f"Chunk size must be positive, got {chunk_size}")

    body = message.body
    if body.is_seekable():
        body.rewind()

    sent = 0
    if body.is_readable():
        while True:
            chunk = body.read(chunk_size)
            if not chunk:
                break
            sent += len(chunk)
            yield h11.Data(data=chunk)

    logger.debug(f"Sent body of {sent} bytes")
    yield h11.EndOfMessage()
