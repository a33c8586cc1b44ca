"""
Custom exceptions for http_message.

Two kinds of failure exist: caller input that is wrong (InvalidArgumentError)
and failures of the environment or of a stateful precondition
(MessageRuntimeError and its subclasses).
"""

from typing import Optional


class HTTPMessageError(Exception):
    """Base exception for all http_message errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidArgumentError(HTTPMessageError, ValueError):
    """Raised when a caller supplies a value of the wrong type or shape."""


class MessageRuntimeError(HTTPMessageError, RuntimeError):
    """Raised when an I/O operation or a state precondition fails."""


class StreamError(MessageRuntimeError):
    """Raised when there's an error with stream operations."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Stream error: {message}", cause)


class UploadError(MessageRuntimeError):
    """Raised when an uploaded file cannot be moved or accessed."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Upload error: {message}", cause)


class ProtocolError(HTTPMessageError):
    """Raised when a message cannot be expressed as an HTTP/1.1 event."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Protocol error: {message}", cause)


def describe_type(value: object) -> str:
    """Name the type of ``value`` for error messages."""
    if value is None:
        return "None"
    return type(value).__name__
