"""
HTTP response for http_message.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .exceptions import InvalidArgumentError, describe_type
from .headers import HeadersInput, is_valid_header_value
from .message import Message, MessageMixin
from .status_codes import MAX_STATUS_CODE, MIN_STATUS_CODE, get_reason_phrase


def validate_status_code(status_code: Any) -> int:
    """
    Convert an integer or integer-like string to a status code.

    Raises:
        InvalidArgumentError: If the code is not an integer in [100, 599]
    """
    if isinstance(status_code, str) and status_code.isdigit():
        status_code = int(status_code)
    if isinstance(status_code, bool) or not isinstance(status_code, int):
        raise InvalidArgumentError(
            "Status code must be an integer or integer string, "
            f"received {describe_type(status_code)}"
        )
    if not (MIN_STATUS_CODE <= status_code <= MAX_STATUS_CODE):
        raise InvalidArgumentError(
            f"Status code must be between {MIN_STATUS_CODE} and "
            f"{MAX_STATUS_CODE}, got {status_code}"
        )
    return status_code


@dataclass(frozen=True)
class Response(MessageMixin):
    """
    Immutable HTTP response representation.

    When no reason phrase is given, the standard phrase for the status code
    is used; status codes without a standard phrase require one.
    """

    status_code: int = 200
    reason_phrase: str = ""
    message: Message = field(default_factory=Message)

    def __post_init__(self) -> None:
        """Validate response data after initialization."""
        status_code = validate_status_code(self.status_code)

        reason_phrase = self.reason_phrase
        if not isinstance(reason_phrase, str):
            raise InvalidArgumentError(
                f"Reason phrase must be a string, received {describe_type(reason_phrase)}"
            )
        if "\r" in reason_phrase or "\n" in reason_phrase or not is_valid_header_value(
            reason_phrase
        ):
            raise InvalidArgumentError(f"Invalid reason phrase: {reason_phrase!r}")
        if not reason_phrase:
            standard = get_reason_phrase(status_code)
            if standard is None:
                raise InvalidArgumentError(
                    f"Status code {status_code} has no standard reason phrase; "
                    "one must be provided"
                )
            reason_phrase = standard

        if not isinstance(self.message, Message):
            raise InvalidArgumentError(
                f"message must be a Message, received {describe_type(self.message)}"
            )

        object.__setattr__(self, "status_code", status_code)
        object.__setattr__(self, "reason_phrase", reason_phrase)

    @classmethod
    def create(
        cls,
        body: Any = None,
        status: Any = 200,
        headers: Optional[HeadersInput] = None,
        protocol_version: Optional[str] = None,
    ) -> "Response":
        """
        Create a Response with proper type conversion.

        Args:
            body: Body stream, stream identifier, path or file object
            status: HTTP status code
            headers: Mapping or iterable of header pairs
            protocol_version: HTTP version, defaults to "1.1"

        Returns:
            New Response instance
        """
        return cls(
            status_code=status,
            message=Message.create(body, headers, protocol_version),
        )

    def with_status(self, code: Any, reason_phrase: str = "") -> "Response":
        """
        Create a new response with a different status.

        Args:
            code: Integer or integer string in [100, 599]
            reason_phrase: Explicit phrase; looked up when empty

        Raises:
            InvalidArgumentError: If the code is invalid, the phrase is not a
                string, or no phrase is given for an unrecognized code
        """
        return replace(self, status_code=code, reason_phrase=reason_phrase)

    def _start_line(self) -> str:
        return f"HTTP/{self.protocol_version} {self.status_code} {self.reason_phrase}"
