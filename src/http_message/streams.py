"""
Body streams for http_message.

Stream wraps a binary file object (a file on disk, an in-memory buffer or a
spooled temporary file) behind a uniform read/write/seek interface. All
failures of the underlying file object surface as StreamError.
"""

import io
import logging
import os
import tempfile
from typing import IO, Any, Dict, Optional, Union

from .exceptions import InvalidArgumentError, StreamError, describe_type

logger = logging.getLogger(__name__)


StreamSource = Union[str, "os.PathLike[str]", IO[bytes]]


class Stream:
    """
    Readable, writable and seekable view over a binary file object.

    The stream owns its file object until ``detach()`` hands it back or
    ``close()`` closes it. After either call the stream is unusable: reads,
    writes and seeks raise StreamError.
    """

    MEMORY = "memory://"
    TEMP = "temp://"

    DEFAULT_CHUNK_SIZE = 8192
    TEMP_MAX_MEMORY = 2 * 1024 * 1024  # 2 MiB before spilling to disk

    def __init__(self, stream: StreamSource = MEMORY, mode: str = "rb") -> None:
        """
        Initialize Stream.

        Args:
            stream: Path to open, ``Stream.MEMORY``, ``Stream.TEMP`` or an
                open binary file object
            mode: Open mode used when ``stream`` is a path or identifier

        Raises:
            InvalidArgumentError: If ``stream`` is of an unsupported type
            StreamError: If a path cannot be opened
        """
        self._eof = False

        if isinstance(stream, (str, os.PathLike)):
            if not isinstance(mode, str) or not mode:
                raise InvalidArgumentError("Stream mode must be a non-empty string")
            self._mode = mode
            self._uri = os.fspath(stream)
            self._stream: Optional[IO[bytes]] = self._open(self._uri, mode)
        elif self._is_file_object(stream):
            if self._is_text_file(stream):
                raise InvalidArgumentError(
                    "The stream must be opened in binary mode, received "
                    f"{describe_type(stream)}"
                )
            self._stream = stream  # type: ignore[assignment]
            self._mode = self._detect_mode(stream)
            self._uri = str(getattr(stream, "name", self.MEMORY))
        else:
            raise InvalidArgumentError(
                "The stream must be a path, a stream identifier or a binary "
                f"file object, received {describe_type(stream)}"
            )

    @classmethod
    def _open(cls, uri: str, mode: str) -> IO[bytes]:
        if uri == cls.MEMORY:
            logger.debug("Opened memory stream")
            return io.BytesIO()
        if uri == cls.TEMP:
            logger.debug("Opened temporary stream")
            return tempfile.SpooledTemporaryFile(max_size=cls.TEMP_MAX_MEMORY)

        file_mode = mode if "b" in mode else mode + "b"
        try:
            handle = open(uri, file_mode)
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to open {uri!r} with mode {mode!r}", e) from e
        logger.debug(f"Opened file stream {uri!r} ({file_mode})")
        return handle

    @staticmethod
    def _is_file_object(candidate: Any) -> bool:
        return (
            not isinstance(candidate, (bool, int, float, list, tuple, dict))
            and candidate is not None
            and callable(getattr(candidate, "read", None))
        )

    @staticmethod
    def _is_text_file(candidate: Any) -> bool:
        if isinstance(candidate, io.TextIOBase):
            return True
        mode = getattr(candidate, "mode", None)
        return isinstance(mode, str) and "b" not in mode

    @staticmethod
    def _detect_mode(handle: Any) -> str:
        mode = getattr(handle, "mode", None)
        if isinstance(mode, str):
            return mode

        readable = bool(getattr(handle, "readable", lambda: True)())
        writable = bool(getattr(handle, "writable", lambda: False)())
        if readable and writable:
            return "rb+"
        return "rb" if readable else "wb"

    def __str__(self) -> str:
        """
        Read the whole stream from the beginning as text.

        Never raises; a stream that cannot be rewound or read gives "".
        """
        return bytes(self).decode("utf-8", errors="replace")

    def __bytes__(self) -> bytes:
        try:
            self.rewind()
            contents = self.get_contents()
        except StreamError as e:
            logger.warning(f"Unable to convert stream to bytes: {e}")
            return b""

        if not isinstance(contents, (bytes, bytearray)):
            logger.warning(f"Stream returned {describe_type(contents)} instead of bytes")
            return b""
        return bytes(contents)

    def __repr__(self) -> str:
        state = "detached" if self._stream is None else self._mode
        return f"<Stream {self._uri!r} [{state}]>"

    def close(self) -> None:
        """Close the stream and any underlying file object."""
        if self._stream is not None:
            self._stream.close()
            logger.debug(f"Closed stream {self._uri!r}")
        self.detach()

    def detach(self) -> Optional[IO[bytes]]:
        """
        Separate the underlying file object from the stream.

        Returns:
            The file object, or None if already detached
        """
        handle = self._stream
        self._stream = None
        if handle is not None:
            logger.debug(f"Detached stream {self._uri!r}")
        return handle

    @property
    def detached(self) -> bool:
        """Get whether the stream has been detached or closed."""
        return self._stream is None

    def get_size(self) -> Optional[int]:
        """Get the size of the stream in bytes, or None if unknown."""
        if self._stream is None:
            return None

        try:
            if self.is_seekable():
                position = self._stream.tell()
                size = self._stream.seek(0, os.SEEK_END)
                self._stream.seek(position)
                return size
            return os.fstat(self._stream.fileno()).st_size
        except (OSError, ValueError, io.UnsupportedOperation):
            return None

    def tell(self) -> int:
        """Get the current position of the read/write pointer."""
        if self._stream is None:
            raise StreamError("Unable to determine stream position of a detached stream")
        try:
            return self._stream.tell()
        except (OSError, ValueError) as e:
            raise StreamError("Unable to determine stream position", e) from e

    def eof(self) -> bool:
        """Get whether a read has reached the end of the stream."""
        return self._stream is None or self._eof

    def is_seekable(self) -> bool:
        """Get whether the stream supports seeking."""
        if self._stream is None:
            return False
        seekable = getattr(self._stream, "seekable", None)
        if seekable is None:
            # SpooledTemporaryFile only gained seekable() in Python 3.11
            return callable(getattr(self._stream, "seek", None))
        try:
            return bool(seekable())
        except ValueError:
            return False

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> None:
        """
        Move the read/write pointer.

        Args:
            offset: Byte offset
            whence: ``os.SEEK_SET``, ``os.SEEK_CUR`` or ``os.SEEK_END``
        """
        if not self.is_seekable():
            raise StreamError("Unable to seek stream position")
        try:
            self._stream.seek(offset, whence)  # type: ignore[union-attr]
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to seek to offset {offset}", e) from e
        self._eof = False

    def rewind(self) -> None:
        """Seek to the beginning of the stream."""
        self.seek(0)

    def is_writable(self) -> bool:
        """Get whether the stream can be written to."""
        if self._stream is None:
            return False
        return any(flag in self._mode for flag in "waxc+")

    def write(self, data: Union[bytes, str]) -> int:
        """
        Write data to the stream.

        Args:
            data: Bytes, or a string encoded as UTF-8

        Returns:
            Number of bytes written
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not isinstance(data, (bytes, bytearray)):
            raise InvalidArgumentError(
                f"Stream data must be bytes or str, received {describe_type(data)}"
            )
        if not self.is_writable():
            raise StreamError("Unable to write to stream")

        try:
            written = self._stream.write(data)  # type: ignore[union-attr]
        except (OSError, ValueError, io.UnsupportedOperation) as e:
            raise StreamError("Unable to write to stream", e) from e
        self._eof = False
        return len(data) if written is None else written

    def is_readable(self) -> bool:
        """Get whether the stream can be read from."""
        if self._stream is None:
            return False
        return "r" in self._mode or "+" in self._mode

    def read(self, length: int) -> bytes:
        """
        Read up to ``length`` bytes.

        Returns:
            The bytes read, empty when at the end of the stream
        """
        if not self.is_readable():
            raise StreamError("Unable to read stream")
        try:
            data = self._stream.read(length)  # type: ignore[union-attr]
        except (OSError, ValueError, io.UnsupportedOperation) as e:
            raise StreamError("Unable to read stream", e) from e

        if len(data) < length:
            self._eof = True
        return data

    def get_contents(self) -> bytes:
        """Read the remaining contents of the stream."""
        if not self.is_readable():
            raise StreamError("Unable to read stream contents")
        try:
            contents = self._stream.read()  # type: ignore[union-attr]
        except (OSError, ValueError, io.UnsupportedOperation) as e:
            raise StreamError("Unable to read stream contents", e) from e

        self._eof = True
        return contents

    def flush(self) -> None:
        """Flush buffered writes to the underlying file object."""
        if self._stream is None or not self.is_writable():
            return
        try:
            self._stream.flush()
        except (OSError, ValueError) as e:
            raise StreamError("Unable to flush stream", e) from e

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """
        Get stream metadata, or a single metadata value.

        Known keys are ``uri``, ``mode``, ``seekable``, ``eof`` and
        ``stream_type``.

        Returns:
            The full metadata dict when ``key`` is None, otherwise the value
            for ``key`` or None when it is unknown
        """
        if self._stream is None:
            return {} if key is None else None

        if self._uri == self.MEMORY:
            stream_type = "MEMORY"
        elif self._uri == self.TEMP:
            stream_type = "TEMP"
        else:
            stream_type = "FILE" if hasattr(self._stream, "fileno") else "OTHER"

        meta: Dict[str, Any] = {
            "uri": self._uri,
            "mode": self._mode,
            "seekable": self.is_seekable(),
            "eof": self._eof,
            "stream_type": stream_type,
        }
        if key is None:
            return meta
        return meta.get(key)
