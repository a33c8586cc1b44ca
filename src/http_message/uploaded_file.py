"""
Uploaded files for http_message.

UploadedFile wraps a file received with a request. The file can be moved to
its final location exactly once; moving is delegated to a FileMover so that
server-originated uploads can use a privileged move.
"""

import errno
import logging
import os
import shutil
from enum import IntEnum
from typing import Any, Callable, Optional, Tuple

from typing_extensions import Protocol, runtime_checkable

from .exceptions import InvalidArgumentError, MessageRuntimeError, UploadError, describe_type
from .streams import Stream

logger = logging.getLogger(__name__)


class UploadErrorStatus(IntEnum):
    """Upload error codes reported by the server that received the file."""

    OK = 0
    INI_SIZE = 1  # Exceeds the server's maximum upload size
    FORM_SIZE = 2  # Exceeds the form's declared maximum size
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8  # Stopped by a server extension


MIN_ERROR_CODE = 0
MAX_ERROR_CODE = 8


@runtime_checkable
class FileMover(Protocol):
    """Moves files on behalf of UploadedFile."""

    def move(self, source: str, target: str) -> None:
        """Move a file with a plain rename (or copy and delete)."""
        ...

    def move_uploaded(self, source: str, target: str) -> None:
        """Move a file that the server received as an upload."""
        ...


class LocalFileMover:
    """FileMover for the local filesystem."""

    def move(self, source: str, target: str) -> None:
        shutil.move(source, target)

    def move_uploaded(self, source: str, target: str) -> None:
        if not os.path.isfile(source):
            raise OSError(errno.ENOENT, "Not an uploaded file", source)
        shutil.move(source, target)


class UploadedFile:
    """
    A file uploaded through an HTTP request.

    After a successful ``move_to`` the file is gone from its original
    location; the stream can no longer be retrieved and further moves fail.
    """

    DEFAULT_CHUNK_SIZE = 8192

    def __init__(
        self,
        file: Any,
        size: int = 0,
        error: int = UploadErrorStatus.OK,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
        sapi: bool = False,
        mover: Optional[FileMover] = None,
    ) -> None:
        """
        Initialize UploadedFile.

        Args:
            file: Path of the uploaded file, a binary file object or a Stream
            size: Size of the file in bytes
            error: One of the UploadErrorStatus codes (0 to 8)
            client_filename: File name sent by the client
            client_media_type: Media type sent by the client
            sapi: Whether the file was received by the server as an upload,
                which makes ``move_to`` use the privileged move
            mover: FileMover to use, LocalFileMover by default

        Raises:
            InvalidArgumentError: If any argument has the wrong type or the
                error code is out of range
        """
        self._file, self._stream = self._resolve(file)

        if isinstance(size, bool) or not isinstance(size, int):
            raise InvalidArgumentError(
                f"Upload size must be an integer, received {describe_type(size)}"
            )
        if isinstance(error, bool) or not isinstance(error, int):
            raise InvalidArgumentError(
                f"Upload error must be an integer, received {describe_type(error)}"
            )
        if not (MIN_ERROR_CODE <= error <= MAX_ERROR_CODE):
            raise InvalidArgumentError(
                f"Upload error must be between {MIN_ERROR_CODE} and {MAX_ERROR_CODE}, got {error}"
            )
        for name, value in (
            ("client filename", client_filename),
            ("client media type", client_media_type),
        ):
            if value is not None and not isinstance(value, str):
                raise InvalidArgumentError(
                    f"Upload {name} must be a string or None, received {describe_type(value)}"
                )

        self._size = size
        self._error = int(error)
        self._client_filename = client_filename
        self._client_media_type = client_media_type
        self._sapi = sapi
        self._mover: FileMover = mover if mover is not None else LocalFileMover()
        self._moved = False

    @staticmethod
    def _resolve(file: Any) -> Tuple[str, Stream]:
        if isinstance(file, (str, os.PathLike)):
            path = os.fspath(file)
            mode = "rb+" if os.path.exists(path) else "wb+"
            return path, Stream(path, mode)
        if isinstance(file, Stream):
            return str(file.get_metadata("uri")), file
        if Stream._is_file_object(file):
            stream = Stream(file)
            return str(stream.get_metadata("uri")), stream
        raise InvalidArgumentError(
            "The file must be a path, a binary file object or a Stream, "
            f"received {describe_type(file)}"
        )

    @property
    def file(self) -> str:
        """Get the path (or stream URI) of the uploaded file."""
        return self._file

    @property
    def size(self) -> int:
        """Get the file size in bytes."""
        return self._size

    @property
    def error(self) -> int:
        """Get the upload error code; 0 means the upload succeeded."""
        return self._error

    @property
    def error_status(self) -> Optional[UploadErrorStatus]:
        """Get the error code as an UploadErrorStatus, if it is a known one."""
        try:
            return UploadErrorStatus(self._error)
        except ValueError:
            return None

    @property
    def client_filename(self) -> Optional[str]:
        """Get the file name sent by the client. Do not trust it."""
        return self._client_filename

    @property
    def client_media_type(self) -> Optional[str]:
        """Get the media type sent by the client. Do not trust it."""
        return self._client_media_type

    @property
    def moved(self) -> bool:
        """Get whether the file has been moved."""
        return self._moved

    def get_stream(self) -> Stream:
        """
        Get the stream of the uploaded file.

        Raises:
            UploadError: If the file has already been moved
        """
        if self._moved:
            raise UploadError("Cannot retrieve stream as it was moved")
        return self._stream

    def _is_path_backed(self) -> bool:
        return self._file not in (Stream.MEMORY, Stream.TEMP) and os.path.isfile(self._file)

    def _copy_into(self, write: Callable[[bytes], Any]) -> None:
        self._stream.rewind()
        while True:
            chunk = self._stream.read(self.DEFAULT_CHUNK_SIZE)
            if not chunk:
                break
            write(chunk)

    def move_to(self, target_path: Any) -> None:
        """
        Move the uploaded file to a new location.

        Targets containing "://" are stream targets: the content is copied
        into a stream opened on the target and the original file removed.

        Args:
            target_path: Filesystem path or stream identifier

        Raises:
            InvalidArgumentError: If the target is empty, not a string or not
                writable
            UploadError: If the file was already moved or the move failed
        """
        if isinstance(target_path, os.PathLike):
            target_path = os.fspath(target_path)
        if not isinstance(target_path, str) or not target_path:
            raise InvalidArgumentError("The target path must be a non-empty string")

        target_is_stream = target_path.find("://") > 0
        if not target_is_stream:
            directory = os.path.dirname(target_path) or "."
            if not os.access(directory, os.W_OK):
                raise InvalidArgumentError(
                    f"The upload target path {target_path!r} is not writable"
                )

        if self._moved:
            raise UploadError("The uploaded file was already moved")

        try:
            if target_is_stream:
                target = Stream(target_path, "wb")
                self._copy_into(target.write)
                target.close()
                if self._is_path_backed():
                    os.remove(self._file)
            elif not self._is_path_backed():
                with open(target_path, "wb") as handle:
                    self._copy_into(handle.write)
            else:
                self._stream.flush()
                if self._sapi:
                    self._mover.move_uploaded(self._file, target_path)
                else:
                    self._mover.move(self._file, target_path)
        except (OSError, MessageRuntimeError) as e:
            raise UploadError(
                f"The file {self._file!r} could not be moved to {target_path!r}", e
            ) from e

        self._stream.close()
        self._moved = True
        logger.debug(f"Moved uploaded file {self._file!r} to {target_path!r}")
