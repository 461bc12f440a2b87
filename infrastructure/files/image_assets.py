"""Concrete image assets for uploads.

Both assets support ranged reads, so validation only ever pulls the leading
signature bytes. ``PathImage`` also streams its content to the transport
instead of loading it.
"""

from __future__ import annotations

import mimetypes
import os
from pathlib import Path
from typing import IO, Any, Optional

from domain.exceptions import MissingInputError


class BytesImage:
    """An image already held in memory."""

    def __init__(
        self,
        data: bytes,
        content_type: Optional[str] = None,
        filename: str = "image",
    ) -> None:
        self._data = bytes(data)
        self.content_type = content_type
        self.filename = filename

    @property
    def size(self) -> int:
        return len(self._data)

    def read_range(self, start: int, end: int) -> bytes:
        return self._data[start:end]

    def read_all(self) -> bytes:
        return self._data


class PathImage:
    """An image file on disk.

    The content type is guessed from the file extension unless given.
    """

    def __init__(self, path: str | os.PathLike[str], content_type: Optional[str] = None) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise MissingInputError(f"Image file not found: {self.path}")
        if content_type is None:
            content_type, _ = mimetypes.guess_type(self.path.name)
        self.content_type = content_type
        self.filename = self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def read_range(self, start: int, end: int) -> bytes:
        with self.path.open("rb") as handle:
            handle.seek(start)
            return handle.read(max(end - start, 0))

    def open(self) -> IO[bytes]:
        """Open the file for streaming upload; the caller closes it."""
        return self.path.open("rb")


def as_image_asset(value: Any) -> Any:
    """Wrap raw bytes or a filesystem path; return other objects unchanged."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesImage(bytes(value))
    if isinstance(value, (str, os.PathLike)):
        return PathImage(value)
    return value


def is_uploadable(asset: Any) -> bool:
    """True when the asset can hand its full content to the transport."""
    if isinstance(asset, (bytes, bytearray)):
        return True
    return callable(getattr(asset, "open", None)) or callable(getattr(asset, "read_all", None))
