"""Image upload validation.

Checks the declared MIME type and size of an image asset, then confirms the
real file type from its leading bytes. Only the first
``IMAGE_SIGNATURE_BYTES`` bytes are ever requested from assets that support
ranged reads; whole-content reads are reserved for assets that cannot do
anything else.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from config.constants import (
    IMAGE_ALLOWED_TYPES,
    IMAGE_MAX_SIZE_BYTES,
    IMAGE_SIGNATURE_BYTES,
    JPEG_SIGNATURE,
    PNG_SIGNATURE,
    RIFF_SIGNATURE,
    WEBP_IDENTIFIER,
    WEBP_IDENTIFIER_OFFSET,
)
from domain.exceptions import (
    ContentMismatchError,
    FormatInvalidError,
    MissingInputError,
    ReadError,
    SizeExceededError,
)
from domain.models import (
    ReadCapability,
    declared_content_type,
    declared_size,
    resolve_read_capability,
)


def detect_image_format(header: bytes) -> Optional[str]:
    """Return ``"jpeg"``, ``"png"`` or ``"webp"`` for a recognised header.

    A RIFF container is only accepted when it carries the WEBP identifier;
    other RIFF payloads (AVI, WAV) are not images.
    """
    if header.startswith(JPEG_SIGNATURE):
        return "jpeg"
    if header.startswith(PNG_SIGNATURE):
        return "png"
    if header.startswith(RIFF_SIGNATURE):
        end = WEBP_IDENTIFIER_OFFSET + len(WEBP_IDENTIFIER)
        if header[WEBP_IDENTIFIER_OFFSET:end] == WEBP_IDENTIFIER:
            return "webp"
    return None


class ImageContentValidator:
    """Validate image assets before upload.

    Args:
        strict_reads: When False (default) a failure while reading the
            leading bytes is treated as inconclusive and the asset passes.
            When True such failures raise ``ReadError``.
    """

    def __init__(self, strict_reads: bool = False) -> None:
        self.strict_reads = strict_reads

    def validate(self, asset: Any) -> None:
        if asset is None:
            raise MissingInputError("Image file is required")

        content_type = declared_content_type(asset)
        if content_type is not None and content_type not in IMAGE_ALLOWED_TYPES:
            raise FormatInvalidError(
                "Invalid file type. Only JPEG, PNG, and WebP images are allowed."
            )

        size = declared_size(asset)
        if size is not None and size > IMAGE_MAX_SIZE_BYTES:
            raise SizeExceededError("File size too large. Maximum size is 10MB.")

        capability = resolve_read_capability(asset)
        if capability is ReadCapability.METADATA_ONLY:
            return

        header = self._read_header(asset, capability)
        if header is None:
            return

        if detect_image_format(header) is None:
            raise ContentMismatchError("File content does not match allowed image formats")

    def _read_header(self, asset: Any, capability: ReadCapability) -> Optional[bytes]:
        try:
            if capability is ReadCapability.PARTIALLY_READABLE:
                data = asset.read_range(0, IMAGE_SIGNATURE_BYTES)
            else:
                data = asset.read_all()
            return bytes(data[:IMAGE_SIGNATURE_BYTES])
        except Exception as exc:  # noqa: BLE001 - any read failure is inconclusive
            if self.strict_reads:
                raise ReadError(
                    "Unable to read image content for validation",
                    detail=str(exc),
                ) from exc
            logging.debug("Image signature check skipped, read failed: %s", exc)
            return None


def validate_image(asset: Any, strict_reads: bool = False) -> None:
    """Module-level shortcut for ``ImageContentValidator(strict_reads).validate``."""
    ImageContentValidator(strict_reads=strict_reads).validate(asset)
