"""Barcode format validation."""

from __future__ import annotations

import re
from typing import Any

from config.constants import BARCODE_MAX_LENGTH, BARCODE_MIN_LENGTH
from domain.exceptions import FormatInvalidError, TypeMismatchError

_FULL_BARCODE_RE = re.compile(rf"[0-9]{{{BARCODE_MIN_LENGTH},{BARCODE_MAX_LENGTH}}}")
_PARTIAL_BARCODE_RE = re.compile(r"[0-9]+")


def validate_barcode(value: Any, allow_partial: bool = False) -> None:
    """Raise unless ``value`` is a well-formed barcode.

    Full barcodes are 8-13 ASCII digits. Partial barcodes (search contexts)
    are one or more digits. The value is never normalized.
    """
    if not isinstance(value, str):
        raise TypeMismatchError("Barcode must be a string")

    if allow_partial:
        if not _PARTIAL_BARCODE_RE.fullmatch(value):
            raise FormatInvalidError("Invalid barcode format. Must contain only digits.")
    elif not _FULL_BARCODE_RE.fullmatch(value):
        raise FormatInvalidError("Invalid barcode format. Must be 8-13 digits.")


def is_valid_barcode(value: Any, allow_partial: bool = False) -> bool:
    try:
        validate_barcode(value, allow_partial=allow_partial)
    except (TypeMismatchError, FormatInvalidError):
        return False
    return True
