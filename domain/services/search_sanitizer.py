"""Search input sanitization.

Free text that ends up in query strings or product fields is HTML-entity
encoded so it can never be rendered as markup, then trimmed and capped.

The encoding matches the one used by the upstream web client: the unsafe
ASCII symbols ``" & ' < > `` (plus backtick) and every character outside
printable ASCII become uppercase hexadecimal references (``<`` -> ``&#x3C;``).
Line feed and carriage return are kept as-is.
"""

from __future__ import annotations

import re
from typing import Any

from config.constants import SEARCH_INPUT_MAX_LENGTH
from domain.exceptions import TypeMismatchError

_UNSAFE_SYMBOLS_RE = re.compile(r"[\"&'<>`]")
_NON_PRINTABLE_RE = re.compile(
    "[\x01-\t\x0b\x0c\x0e-\x1f\x7f\x81\x8d\x8f\x90\x9d\xa0-\U0010ffff]"
)
# ASCII whitespace only; NEL and other Unicode spaces are left to the encoder
_TRIM_CHARS = " \t\n\x0b\x0c\r"


def _hex_reference(match: re.Match[str]) -> str:
    return f"&#x{ord(match.group(0)):X};"


def encode_entities(text: str) -> str:
    """Encode ``text`` with hexadecimal character references."""
    text = _UNSAFE_SYMBOLS_RE.sub(_hex_reference, text)
    return _NON_PRINTABLE_RE.sub(_hex_reference, text)


def sanitize_search_input(value: Any, max_length: int = SEARCH_INPUT_MAX_LENGTH) -> str:
    """Encode, trim and truncate user supplied text.

    Truncation happens after encoding, so an entity straddling the limit is
    cut. Sanitize raw input exactly once: encoding is not idempotent.
    """
    if not isinstance(value, str):
        raise TypeMismatchError("Search input must be a string")
    return encode_entities(value).strip(_TRIM_CHARS)[:max_length]
