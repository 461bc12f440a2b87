"""HTTPS enforcement for endpoints that may receive credentials."""

from __future__ import annotations

from typing import Any

from config.constants import SECURE_SCHEME_PREFIX
from domain.exceptions import InsecureTransportError


def _is_secure(endpoint: Any) -> bool:
    return isinstance(endpoint, str) and endpoint.startswith(SECURE_SCHEME_PREFIX)


def assert_secure_endpoint(endpoint: Any) -> None:
    """Check an endpoint when a client is constructed."""
    if not _is_secure(endpoint):
        raise InsecureTransportError(
            "HTTPS is required for secure API access. Use https:// URLs only."
        )


def assert_secure_for_credentials(endpoint: Any) -> None:
    """Check the current endpoint right before credentials are attached.

    Construction-time validation is not trusted: the endpoint may have been
    changed since.
    """
    if not _is_secure(endpoint):
        raise InsecureTransportError(
            "Cannot send credentials over non-HTTPS connection. "
            "HTTPS is required for authenticated requests."
        )
