"""HTTP transport abstraction.

The client never talks to ``requests`` directly. It hands a URL, a method,
headers and an optional multipart form to an ``HttpTransport`` and gets back
a status code plus a lazy JSON reader. Any failure to obtain a response is
reported as ``TransportError``.
"""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from config.constants import (
    API_CONNECT_TIMEOUT,
    API_MAX_RETRY_ATTEMPTS,
    API_POOL_CONNECTIONS,
    API_POOL_MAXSIZE,
    API_READ_TIMEOUT_DEFAULT,
    API_RETRY_BACKOFF_FACTOR,
    API_RETRY_STATUS_CODES,
)
from domain.exceptions import InvalidResponseFormatError, TransportError


class MultipartForm:
    """Ordered multipart body: ``append(key, value)`` like a browser FormData.

    Text values are stored as ``str``; anything else is treated as a file part.
    """

    def __init__(self) -> None:
        self._fields: List[Tuple[str, Any]] = []

    def append(self, key: str, value: Any) -> None:
        self._fields.append((key, value))

    @property
    def fields(self) -> List[Tuple[str, Any]]:
        return list(self._fields)

    def get(self, key: str) -> Any:
        """Return the first value stored under ``key`` (None if absent)."""
        for name, value in self._fields:
            if name == key:
                return value
        return None

    def keys(self) -> List[str]:
        return [name for name, _ in self._fields]

    def __contains__(self, key: object) -> bool:
        return any(name == key for name, _ in self._fields)

    def __len__(self) -> int:
        return len(self._fields)


class TransportResponse:
    """Status code plus a deferred JSON body reader."""

    def __init__(self, status_code: int, json_reader: Callable[[], Any]) -> None:
        self.status_code = status_code
        self._json_reader = json_reader

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return self._json_reader()

    @classmethod
    def from_payload(cls, status_code: int, payload: Any) -> "TransportResponse":
        """Build a response whose body decodes to ``payload``."""
        return cls(status_code, lambda: payload)


class HttpTransport(ABC):
    """Abstract HTTP fetch capability."""

    @abstractmethod
    def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        form: Optional[MultipartForm] = None,
    ) -> TransportResponse:
        """Issue a request.

        Args:
            url: Absolute URL including any query string
            method: HTTP method
            headers: Extra request headers
            form: Multipart body for POST requests

        Returns:
            The response, whatever its status code

        Raises:
            TransportError: If no response could be obtained
        """

    def close(self) -> None:
        """Release pooled connections (no-op by default)."""


def _decode_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise InvalidResponseFormatError(
            "Response body is not valid JSON", detail=str(exc)
        ) from exc


class RequestsTransport(HttpTransport):
    """``requests``-backed transport with connection pooling.

    Each instance owns its own ``requests.Session`` (and cookie jar), so a
    transport must not be shared between clients acting for different users.
    Automatic retries only cover idempotent GETs; POSTs are sent once.
    """

    def __init__(
        self,
        connect_timeout: float = API_CONNECT_TIMEOUT,
        read_timeout: float = API_READ_TIMEOUT_DEFAULT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._timeout = (connect_timeout, read_timeout)
        self._session = session if session is not None else self._create_session()

    def _create_session(self) -> requests.Session:
        """Create HTTP session with connection pooling and retries."""
        session = requests.Session()

        retries = Retry(
            total=API_MAX_RETRY_ATTEMPTS,
            connect=API_MAX_RETRY_ATTEMPTS,
            read=API_MAX_RETRY_ATTEMPTS,
            backoff_factor=API_RETRY_BACKOFF_FACTOR,
            status_forcelist=API_RETRY_STATUS_CODES,
            allowed_methods=("GET",),
            raise_on_status=False,
        )

        adapter = HTTPAdapter(
            max_retries=retries,
            pool_connections=API_POOL_CONNECTIONS,
            pool_maxsize=API_POOL_MAXSIZE,
        )

        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        form: Optional[MultipartForm] = None,
    ) -> TransportResponse:
        with contextlib.ExitStack() as stack:
            try:
                files = self._encode_form(form, stack) if form is not None else None
                response = self._session.request(
                    method=method,
                    url=url,
                    headers=headers,
                    files=files,
                    timeout=self._timeout,
                )
            except (requests.RequestException, OSError) as exc:
                raise TransportError(str(exc)) from exc

        return TransportResponse(response.status_code, lambda: _decode_json(response))

    def close(self) -> None:
        self._session.close()

    @staticmethod
    def _encode_form(
        form: MultipartForm,
        stack: contextlib.ExitStack,
    ) -> List[Tuple[str, Any]]:
        """Turn a MultipartForm into the ``files=`` list ``requests`` expects."""
        parts: List[Any] = []
        for key, value in form.fields:
            if isinstance(value, str):
                parts.append((key, (None, value)))
                continue

            filename = getattr(value, "filename", None) or "image"
            content_type = getattr(value, "content_type", None)
            if callable(getattr(value, "open", None)):
                content = stack.enter_context(value.open())
            elif callable(getattr(value, "read_all", None)):
                content = value.read_all()
            elif isinstance(value, (bytes, bytearray)):
                content = bytes(value)
            else:
                raise TypeError(f"Cannot encode form field {key!r}: no readable content")
            parts.append((key, (filename, content, content_type)))
        return parts
