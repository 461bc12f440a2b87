"""Shared fixtures.

``RecordingTransport`` stands in for the network: it records every request
and answers from a queue of canned responses.
"""

from typing import Any, Dict, List, Optional

import pytest

from domain.exceptions import TransportError
from infrastructure.api.openfoodfacts_client import OpenFoodFactsClient
from infrastructure.api.transport import HttpTransport, MultipartForm, TransportResponse


class RecordingTransport(HttpTransport):
    """In-memory transport used by client and node tests."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.closed = False
        self._responses: List[TransportResponse] = []
        self._error: Optional[TransportError] = None

    def respond(self, payload: Any, status_code: int = 200) -> "RecordingTransport":
        """Queue a response; the last queued response is reused."""
        self._responses.append(TransportResponse.from_payload(status_code, payload))
        return self

    def respond_with(self, response: TransportResponse) -> "RecordingTransport":
        """Queue a prebuilt response, e.g. one whose body fails to decode."""
        self._responses.append(response)
        return self

    def fail(self, message: str = "Network error") -> "RecordingTransport":
        self._error = TransportError(message)
        return self

    def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        form: Optional[MultipartForm] = None,
    ) -> TransportResponse:
        self.calls.append({"url": url, "method": method, "headers": headers, "form": form})
        if self._error is not None:
            raise self._error
        if len(self._responses) > 1:
            return self._responses.pop(0)
        if self._responses:
            return self._responses[0]
        return TransportResponse.from_payload(200, {})

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def client(transport: RecordingTransport) -> OpenFoodFactsClient:
    return OpenFoodFactsClient(transport=transport)


@pytest.fixture
def authed_client(client: OpenFoodFactsClient) -> OpenFoodFactsClient:
    client.set_credentials("user", "pass")
    return client


@pytest.fixture
def make_transport():
    """Factory for extra transports (one per client in isolation tests)."""
    return RecordingTransport
