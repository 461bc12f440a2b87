"""Dependency Injection container.

Provides centralized dependency management for the application.

Stateless collaborators are lazy singletons. API clients are not: every call
to ``new_client`` returns a fresh client with its own transport, because a
client carries the credentials of exactly one principal.
"""

from typing import Callable, Optional

from config.settings import Settings
from domain.models import Credentials
from domain.services.image_validator import ImageContentValidator
from infrastructure.api.openfoodfacts_client import OpenFoodFactsClient
from infrastructure.api.transport import HttpTransport, RequestsTransport


class Container:
    """Dependency injection container."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport_factory: Optional[Callable[[], HttpTransport]] = None,
        strict_image_reads: bool = False,
    ) -> None:
        """Initialize container.

        Args:
            settings: Runtime settings (if None, reads from environment)
            transport_factory: Builds one transport per client
                (if None, a RequestsTransport using the configured timeout)
            strict_image_reads: Fail uploads whose bytes cannot be inspected
        """
        self._settings = settings if settings is not None else Settings.from_env()
        self._transport_factory = transport_factory or self._default_transport
        self._strict_image_reads = strict_image_reads

        # Lazy-initialized singletons
        self._image_validator: Optional[ImageContentValidator] = None

    def _default_transport(self) -> HttpTransport:
        return RequestsTransport(read_timeout=self._settings.read_timeout)

    @property
    def settings(self) -> Settings:
        return self._settings

    # Domain Services
    @property
    def image_validator(self) -> ImageContentValidator:
        """Get image content validator."""
        if self._image_validator is None:
            self._image_validator = ImageContentValidator(
                strict_reads=self._strict_image_reads
            )
        return self._image_validator

    # Clients (never cached)
    def new_client(self, credentials: Optional[Credentials] = None) -> OpenFoodFactsClient:
        """Build a client for one principal.

        Args:
            credentials: Account to attach (None for anonymous reads)

        Returns:
            A client nobody else holds a reference to
        """
        client = OpenFoodFactsClient(
            base_url=self._settings.base_url,
            transport=self._transport_factory(),
            image_validator=self.image_validator,
        )
        if credentials is not None:
            client.set_credentials(credentials.user_id, credentials.password)
        return client

    def new_default_client(self) -> OpenFoodFactsClient:
        """Build a client using the credentials configured in the environment."""
        return self.new_client(self._settings.default_credentials())
