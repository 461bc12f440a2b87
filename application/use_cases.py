"""Application use cases.

Use cases wrap a single client operation with the policy that applies to
it. Each use case is bound to one client, and therefore to one principal.
"""

import time
from typing import Any, Callable, Mapping, Optional, Union

from application.retry import build_retrying
from config.constants import FLOW_RETRY_MAX_ATTEMPTS
from domain.exceptions import ApiError
from domain.models import PhotoType, ProductDraft, SearchCriteria
from infrastructure.api.openfoodfacts_client import OpenFoodFactsClient


class GetProductUseCase:
    """Look up a product by barcode."""

    def __init__(self, client: OpenFoodFactsClient) -> None:
        self._client = client

    def execute(self, barcode: str) -> dict:
        return self._client.get_product(barcode)


class SearchProductsUseCase:
    """Search products, retrying HTTP failures.

    Searches are idempotent, so ``ApiError`` responses are retried with
    exponential backoff. Validation and network failures are not.
    """

    def __init__(
        self,
        client: OpenFoodFactsClient,
        max_attempts: int = FLOW_RETRY_MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._sleep = sleep

    def execute(self, criteria: Union[SearchCriteria, Mapping[str, Any]]) -> dict:
        """Run the search.

        Args:
            criteria: Search criteria or their JSON mapping form

        Returns:
            Decoded search response, projected to ``fields`` when given
        """
        retrying = build_retrying(
            (ApiError,),
            max_attempts=self._max_attempts,
            sleep=self._sleep,
        )
        return retrying(self._client.search_products, criteria)


class GetTaxonomyUseCase:
    """Fetch a published taxonomy."""

    def __init__(self, client: OpenFoodFactsClient) -> None:
        self._client = client

    def execute(self, name: str) -> Any:
        return self._client.get_taxonomy(name)


class AddProductUseCase:
    """Create or complete a product. Never retried."""

    def __init__(self, client: OpenFoodFactsClient) -> None:
        self._client = client

    def execute(self, draft: Union[ProductDraft, Mapping[str, Any]]) -> Any:
        return self._client.add_product(draft)


class UploadPhotoUseCase:
    """Upload a product photo. Never retried."""

    def __init__(self, client: OpenFoodFactsClient) -> None:
        self._client = client

    def execute(
        self,
        barcode: str,
        image: Any,
        photo_type: Union[PhotoType, Mapping[str, Any]],
    ) -> Any:
        """Upload the photo.

        Args:
            barcode: Product barcode (8-13 digits)
            image: Image asset, bytes, or file path
            photo_type: Target field and language

        Returns:
            Decoded API response
        """
        return self._client.upload_photo(barcode, image, photo_type)


class GetRandomInsightUseCase:
    """Fetch random Robotoff questions."""

    def __init__(self, client: OpenFoodFactsClient) -> None:
        self._client = client

    def execute(self, count: int = 1, lang: Optional[str] = None) -> Any:
        return self._client.get_random_insight(count=count, lang=lang)
