"""Open Food Facts API client.

One client instance acts for at most one principal. Credentials live on the
instance, so an instance must never be shared between callers acting for
different users; build one per user or session instead (see
``config.container.Container.new_client``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import quote

from config.constants import (
    ADD_PRODUCT_PATH,
    OFF_API_BASE_URL,
    PRODUCT_FIELDS,
    PRODUCT_PATH,
    RANDOM_QUESTIONS_PATH,
    ROBOTOFF_API_BASE_URL,
    SEARCH_PATH,
    TAXONOMY_ADDITIVES,
    TAXONOMY_ALLERGENS,
    TAXONOMY_BRANDS,
    TAXONOMY_PATH,
    UPLOAD_PHOTO_PATH,
    USER_AGENT,
)
from domain.exceptions import (
    ApiError,
    CredentialsRequiredError,
    InvalidResponseFormatError,
    MissingInputError,
    NetworkError,
    OpenFoodFactsError,
    TransportError,
)
from domain.models import Credentials, PhotoType, ProductDraft, SearchCriteria
from domain.services.barcode_validator import validate_barcode
from domain.services.field_projector import project_fields, project_search_response
from domain.services.image_validator import ImageContentValidator
from domain.services.transport_guard import (
    assert_secure_endpoint,
    assert_secure_for_credentials,
)
from infrastructure.api.request_builder import (
    build_add_product_form,
    build_query_string,
    build_search_params,
    build_upload_photo_form,
    validate_photo_type,
)
from infrastructure.api.transport import (
    HttpTransport,
    MultipartForm,
    RequestsTransport,
    TransportResponse,
)
from infrastructure.files.image_assets import as_image_asset, is_uploadable


class OpenFoodFactsClient:
    """Client for product lookup, search, taxonomies, contributions and insights."""

    def __init__(
        self,
        base_url: str = OFF_API_BASE_URL,
        transport: Optional[HttpTransport] = None,
        image_validator: Optional[ImageContentValidator] = None,
        insight_base_url: str = ROBOTOFF_API_BASE_URL,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Open Food Facts endpoint, must be ``https://``
            transport: HTTP transport (if None, a new RequestsTransport)
            image_validator: Upload validator (if None, lenient reads)
            insight_base_url: Robotoff endpoint for random questions

        Raises:
            InsecureTransportError: If ``base_url`` is not HTTPS
        """
        assert_secure_endpoint(base_url)
        self.base_url = base_url
        self.insight_base_url = insight_base_url
        self._credentials: Optional[Credentials] = None
        self._transport = transport if transport is not None else RequestsTransport()
        self._image_validator = (
            image_validator if image_validator is not None else ImageContentValidator()
        )

    # Ownership: a client is bound to one principal and is never duplicated.
    def __copy__(self) -> "OpenFoodFactsClient":
        raise TypeError("OpenFoodFactsClient cannot be copied; create a new client instead")

    def __deepcopy__(self, memo: Dict[int, Any]) -> "OpenFoodFactsClient":
        raise TypeError("OpenFoodFactsClient cannot be copied; create a new client instead")

    def __enter__(self) -> "OpenFoodFactsClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Drop credentials and release the transport."""
        self._credentials = None
        self._transport.close()

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def set_credentials(self, user_id: str, password: str) -> None:
        """Attach an account to this client (replaces any previous one)."""
        self._credentials = Credentials(user_id=user_id, password=password)

    def clear_credentials(self) -> None:
        self._credentials = None

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def has_credentials(self) -> bool:
        return self._credentials is not None

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get_product(self, barcode: str) -> Dict[str, Any]:
        """Fetch a product and return its descriptive fields.

        Only the keys listed in ``PRODUCT_FIELDS`` that the product actually
        has are returned.
        """
        validate_barcode(barcode)
        url = f"{self.base_url}{PRODUCT_PATH.format(barcode=barcode)}"
        try:
            data = self._get_json(url)
            product = data.get("product") if isinstance(data, dict) else None
            if not isinstance(product, dict):
                raise InvalidResponseFormatError("Invalid response format")
            return project_fields(product, PRODUCT_FIELDS)
        except OpenFoodFactsError as exc:
            raise exc.with_prefix("Failed to fetch product") from exc

    def search_products(
        self,
        criteria: Union[SearchCriteria, Mapping[str, Any]],
    ) -> Dict[str, Any]:
        """Search products.

        HTTP failures (``ApiError``, detail ``"API request failed"``) and a
        decoded body that is not an object (``InvalidResponseFormatError``)
        are raised as-is; every other failure, including a body that is not
        JSON at all, is prefixed with ``Failed to search products``.
        """
        try:
            if not isinstance(criteria, SearchCriteria):
                criteria = SearchCriteria.from_mapping(criteria)
            query = build_query_string(build_search_params(criteria))
            url = f"{self.base_url}{SEARCH_PATH}?{query}"

            response = self._send(url)
            if not response.ok:
                self._log_http_failure(url, response.status_code)
                raise ApiError(
                    f"HTTP error! status: {response.status_code}",
                    detail="API request failed",
                    status_code=response.status_code,
                )

            data = response.json()
        except ApiError:
            raise
        except OpenFoodFactsError as exc:
            raise exc.with_prefix("Failed to search products") from exc

        if not isinstance(data, dict):
            raise InvalidResponseFormatError("Invalid response format")
        return project_search_response(data, criteria.fields)

    def get_taxonomy(self, name: str) -> Any:
        """Fetch a taxonomy (e.g. ``additives``) as published JSON."""
        url = f"{self.base_url}{TAXONOMY_PATH.format(name=quote(str(name), safe=''))}"
        try:
            return self._get_json(url)
        except OpenFoodFactsError as exc:
            raise exc.with_prefix("Failed to fetch taxonomy") from exc

    def get_additives(self) -> Any:
        return self.get_taxonomy(TAXONOMY_ADDITIVES)

    def get_allergens(self) -> Any:
        return self.get_taxonomy(TAXONOMY_ALLERGENS)

    def get_brands(self) -> Any:
        return self.get_taxonomy(TAXONOMY_BRANDS)

    def get_random_insight(self, count: int = 1, lang: Optional[str] = None) -> Any:
        """Fetch random Robotoff questions."""
        params = [("count", str(count))]
        if lang:
            params.append(("lang", lang))
        url = f"{self.insight_base_url}{RANDOM_QUESTIONS_PATH}?{build_query_string(params)}"
        try:
            return self._get_json(url)
        except OpenFoodFactsError as exc:
            raise exc.with_prefix("Failed to fetch random insight") from exc

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def add_product(self, draft: Union[ProductDraft, Mapping[str, Any]]) -> Any:
        """Create or complete a product; requires credentials."""
        credentials = self._require_credentials("Credentials required for adding products")
        if not isinstance(draft, ProductDraft):
            draft = ProductDraft.from_mapping(draft)
        validate_barcode(draft.code)

        url = f"{self.base_url}{ADD_PRODUCT_PATH}"
        try:
            form = build_add_product_form(draft, credentials)
            return self._post_form(url, form)
        except OpenFoodFactsError as exc:
            raise exc.with_prefix("Failed to add product") from exc

    def upload_photo(
        self,
        barcode: str,
        image: Any,
        photo_type: Union[PhotoType, Mapping[str, Any], None],
    ) -> Any:
        """Upload a product photo; requires credentials.

        ``image`` may be an asset object, raw ``bytes`` or a file path.
        """
        credentials = self._require_credentials("Credentials required for uploading photos")
        validate_barcode(barcode)
        asset = as_image_asset(image)
        self._image_validator.validate(asset)
        if not is_uploadable(asset):
            raise MissingInputError("Image content is required for upload")
        photo_type = validate_photo_type(photo_type)

        url = f"{self.base_url}{UPLOAD_PHOTO_PATH}"
        try:
            form = build_upload_photo_form(barcode, asset, photo_type, credentials)
            return self._post_form(url, form)
        except OpenFoodFactsError as exc:
            raise exc.with_prefix("Failed to upload photo") from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_credentials(self, message: str) -> Credentials:
        """Return the credentials once the current endpoint is known to be HTTPS."""
        if self._credentials is None:
            raise CredentialsRequiredError(message)
        assert_secure_for_credentials(self.base_url)
        return self._credentials

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": USER_AGENT}

    def _send(
        self,
        url: str,
        method: str = "GET",
        form: Optional[MultipartForm] = None,
    ) -> TransportResponse:
        logging.debug("%s %s", method, url)
        try:
            return self._transport.fetch(url, method=method, headers=self._headers(), form=form)
        except TransportError as exc:
            logging.warning("Network error calling %s: %s", url, exc)
            raise NetworkError(str(exc)) from exc

    def _read_json(self, url: str, response: TransportResponse) -> Any:
        if not response.ok:
            self._log_http_failure(url, response.status_code)
            raise ApiError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    def _get_json(self, url: str) -> Any:
        return self._read_json(url, self._send(url))

    def _post_form(self, url: str, form: MultipartForm) -> Any:
        return self._read_json(url, self._send(url, method="POST", form=form))

    @staticmethod
    def _log_http_failure(url: str, status_code: int) -> None:
        logging.warning("HTTP %s returned by %s", status_code, url)
