"""Flow-based processing nodes.

Each node receives a message dict, runs one API operation and either sends
a copy of the message with ``payload`` replaced by the result, or reports
the error text together with the original message.

Nodes never share a client: a new client is built for every message from
the node's own credentials, and closed once the message is handled.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Type

from application.use_cases import (
    AddProductUseCase,
    GetProductUseCase,
    GetRandomInsightUseCase,
    GetTaxonomyUseCase,
    SearchProductsUseCase,
    UploadPhotoUseCase,
)
from config.constants import (
    FLOW_RETRY_MAX_ATTEMPTS,
    TAXONOMY_ADDITIVES,
    TAXONOMY_ALLERGENS,
    TAXONOMY_BRANDS,
)
from config.container import Container
from domain.exceptions import FormatInvalidError, MissingInputError, OpenFoodFactsError
from domain.models import Credentials
from infrastructure.api.openfoodfacts_client import OpenFoodFactsClient

Message = Dict[str, Any]
ClientFactory = Callable[[Optional[Credentials]], OpenFoodFactsClient]
SendCallback = Callable[[Message], None]
ErrorCallback = Callable[[str, Message], None]


def _default_client_factory(credentials: Optional[Credentials]) -> OpenFoodFactsClient:
    return Container().new_client(credentials)


def _coerce_credentials(value: Any) -> Optional[Credentials]:
    """Accept Credentials or a ``{"username", "password"}`` mapping."""
    if value is None or isinstance(value, Credentials):
        return value
    if isinstance(value, Mapping):
        username = value.get("username")
        password = value.get("password")
        if username and password:
            return Credentials(user_id=username, password=password)
    return None


def _payload(msg: Message) -> Dict[str, Any]:
    payload = msg.get("payload")
    return payload if isinstance(payload, dict) else {}


class FlowNode:
    """Base class for API nodes.

    Subclasses implement ``handle(msg, client)`` and return the new payload,
    or raise ``OpenFoodFactsError`` to report a failure upstream.
    """

    node_type = ""

    def __init__(
        self,
        name: Optional[str] = None,
        credentials: Any = None,
        client_factory: Optional[ClientFactory] = None,
        send: Optional[SendCallback] = None,
        error: Optional[ErrorCallback] = None,
    ) -> None:
        self.name = name
        self._credentials = _coerce_credentials(credentials)
        self._client_factory = client_factory or _default_client_factory
        self._send = send or (lambda msg: None)
        self._error = error or (lambda text, msg: None)

    @property
    def has_credentials(self) -> bool:
        return self._credentials is not None

    def on_input(self, msg: Message) -> None:
        try:
            self.check_input(msg)
            with self._client_factory(self._credentials) as client:
                payload = self.handle(msg, client)
        except OpenFoodFactsError as exc:
            logging.error("%s node error: %s", self.node_type, exc.message)
            self._error(exc.message, msg)
            return
        except Exception as exc:  # noqa: BLE001
            logging.exception("%s node failed unexpectedly", self.node_type)
            self._error(str(exc), msg)
            return

        out = dict(msg)
        out["payload"] = payload
        self._send(out)

    def check_input(self, msg: Message) -> None:
        """Reject a message before any client is built (no-op by default)."""

    def handle(self, msg: Message, client: OpenFoodFactsClient) -> Any:
        raise NotImplementedError


class GetProductNode(FlowNode):
    node_type = "openfoodfacts-get-product"

    def __init__(self, product_id: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.product_id = product_id

    def _product_id(self, msg: Message) -> Any:
        return self.product_id or _payload(msg).get("productId")

    def check_input(self, msg: Message) -> None:
        if not self._product_id(msg):
            raise MissingInputError("No productId provided")

    def handle(self, msg: Message, client: OpenFoodFactsClient) -> Any:
        return GetProductUseCase(client).execute(self._product_id(msg))


class SearchProductsNode(FlowNode):
    """Search node; ``searchParams`` may be a JSON string or a mapping."""

    node_type = "openfoodfacts-search-products"

    def __init__(
        self,
        search_params: Any = None,
        max_attempts: int = FLOW_RETRY_MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.search_params = search_params
        self._max_attempts = max_attempts
        self._sleep = sleep

    def _search_params(self, msg: Message) -> Any:
        return _payload(msg).get("searchParams") or self.search_params

    def check_input(self, msg: Message) -> None:
        if not self._search_params(msg):
            raise MissingInputError("No searchParams provided")

    def handle(self, msg: Message, client: OpenFoodFactsClient) -> Any:
        params = self._search_params(msg)
        if isinstance(params, str):
            try:
                params = json.loads(params)
            except json.JSONDecodeError as exc:
                raise FormatInvalidError(
                    f"searchParams is not valid JSON: {exc.msg}"
                ) from exc
        use_case = SearchProductsUseCase(
            client,
            max_attempts=self._max_attempts,
            sleep=self._sleep,
        )
        return use_case.execute(params)


class GetTaxonomyNode(FlowNode):
    node_type = "openfoodfacts-get-taxonomy"

    def __init__(self, taxonomy: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.taxonomy = taxonomy

    def _taxonomy(self, msg: Message) -> Any:
        return self.taxonomy or _payload(msg).get("taxonomy")

    def check_input(self, msg: Message) -> None:
        if not self._taxonomy(msg):
            raise MissingInputError("No taxonomy provided")

    def handle(self, msg: Message, client: OpenFoodFactsClient) -> Any:
        return GetTaxonomyUseCase(client).execute(self._taxonomy(msg))


class _FixedTaxonomyNode(FlowNode):
    taxonomy = ""

    def handle(self, msg: Message, client: OpenFoodFactsClient) -> Any:
        return GetTaxonomyUseCase(client).execute(self.taxonomy)


class GetAdditivesNode(_FixedTaxonomyNode):
    node_type = "openfoodfacts-get-additives"
    taxonomy = TAXONOMY_ADDITIVES


class GetAllergensNode(_FixedTaxonomyNode):
    node_type = "openfoodfacts-get-allergens"
    taxonomy = TAXONOMY_ALLERGENS


class GetBrandsNode(_FixedTaxonomyNode):
    node_type = "openfoodfacts-get-brands"
    taxonomy = TAXONOMY_BRANDS


class AddProductNode(FlowNode):
    node_type = "openfoodfacts-add-product"

    def check_input(self, msg: Message) -> None:
        if not self.has_credentials:
            raise MissingInputError("Credentials required for adding products")
        if not _payload(msg).get("code"):
            raise MissingInputError("Product code is required")

    def handle(self, msg: Message, client: OpenFoodFactsClient) -> Any:
        return AddProductUseCase(client).execute(_payload(msg))


class UploadPhotoNode(FlowNode):
    node_type = "openfoodfacts-upload-photo"

    def check_input(self, msg: Message) -> None:
        if not self.has_credentials:
            raise MissingInputError("Credentials required for uploading photos")
        payload = _payload(msg)
        photo_type = payload.get("type")
        if (
            not payload.get("barcode")
            or payload.get("image") is None
            or not isinstance(photo_type, Mapping)
            or not photo_type.get("field")
            or not photo_type.get("languageCode")
        ):
            raise MissingInputError(
                "Missing required parameters: barcode, image, type.field, or type.languageCode"
            )

    def handle(self, msg: Message, client: OpenFoodFactsClient) -> Any:
        payload = _payload(msg)
        return UploadPhotoUseCase(client).execute(
            payload["barcode"],
            payload["image"],
            payload["type"],
        )


class GetRandomInsightNode(FlowNode):
    node_type = "openfoodfacts-get-random-insight"

    def __init__(
        self,
        count: Optional[int] = None,
        lang: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.count = count
        self.lang = lang

    def handle(self, msg: Message, client: OpenFoodFactsClient) -> Any:
        payload = _payload(msg)
        count = payload.get("count") or self.count or 1
        lang = payload.get("lang") or self.lang
        return GetRandomInsightUseCase(client).execute(count=count, lang=lang)


NODE_TYPES: Dict[str, Type[FlowNode]] = {
    node_class.node_type: node_class
    for node_class in (
        GetProductNode,
        SearchProductsNode,
        GetTaxonomyNode,
        AddProductNode,
        UploadPhotoNode,
        GetAdditivesNode,
        GetAllergensNode,
        GetBrandsNode,
        GetRandomInsightNode,
    )
}


def create_node(node_type: str, **config: Any) -> FlowNode:
    """Instantiate a registered node type with its configuration."""
    try:
        node_class = NODE_TYPES[node_type]
    except KeyError:
        raise ValueError(f"Unknown node type: {node_type}") from None
    return node_class(**config)
