"""Integration tests for OpenFoodFactsClient against a recording transport."""

import copy
from pathlib import Path

import pytest

from domain.exceptions import (
    ApiError,
    ContentMismatchError,
    CredentialsRequiredError,
    ErrorKind,
    FormatInvalidError,
    InsecureTransportError,
    InvalidResponseFormatError,
    MissingInputError,
    NetworkError,
    SizeExceededError,
    TypeMismatchError,
)
from domain.models import PhotoType, ProductDraft, SearchCriteria
from infrastructure.api.openfoodfacts_client import OpenFoodFactsClient
from infrastructure.api.transport import TransportResponse
from infrastructure.files.image_assets import BytesImage, PathImage

BASE_URL = "https://world.openfoodfacts.org"
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 128
FRONT_EN = {"field": "front", "languageCode": "en"}

NUTELLA = {
    "code": "3017620422003",
    "product_name": "Nutella",
    "brands": "Ferrero",
    "quantity": "400 g",
    "categories": "Spreads",
    "nutriments": {"energy": 2252},
    "image_url": "https://images.openfoodfacts.org/nutella.jpg",
}


class TestConstruction:
    """Test client construction and ownership rules."""

    def test_rejects_http_endpoint(self, transport) -> None:
        with pytest.raises(InsecureTransportError) as exc_info:
            OpenFoodFactsClient(base_url="http://world.openfoodfacts.org", transport=transport)

        assert exc_info.value.message == (
            "HTTPS is required for secure API access. Use https:// URLs only."
        )

    def test_defaults(self, client) -> None:
        assert client.base_url == BASE_URL
        assert client.has_credentials is False
        assert client.credentials is None

    @pytest.mark.parametrize("copier", [copy.copy, copy.deepcopy])
    def test_cannot_be_copied(self, authed_client, copier) -> None:
        with pytest.raises(TypeError):
            copier(authed_client)

    def test_close_drops_credentials_and_transport(self, authed_client, transport) -> None:
        with authed_client:
            assert authed_client.has_credentials

        assert authed_client.has_credentials is False
        assert transport.closed is True

    def test_set_and_clear_credentials(self, client) -> None:
        client.set_credentials("alice", "s3cret")
        assert client.credentials.user_id == "alice"

        client.clear_credentials()
        assert client.has_credentials is False

    def test_set_credentials_validates(self, client) -> None:
        with pytest.raises(MissingInputError):
            client.set_credentials("", "s3cret")

    def test_new_client_starts_anonymous(self, make_transport) -> None:
        first = OpenFoodFactsClient(transport=make_transport())
        first.set_credentials("alice", "a-pass")

        second = OpenFoodFactsClient(transport=make_transport())

        assert second.has_credentials is False
        assert first.credentials.user_id == "alice"

    def test_clients_do_not_share_credentials(self, make_transport) -> None:
        first_transport, second_transport = make_transport(), make_transport()
        first = OpenFoodFactsClient(transport=first_transport)
        second = OpenFoodFactsClient(transport=second_transport)
        first.set_credentials("alice", "a-pass")
        second.set_credentials("bob", "b-pass")

        first.add_product({"code": "3017620422003"})
        second.add_product({"code": "3017620422003"})

        assert first_transport.calls[0]["form"].get("user_id") == "alice"
        assert second_transport.calls[0]["form"].get("user_id") == "bob"
        assert len(first_transport.calls) == 1
        assert len(second_transport.calls) == 1


class TestGetProduct:
    """Test get_product."""

    def test_fetches_and_projects(self, client, transport) -> None:
        transport.respond({"status": 1, "product": NUTELLA})

        product = client.get_product("3017620422003")

        assert transport.calls[0]["url"] == f"{BASE_URL}/api/v0/product/3017620422003"
        assert transport.calls[0]["method"] == "GET"
        assert product == {
            "code": "3017620422003",
            "product_name": "Nutella",
            "brands": "Ferrero",
            "quantity": "400 g",
            "categories": "Spreads",
        }

    def test_sends_user_agent(self, client, transport) -> None:
        transport.respond({"product": {}})

        client.get_product("12345678")

        assert transport.calls[0]["headers"]["User-Agent"].startswith("off-flow-client/")

    def test_invalid_barcode_never_reaches_network(self, client, transport) -> None:
        with pytest.raises(FormatInvalidError) as exc_info:
            client.get_product("123")

        assert exc_info.value.message == "Invalid barcode format. Must be 8-13 digits."
        assert transport.calls == []

    def test_non_string_barcode(self, client, transport) -> None:
        with pytest.raises(TypeMismatchError):
            client.get_product(3017620422003)

        assert transport.calls == []

    def test_missing_product(self, client, transport) -> None:
        transport.respond({"status": 0, "status_verbose": "product not found"})

        with pytest.raises(InvalidResponseFormatError) as exc_info:
            client.get_product("3017620422003")

        assert exc_info.value.message == "Failed to fetch product: Invalid response format"

    def test_http_error(self, client, transport) -> None:
        transport.respond({}, status_code=500)

        with pytest.raises(ApiError) as exc_info:
            client.get_product("3017620422003")

        assert exc_info.value.message == "Failed to fetch product: HTTP error! status: 500"
        assert exc_info.value.status_code == 500
        assert exc_info.value.kind is ErrorKind.API_ERROR

    def test_network_error(self, client, transport) -> None:
        transport.fail("Network error")

        with pytest.raises(NetworkError) as exc_info:
            client.get_product("3017620422003")

        assert exc_info.value.message == "Failed to fetch product: Network error"
        assert exc_info.value.kind is ErrorKind.NETWORK_ERROR


class TestSearchProducts:
    """Test search_products."""

    def test_builds_query(self, client, transport) -> None:
        transport.respond({"count": 0, "products": []})

        client.search_products({"search_terms": "chocolate", "page": 2, "pageSize": 10})

        assert transport.calls[0]["url"] == (
            f"{BASE_URL}/cgi/search.pl?json=true&action=process"
            "&search_terms=chocolate&page=2&page_size=10"
        )

    def test_accepts_criteria_object(self, client, transport) -> None:
        transport.respond({"products": []})

        client.search_products(SearchCriteria(code="3017", code_type="contains"))

        assert transport.calls[0]["url"].endswith("&code=3017&code_type=contains")

    def test_sanitizes_terms_before_sending(self, client, transport) -> None:
        transport.respond({"products": []})

        client.search_products({"search_terms": "<script>"})

        assert "search_terms=%26%23x3C%3Bscript%26%23x3E%3B" in transport.calls[0]["url"]

    def test_projects_products(self, client, transport) -> None:
        transport.respond({"count": 1, "products": [NUTELLA]})

        result = client.search_products({"search_terms": "nutella", "fields": ["code", "brands"]})

        assert result == {
            "count": 1,
            "products": [{"code": "3017620422003", "brands": "Ferrero"}],
        }

    def test_empty_fields_yield_empty_products(self, client, transport) -> None:
        transport.respond({"count": 1, "products": [NUTELLA]})

        result = client.search_products({"search_terms": "nutella", "fields": []})

        assert result["products"] == [{}]

    def test_without_fields_returns_body(self, client, transport) -> None:
        body = {"count": 1, "products": [NUTELLA]}
        transport.respond(body)

        assert client.search_products({"search_terms": "nutella"}) == body

    def test_http_error_is_not_prefixed(self, client, transport) -> None:
        transport.respond({}, status_code=503)

        with pytest.raises(ApiError) as exc_info:
            client.search_products({"search_terms": "cola"})

        assert exc_info.value.message == "HTTP error! status: 503"
        assert exc_info.value.detail == "API request failed"
        assert exc_info.value.status_code == 503

    def test_non_object_body(self, client, transport) -> None:
        transport.respond(["not", "an", "object"])

        with pytest.raises(InvalidResponseFormatError) as exc_info:
            client.search_products({"search_terms": "cola"})

        assert exc_info.value.message == "Invalid response format"

    def test_undecodable_body_is_prefixed(self, client, transport) -> None:
        def unreadable() -> None:
            raise InvalidResponseFormatError(
                "Response body is not valid JSON", detail="Expecting value"
            )

        transport.respond_with(TransportResponse(200, unreadable))

        with pytest.raises(InvalidResponseFormatError) as exc_info:
            client.search_products({"search_terms": "cola"})

        assert exc_info.value.message == (
            "Failed to search products: Response body is not valid JSON"
        )
        assert exc_info.value.detail == "Expecting value"

    def test_non_list_fields_are_ignored(self, client, transport) -> None:
        body = {"count": 1, "products": [NUTELLA]}
        transport.respond(body)

        assert client.search_products({"search_terms": "nutella", "fields": 5}) == body

    def test_non_array_tag_filters(self, client, transport) -> None:
        with pytest.raises(TypeMismatchError) as exc_info:
            client.search_products({"tagType": 5, "tag": 1, "tagContains": 2})

        assert exc_info.value.message == (
            "Failed to search products: Tag filters must be arrays"
        )
        assert transport.calls == []

    def test_network_error_is_prefixed(self, client, transport) -> None:
        transport.fail("Connection refused")

        with pytest.raises(NetworkError) as exc_info:
            client.search_products({"search_terms": "cola"})

        assert exc_info.value.message == "Failed to search products: Connection refused"

    def test_validation_error_is_prefixed(self, client, transport) -> None:
        with pytest.raises(TypeMismatchError) as exc_info:
            client.search_products({"search_terms": 42})

        assert exc_info.value.message == (
            "Failed to search products: Search input must be a string"
        )
        assert transport.calls == []

    def test_invalid_code(self, client, transport) -> None:
        with pytest.raises(FormatInvalidError, match="Must contain only digits"):
            client.search_products({"code": "abc"})

        assert transport.calls == []


class TestTaxonomies:
    """Test taxonomy lookups."""

    @pytest.mark.parametrize(
        "method,name",
        [("get_additives", "additives"), ("get_allergens", "allergens"), ("get_brands", "brands")],
    )
    def test_named_taxonomies(self, client, transport, method: str, name: str) -> None:
        transport.respond({"en:e100": {}})

        result = getattr(client, method)()

        assert transport.calls[0]["url"] == f"{BASE_URL}/data/taxonomies/{name}.json"
        assert result == {"en:e100": {}}

    def test_name_is_quoted(self, client, transport) -> None:
        client.get_taxonomy("../secret")

        assert transport.calls[0]["url"] == f"{BASE_URL}/data/taxonomies/..%2Fsecret.json"

    def test_error_prefix(self, client, transport) -> None:
        transport.respond({}, status_code=404)

        with pytest.raises(ApiError, match="Failed to fetch taxonomy: HTTP error! status: 404"):
            client.get_taxonomy("labels")


class TestRandomInsight:
    """Test get_random_insight."""

    def test_default_count(self, client, transport) -> None:
        transport.respond({"questions": []})

        client.get_random_insight()

        assert transport.calls[0]["url"] == (
            "https://robotoff.openfoodfacts.org/api/v1/questions/random?count=1"
        )

    def test_count_and_lang(self, client, transport) -> None:
        client.get_random_insight(count=3, lang="fr")

        assert transport.calls[0]["url"].endswith("/api/v1/questions/random?count=3&lang=fr")

    def test_error_prefix(self, client, transport) -> None:
        transport.fail("timeout")

        with pytest.raises(NetworkError, match="Failed to fetch random insight: timeout"):
            client.get_random_insight()


class TestAddProduct:
    """Test add_product."""

    def test_requires_credentials(self, client, transport) -> None:
        with pytest.raises(CredentialsRequiredError) as exc_info:
            client.add_product({"code": "3017620422003"})

        assert exc_info.value.message == "Credentials required for adding products"
        assert transport.calls == []

    def test_rechecks_endpoint_before_sending_credentials(self, authed_client, transport) -> None:
        authed_client.base_url = "http://world.openfoodfacts.org"

        with pytest.raises(InsecureTransportError) as exc_info:
            authed_client.add_product({"code": "3017620422003"})

        assert exc_info.value.message.startswith("Cannot send credentials over non-HTTPS")
        assert transport.calls == []

    def test_invalid_barcode(self, authed_client, transport) -> None:
        with pytest.raises(FormatInvalidError):
            authed_client.add_product({"code": "12"})

        assert transport.calls == []

    def test_posts_form(self, authed_client, transport) -> None:
        transport.respond({"status": 1, "status_verbose": "fields saved"})

        result = authed_client.add_product(
            ProductDraft(code="3017620422003", brands="Ferrero & Co", labels="Vegetarian")
        )

        call = transport.calls[0]
        assert result == {"status": 1, "status_verbose": "fields saved"}
        assert call["url"] == f"{BASE_URL}/cgi/product_jqm2.pl"
        assert call["method"] == "POST"
        assert call["form"].fields == [
            ("code", "3017620422003"),
            ("user_id", "user"),
            ("password", "pass"),
            ("brands", "Ferrero &#x26; Co"),
            ("labels", "Vegetarian"),
        ]

    def test_http_error_prefix(self, authed_client, transport) -> None:
        transport.respond({}, status_code=500)

        with pytest.raises(ApiError) as exc_info:
            authed_client.add_product({"code": "3017620422003"})

        assert exc_info.value.message == "Failed to add product: HTTP error! status: 500"

    def test_not_retried(self, authed_client, transport) -> None:
        transport.fail()

        with pytest.raises(NetworkError):
            authed_client.add_product({"code": "3017620422003"})

        assert len(transport.calls) == 1


class TestUploadPhoto:
    """Test upload_photo."""

    def test_requires_credentials(self, client, transport) -> None:
        with pytest.raises(CredentialsRequiredError, match="Credentials required for uploading photos"):
            client.upload_photo("3017620422003", JPEG_BYTES, FRONT_EN)

        assert transport.calls == []

    def test_posts_form(self, authed_client, transport) -> None:
        transport.respond({"status": "status ok"})
        image = BytesImage(JPEG_BYTES, content_type="image/jpeg")

        authed_client.upload_photo("3017620422003", image, FRONT_EN)

        call = transport.calls[0]
        assert call["url"] == f"{BASE_URL}/cgi/product_image_upload.pl"
        assert call["method"] == "POST"
        assert call["form"].keys() == [
            "code",
            "user_id",
            "password",
            "imagefield",
            "imgupload_front_en",
        ]
        assert call["form"].get("imagefield") == "front_en"
        assert call["form"].get("imgupload_front_en") is image

    def test_raw_bytes_are_wrapped(self, authed_client, transport) -> None:
        authed_client.upload_photo("3017620422003", JPEG_BYTES, PhotoType("nutrition", "fr"))

        part = transport.calls[0]["form"].get("imgupload_nutrition_fr")
        assert isinstance(part, BytesImage)
        assert part.read_all() == JPEG_BYTES

    def test_path_is_wrapped(self, authed_client, transport, tmp_path: Path) -> None:
        path = tmp_path / "front.jpg"
        path.write_bytes(JPEG_BYTES)

        authed_client.upload_photo("3017620422003", str(path), FRONT_EN)

        part = transport.calls[0]["form"].get("imgupload_front_en")
        assert isinstance(part, PathImage)
        assert part.content_type == "image/jpeg"

    def test_content_mismatch(self, authed_client, transport) -> None:
        image = BytesImage(b"GIF89a" + b"\x00" * 32, content_type="image/jpeg")

        with pytest.raises(ContentMismatchError):
            authed_client.upload_photo("3017620422003", image, FRONT_EN)

        assert transport.calls == []

    def test_image_checked_before_photo_type(self, authed_client) -> None:
        image = BytesImage(b"GIF89a" + b"\x00" * 32, content_type="image/jpeg")

        with pytest.raises(ContentMismatchError):
            authed_client.upload_photo("3017620422003", image, {"field": "back"})

    def test_oversized_image(self, authed_client, transport) -> None:
        image = BytesImage(JPEG_BYTES + b"\x00" * (10 * 1024 * 1024), content_type="image/jpeg")

        with pytest.raises(SizeExceededError):
            authed_client.upload_photo("3017620422003", image, FRONT_EN)

        assert transport.calls == []

    def test_invalid_photo_field(self, authed_client, transport) -> None:
        with pytest.raises(FormatInvalidError, match="Invalid field type"):
            authed_client.upload_photo("3017620422003", JPEG_BYTES, {"field": "back", "languageCode": "en"})

        assert transport.calls == []

    def test_missing_photo_type(self, authed_client) -> None:
        with pytest.raises(MissingInputError, match="Type with field and languageCode is required"):
            authed_client.upload_photo("3017620422003", JPEG_BYTES, None)

    def test_missing_image(self, authed_client) -> None:
        with pytest.raises(MissingInputError, match="Image file is required"):
            authed_client.upload_photo("3017620422003", None, FRONT_EN)

    def test_metadata_only_image_is_rejected(self, authed_client, transport) -> None:
        class DeclaredOnly:
            content_type = "image/jpeg"
            size = 2048

        with pytest.raises(MissingInputError, match="Image content is required for upload"):
            authed_client.upload_photo("3017620422003", DeclaredOnly(), FRONT_EN)

        assert transport.calls == []

    def test_http_error_prefix(self, authed_client, transport) -> None:
        transport.respond({}, status_code=413)

        with pytest.raises(ApiError) as exc_info:
            authed_client.upload_photo("3017620422003", JPEG_BYTES, FRONT_EN)

        assert exc_info.value.message == "Failed to upload photo: HTTP error! status: 413"
        assert exc_info.value.status_code == 413
