"""Request construction for Open Food Facts endpoints.

Inputs are validated and sanitized here, in the order the API contract
requires, before any query string or multipart body is produced.
"""

from __future__ import annotations

from typing import Any, List, Tuple
from urllib.parse import urlencode

from config.constants import CODE_MATCH_DEFAULT, CODE_MATCH_MODES, PHOTO_FIELDS
from domain.exceptions import FormatInvalidError, MissingInputError, TypeMismatchError
from domain.models import Credentials, PhotoType, ProductDraft, SearchCriteria
from domain.services.barcode_validator import validate_barcode
from domain.services.search_sanitizer import sanitize_search_input
from infrastructure.api.transport import MultipartForm


def _normalize_code_type(code_type: str) -> str:
    return code_type if code_type in CODE_MATCH_MODES else CODE_MATCH_DEFAULT


def build_search_params(criteria: SearchCriteria) -> List[Tuple[str, str]]:
    """Return ordered query parameters for ``/cgi/search.pl``.

    Tag filters are emitted as ``tagtype_i``/``tag_contains_i``/``tag_i``
    triples, pairing the three parallel sequences by position. They are only
    sent when all three sequences are given.
    """
    params: List[Tuple[str, str]] = [
        ("json", "true"),
        ("action", criteria.action or "process"),
    ]

    if criteria.search_terms:
        params.append(("search_terms", sanitize_search_input(criteria.search_terms)))

    if criteria.code:
        validate_barcode(criteria.code, allow_partial=True)
        params.append(("code", criteria.code))
        if criteria.code_type:
            params.append(("code_type", _normalize_code_type(criteria.code_type)))

    if criteria.tag_types and criteria.tags and criteria.tag_contains:
        for sequence in (criteria.tag_types, criteria.tags, criteria.tag_contains):
            if not isinstance(sequence, (list, tuple)):
                raise TypeMismatchError("Tag filters must be arrays")
        triples = zip(criteria.tag_types, criteria.tags, criteria.tag_contains)
        for index, (tag_type, tag, contains) in enumerate(triples):
            params.append((f"tagtype_{index}", str(tag_type)))
            params.append((f"tag_contains_{index}", str(contains)))
            params.append((f"tag_{index}", str(tag)))

    if criteria.additives:
        params.append(("additives", str(criteria.additives)))
    if criteria.ingredients_from_palm_oil:
        params.append(("ingredients_from_palm_oil", str(criteria.ingredients_from_palm_oil)))

    if criteria.page:
        params.append(("page", str(criteria.page)))
    if criteria.page_size:
        params.append(("page_size", str(criteria.page_size)))

    return params


def build_query_string(params: List[Tuple[str, str]]) -> str:
    """Encode parameters the way a browser's URLSearchParams does."""
    return urlencode(params)


def _append_credentials(form: MultipartForm, credentials: Credentials) -> None:
    form.append("user_id", credentials.user_id)
    form.append("password", credentials.password)


def build_add_product_form(draft: ProductDraft, credentials: Credentials) -> MultipartForm:
    """Multipart body for ``/cgi/product_jqm2.pl``.

    The barcode must already be validated.
    """
    form = MultipartForm()
    form.append("code", draft.code)
    _append_credentials(form, credentials)
    if draft.brands:
        form.append("brands", sanitize_search_input(draft.brands))
    if draft.labels:
        form.append("labels", sanitize_search_input(draft.labels))
    return form


def validate_photo_type(photo_type: Any) -> PhotoType:
    """Check that a photo type names an allowed field and a language."""
    if photo_type is None:
        raise MissingInputError("Type with field and languageCode is required")
    if isinstance(photo_type, dict):
        photo_type = PhotoType.from_mapping(photo_type)
    if not getattr(photo_type, "field", None) or not getattr(photo_type, "language_code", None):
        raise MissingInputError("Type with field and languageCode is required")
    if photo_type.field not in PHOTO_FIELDS:
        raise FormatInvalidError(
            "Invalid field type. Must be front, ingredients, or nutrition."
        )
    return photo_type


def build_upload_photo_form(
    barcode: str,
    image: Any,
    photo_type: PhotoType,
    credentials: Credentials,
) -> MultipartForm:
    """Multipart body for ``/cgi/product_image_upload.pl``.

    Barcode, image and photo type must already be validated.
    """
    form = MultipartForm()
    form.append("code", barcode)
    _append_credentials(form, credentials)
    form.append("imagefield", photo_type.image_field)
    form.append(f"imgupload_{photo_type.image_field}", image)
    return form
