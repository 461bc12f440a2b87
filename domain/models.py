"""Domain models.

Value objects exchanged between callers, validators and the API client.
These models are transport-agnostic and contain only validation logic.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from config.constants import SEARCH_DEFAULT_ACTION
from domain.exceptions import MissingInputError, TypeMismatchError


@dataclass(frozen=True)
class Credentials:
    """An Open Food Facts account identity.

    Immutable. Owned by exactly one client instance; never persisted.
    """

    user_id: str
    password: str = field(repr=False)

    def __post_init__(self) -> None:
        """Validate credential data."""
        if not isinstance(self.user_id, str) or not isinstance(self.password, str):
            raise TypeMismatchError("User ID and password must be strings")
        if not self.user_id.strip() or not self.password.strip():
            raise MissingInputError("User ID and password cannot be empty")


@dataclass(frozen=True)
class PhotoType:
    """Which product photo an upload fills, and for which language."""

    field: Optional[str]
    language_code: Optional[str]

    @property
    def image_field(self) -> str:
        """Value of the ``imagefield`` form key, e.g. ``front_en``."""
        return f"{self.field}_{self.language_code}"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PhotoType":
        return cls(
            field=data.get("field"),
            language_code=data.get("languageCode", data.get("language_code")),
        )


@dataclass(frozen=True)
class ProductDraft:
    """Fields submitted when adding or completing a product."""

    code: Any
    brands: Optional[str] = None
    labels: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProductDraft":
        return cls(
            code=data.get("code"),
            brands=data.get("brands"),
            labels=data.get("labels"),
        )


@dataclass
class SearchCriteria:
    """Search parameters accepted by ``search_products``.

    ``tag_types``, ``tags`` and ``tag_contains`` are parallel sequences;
    position ``i`` in each describes the same tag filter.
    """

    search_terms: Optional[Any] = None
    code: Optional[Any] = None
    code_type: Optional[str] = None
    tag_types: Optional[Sequence[str]] = None
    tags: Optional[Sequence[str]] = None
    tag_contains: Optional[Sequence[str]] = None
    additives: Optional[str] = None
    ingredients_from_palm_oil: Optional[str] = None
    page: Optional[int] = None
    page_size: Optional[int] = None
    fields: Optional[Sequence[str]] = None
    action: str = SEARCH_DEFAULT_ACTION

    def __post_init__(self) -> None:
        """Drop a ``fields`` value that is not a list of names."""
        if not isinstance(self.fields, (list, tuple)):
            self.fields = None
        else:
            self.fields = [name for name in self.fields if isinstance(name, str)]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SearchCriteria":
        """Build criteria from the JSON key names used by flow messages."""
        if not isinstance(data, Mapping):
            raise TypeMismatchError("Search parameters must be an object")

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return None

        return cls(
            search_terms=pick("search_terms"),
            code=pick("code"),
            code_type=pick("code_type"),
            tag_types=pick("tagType", "tag_types"),
            tags=pick("tag", "tags"),
            tag_contains=pick("tagContains", "tag_contains"),
            additives=pick("additives"),
            ingredients_from_palm_oil=pick(
                "ingredientsFromPalmOil", "ingredients_from_palm_oil"
            ),
            page=pick("page"),
            page_size=pick("pageSize", "page_size"),
            fields=pick("fields"),
            action=pick("action") or SEARCH_DEFAULT_ACTION,
        )


class ReadCapability(Enum):
    """How much of an image asset can be read for signature inspection."""

    PARTIALLY_READABLE = "partial"
    FULL_READABLE = "full"
    METADATA_ONLY = "metadata"


def resolve_read_capability(asset: Any) -> ReadCapability:
    """Classify an asset by the read methods it exposes.

    ``read_range(start, end)`` wins over ``read_all()`` so that full content
    is never materialized when a bounded read is possible.
    """
    if callable(getattr(asset, "read_range", None)):
        return ReadCapability.PARTIALLY_READABLE
    if callable(getattr(asset, "read_all", None)):
        return ReadCapability.FULL_READABLE
    return ReadCapability.METADATA_ONLY


def declared_content_type(asset: Any) -> Optional[str]:
    """Content type the asset declares, or None when it declares none."""
    return getattr(asset, "content_type", None)


def declared_size(asset: Any) -> Optional[int]:
    """Byte length the asset declares, or None when it declares none."""
    return getattr(asset, "size", None)
