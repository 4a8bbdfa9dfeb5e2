"""
Pydantic models for the Pocket v3 retrieve endpoint.

Two families of models live here:

- the ``Raw*`` models describe the wire format exactly as Pocket sends it
  (digit strings everywhere). They are strict and closed: any unknown key, any
  type mismatch and any ``null`` on a non-opaque field is a validation error.
- the normalized models (``ResponseItem``, ``RetrieveDataResponse``) are what
  the client hands back to callers, with digit strings converted to native
  types and status codes converted to enums.

Fields that Pocket omits stay omitted: check ``model_fields_set`` (or dump
with ``exclude_unset=True``) to tell an absent field from a present one.
"""

import enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

Number = Union[int, float]

BinaryCode = Literal["0", "1"]
TernaryCode = Literal["0", "1", "2"]

# Fields whose inner shape Pocket never documented. Passed through untouched.
OPAQUE_ITEM_FIELDS = ("tags", "authors", "images", "videos", "is_index")


class ItemStatus(str, enum.Enum):
    """Status of a saved item ("0", "1" and "2" on the wire)."""

    NORMAL = "normal"
    ARCHIVE = "archive"
    DELETE = "delete"


class ItemMediaType(str, enum.Enum):
    """Meaning of the ``has_image`` / ``has_video`` codes."""

    NO_CONTENT = "no_content"
    IS_CONTENT = "is_content"
    HAS_CONTENT_BUT_IS_NOT_CONTENT = "has_content_but_is_not_content"


ITEM_STATUS_CODES: Dict[str, ItemStatus] = {
    "0": ItemStatus.NORMAL,
    "1": ItemStatus.ARCHIVE,
    "2": ItemStatus.DELETE,
}

ITEM_MEDIA_TYPE_CODES: Dict[str, ItemMediaType] = {
    "0": ItemMediaType.NO_CONTENT,
    "1": ItemMediaType.IS_CONTENT,
    "2": ItemMediaType.HAS_CONTENT_BUT_IS_NOT_CONTENT,
}


class _WireModel(BaseModel):
    """Base for models validated against Pocket payloads."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)


class _OptionalFieldsModel(_WireModel):
    """Wire model whose optional fields may be missing but never null."""

    @field_validator("*", mode="before")
    @classmethod
    def _reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        # Pocket leaves absent attributes out instead of sending null
        if value is None and info.field_name not in OPAQUE_ITEM_FIELDS:
            raise ValueError("field may be omitted but must not be null")
        return value


class DomainMetadata(_OptionalFieldsModel):
    name: Optional[str] = None
    logo: str
    greyscale_logo: str


class RawResponseItem(_OptionalFieldsModel):
    """One saved item, as sent by Pocket. Every field is optional."""

    item_id: Optional[str] = None
    resolved_id: Optional[str] = None
    given_url: Optional[str] = None
    resolved_url: Optional[str] = None
    given_title: Optional[str] = None
    resolved_title: Optional[str] = None
    favorite: Optional[BinaryCode] = None
    status: Optional[TernaryCode] = None
    excerpt: Optional[str] = None
    is_article: Optional[BinaryCode] = None
    has_image: Optional[TernaryCode] = None
    has_video: Optional[TernaryCode] = None
    word_count: Optional[str] = None
    tags: Any = None
    authors: Any = None
    images: Any = None
    videos: Any = None
    sort_id: Optional[Number] = None
    is_index: Any = None
    lang: Optional[str] = None
    listen_duration_estimate: Optional[Number] = None
    top_image_url: Optional[str] = None
    time_to_read: Optional[Number] = None
    domain_metadata: Optional[DomainMetadata] = None
    amp_url: Optional[str] = None
    time_added: Optional[str] = None
    time_updated: Optional[str] = None
    time_read: Optional[str] = None
    time_favorited: Optional[str] = None


class SearchMeta(_WireModel):
    search_type: Literal["normal"]


class RawRetrieveDataResponse(_WireModel):
    """Envelope of a successful retrieve call, before normalization."""

    status: Literal[1]
    complete: Literal[1]
    error: None
    search_meta: SearchMeta
    since: Number
    list: Dict[str, RawResponseItem]

    @field_validator("status", "complete", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        # Literal[1] matches True by equality
        if isinstance(value, bool):
            raise ValueError("must be the integer 1, not a boolean")
        return value


class ResponseItem(BaseModel):
    """A saved item with the wire encodings converted to native types."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    item_id: Optional[str] = None
    resolved_id: Optional[str] = None
    given_url: Optional[str] = None
    resolved_url: Optional[str] = None
    given_title: Optional[str] = None
    resolved_title: Optional[str] = None
    favorite: Optional[bool] = None
    status: Optional[ItemStatus] = None
    excerpt: Optional[str] = None
    is_article: Optional[bool] = None
    has_image: Optional[ItemMediaType] = None
    has_video: Optional[ItemMediaType] = None
    word_count: Optional[int] = None
    tags: Any = None
    authors: Any = None
    images: Any = None
    videos: Any = None
    sort_id: Optional[Number] = None
    is_index: Any = None
    lang: Optional[str] = None
    listen_duration_estimate: Optional[Number] = None
    top_image_url: Optional[str] = None
    time_to_read: Optional[Number] = None
    domain_metadata: Optional[DomainMetadata] = None
    amp_url: Optional[str] = None
    time_added: Optional[int] = None
    time_updated: Optional[int] = None
    time_read: Optional[int] = None
    time_favorited: Optional[int] = None


class RetrieveDataResponse(BaseModel):
    """Envelope returned by ``PocketAPI.retrieve``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: Literal[1]
    complete: Literal[1]
    error: None
    search_meta: SearchMeta
    since: Number
    list: Dict[str, ResponseItem]


class Credentials(BaseModel):
    """Content of a credentials JSON file."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    consumer_key: str
    access_token: str
