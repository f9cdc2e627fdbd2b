"""Pydantic models for Folio entities.

GalleryRecord mirrors the remote metadata payload and is immutable once
parsed. OriginRecord and ReadSession carry the pagination state that the
session store owns.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Image type token -> file extension
EXTENSIONS: dict[str, str] = {"j": "jpg", "p": "png", "g": "gif"}
DEFAULT_EXTENSION = "jpg"


def resolve_extension(token: str | None) -> str:
    """Map a one-character image type token to a file extension.

    Unknown or empty tokens resolve to jpg.
    """
    return EXTENSIONS.get(token or "", DEFAULT_EXTENSION)


def is_valid_code(code: str) -> bool:
    """Gallery codes are non-empty runs of ASCII digits."""
    return code.isascii() and code.isdigit()


# =============================================================================
# Enums
# =============================================================================


class TagType(str, Enum):
    """Tag discriminators shown on the gallery summary."""

    ARTIST = "artist"
    LANGUAGE = "language"
    TAG = "tag"


# =============================================================================
# Gallery metadata
# =============================================================================


class PageDescriptor(BaseModel):
    """One page of a gallery, identified only by its image type token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field("", alias="t")

    @property
    def extension(self) -> str:
        return resolve_extension(self.type)


class GalleryTitle(BaseModel):
    """Title variants returned by the gallery API."""

    model_config = ConfigDict(frozen=True)

    english: str | None = None
    japanese: str | None = None
    pretty: str | None = None


class GalleryImages(BaseModel):
    """Image listing of a gallery."""

    model_config = ConfigDict(frozen=True)

    pages: list[PageDescriptor] = Field(default_factory=list)


class Tag(BaseModel):
    """Gallery tag (artist, language, descriptive tag, or other kinds)."""

    model_config = ConfigDict(frozen=True)

    type: str
    name: str


class GalleryRecord(BaseModel):
    """Parsed gallery metadata.

    The page count reported by the API may disagree with the page listing;
    iteration always trusts the listing.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    media_id: str
    title: GalleryTitle
    images: GalleryImages
    tags: list[Tag] = Field(default_factory=list)
    num_pages: int

    @classmethod
    def from_api(cls, code: str, payload: dict[str, Any]) -> "GalleryRecord":
        """Validate an API payload, attaching the caller-supplied code.

        Raises:
            pydantic.ValidationError: If the payload doesn't match the schema.
        """
        return cls.model_validate({**payload, "code": code})

    @property
    def display_title(self) -> str:
        return self.title.pretty or self.title.english or self.title.japanese or self.code

    @property
    def pages(self) -> list[PageDescriptor]:
        return self.images.pages

    @property
    def page_extensions(self) -> list[str]:
        return [page.extension for page in self.images.pages]

    @property
    def cover_extension(self) -> str:
        """Extension of the cover, taken from the first page (jpg if none)."""
        if self.images.pages:
            return self.images.pages[0].extension
        return DEFAULT_EXTENSION

    def tag_names(self, tag_type: TagType) -> list[str]:
        """Names of all tags of one type, in payload order."""
        return [tag.name for tag in self.tags if tag.type == tag_type.value]


# =============================================================================
# Pagination state
# =============================================================================


class OriginRecord(BaseModel):
    """Read-only template created when a gallery summary is posted.

    Keyed by the summary message id in the session store; cloned into a
    ReadSession whenever someone opens the reader.
    """

    model_config = ConfigDict(frozen=True)

    requester_id: str
    media_id: str
    page_exts: tuple[str, ...]
    total: int
    channel_id: str
    code: str

    @classmethod
    def from_gallery(
        cls,
        record: GalleryRecord,
        channel_id: str,
        requester_id: str,
    ) -> "OriginRecord":
        page_exts = tuple(record.page_extensions)
        return cls(
            requester_id=requester_id,
            media_id=record.media_id,
            page_exts=page_exts,
            total=len(page_exts),
            channel_id=channel_id,
            code=record.code,
        )

    def open_reader(self, owner_id: str, channel_id: str) -> "ReadSession":
        """Clone this record into a fresh session at page 0."""
        return ReadSession(
            owner_id=owner_id,
            media_id=self.media_id,
            page_exts=list(self.page_exts),
            current=0,
            total=self.total,
            channel_id=channel_id,
            code=self.code,
        )


class ReadSession(BaseModel):
    """One user's pagination over one gallery on a reader message."""

    model_config = ConfigDict(validate_assignment=True)

    owner_id: str
    media_id: str
    page_exts: list[str]
    current: int = 0
    total: int
    channel_id: str
    code: str

    @model_validator(mode="after")
    def validate_bounds(self) -> "ReadSession":
        if self.total != len(self.page_exts):
            raise ValueError("total must equal the number of page extensions")
        if self.total > 0 and not 0 <= self.current < self.total:
            raise ValueError(f"current page {self.current} out of range 0..{self.total - 1}")
        return self

    @property
    def page_number(self) -> int:
        """1-based number of the current page."""
        return self.current + 1
