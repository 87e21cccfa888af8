"""
Pydantic models (request/response shapes) for API endpoints.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Letters, digits, whitespace and the punctuation accepted in playlist text.
_ALLOWED_CHARS = r"a-zA-Z0-9'!#$%&*+=?^_`{|}\"~.-\u00bb№;:,()<>\s\-"
_TITLE_RE = re.compile(rf"^[{_ALLOWED_CHARS}]{{1,64}}$")
_DESCRIPTION_RE = re.compile(rf"^[{_ALLOWED_CHARS}]{{0,255}}$")


class EnvelopeResponse(BaseModel):
    status: str = Field(..., description='"success" or "fail".')
    message: str = Field(..., description="Human-readable outcome.")
    data: Optional[Any] = Field(None, description="Payload, omitted when absent.")


class PlaylistForm(BaseModel):
    """Validated title/description of a create or update request."""

    title: str = Field(..., description="Playlist title (1-64 chars).")
    description: Optional[str] = Field(None, description="Optional description (up to 255 chars).")

    @field_validator("title")
    @classmethod
    def _check_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Must be 1 characters or more")
        if len(value) > 64:
            raise ValueError("Must be 64 characters or less")
        if not _TITLE_RE.match(value):
            raise ValueError("Title is not valid")
        return value

    @field_validator("description")
    @classmethod
    def _check_description(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if len(value) > 255:
            raise ValueError("Must be 255 characters or less")
        if not _DESCRIPTION_RE.match(value):
            raise ValueError("Description is not valid")
        return value


class OwnerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="User id.")
    username: str = Field(..., description="User name.")


class GenreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class AlbumResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    cover: Optional[str] = None


class ArtistResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class TrackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Track id.")
    title: str = Field(..., description="Track title.")
    duration: Optional[int] = Field(None, description="Duration in seconds if known.")


class TrackDetailResponse(TrackResponse):
    genres: List[GenreResponse] = Field(default_factory=list)
    album: Optional[AlbumResponse] = None
    artists: List[ArtistResponse] = Field(default_factory=list)


class PlaylistResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Playlist id.")
    cover: Optional[str] = Field(None, description="Cover path relative to the media root.")
    title: str = Field(..., description="Playlist title.")
    description: Optional[str] = Field(None, description="Playlist description.")
    likes_count: int = Field(0, description="Number of likes.")
    owner: OwnerResponse = Field(..., description="Owning user.")
    tracks: List[TrackResponse] = Field(default_factory=list, description="Tracks in order.")


class PlaylistDetailResponse(PlaylistResponse):
    tracks: List[TrackDetailResponse] = Field(default_factory=list, description="Tracks in order.")


class PlaylistPageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[PlaylistDetailResponse] = Field(..., description="Playlists on this page.")
    total_count: int = Field(..., alias="totalCount", description="Total number of playlists.")
    last_page: int = Field(..., alias="lastPage", description="Number of the last page.")
