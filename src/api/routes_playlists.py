"""
Playlist endpoints:
- GET /playlists?page= (paged list, public)
- GET /playlists/search?query=&limit= (title prefix search, public)
- GET /playlists/recommended (auth)
- GET /playlists/user (auth)
- GET /playlists/{id} (public)
- PUT /playlists/addtrack/{id}?trackId= (public)
- POST /playlists (auth, multipart with optional cover)
- PUT /playlists/{id} (auth, multipart with optional cover)
- DELETE /playlists/{id} (auth)

Every response uses the {status, message, data} envelope.
"""

from __future__ import annotations

import json
import logging
import math
import os
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.responses import JSONResponse

from src.api import responses
from src.api.auth import require_caller_id
from src.api.db import db_session_dep
from src.api.errors import NotFoundError
from src.api.playlists import PlaylistInput, PlaylistRepository
from src.api.schemas import (
    EnvelopeResponse,
    PlaylistDetailResponse,
    PlaylistForm,
    PlaylistPageResponse,
    PlaylistResponse,
)
from src.api.storage import delete_media_file, save_cover

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Playlists"])

PLAYLIST = "Playlist"
FIRST_PAGE = 1
_PAGE_LIMIT_DEFAULT = 10


def _page_limit() -> int:
    try:
        limit = int(os.getenv("PLAYLISTS_PAGE_LIMIT", str(_PAGE_LIMIT_DEFAULT)))
    except ValueError:
        return _PAGE_LIMIT_DEFAULT
    return limit if limit > 0 else _PAGE_LIMIT_DEFAULT


def _parse_track_ids(raw: str) -> List[int]:
    """Decode the `tracksIds` form field (a JSON array of integers)."""
    decoded = json.loads(raw)
    if not isinstance(decoded, list) or not all(
        isinstance(item, int) and not isinstance(item, bool) for item in decoded
    ):
        raise ValueError("tracksIds must be a JSON array of integers")
    return decoded


def _serialize(playlists) -> list:
    return [PlaylistResponse.model_validate(p).model_dump(mode="json") for p in playlists]


def _discard_upload(background_tasks: BackgroundTasks, cover_path: Optional[str]) -> None:
    if cover_path:
        background_tasks.add_task(delete_media_file, cover_path)


def _server_error(db: Session, event: str, **context) -> JSONResponse:
    db.rollback()
    logger.exception("%s: %s", event, " ".join(f"{k}={v}" for k, v in context.items()))
    return responses.envelope(500, responses.RESPONSE_ERROR)


def _validate_form(title: Optional[str], description: Optional[str]) -> PlaylistForm:
    try:
        return PlaylistForm(title=title or "", description=description)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=responses.first_validation_message(exc))


@router.get(
    "/playlists",
    response_model=EnvelopeResponse,
    summary="List playlists",
    description="Returns one page of playlists with owner and track details.",
    operation_id="list_playlists",
)
def list_playlists(
    page: int = Query(FIRST_PAGE, ge=1, description="1-based page number."),
    db: Session = Depends(db_session_dep),
) -> JSONResponse:
    limit = _page_limit()
    try:
        result = PlaylistRepository(db).list_page(page, limit)
        if not result.items:
            return responses.envelope(404, responses.empty(PLAYLIST))

        data = PlaylistPageResponse(
            items=[PlaylistDetailResponse.model_validate(p) for p in result.items],
            total_count=result.total_count,
            last_page=math.ceil(result.total_count / limit),
        )
        return responses.envelope(200, responses.get_all(PLAYLIST), data.model_dump(mode="json", by_alias=True))
    except Exception:
        return _server_error(db, "list_playlists_failed", page=page)


@router.get(
    "/playlists/search",
    response_model=EnvelopeResponse,
    summary="Search playlists by title",
    description="Returns playlists whose title starts with the query (case-sensitive).",
    operation_id="search_playlists",
)
def search_playlists(
    query: str = Query(..., min_length=1, description="Title prefix."),
    limit: int = Query(10, ge=1, le=50, description="Maximum number of results."),
    db: Session = Depends(db_session_dep),
) -> JSONResponse:
    try:
        playlists = PlaylistRepository(db).find_by_title_prefix(query, limit)
        return responses.envelope(200, responses.get_all(PLAYLIST), _serialize(playlists))
    except Exception:
        return _server_error(db, "search_playlists_failed", query=query)


@router.get(
    "/playlists/recommended",
    response_model=EnvelopeResponse,
    summary="Recommended playlists",
    description="Playlists matching the caller's most recently liked track.",
    operation_id="recommended_playlists",
)
def recommended_playlists(
    caller_id: int = Depends(require_caller_id),
    db: Session = Depends(db_session_dep),
) -> JSONResponse:
    try:
        playlists = PlaylistRepository(db).recommended_for(caller_id)
        if playlists is None:
            return responses.envelope(404, responses.not_found(PLAYLIST))
        return responses.envelope(200, responses.get_all(PLAYLIST), _serialize(playlists))
    except Exception:
        return _server_error(db, "recommended_playlists_failed", user_id=caller_id)


@router.get(
    "/playlists/user",
    response_model=EnvelopeResponse,
    summary="Caller's playlists",
    description="Playlists owned by the caller, newest first.",
    operation_id="user_playlists",
)
def user_playlists(
    caller_id: int = Depends(require_caller_id),
    db: Session = Depends(db_session_dep),
) -> JSONResponse:
    try:
        playlists = PlaylistRepository(db).list_by_user(caller_id)
        return responses.envelope(200, responses.get_all(PLAYLIST), _serialize(playlists))
    except Exception:
        return _server_error(db, "user_playlists_failed", user_id=caller_id)


@router.get(
    "/playlists/{playlist_id}",
    response_model=EnvelopeResponse,
    summary="Get a playlist",
    operation_id="get_playlist",
)
def get_playlist(playlist_id: int, db: Session = Depends(db_session_dep)) -> JSONResponse:
    try:
        playlist = PlaylistRepository(db).get_by_id(playlist_id)
        if playlist is None:
            return responses.envelope(404, responses.not_found(PLAYLIST))
        data = PlaylistResponse.model_validate(playlist).model_dump(mode="json")
        return responses.envelope(200, responses.get_one(PLAYLIST), data)
    except Exception:
        return _server_error(db, "get_playlist_failed", playlist_id=playlist_id)


@router.put(
    "/playlists/addtrack/{playlist_id}",
    response_model=EnvelopeResponse,
    summary="Add a track to a playlist",
    description="Appends a track; a track already in the playlist is appended again.",
    operation_id="add_track_to_playlist",
)
def add_track_to_playlist(
    playlist_id: int,
    track_id: int = Query(..., alias="trackId", description="Track id to append."),
    db: Session = Depends(db_session_dep),
) -> JSONResponse:
    repo = PlaylistRepository(db)
    try:
        if repo.get_by_id(playlist_id) is None:
            return responses.envelope(400, responses.not_found(PLAYLIST))
        try:
            repo.add_track(playlist_id, track_id)
        except NotFoundError as exc:
            logger.info("add_track_rejected: playlist_id=%s reason=%s", playlist_id, exc)
            return responses.envelope(400, responses.not_updated(PLAYLIST))
        return responses.envelope(200, responses.updated(PLAYLIST))
    except Exception:
        return _server_error(db, "add_track_failed", playlist_id=playlist_id, track_id=track_id)


@router.post(
    "/playlists",
    response_model=EnvelopeResponse,
    summary="Create a playlist",
    description="Creates a playlist owned by the caller. Multipart form with optional cover image.",
    operation_id="create_playlist",
)
def create_playlist(
    background_tasks: BackgroundTasks,
    title: Optional[str] = Form(None, description="Playlist title (required)."),
    description: Optional[str] = Form(None, description="Optional description."),
    tracks_ids: str = Form("[]", alias="tracksIds", description="JSON array of track ids."),
    cover: Optional[UploadFile] = File(None, description="Optional cover image."),
    caller_id: int = Depends(require_caller_id),
    db: Session = Depends(db_session_dep),
) -> JSONResponse:
    form = _validate_form(title, description)

    cover_path: Optional[str] = None
    try:
        track_ids = _parse_track_ids(tracks_ids)
        if cover is not None and cover.filename:
            cover_path = save_cover(cover)

        PlaylistRepository(db).create(
            PlaylistInput(
                title=form.title,
                description=form.description,
                cover=cover_path,
                track_ids=track_ids,
                owner_id=caller_id,
            )
        )
        return responses.envelope(200, responses.created(PLAYLIST))
    except NotFoundError as exc:
        logger.info("create_playlist_rejected: user_id=%s reason=%s", caller_id, exc)
        _discard_upload(background_tasks, cover_path)
        return responses.envelope(400, responses.not_created(PLAYLIST))
    except HTTPException:
        raise
    except Exception:
        _discard_upload(background_tasks, cover_path)
        return _server_error(db, "create_playlist_failed", user_id=caller_id)


@router.put(
    "/playlists/{playlist_id}",
    response_model=EnvelopeResponse,
    summary="Update a playlist",
    description="Replaces title, description, tracks and owner. A new cover replaces the old file.",
    operation_id="update_playlist",
)
def update_playlist(
    playlist_id: int,
    background_tasks: BackgroundTasks,
    title: Optional[str] = Form(None, description="Playlist title (required)."),
    description: Optional[str] = Form(None, description="Optional description."),
    tracks_ids: str = Form("[]", alias="tracksIds", description="JSON array of track ids."),
    cover: Optional[UploadFile] = File(None, description="Optional new cover image."),
    caller_id: int = Depends(require_caller_id),
    db: Session = Depends(db_session_dep),
) -> JSONResponse:
    form = _validate_form(title, description)

    repo = PlaylistRepository(db)
    cover_path: Optional[str] = None
    try:
        track_ids = _parse_track_ids(tracks_ids)
        existing = repo.get_by_id(playlist_id)
        if existing is None:
            return responses.envelope(400, responses.not_found(PLAYLIST))
        previous_cover = existing.cover

        if cover is not None and cover.filename:
            cover_path = save_cover(cover)

        repo.update(
            playlist_id,
            PlaylistInput(
                title=form.title,
                description=form.description,
                cover=cover_path,
                track_ids=track_ids,
                owner_id=caller_id,
            ),
        )
        if cover_path and previous_cover and previous_cover != cover_path:
            background_tasks.add_task(delete_media_file, previous_cover)
        return responses.envelope(200, responses.updated(PLAYLIST))
    except NotFoundError as exc:
        logger.info("update_playlist_rejected: playlist_id=%s reason=%s", playlist_id, exc)
        _discard_upload(background_tasks, cover_path)
        return responses.envelope(400, responses.not_updated(PLAYLIST))
    except HTTPException:
        raise
    except Exception:
        _discard_upload(background_tasks, cover_path)
        return _server_error(db, "update_playlist_failed", playlist_id=playlist_id)


@router.delete(
    "/playlists/{playlist_id}",
    response_model=EnvelopeResponse,
    summary="Delete a playlist",
    description="Deletes a playlist and its cover file.",
    operation_id="delete_playlist",
)
def delete_playlist(
    playlist_id: int,
    caller_id: int = Depends(require_caller_id),
    db: Session = Depends(db_session_dep),
) -> JSONResponse:
    repo = PlaylistRepository(db)
    try:
        playlist = repo.get_by_id(playlist_id)
        if playlist is None:
            return responses.envelope(400, responses.not_found(PLAYLIST))

        cover_path = playlist.cover
        repo.delete(playlist_id)
        if cover_path:
            delete_media_file(cover_path)
        return responses.envelope(200, responses.deleted(PLAYLIST))
    except Exception:
        return _server_error(db, "delete_playlist_failed", playlist_id=playlist_id)
