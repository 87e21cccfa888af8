"""
Playlist access layer.

`PlaylistRepository` wraps a SQLAlchemy Session handed in by the caller (the
FastAPI session dependency in production, a test session factory in tests).
Every read goes through one of the named loader option sets below, so returned
playlists are fully materialized for serialization.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from src.api.errors import NotFoundError
from src.api.models import Like, Playlist, PlaylistTrack, Track, User

logger = logging.getLogger(__name__)

RECOMMENDATION_LIKES_WINDOW = 20
RECOMMENDATION_LIMIT = 10


@dataclass
class PlaylistInput:
    """Values for creating or replacing a playlist."""

    title: str
    owner_id: int
    description: Optional[str] = None
    cover: Optional[str] = None
    track_ids: List[int] = field(default_factory=list)


@dataclass
class PlaylistPage:
    items: List[Playlist]
    total_count: int


def _with_owner_and_tracks():
    return (
        selectinload(Playlist.owner),
        selectinload(Playlist.entries).selectinload(PlaylistTrack.track),
    )


def _with_owner_and_track_details():
    track_loader = selectinload(Playlist.entries).selectinload(PlaylistTrack.track)
    return (
        selectinload(Playlist.owner),
        track_loader.selectinload(Track.genres),
        track_loader.selectinload(Track.album),
        track_loader.selectinload(Track.artists),
    )


def _unique_in_order(ids: Iterable[int]) -> List[int]:
    seen = set()
    ordered = []
    for track_id in ids:
        if track_id not in seen:
            seen.add(track_id)
            ordered.append(track_id)
    return ordered


# PUBLIC_INTERFACE
class PlaylistRepository:
    """Queries and mutations for playlists against one Session."""

    def __init__(self, db: Session) -> None:
        self._db = db

    # Reads

    # PUBLIC_INTERFACE
    def list_page(self, page: int, limit: int) -> PlaylistPage:
        """Return one page of playlists (1-based) plus the total row count."""
        total = self._db.execute(select(func.count()).select_from(Playlist)).scalar_one()
        items = (
            self._db.execute(
                select(Playlist)
                .options(*_with_owner_and_track_details())
                .order_by(Playlist.id)
                .offset(limit * (page - 1))
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return PlaylistPage(items=list(items), total_count=int(total))

    # PUBLIC_INTERFACE
    def get_by_id(self, playlist_id: int) -> Optional[Playlist]:
        """Return the playlist with owner and tracks, or None."""
        return self._db.execute(
            select(Playlist)
            .options(*_with_owner_and_tracks())
            .where(Playlist.id == playlist_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    # PUBLIC_INTERFACE
    def list_by_user(self, user_id: int) -> List[Playlist]:
        """Return the user's playlists newest first (empty if they own none)."""
        playlists = (
            self._db.execute(
                select(Playlist)
                .options(*_with_owner_and_tracks())
                .where(Playlist.user_id == user_id)
                .order_by(Playlist.id.desc())
            )
            .scalars()
            .all()
        )
        return list(playlists)

    # PUBLIC_INTERFACE
    def recommended_for(self, user_id: int) -> Optional[List[Playlist]]:
        """
        Recommend playlists from the user's most recently liked track.

        Looks at the user's likes ordered by track id (newest first, at most
        RECOMMENDATION_LIKES_WINDOW), takes the first liked track and returns up
        to RECOMMENDATION_LIMIT playlists whose whole track collection is that
        single track. Returns None when the user has no liked tracks.
        """
        liked_track_ids = (
            self._db.execute(
                select(Like.track_id)
                .where(Like.user_id == user_id, Like.track_id.is_not(None))
                .order_by(Like.track_id.desc())
                .limit(RECOMMENDATION_LIKES_WINDOW)
            )
            .scalars()
            .all()
        )
        if not liked_track_ids:
            return None

        # Compares the playlist's whole collection with one track, not membership.
        track_id = liked_track_ids[0]
        single_track_playlists = (
            select(PlaylistTrack.playlist_id)
            .group_by(PlaylistTrack.playlist_id)
            .having(func.count(PlaylistTrack.id) == 1)
            .having(func.max(PlaylistTrack.track_id) == track_id)
        )
        playlists = (
            self._db.execute(
                select(Playlist)
                .options(*_with_owner_and_tracks())
                .where(Playlist.id.in_(single_track_playlists))
                .order_by(Playlist.id)
                .limit(RECOMMENDATION_LIMIT)
            )
            .scalars()
            .all()
        )
        return list(playlists)

    # PUBLIC_INTERFACE
    def find_by_title_prefix(self, prefix: str, limit: int) -> List[Playlist]:
        """Return at most `limit` playlists whose title starts with `prefix`."""
        playlists = (
            self._db.execute(
                select(Playlist)
                .options(*_with_owner_and_tracks())
                .where(Playlist.title.startswith(prefix, autoescape=True))
                .order_by(Playlist.id)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return list(playlists)

    # Writes

    # PUBLIC_INTERFACE
    def create(self, data: PlaylistInput) -> Playlist:
        """
        Create a playlist owned by `data.owner_id`.

        Unknown track ids are dropped.

        Raises:
            NotFoundError: if the owner does not exist.
        """
        owner = self._get_user(data.owner_id)
        tracks = self._resolve_tracks(data.track_ids)

        playlist = Playlist(
            cover=data.cover,
            title=data.title,
            description=data.description,
            owner=owner,
        )
        playlist.entries = self._entries_for(tracks)
        self._db.add(playlist)
        self._commit()

        logger.info(
            "playlist_created: id=%s owner_id=%s tracks=%s", playlist.id, owner.id, len(tracks)
        )
        return self._reload(playlist.id)

    # PUBLIC_INTERFACE
    def update(self, playlist_id: int, data: PlaylistInput) -> Playlist:
        """
        Replace title, tracks and owner of a playlist.

        Cover and description are replaced only when given.

        Raises:
            NotFoundError: if the owner or the playlist does not exist.
        """
        tracks = self._resolve_tracks(data.track_ids)
        owner = self._get_user(data.owner_id)
        playlist = self.get_by_id(playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist", playlist_id)

        if data.cover is not None:
            playlist.cover = data.cover
        if data.description is not None:
            playlist.description = data.description
        playlist.title = data.title
        playlist.owner = owner
        playlist.entries = self._entries_for(tracks)
        self._commit()

        return self._reload(playlist_id)

    # PUBLIC_INTERFACE
    def add_track(self, playlist_id: int, track_id: int) -> Playlist:
        """
        Append a track to a playlist.

        Tracks already in the playlist are appended again.

        Raises:
            NotFoundError: if the playlist or the track does not exist.
        """
        playlist = self.get_by_id(playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist", playlist_id)
        track = self._db.get(Track, track_id)
        if track is None:
            raise NotFoundError("Track", track_id)

        next_position = max((entry.position for entry in playlist.entries), default=-1) + 1
        playlist.entries.append(PlaylistTrack(track=track, position=next_position))
        self._commit()

        return self._reload(playlist_id)

    # PUBLIC_INTERFACE
    def delete(self, playlist_id: int) -> Optional[Playlist]:
        """Delete a playlist and return it as it was, or None if already gone."""
        playlist = self.get_by_id(playlist_id)
        if playlist is None:
            return None
        self._db.delete(playlist)
        self._commit()
        logger.info("playlist_deleted: id=%s", playlist_id)
        return playlist

    # Helpers

    def _get_user(self, user_id: int) -> User:
        user = self._db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def _resolve_tracks(self, track_ids: Sequence[int]) -> List[Track]:
        ordered_ids = _unique_in_order(track_ids)
        if not ordered_ids:
            return []
        found = self._db.execute(select(Track).where(Track.id.in_(ordered_ids))).scalars().all()
        by_id = {track.id: track for track in found}
        return [by_id[track_id] for track_id in ordered_ids if track_id in by_id]

    @staticmethod
    def _entries_for(tracks: Sequence[Track]) -> List[PlaylistTrack]:
        return [PlaylistTrack(track=track, position=index) for index, track in enumerate(tracks)]

    def _reload(self, playlist_id: int) -> Playlist:
        playlist = self.get_by_id(playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist", playlist_id)
        return playlist

    def _commit(self) -> None:
        try:
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
