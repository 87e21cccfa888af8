"""
SQLAlchemy models for the media catalog.

Playlists are the entity managed by this service; users, tracks, albums,
artists, genres and likes are owned by other parts of the catalog and are
mapped here only so playlists can reference them.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""


track_genres = Table(
    "track_genres",
    Base.metadata,
    Column("track_id", ForeignKey("track.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", ForeignKey("genre.id", ondelete="CASCADE"), primary_key=True),
)

track_artists = Table(
    "track_artists",
    Base.metadata,
    Column("track_id", ForeignKey("track.id", ondelete="CASCADE"), primary_key=True),
    Column("artist_id", ForeignKey("artist.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """Catalog user; owns playlists and likes."""

    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    playlists: Mapped[List["Playlist"]] = relationship(
        "Playlist",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Genre(Base):
    __tablename__ = "genre"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)


class Album(Base):
    __tablename__ = "album"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    cover: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Artist(Base):
    __tablename__ = "artist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)


class Track(Base):
    """Track row; attached to playlists by id."""

    __tablename__ = "track"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    album_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("album.id", ondelete="SET NULL"), nullable=True
    )

    album: Mapped[Optional[Album]] = relationship("Album")
    genres: Mapped[List[Genre]] = relationship("Genre", secondary=track_genres)
    artists: Mapped[List[Artist]] = relationship("Artist", secondary=track_artists)


class Like(Base):
    """A user liking a track (optionally through a playlist)."""

    __tablename__ = "like"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    track_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("track.id", ondelete="CASCADE"), nullable=True
    )
    playlist_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("playlist.id", ondelete="CASCADE"), nullable=True
    )

    track: Mapped[Optional[Track]] = relationship("Track")
    playlist: Mapped[Optional["Playlist"]] = relationship("Playlist", back_populates="likes")


class Playlist(Base):
    """Named, ordered collection of tracks owned by a user.

    `cover` holds a path relative to MEDIA_ROOT. Track membership lives in
    `entries` so the same track may appear more than once.
    """

    __tablename__ = "playlist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cover: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    title: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    likes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )

    owner: Mapped[User] = relationship("User", back_populates="playlists")
    entries: Mapped[List["PlaylistTrack"]] = relationship(
        "PlaylistTrack",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by=lambda: (PlaylistTrack.position, PlaylistTrack.id),
    )
    likes: Mapped[List[Like]] = relationship(
        "Like",
        back_populates="playlist",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def tracks(self) -> List[Track]:
        """Tracks in playlist order."""
        return [entry.track for entry in self.entries]


class PlaylistTrack(Base):
    """Join row between a playlist and a track, keyed by its own id."""

    __tablename__ = "playlist_track"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    playlist_id: Mapped[int] = mapped_column(
        ForeignKey("playlist.id", ondelete="CASCADE"), nullable=False, index=True
    )
    track_id: Mapped[int] = mapped_column(
        ForeignKey("track.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    playlist: Mapped[Playlist] = relationship("Playlist", back_populates="entries")
    track: Mapped[Track] = relationship("Track")
