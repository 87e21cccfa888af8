from __future__ import annotations

from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from src.api.auth import create_access_token
from src.api.db import db_session_dep
from src.api.main import app
from src.api.models import Album, Artist, Base, Genre, Track, User


def _enable_sqlite_pragmas(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    # LIKE is case-insensitive in sqlite by default, unlike PostgreSQL.
    cursor.execute("PRAGMA case_sensitive_like=ON")
    cursor.close()


class StatementCounter:
    def __init__(self) -> None:
        self.statements: List[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany) -> None:
        self.statements.append(statement)


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'playlists.db'}", connect_args={"check_same_thread": False}
    )
    event.listen(engine, "connect", _enable_sqlite_pragmas)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def statement_counter(engine) -> StatementCounter:
    counter = StatementCounter()
    event.listen(engine, "before_cursor_execute", counter)
    return counter


def seed_catalog(db: Session) -> None:
    """Two users, three tracks with genre/album/artist."""
    rock = Genre(id=1, name="Rock")
    album = Album(id=1, title="First Light")
    artist = Artist(id=1, name="The Band")
    db.add_all(
        [
            User(id=1, username="alice", email="alice@example.com"),
            User(id=2, username="bob", email="bob@example.com"),
        ]
    )
    db.add_all(
        [
            Track(id=i, title=f"Track {i}", duration=180 + i, album=album, genres=[rock], artists=[artist])
            for i in (1, 2, 3)
        ]
    )
    db.commit()


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    with session_factory() as session:
        seed_catalog(session)
        yield session


@pytest.fixture
def media_root(tmp_path, monkeypatch):
    root = tmp_path / "media"
    monkeypatch.setenv("MEDIA_ROOT", str(root))
    return root


@pytest.fixture
def client(session_factory, media_root, monkeypatch) -> Iterator[TestClient]:
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    with session_factory() as session:
        seed_catalog(session)

    def _override_session() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[db_session_dep] = _override_session
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    def _headers(user_id: int = 1) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id=user_id)}"}

    return _headers
