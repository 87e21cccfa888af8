from __future__ import annotations

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import ValidationError

from src.api.auth import create_access_token, get_caller_id
from src.api.responses import envelope, first_validation_message
from src.api.schemas import PlaylistForm


def test_playlist_form_trims_text() -> None:
    form = PlaylistForm(title="  Road Trip (2024)  ", description=" long drive, loud music ")

    assert form.title == "Road Trip (2024)"
    assert form.description == "long drive, loud music"


@pytest.mark.parametrize(
    ("title", "message"),
    [
        ("   ", "Must be 1 characters or more"),
        ("a" * 65, "Must be 64 characters or less"),
        ("Nacht \u266b", "Title is not valid"),
    ],
)
def test_playlist_form_rejects_bad_titles(title, message) -> None:
    with pytest.raises(ValidationError) as excinfo:
        PlaylistForm(title=title)

    assert first_validation_message(excinfo.value) == message


def test_playlist_form_limits_description() -> None:
    assert PlaylistForm(title="ok", description="d" * 255).description == "d" * 255
    with pytest.raises(ValidationError) as excinfo:
        PlaylistForm(title="ok", description="d" * 256)

    assert first_validation_message(excinfo.value) == "Must be 255 characters or less"


def test_envelope_omits_missing_data() -> None:
    ok = envelope(200, "fine", {"id": 1})
    failed = envelope(404, "missing")

    assert ok.status_code == 200
    assert ok.body == b'{"status":"success","message":"fine","data":{"id":1}}'
    assert failed.body == b'{"status":"fail","message":"missing"}'


def test_caller_id_absent_without_credentials() -> None:
    assert get_caller_id(None) is None


def test_caller_id_from_token(monkeypatch) -> None:
    monkeypatch.setenv("JWT_SECRET", "unit-secret")
    token = create_access_token(user_id=7)

    caller = get_caller_id(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token))

    assert caller == 7


def test_token_signed_with_other_secret_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("JWT_SECRET", "issuer-secret")
    token = create_access_token(user_id=7)
    monkeypatch.setenv("JWT_SECRET", "verifier-secret")

    with pytest.raises(HTTPException) as excinfo:
        get_caller_id(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token))

    assert excinfo.value.status_code == 401


@pytest.mark.parametrize("title", ["AC/DC", "me@home", "[Live]", "Back\\slash", "Tempo » 120"])
def test_playlist_form_accepts_punctuation_range(title) -> None:
    assert PlaylistForm(title=title).title == title


def test_playlist_form_description_accepts_punctuation_range() -> None:
    form = PlaylistForm(title="ok", description="live @ the [club] / 2024")

    assert form.description == "live @ the [club] / 2024"
