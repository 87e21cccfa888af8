from __future__ import annotations

import io

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from src.api import storage
from src.api.storage import delete_media_file, resolve_media_path, save_cover


def _upload(name: str, content: bytes, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


def test_media_root_uses_absolute_env(media_root) -> None:
    assert storage.media_root() == media_root.resolve()


def test_save_cover_writes_under_covers(media_root) -> None:
    stored = save_cover(_upload("my cover!.png", b"\x89PNG data", "image/png"))

    assert stored.startswith("covers/")
    assert stored.endswith("_my_cover_.png")
    assert (media_root / stored).read_bytes() == b"\x89PNG data"


@pytest.mark.parametrize(
    ("name", "content", "content_type"),
    [
        ("cover.txt", b"text", "text/plain"),
        ("cover.png", b"", "image/png"),
        ("cover.png", b"\x89PNG", "application/pdf"),
    ],
)
def test_save_cover_rejects_bad_uploads(media_root, name, content, content_type) -> None:
    with pytest.raises(HTTPException) as excinfo:
        save_cover(_upload(name, content, content_type))

    assert excinfo.value.status_code == 400


def test_save_cover_rejects_oversized_files(media_root, monkeypatch) -> None:
    monkeypatch.setenv("MAX_COVER_BYTES", "4")

    with pytest.raises(HTTPException) as excinfo:
        save_cover(_upload("big.png", b"12345", "image/png"))

    assert excinfo.value.status_code == 413


def test_delete_media_file_removes_file(media_root) -> None:
    stored = save_cover(_upload("gone.jpg", b"\xff\xd8\xff", "image/jpeg"))

    assert delete_media_file(stored) is True
    assert not (media_root / stored).exists()
    assert delete_media_file(stored) is False


def test_delete_media_file_ignores_empty_and_escaping_paths(media_root, tmp_path) -> None:
    outside = tmp_path / "keep.txt"
    outside.write_text("stay")

    assert delete_media_file(None) is False
    assert delete_media_file("") is False
    assert delete_media_file("../keep.txt") is False
    assert outside.exists()
    assert resolve_media_path("../keep.txt") is None
