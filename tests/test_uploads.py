import os

import pytest

from hydrowatch.core.errors import ValidationFailedError
from hydrowatch.core.settings import settings
from hydrowatch.services.upload_service import save_photos, validate_photos

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _photo(filename="leak.png", content_type="image/png", content=PNG):
    return {"filename": filename, "content_type": content_type, "content": content}


def test_save_photos_writes_files():
    photos = save_photos([_photo(), _photo("b.JPG", "image/jpeg")])
    assert [p["url"].rsplit("-", 1)[1] for p in photos] == ["0.png", "1.jpg"]
    for photo in photos:
        assert photo["url"].startswith("/uploads/issues/")
        path = os.path.join(settings.UPLOAD_DIR, "issues", photo["url"].rsplit("/", 1)[1])
        with open(path, "rb") as f:
            assert f.read() == PNG


def test_no_photos_is_fine():
    assert save_photos([]) == []


@pytest.mark.parametrize("photo", [
    _photo(filename="notes.txt"),
    _photo(content_type="application/pdf"),
    _photo(filename="evil.png.exe"),
])
def test_rejects_non_images(photo):
    with pytest.raises(ValidationFailedError) as exc_info:
        validate_photos([photo])
    assert exc_info.value.errors[0]["field"] == "photos.0"


def test_rejects_oversized_photo():
    big = _photo(content=b"\x00" * (settings.MAX_PHOTO_BYTES + 1))
    with pytest.raises(ValidationFailedError):
        validate_photos([big])


def test_rejects_too_many_photos():
    with pytest.raises(ValidationFailedError) as exc_info:
        validate_photos([_photo()] * (settings.MAX_PHOTOS_PER_ISSUE + 1))
    assert exc_info.value.errors[0]["field"] == "photos"


def test_multipart_issue_with_photos(client, citizen):
    resp = client.post(
        "/api/issues",
        data={"title": "Leak", "description": "Pipe burst", "category": "leak", "lat": "1", "lng": "2"},
        files=[("photos", ("leak.png", PNG, "image/png")), ("photos", ("leak2.jpg", PNG, "image/jpeg"))],
        headers=citizen["headers"],
    )
    assert resp.status_code == 201, resp.text
    photos = resp.json()["photos"]
    assert len(photos) == 2
    assert client.get(photos[0]["url"]).content == PNG


def test_multipart_issue_rejects_bad_file(client, citizen):
    resp = client.post(
        "/api/issues",
        data={"title": "Leak", "description": "Pipe burst", "category": "leak", "lat": "1", "lng": "2"},
        files=[("photos", ("script.sh", b"echo hi", "text/x-sh"))],
        headers=citizen["headers"],
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "photos.0"


FORM = {"title": "Leak", "description": "Pipe burst", "category": "leak", "lat": "1", "lng": "2"}


def _stored_files():
    target = os.path.join(settings.UPLOAD_DIR, "issues")
    return set(os.listdir(target)) if os.path.isdir(target) else set()


def test_multipart_issue_rejects_file_one_byte_over_limit(client, citizen):
    oversized = PNG + b"\x00" * (settings.MAX_PHOTO_BYTES + 1 - len(PNG))
    resp = client.post(
        "/api/issues",
        data=FORM,
        files=[("photos", ("ok.png", PNG, "image/png")), ("photos", ("huge.png", oversized, "image/png"))],
        headers=citizen["headers"],
    )
    assert resp.status_code == 400
    assert resp.json()["errors"] == [{
        "field": "photos.1",
        "message": f"File exceeds the {settings.MAX_PHOTO_BYTES} byte limit",
    }]
    assert client.get("/api/issues", headers=citizen["headers"]).json() == []


def test_multipart_issue_rejects_too_many_files(client, citizen):
    files = [("photos", (f"p{i}.png", PNG, "image/png")) for i in range(settings.MAX_PHOTOS_PER_ISSUE + 1)]
    resp = client.post("/api/issues", data=FORM, files=files, headers=citizen["headers"])
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "photos"


def test_failed_issue_save_removes_photos(client, citizen, monkeypatch):
    from hydrowatch.services.issue_service import IssueService

    def broken_create(self, *args, **kwargs):
        raise RuntimeError("write failed")

    monkeypatch.setattr(IssueService, "create_issue", broken_create)
    before = _stored_files()
    resp = client.post(
        "/api/issues",
        data=FORM,
        files=[("photos", ("leak.png", PNG, "image/png"))],
        headers=citizen["headers"],
    )
    assert resp.status_code == 500
    assert _stored_files() == before
