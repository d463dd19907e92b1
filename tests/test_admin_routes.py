import io
import uuid

from PIL import Image
from starlette.datastructures import UploadFile

from photoflow.config import settings


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), color=(200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_photos_page_lists_photos(auth_client, seed_photos):
    seed_photos({"src": "https://example.com/first.jpg", "alt": "First photo"})

    response = auth_client.get("/admin/photos")

    assert response.status_code == 200
    assert "https://example.com/first.jpg" in response.text
    assert "First photo" in response.text
    assert 'type="file"' in response.text


def test_admin_root_redirects_to_photos(auth_client):
    response = auth_client.get("/admin")

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/photos"


def test_notice_is_rendered(auth_client):
    response = auth_client.get("/admin/photos", params={"notice": "deleted"})

    assert "Photo deleted successfully!" in response.text


def test_upload_create_flow(auth_client, storage, count_photos):
    response = auth_client.post(
        "/admin/photos",
        data={"alt": "Orange", "description": "A flat colour"},
        files={"file": ("orange.png", _png_bytes(), "image/png")},
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/photos?notice=created"
    assert count_photos() == 1
    assert len(storage.uploaded) == 1
    assert storage.uploaded[0].startswith("public/")


def test_upload_create_without_file(auth_client, count_photos):
    response = auth_client.post("/admin/photos", data={"alt": "No file"})

    assert response.status_code == 400
    assert "field-error" in response.text
    assert count_photos() == 0


def test_upload_create_storage_failure(auth_client, storage, count_photos):
    storage.fail_upload = True

    response = auth_client.post(
        "/admin/photos",
        files={"file": ("orange.png", _png_bytes(), "image/png")},
    )

    assert response.status_code == 500
    assert "Could not upload the photo. Please try again." in response.text
    assert count_photos() == 0


def test_link_create_flow(auth_client, monkeypatch, fetch_photo, count_photos):
    monkeypatch.setattr(settings, "PHOTO_SOURCE_MODE", "link")

    page = auth_client.get("/admin/photos")
    assert 'name="src"' in page.text

    response = auth_client.post("/admin/photos", data={"src": "https://example.com/a.jpg", "alt": "A"})

    assert response.status_code == 303
    assert count_photos() == 1


def test_link_create_rejects_bad_url(auth_client, monkeypatch, count_photos):
    monkeypatch.setattr(settings, "PHOTO_SOURCE_MODE", "link")

    response = auth_client.post("/admin/photos", data={"src": "not-a-url"})

    assert response.status_code == 400
    assert "Image URL must be an absolute http(s) URL." in response.text
    assert count_photos() == 0


def test_update_flow(auth_client, seed_photos, fetch_photo):
    (photo,) = seed_photos({"alt": "old", "description": "keep"})

    response = auth_client.post(f"/admin/photos/{photo.id}", data={"alt": "new", "display_order": "9"})

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/photos?notice=updated"
    stored = fetch_photo(photo.id)
    assert stored.alt == "new"
    assert stored.description == "keep"
    assert stored.display_order == 9


def test_update_invalid_id(auth_client):
    response = auth_client.post("/admin/photos/not-a-uuid", data={"alt": "x"})

    assert response.status_code == 400
    assert "Invalid photo id." in response.text


def test_update_unknown_photo(auth_client):
    response = auth_client.post(f"/admin/photos/{uuid.uuid4()}", data={"alt": "x"})

    assert response.status_code == 400
    assert "Photo not found." in response.text


def test_delete_flow(auth_client, storage, seed_photos, fetch_photo):
    path = "public/1700000000000-a.jpg"
    storage.objects[path] = b"x"
    (photo,) = seed_photos({"src": storage.url_for(path)})

    response = auth_client.post(f"/admin/photos/{photo.id}/delete", data={"src": photo.src})

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/photos?notice=deleted"
    assert fetch_photo(photo.id) is None
    assert path not in storage.objects


def test_delete_with_foreign_src(auth_client, seed_photos, fetch_photo):
    (photo,) = seed_photos({"src": "https://example.com/a.jpg"})

    response = auth_client.post(f"/admin/photos/{photo.id}/delete", data={"src": photo.src})

    assert response.status_code == 400
    assert "Invalid photo source URL format." in response.text
    assert fetch_photo(photo.id) is not None


def test_reorder_flow(auth_client, seed_photos, fetch_photo):
    a, b, c = seed_photos({}, {}, {})

    response = auth_client.post("/admin/photos/reorder", data={"ids": f"{c.id}, {b.id}\n{a.id}"})

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/photos?notice=reordered"
    assert [fetch_photo(p.id).display_order for p in (c, b, a)] == [1, 2, 3]


def test_reorder_unknown_ids(auth_client):
    response = auth_client.post("/admin/photos/reorder", data={"ids": str(uuid.uuid4())})

    assert response.status_code == 400
    assert "No photos found" in response.text
    assert "Photo IDs not found" in response.text


def test_update_errors_render_in_that_photos_form(auth_client, seed_photos):
    first, second = seed_photos({}, {})

    response = auth_client.post(f"/admin/photos/{second.id}", data={"display_order": "abc"})

    assert response.status_code == 400
    html = response.text
    assert html.count('class="field-error"') == 1
    error_at = html.index('class="field-error"')
    assert error_at > html.index(f'id="photo-{second.id}"')
    assert error_at > html.index(f'id="photo-{first.id}"')
    assert html.index('id="create-photo"') < html.index("Existing Photos") < error_at


def test_create_errors_stay_in_create_form(auth_client, seed_photos):
    seed_photos({})

    response = auth_client.post(
        "/admin/photos",
        data={"display_order": "abc"},
        files={"file": ("orange.png", _png_bytes(), "image/png")},
    )

    assert response.status_code == 400
    html = response.text
    assert html.count('class="field-error"') == 1
    assert html.index('class="field-error"') < html.index("Existing Photos")


def test_oversized_upload_rejected_before_reading(auth_client, storage, monkeypatch, count_photos):
    async def must_not_read(self, size=-1):
        raise AssertionError("oversized upload was read into memory")

    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 16)
    monkeypatch.setattr(UploadFile, "read", must_not_read)

    response = auth_client.post(
        "/admin/photos",
        files={"file": ("orange.png", _png_bytes(), "image/png")},
    )

    assert response.status_code == 400
    assert "MB or smaller." in response.text
    assert storage.uploaded == []
    assert count_photos() == 0
