import pytest

from photoflow.middleware import guard_redirect


@pytest.mark.parametrize(
    "path,authenticated,expected",
    [
        ("/admin/photos", False, "/admin/login"),
        ("/admin", False, "/admin/login"),
        ("/admin/photos/123/delete", False, "/admin/login"),
        ("/admin/photos", True, None),
        ("/admin/login", False, None),
        ("/admin/login", True, "/admin/photos"),
        ("/", False, None),
        ("/api/photos", False, None),
        ("/administrator", False, None),
    ],
)
def test_guard_redirect(path, authenticated, expected):
    assert guard_redirect(path, authenticated) == expected


def test_admin_page_requires_session(client):
    response = client.get("/admin/photos")

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/login"


def test_admin_mutation_requires_session(client, seed_photos, fetch_photo):
    (photo,) = seed_photos({"alt": "unchanged"})

    response = client.post(f"/admin/photos/{photo.id}", data={"alt": "hacked"})

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/login"
    assert fetch_photo(photo.id).alt == "unchanged"


def test_login_page_redirects_when_signed_in(auth_client):
    response = auth_client.get("/admin/login")

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/photos"


def test_login_page_open_without_session(client):
    response = client.get("/admin/login")

    assert response.status_code == 200
    assert "<form" in response.text


def test_public_pages_are_not_guarded(client):
    assert client.get("/").status_code == 200
    assert client.get("/api/photos").status_code == 200
