from datetime import timedelta

from jose import jwt

from photoflow.config import settings
from photoflow.utils.auth import hash_password, login, verify_admin_credentials, verify_password
from photoflow.utils.jwt_auth import ALGORITHM, create_session_token, verify_session_token


def test_login_success_returns_token():
    state = login("admin", "correct-horse")

    assert state.success
    assert state.errors is None
    assert verify_session_token(state.token) is not None


def test_login_wrong_password():
    state = login("admin", "wrong")

    assert not state.success
    assert state.errors == {"credentials": ["Invalid username or password."]}
    assert state.message == "Login failed."


def test_login_wrong_username():
    state = login("root", "correct-horse")

    assert not state.success
    assert "credentials" in state.errors


def test_login_missing_fields():
    state = login("", "")

    assert not state.success
    assert state.errors == {
        "username": ["Username is required"],
        "password": ["Password is required"],
    }
    assert state.message == "Invalid input."


def test_login_without_configured_account(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "")

    state = login("admin", "correct-horse")

    assert not state.success
    assert state.errors is None
    assert state.message == "Server configuration error. Please contact support."


def test_login_without_session_secret(monkeypatch):
    monkeypatch.setattr(settings, "SESSION_SECRET_KEY", "")

    state = login("admin", "correct-horse")

    assert not state.success
    assert state.message == "Server configuration error. Please contact support."


def test_bcrypt_hash_replaces_plain_password(monkeypatch):
    hashed = hash_password("s3cret-pass")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", hashed)

    assert verify_password("s3cret-pass", hashed)
    assert verify_admin_credentials("admin", "s3cret-pass")
    assert not verify_admin_credentials("admin", "correct-horse")


def test_malformed_hash_never_matches():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_session_token_rejects_forgeries():
    assert verify_session_token(None) is None
    assert verify_session_token("true") is None

    forged = jwt.encode({"sub": "photoflow_admin", "type": "admin_session"}, "other-secret", algorithm=ALGORITHM)
    assert verify_session_token(forged) is None

    wrong_type = jwt.encode({"sub": "photoflow_admin", "type": "access"}, settings.SESSION_SECRET_KEY, algorithm=ALGORITHM)
    assert verify_session_token(wrong_type) is None


def test_expired_session_token():
    token = create_session_token(expires_delta=timedelta(seconds=-1))

    assert verify_session_token(token) is None


def test_login_route_sets_session_cookie(client):
    response = client.post("/admin/login", data={"username": "admin", "password": "correct-horse"})

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/photos"
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.SESSION_COOKIE_NAME}=")
    assert "HttpOnly" in set_cookie
    assert "Max-Age=604800" in set_cookie
    assert "Path=/" in set_cookie
    assert "samesite=lax" in set_cookie.lower()

    page = client.get("/admin/photos")
    assert page.status_code == 200


def test_login_route_bad_credentials(client):
    response = client.post("/admin/login", data={"username": "admin", "password": "nope"})

    assert response.status_code == 400
    assert "Invalid username or password." in response.text
    assert "set-cookie" not in response.headers


def test_login_route_missing_fields(client):
    response = client.post("/admin/login", data={"username": "admin"})

    assert response.status_code == 400
    assert "Password is required" in response.text


def test_login_route_config_error_does_not_leak(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_USERNAME", "")

    response = client.post("/admin/login", data={"username": "admin", "password": "correct-horse"})

    assert response.status_code == 500
    assert "Server configuration error. Please contact support." in response.text
    assert "ADMIN_USERNAME" not in response.text


def test_logout_clears_cookie(auth_client):
    response = auth_client.post("/admin/logout")

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/login"
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.SESSION_COOKIE_NAME}=")
    assert "Max-Age=0" in set_cookie


def test_plain_true_cookie_is_not_a_session(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, "true")

    response = client.get("/admin/photos")

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/login"
