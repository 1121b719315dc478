import pytest

from nltm.core import rate_limit
from nltm.core.security import (
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

PASSWORD = "Str0ng!Pass"


def test_password_hashing():
    h = hash_password("Str0ng!Pass")
    assert h != "Str0ng!Pass"
    assert verify_password("Str0ng!Pass", h)
    assert not verify_password("wrong", h)
    assert not verify_password("Str0ng!Pass", "not-a-hash")


def test_token_roundtrip_and_expiry():
    assert decode_access_token(create_access_token(7)) == 7
    with pytest.raises(TokenError) as info:
        decode_access_token(create_access_token(7, expires_minutes=-1))
    assert info.value.expired
    with pytest.raises(TokenError) as info:
        decode_access_token("garbage")
    assert not info.value.expired


def test_register_login_me(client):
    r = client.post("/api/v1/auth/register", json={
        "name": "Sam Rivera", "email": "Sam@Acme.io", "password": PASSWORD,
    })
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["email"] == "sam@acme.io"
    assert body["token"]

    r = client.post("/api/v1/auth/login", json={"email": "sam@acme.io", "password": PASSWORD})
    assert r.status_code == 200
    token = r.json()["token"]

    r = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["name"] == "Sam Rivera"


def test_duplicate_email(client, register_user):
    register_user()
    r = client.post("/api/v1/auth/register", json={
        "name": "Other Person", "email": "sam@acme.io", "password": PASSWORD,
    })
    assert r.status_code == 409


@pytest.mark.parametrize("password,message", [
    ("short1!", "at least 8"),
    ("alllowercase1!", "uppercase"),
    ("NoDigits!!", "number"),
    ("NoSpecial123", "special"),
    ("SamIsGreat1!", "should not contain your name"),
])
def test_weak_passwords(client, password, message):
    r = client.post("/api/v1/auth/register", json={
        "name": "Sam Rivera", "email": "sam@acme.io", "password": password,
    })
    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "Validation failed"
    assert any(message in e["message"] for e in body["errors"])


def test_name_must_be_letters(client):
    r = client.post("/api/v1/auth/register", json={
        "name": "R2D2", "email": "r2@acme.io", "password": PASSWORD,
    })
    assert r.status_code == 400


def test_bad_login(client, register_user):
    register_user()
    r = client.post("/api/v1/auth/login", json={"email": "sam@acme.io", "password": "Wr0ng!Pass"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password"
    r = client.post("/api/v1/auth/login", json={"email": "nobody@acme.io", "password": PASSWORD})
    assert r.status_code == 401


def test_protected_routes_need_a_token(client):
    r = client.get("/api/v1/tasks")
    assert r.status_code == 401
    assert r.json()["detail"] == "Access denied. No token provided."

    r = client.get("/api/v1/tasks", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token. Please login again."


def test_expired_token(client, register_user):
    register_user()
    r = client.get("/api/v1/auth/me", headers={
        "Authorization": f"Bearer {create_access_token(1, expires_minutes=-5)}",
    })
    assert r.status_code == 401
    assert "expired" in r.json()["detail"]


def test_token_for_deleted_user(client):
    r = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {create_access_token(999)}"})
    assert r.status_code == 401


def test_login_rate_limit(client):
    for _ in range(rate_limit.login_limiter.max_requests):
        assert client.post("/api/v1/auth/login", json={"email": "x@acme.io", "password": "nope"}).status_code == 401
    r = client.post("/api/v1/auth/login", json={"email": "x@acme.io", "password": "nope"})
    assert r.status_code == 429
    assert "Too many login attempts" in r.json()["detail"]
