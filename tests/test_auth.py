"""
Auth endpoint tests: registration, login, profile and the email
verification code flow (Redis via fakeredis, SMTP via the recorded outbox).
"""
import smtplib

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from blog_api.code_store import code_store
from blog_api.mailer import mailer


# ---------------------------------------------------------------------------
# Register / login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_token_and_user(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/register", json={
        "email": "alice@example.com",
        "username": "alice",
        "password": "wonderland",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["token"]
    assert data["user"]["email"] == "alice@example.com"
    assert data["user"]["username"] == "alice"
    assert "password" not in data["user"]
    assert "password_hash" not in data["user"]


@pytest.mark.asyncio
async def test_register_token_opens_profile(async_client: AsyncClient, register):
    user_id, headers = await register("alice")

    resp = await async_client.get("/api/v1/auth/profile", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == user_id
    assert resp.json()["username"] == "alice"


@pytest.mark.asyncio
async def test_duplicate_email_returns_409(async_client: AsyncClient, register):
    await register("first", email="same@example.com")
    resp = await async_client.post("/api/v1/auth/register", json={
        "email": "same@example.com", "username": "second", "password": "secret123",
    })
    assert resp.status_code == 409
    assert resp.json()["message"] == "Email already exists"


@pytest.mark.asyncio
async def test_duplicate_username_returns_409(async_client: AsyncClient, register):
    await register("taken")
    resp = await async_client.post("/api/v1/auth/register", json={
        "email": "fresh@example.com", "username": "taken", "password": "secret123",
    })
    assert resp.status_code == 409
    assert resp.json()["message"] == "Username already exists"


@pytest.mark.asyncio
async def test_register_rejects_short_password(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/register", json={
        "email": "short@example.com", "username": "shorty", "password": "123",
    })
    assert resp.status_code == 422
    assert "password" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_register_rejects_password_over_72_bytes(async_client: AsyncClient):
    # 40 characters, 80 bytes in UTF-8
    resp = await async_client.post("/api/v1/auth/register", json={
        "email": "accent@example.com", "username": "accent", "password": "é" * 40,
    })
    assert resp.status_code == 422
    assert "72 bytes" in resp.json()["detail"]

    login = await async_client.post("/api/v1/auth/login", json={
        "email": "accent@example.com", "password": "é" * 40,
    })
    assert login.status_code == 401


@pytest.mark.asyncio
async def test_multibyte_password_at_72_bytes_round_trips(async_client: AsyncClient, register):
    password = "é" * 36
    await register("accent", password=password)

    resp = await async_client.post("/api/v1/auth/login", json={
        "email": "accent@example.com", "password": password,
    })
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_success(async_client: AsyncClient, register):
    user_id, _ = await register("bob", password="hunter22")

    resp = await async_client.post("/api/v1/auth/login", json={
        "email": "bob@example.com", "password": "hunter22",
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["user"]["id"] == user_id

    profile = await async_client.get(
        "/api/v1/auth/profile", headers={"Authorization": f"Bearer {data['token']}"}
    )
    assert profile.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email, password",
    [("bob@example.com", "wrong-password"), ("nobody@example.com", "hunter22")],
)
async def test_login_failure_is_indistinguishable(async_client: AsyncClient, register, email, password):
    await register("bob", password="hunter22")

    resp = await async_client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 401
    assert resp.json() == {
        "code": 401,
        "message": "Invalid credentials",
        "detail": "Email or password is incorrect",
    }


@pytest.mark.asyncio
async def test_profile_requires_auth(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/auth/profile")
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Verification codes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_send_verification_code_stores_and_mails(async_client: AsyncClient, fake_redis, sent_mail):
    resp = await async_client.post(
        "/api/v1/auth/verification-code", json={"email": "new@example.com"}
    )
    assert resp.status_code == 200

    code = await fake_redis.get("verification:new@example.com")
    assert code is not None
    assert len(code) == 6 and code.isdigit()
    assert 0 < await fake_redis.ttl("verification:new@example.com") <= 600

    assert len(sent_mail) == 1
    assert sent_mail[0]["To"] == "new@example.com"
    assert code in sent_mail[0].get_content()


@pytest.mark.asyncio
async def test_verification_code_for_registered_email_is_409(async_client: AsyncClient, register, sent_mail):
    await register("exists")
    resp = await async_client.post(
        "/api/v1/auth/verification-code", json={"email": "exists@example.com"}
    )
    assert resp.status_code == 409
    assert sent_mail == []


@pytest.mark.asyncio
async def test_verify_code_is_single_use(async_client: AsyncClient, fake_redis):
    await async_client.post("/api/v1/auth/verification-code", json={"email": "new@example.com"})
    code = await fake_redis.get("verification:new@example.com")

    ok = await async_client.post(
        "/api/v1/auth/verify-code", json={"email": "new@example.com", "code": code}
    )
    assert ok.status_code == 200
    assert await fake_redis.get("verification:new@example.com") is None

    replay = await async_client.post(
        "/api/v1/auth/verify-code", json={"email": "new@example.com", "code": code}
    )
    assert replay.status_code == 422
    assert replay.json()["message"] == "Invalid verification code"


@pytest.mark.asyncio
async def test_wrong_code_is_rejected_and_kept(async_client: AsyncClient, fake_redis):
    await fake_redis.set("verification:new@example.com", "123456", ex=600)

    resp = await async_client.post(
        "/api/v1/auth/verify-code", json={"email": "new@example.com", "code": "654321"}
    )
    assert resp.status_code == 422
    assert await fake_redis.get("verification:new@example.com") == "123456"


@pytest.mark.asyncio
async def test_verify_without_code_sent(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/auth/verify-code", json={"email": "never@example.com", "code": "000000"}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_code_store_failure_is_generic_500(async_client: AsyncClient, monkeypatch, sent_mail):
    async def broken_save(email, code, ttl):
        raise RedisConnectionError("connection refused")

    monkeypatch.setattr(code_store, "save", broken_save)

    resp = await async_client.post(
        "/api/v1/auth/verification-code", json={"email": "new@example.com"}
    )
    assert resp.status_code == 500
    assert resp.json() == {
        "code": 500,
        "message": "Internal Server Error",
        "detail": "An unexpected error occurred",
    }
    assert sent_mail == []


@pytest.mark.asyncio
async def test_smtp_failure_is_generic_500(async_client: AsyncClient, monkeypatch):
    def broken_send(message):
        raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(mailer, "_send", broken_send)

    resp = await async_client.post(
        "/api/v1/auth/verification-code", json={"email": "new@example.com"}
    )
    assert resp.status_code == 500
    assert resp.json()["message"] == "Internal Server Error"
