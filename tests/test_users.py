"""
User endpoint tests — covers registration, login/logout with token
revocation, the full vs minimal profile projections, and self-only
profile updates and deletion.
"""
import uuid

import pytest
from httpx import AsyncClient


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_token_and_full_user(async_client: AsyncClient):
    """Registering returns 201, a token and the full user projection."""
    resp = await async_client.post("/users/register", json={
        "name": "New User",
        "username": "NewUser",
        "password": "secret123",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "User created successfully"
    assert body["token"]
    user = body["user"]
    # Usernames are stored lowercase.
    assert user["username"] == "newuser"
    assert user["name"] == "New User"
    assert set(user) == {"id", "name", "username", "createdAt", "updatedAt"}


@pytest.mark.asyncio
async def test_register_duplicate_username_conflicts(async_client: AsyncClient, register_user):
    """A second registration with the same (case-insensitive) username returns 409."""
    await register_user("taken")
    resp = await async_client.post("/users/register", json={
        "name": "Other",
        "username": "TAKEN",
        "password": "secret123",
    })
    assert resp.status_code == 409
    assert resp.json() == {"error": "Username already exists"}


@pytest.mark.asyncio
async def test_register_validation_details(async_client: AsyncClient):
    """Invalid fields are reported one entry per field."""
    resp = await async_client.post("/users/register", json={
        "name": "",
        "username": "ab",
        "password": "123",
    })
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Validation failed"
    fields = {d["field"] for d in body["details"]}
    assert fields == {"name", "username", "password"}


@pytest.mark.asyncio
async def test_register_never_exposes_password(async_client: AsyncClient, register_user):
    user, _ = await register_user("hidden")
    assert "password" not in user
    assert "password_hash" not in user


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_success(async_client: AsyncClient, register_user):
    await register_user("loginuser", password="hunter22")
    resp = await async_client.post("/users/login", json={
        "username": "LoginUser",
        "password": "hunter22",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Login successful"
    assert body["token"]
    assert body["user"]["username"] == "loginuser"


@pytest.mark.asyncio
async def test_login_wrong_password(async_client: AsyncClient, register_user):
    await register_user("wrongpw", password="hunter22")
    resp = await async_client.post("/users/login", json={
        "username": "wrongpw",
        "password": "nope-nope",
    })
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid credentials"}


@pytest.mark.asyncio
async def test_login_unknown_user(async_client: AsyncClient):
    resp = await async_client.post("/users/login", json={
        "username": "ghost",
        "password": "whatever",
    })
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_logout_revokes_token(async_client: AsyncClient, register_user, fake_redis):
    """After logout the same token is rejected with 401."""
    _, headers = await register_user("leaver")

    resp = await async_client.post("/articles", json={"title": "Before", "content": "x"}, headers=headers)
    assert resp.status_code == 201

    resp = await async_client.post("/users/logout", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Logout successful"}

    # Revocation lasts for the rest of the token's lifetime (about 7 days).
    (ttl,) = fake_redis.ttls.values()
    assert 6 * 86400 < ttl <= 7 * 86400

    resp = await async_client.post("/articles", json={"title": "After", "content": "x"}, headers=headers)
    assert resp.status_code == 401
    assert resp.json() == {"error": "Token has been invalidated"}


@pytest.mark.asyncio
async def test_logout_without_token(async_client: AsyncClient, fake_redis):
    resp = await async_client.post("/users/logout")
    assert resp.status_code == 200
    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_revoked_token_is_anonymous_on_optional_routes(async_client: AsyncClient, register_user):
    """Optional-auth routes treat a revoked token as no token at all."""
    user, headers = await register_user("optional")
    await async_client.post("/users/logout", headers=headers)

    resp = await async_client.get(f"/users/{user['id']}", headers=headers)
    assert resp.status_code == 200
    assert "createdAt" not in resp.json()


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_users_returns_full_projection(async_client: AsyncClient, register_user):
    await register_user("alice")
    await register_user("bob")

    resp = await async_client.get("/users")
    assert resp.status_code == 200
    users = resp.json()
    assert {u["username"] for u in users} == {"alice", "bob"}
    assert all("createdAt" in u for u in users)


@pytest.mark.asyncio
async def test_get_own_profile_is_full(async_client: AsyncClient, register_user):
    user, headers = await register_user("selfview")
    resp = await async_client.get(f"/users/{user['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == user


@pytest.mark.asyncio
async def test_get_other_profile_is_minimal(async_client: AsyncClient, register_user):
    target, _ = await register_user("target")
    _, other_headers = await register_user("viewer")

    for headers in ({}, other_headers):
        resp = await async_client.get(f"/users/{target['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"id": target["id"], "name": target["name"], "username": "target"}


@pytest.mark.asyncio
async def test_user_not_found(async_client: AsyncClient):
    resp = await async_client.get(f"/users/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_own_profile(async_client: AsyncClient, register_user):
    user, headers = await register_user("renamer")
    resp = await async_client.patch(
        f"/users/{user['id']}", json={"name": "Renamed", "username": "Renamed2"}, headers=headers
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]["user"]
    assert updated["name"] == "Renamed"
    assert updated["username"] == "renamed2"


@pytest.mark.asyncio
async def test_update_requires_authentication(async_client: AsyncClient, register_user):
    user, _ = await register_user("anonpatch")
    resp = await async_client.patch(f"/users/{user['id']}", json={"name": "X"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_update_other_user_forbidden(async_client: AsyncClient, register_user):
    target, _ = await register_user("victim")
    _, headers = await register_user("intruder")
    resp = await async_client.patch(f"/users/{target['id']}", json={"name": "Pwned"}, headers=headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_update_username_conflict(async_client: AsyncClient, register_user):
    await register_user("first")
    user, headers = await register_user("second")
    resp = await async_client.patch(f"/users/{user['id']}", json={"username": "first"}, headers=headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_delete_own_account(async_client: AsyncClient, register_user):
    user, headers = await register_user("quitter")
    resp = await async_client.delete(f"/users/{user['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "User deleted successfully"}

    resp = await async_client.get(f"/users/{user['id']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_other_account_forbidden(async_client: AsyncClient, register_user):
    target, _ = await register_user("keeper")
    _, headers = await register_user("deleter")
    resp = await async_client.delete(f"/users/{target['id']}", headers=headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_deleted_users_articles_survive(async_client: AsyncClient, register_user, create_article):
    """Deleting an account leaves its articles readable, with no author name."""
    user, headers = await register_user("orphaner")
    article = await create_article(headers, "Orphan", status="published")

    await async_client.delete(f"/users/{user['id']}", headers=headers)

    resp = await async_client.get(f"/articles/{article['id']}")
    assert resp.status_code == 200
    assert resp.json()["author"] is None
