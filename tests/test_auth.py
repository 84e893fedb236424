from datetime import timedelta

from app.core.config import config
from app.modules.users.auth import AuthService
from app.modules.users.models import Role
from tests.factories import auth_headers, create_user


async def test_login_sets_cookie_and_me_reads_it(client, db):
    await create_user(db, Role.ADMIN, "admin@school.test", name="Admin", password="s3cret-pass")
    await db.commit()

    response = await client.post(
        "/api/auth/login", json={"email": "Admin@School.test ", "password": "s3cret-pass"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "admin@school.test"
    assert "password" not in body["data"]["user"]
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{config.auth_cookie_name}=")
    assert "httponly" in set_cookie.lower()
    token = set_cookie.split(";")[0].split("=", 1)[1]

    me = await client.get("/api/auth/me", headers={"Cookie": f"{config.auth_cookie_name}={token}"})
    assert me.status_code == 200
    assert me.json()["data"]["role"] == "ADMIN"


async def test_login_with_wrong_password(client, db):
    await create_user(db, Role.ADMIN, "admin@school.test", password="right-password")
    await db.commit()

    response = await client.post(
        "/api/auth/login", json={"email": "admin@school.test", "password": "wrong-password"}
    )

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "Invalid email or password",
        "code": "INVALID_CREDENTIALS",
    }


async def test_login_rejects_malformed_email(client):
    response = await client.post("/api/auth/login", json={"email": "nobody", "password": "x"})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_missing_and_invalid_tokens_are_401(client, db):
    assert (await client.get("/api/auth/me")).status_code == 401

    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


async def test_expired_token_is_401(client, db):
    user = await create_user(db, Role.ADMIN, "admin@school.test")
    await db.commit()
    token = AuthService.create_access_token(user, expires_delta=timedelta(seconds=-5))

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_EXPIRED"


async def test_deleted_user_token_is_401(client, db):
    user = await create_user(db, Role.ADMIN, "admin@school.test")
    await db.commit()
    headers = auth_headers(user)
    await db.delete(user)
    await db.commit()

    assert (await client.get("/api/auth/me", headers=headers)).status_code == 401


async def test_wrong_role_is_403_not_401(client, db):
    teacher = await create_user(db, Role.TEACHER, "teacher@school.test")
    await db.commit()

    response = await client.get("/api/admin/staff", headers=auth_headers(teacher))

    assert response.status_code == 403
    assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"


async def test_logout_clears_cookie(client):
    response = await client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json()["data"]["message"] == "Logout successful"
    assert config.auth_cookie_name in response.headers["set-cookie"]


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "connected"}
