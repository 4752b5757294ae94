"""Registration, login and password-reset endpoints."""

from sqlalchemy import select

from domain_agent.users.models import User

from .conftest import register_user


def reset_token_from(mail_sender):
    for message in mail_sender.sent:
        if "reset-password?token=" in message.text:
            return message.text.split("reset-password?token=", 1)[1].split()[0]
    raise AssertionError("no password reset email was sent")


class TestRegister:
    async def test_register_returns_user_and_token(self, client, notifier, mail_sender):
        response = await client.post(
            "/api/auth/register",
            json={"name": "  Jane Owner ", "email": "Jane@Example.com", "password": "secret123"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        user = body["data"]["user"]
        assert user["email"] == "jane@example.com"
        assert user["name"] == "Jane Owner"
        assert user["preferences"]["currency"] == "USD"
        assert "passwordHash" not in user
        assert body["data"]["token"]

        await notifier.drain()
        assert [m.subject for m in mail_sender.sent] == ["Welcome to Domain Buying Agent!"]

    async def test_duplicate_email_rejected(self, client):
        await register_user(client)
        response = await client.post(
            "/api/auth/register",
            json={"name": "Someone Else", "email": "OWNER@example.com", "password": "secret123"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists with this email"

    async def test_short_password_is_a_validation_error(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"name": "Jane", "email": "jane@example.com", "password": "123"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "ERR_1001"
        assert any(error["field"] == "password" for error in body["errors"])

    async def test_welcome_email_failure_does_not_fail_registration(self, client, notifier, mail_sender):
        mail_sender.fails = True
        response = await client.post(
            "/api/auth/register",
            json={"name": "Jane", "email": "jane@example.com", "password": "secret123"},
        )
        await notifier.drain()
        assert response.status_code == 201
        assert mail_sender.sent == []


class TestLogin:
    async def test_login_success(self, client):
        await register_user(client)
        response = await client.post(
            "/api/auth/login",
            json={"email": "owner@example.com", "password": "secret123"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["lastLogin"] is not None

    async def test_wrong_password(self, client):
        await register_user(client)
        response = await client.post(
            "/api/auth/login",
            json={"email": "owner@example.com", "password": "wrong-password"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    async def test_unknown_email(self, client):
        response = await client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "secret123"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"


class TestCurrentUser:
    async def test_me(self, client, auth_headers):
        response = await client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "owner@example.com"

    async def test_me_without_token(self, client):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["code"] == "ERR_1003"

    async def test_me_with_garbage_token(self, client):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    async def test_logout(self, client):
        response = await client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"

    async def test_update_profile(self, client, auth_headers):
        response = await client.put(
            "/api/auth/profile",
            headers=auth_headers,
            json={"name": "Jane Q Owner", "profile": {"company": "Acme", "address": {"zipCode": "62701"}}},
        )
        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["name"] == "Jane Q Owner"
        assert user["profile"]["company"] == "Acme"
        assert user["profile"]["address"]["zipCode"] == "62701"


class TestPasswordReset:
    async def test_full_reset_flow(self, client, notifier, mail_sender):
        await register_user(client)

        response = await client.post("/api/auth/forgot-password", json={"email": "owner@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == "Password reset email sent"

        await notifier.drain()
        token = reset_token_from(mail_sender)

        response = await client.post(
            "/api/auth/reset-password",
            json={"token": token, "password": "brand-new-pass"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["token"]

        login = await client.post(
            "/api/auth/login",
            json={"email": "owner@example.com", "password": "brand-new-pass"},
        )
        assert login.status_code == 200

        # Tokens are single use
        reused = await client.post(
            "/api/auth/reset-password",
            json={"token": token, "password": "another-pass"},
        )
        assert reused.status_code == 400

    async def test_unknown_email(self, client):
        response = await client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
        assert response.status_code == 404
        assert response.json()["message"] == "There is no user with that email"

    async def test_delivery_failure_clears_token(self, client, notifier, mail_sender, db_session):
        await register_user(client)
        await notifier.drain()
        mail_sender.fails = True

        response = await client.post("/api/auth/forgot-password", json={"email": "owner@example.com"})

        assert response.status_code == 500
        assert response.json()["message"] == "Email could not be sent. Please try again later."
        user = await db_session.scalar(select(User).where(User.email == "owner@example.com"))
        assert user.reset_password_token is None
        assert user.reset_password_expires is None

    async def test_invalid_token(self, client):
        response = await client.post(
            "/api/auth/reset-password",
            json={"token": "does-not-exist", "password": "brand-new-pass"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired reset token"
