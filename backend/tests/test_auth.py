from datetime import timedelta

from app.core.security import create_access_token
from app.models.user import User


def test_register_login_me(client):
    register_payload = {
        "name": "Admin User",
        "email": "Admin@Example.com",
        "password": "Passw0rd!23",
        "role": "admin",
    }

    register_response = client.post("/api/auth/register", json=register_payload)
    assert register_response.status_code == 201
    data = register_response.json()
    assert data["email"] == "admin@example.com"
    assert data["role"] == "admin"
    assert data["is_active"] is True
    assert data["last_login_at"] is None
    assert "hashed_password" not in data

    login_response = client.post(
        "/api/auth/login",
        json={"email": "admin@example.com", "password": "Passw0rd!23", "role": "admin"},
    )
    assert login_response.status_code == 200
    login_data = login_response.json()
    assert login_data["token_type"] == "bearer"
    assert login_data["user"]["email"] == "admin@example.com"
    assert login_data["user"]["last_login_at"] is not None

    token = login_data["access_token"]
    me_response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me_response.status_code == 200
    assert me_response.json()["id"] == data["id"]


def test_duplicate_registration_is_rejected(client):
    payload = {"name": "Teacher", "email": "teacher@example.com", "password": "Passw0rd!23", "role": "teacher"}
    assert client.post("/api/auth/register", json=payload).status_code == 201
    duplicate = client.post("/api/auth/register", json=payload)
    assert duplicate.status_code == 409


def test_login_failures(client):
    payload = {"name": "Teacher", "email": "teacher@example.com", "password": "Passw0rd!23", "role": "teacher"}
    client.post("/api/auth/register", json=payload)

    wrong_password = client.post("/api/auth/login", json={"email": payload["email"], "password": "password999"})
    assert wrong_password.status_code == 401

    wrong_role = client.post(
        "/api/auth/login",
        json={"email": payload["email"], "password": payload["password"], "role": "manager"},
    )
    assert wrong_role.status_code == 403


def test_unknown_role_is_rejected_by_schema(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "X", "email": "x@example.com", "password": "Passw0rd!23", "role": "scheduler"},
    )
    assert response.status_code == 422


def test_invalid_and_expired_tokens_are_unauthorized(client):
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"}).status_code == 401

    payload = {"name": "Teacher", "email": "teacher@example.com", "password": "Passw0rd!23", "role": "teacher"}
    user_id = client.post("/api/auth/register", json=payload).json()["id"]
    expired = create_access_token(user_id, expires_delta=timedelta(minutes=-5))
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_weak_passwords_are_rejected(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Weak", "email": "weak@example.com", "password": "password123"},
    )
    assert response.status_code == 422
    assert "uppercase letter" in response.text


def test_role_defaults_to_student(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Sam", "email": "sam@example.com", "password": "Passw0rd!23"},
    )
    assert response.status_code == 201
    assert response.json()["role"] == "student"


def test_deactivated_accounts_cannot_log_in(client, db_session):
    payload = {"name": "Gone", "email": "gone@example.com", "password": "Passw0rd!23", "role": "teacher"}
    user_id = client.post("/api/auth/register", json=payload).json()["id"]
    login = client.post("/api/auth/login", json={"email": payload["email"], "password": payload["password"]})
    token = login.json()["access_token"]

    user = db_session.get(User, user_id)
    user.is_active = False
    db_session.commit()

    blocked = client.post("/api/auth/login", json={"email": payload["email"], "password": payload["password"]})
    assert blocked.status_code == 403
    assert blocked.json()["detail"] == "Account is deactivated. Contact administrator."
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 403
