from conftest import login_user, register_user


def test_register_login_me(client):
    payload = {
        "name": "Admin User",
        "email": "Admin@School.example.org",
        "password": "password123",
        "role": "admin",
    }

    data = register_user(client, payload)
    assert data["email"] == "admin@school.example.org"
    assert data["role"] == "admin"

    token = login_user(client, "admin@school.example.org", "password123")
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "admin@school.example.org"


def test_duplicate_registration_is_rejected(client):
    payload = {"name": "Teacher", "email": "teacher@school.example.org", "password": "password123", "role": "teacher"}
    register_user(client, payload)

    response = client.post("/api/auth/register", json=payload)

    assert response.status_code == 409


def test_login_with_wrong_password(client):
    register_user(
        client,
        {"name": "Student", "email": "student@school.example.org", "password": "password123", "role": "student"},
    )

    response = client.post("/api/auth/login", json={"email": "student@school.example.org", "password": "wrong-pass"})

    assert response.status_code == 401


def test_invalid_token_is_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
