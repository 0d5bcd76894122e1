from datetime import timedelta

import auth


def register(client, username="dana", email="dana@example.com", password="password123"):
    return client.post(
        "/auth/register",
        json={"username": username, "email": email, "password": password, "full_name": "Dana Doe"}
    )


def test_register_returns_token_and_user(client):
    response = register(client)

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["username"] == "dana"
    assert data["user"]["email"] == "dana@example.com"
    assert "hashed_password" not in data["user"]

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert response.status_code == 200
    assert response.json()["id"] == data["user"]["id"]


def test_register_duplicate_and_invalid(client):
    register(client)

    response = register(client, username="other", email="dana@example.com")
    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists"

    response = register(client, username="dana", email="new@example.com")
    assert response.status_code == 400

    response = register(client, username="eve", email="not-an-email")
    assert response.status_code == 400

    response = register(client, username="   ", email="blank@example.com")
    assert response.status_code == 400


def test_login(client):
    register(client)

    response = client.post("/auth/token", data={"username": "dana@example.com", "password": "password123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.json()["username"] == "dana"


def test_login_failures(client):
    register(client)

    response = client.post("/auth/token", data={"username": "dana@example.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"

    response = client.post("/auth/token", data={"username": "nobody@example.com", "password": "password123"})
    assert response.status_code == 401


def test_rejects_bad_tokens(client, test_user):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    expired = auth.create_access_token({"sub": str(test_user.id)}, expires_delta=timedelta(minutes=-5))
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401

    unknown = auth.create_user_token(9999)
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {unknown}"}).status_code == 401

    foreign = auth.jwt.encode({"sub": str(test_user.id), "type": "access"}, "another-secret", algorithm=auth.ALGORITHM)
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {foreign}"}).status_code == 401


def test_password_hashing():
    hashed = auth.get_password_hash("s3cret")

    assert hashed != "s3cret"
    assert auth.verify_password("s3cret", hashed)
    assert not auth.verify_password("wrong", hashed)


def test_register_strips_username_before_duplicate_check(client):
    register(client)

    response = register(client, username="  dana ", email="dana2@example.com")
    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists"

    response = register(client, username=" erin ", email="erin@example.com")
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "erin"
