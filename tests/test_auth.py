"""Registration, login, token refresh and logout."""

from auth.jwt import create_access_token
from factories import PASSWORD, login


def test_register_creates_learner(client, db):
    res = client.post("/auth/register", json={"email": "new@example.com", "password": PASSWORD, "name": "New Person"})

    assert res.status_code == 201
    user = db.users.find_one({"email": "new@example.com"})
    assert user["role"] == "learner"
    assert user["hashed_password"] != PASSWORD


def test_register_rejects_duplicate_email(client, learner):
    res = client.post("/auth/register", json={"email": learner["email"], "password": PASSWORD, "name": "Again"})

    assert res.status_code == 400
    assert res.json()["detail"] == "Email already registered"


def test_register_validates_payload(client):
    res = client.post("/auth/register", json={"email": "nope", "password": "short", "name": ""})
    assert res.status_code == 422


def test_login_rejects_wrong_password(client, learner):
    res = client.post("/auth/login", data={"username": learner["email"], "password": "wrong-password"})
    assert res.status_code == 401


def test_login_opens_session(client, learner, redis_client):
    login(client, learner["email"])
    assert redis_client.get(f"user_session:{learner['_id']}") is not None
    assert redis_client.get(f"refresh_tokens:{learner['_id']}") is not None


def test_refresh_issues_new_access_token(client, learner):
    tokens = client.post("/auth/login", data={"username": learner["email"], "password": PASSWORD}).json()

    res = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert res.status_code == 200
    fresh = {"Authorization": f"Bearer {res.json()['access_token']}"}
    assert client.get("/my-courses", headers=fresh).status_code == 200


def test_access_token_cannot_be_used_to_refresh(client, learner):
    tokens = client.post("/auth/login", data={"username": learner["email"], "password": PASSWORD}).json()
    res = client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert res.status_code == 400


def test_refresh_token_is_not_an_access_token(client, learner):
    tokens = client.post("/auth/login", data={"username": learner["email"], "password": PASSWORD}).json()
    res = client.get("/my-courses", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert res.status_code == 401


def test_logout_revokes_token(client, learner_headers):
    assert client.delete("/auth/logout", headers=learner_headers).status_code == 200

    res = client.get("/my-courses", headers=learner_headers)
    assert res.status_code == 401
    assert res.json()["detail"] == "Token revoked"


def test_token_without_session_is_rejected(client, learner):
    token = create_access_token({"sub": learner["_id"], "role": "learner"})
    res = client.get("/my-courses", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Session expired"


def test_garbage_token_is_rejected(client):
    res = client.get("/my-courses", headers={"Authorization": "Bearer not.a.token"})
    assert res.status_code == 401


def test_anonymous_catalog_is_public(client):
    assert client.get("/courses").status_code == 200
