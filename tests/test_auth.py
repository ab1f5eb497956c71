from conftest import EMAIL, PASSWORD


def test_signin_and_session(client, tokens):
    assert tokens["token_type"] == "bearer"
    r = client.get("/auth/session", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert r.status_code == 200
    assert r.json()["user"]["email"] == EMAIL


def test_signin_is_case_insensitive_on_email(client):
    r = client.post("/auth/signin", json={"email": EMAIL.upper(), "password": PASSWORD})
    assert r.status_code == 200


def test_signin_rejects_bad_password(client):
    r = client.post("/auth/signin", json={"email": EMAIL, "password": "wrong"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid login credentials"


def test_data_routes_require_token(client):
    assert client.get("/hindrances").status_code == 401
    assert client.get("/dashboard", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_signout_revokes_access_token(client, tokens):
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    r = client.post("/auth/signout", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"status": "signed_out"}
    assert client.get("/auth/session", headers=headers).status_code == 401


def test_signout_ends_the_refresh_token_too(client, tokens):
    client.post("/auth/signout", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    r = client.post("/auth/refresh", params={"token": tokens["refresh_token"]})
    assert r.status_code == 401
    assert r.json()["detail"] == "Session signed out"


def test_signout_with_refreshed_token_ends_the_whole_session(client, tokens):
    refreshed = client.post("/auth/refresh", params={"token": tokens["refresh_token"]}).json()
    r = client.post("/auth/signout", headers={"Authorization": f"Bearer {refreshed['access_token']}"})
    assert r.status_code == 200
    # tokens from the original sign-in share the session and are revoked with it
    assert client.get("/auth/session", headers={"Authorization": f"Bearer {tokens['access_token']}"}).status_code == 401
    assert client.post("/auth/refresh", params={"token": tokens["refresh_token"]}).status_code == 401


def test_new_signin_is_unaffected_by_earlier_signout(client, tokens):
    client.post("/auth/signout", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    fresh = client.post("/auth/signin", json={"email": EMAIL, "password": PASSWORD}).json()
    assert client.post("/auth/refresh", params={"token": fresh["refresh_token"]}).status_code == 200


def test_refresh_issues_new_access_token(client, tokens):
    r = client.post("/auth/refresh", params={"token": tokens["refresh_token"]})
    assert r.status_code == 200
    access = r.json()["access_token"]
    assert client.get("/other-inputs", headers={"Authorization": f"Bearer {access}"}).status_code == 200


def test_refresh_token_cannot_be_used_as_access_token(client, tokens):
    r = client.get("/auth/session", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert r.status_code == 401


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert "X-Request-ID" in r.headers


def test_create_user_script_without_name(settings, tmp_path):
    from scripts.create_user import create_user

    settings = settings.model_copy(update={"database_url": f"sqlite:///{tmp_path / 'accounts.db'}"})
    user = create_user(settings, " Foreman@SiteTrack.io ", "pour-slab-7")
    assert user.email == "foreman@sitetrack.io"
    assert user.full_name is None
    assert user.is_active

    again = create_user(settings, "foreman@sitetrack.io", "pour-slab-8", full_name="Site Foreman", active=False)
    assert again.id == user.id
    assert again.full_name == "Site Foreman"
    assert not again.is_active
