"""Refresh-token rotation: one live token per user, reuse kills the family."""

from app.core.security import generate_refresh_token, verify_refresh_token
from app.services import session_store
from conftest import login, post_refresh, DEFAULT_PASSWORD

REUSE = "Réutilisation de token détectée"


def _login_token(client, user):
    response = login(client, user.email)
    assert response.status_code == 200
    return response.cookies.get("refreshToken")


def test_login_stores_single_hashed_session(client, db, make_user):
    user = make_user()
    token = _login_token(client, user)
    payload = verify_refresh_token(token)

    stored = session_store.load(db, user.id)
    assert stored.active
    assert stored.family == payload["family"]
    assert stored.token_hash != payload["jti"]


def test_each_login_starts_a_new_family(client, db, make_user):
    user = make_user()
    first = verify_refresh_token(_login_token(client, user))
    second = verify_refresh_token(_login_token(client, user))

    assert first["family"] != second["family"]
    assert session_store.load(db, user.id).family == second["family"]


def test_refresh_rotates_hash_within_family(client, db, make_user):
    user = make_user()
    token_a = _login_token(client, user)
    before = session_store.load(db, user.id)

    response = post_refresh(client, token_a)

    assert response.status_code == 200
    assert response.json()["accessToken"]
    token_b = response.cookies.get("refreshToken")
    assert token_b and token_b != token_a
    after = session_store.load(db, user.id)
    assert after.family == before.family
    assert after.token_hash != before.token_hash
    assert verify_refresh_token(token_b)["family"] == before.family


def test_successive_refreshes_each_change_the_stored_hash(client, db, make_user):
    user = make_user()
    token = _login_token(client, user)
    seen = {session_store.load(db, user.id).token_hash}

    for _ in range(3):
        response = post_refresh(client, token)
        assert response.status_code == 200
        token = response.cookies.get("refreshToken")
        seen.add(session_store.load(db, user.id).token_hash)

    assert len(seen) == 4


def test_replayed_token_is_reuse_and_kills_family(client, db, make_user):
    user = make_user()
    token_a = _login_token(client, user)
    token_b = post_refresh(client, token_a).cookies.get("refreshToken")

    replay = post_refresh(client, token_a)

    assert replay.status_code == 403
    assert replay.json()["detail"] == REUSE
    assert session_store.load(db, user.id).active is False

    follow_up = post_refresh(client, token_b)
    assert follow_up.status_code == 403


def test_token_from_second_refresh_dies_after_reuse(client, db, make_user):
    user = make_user()
    token_a = _login_token(client, user)
    token_b = post_refresh(client, token_a).cookies.get("refreshToken")
    token_c = post_refresh(client, token_b).cookies.get("refreshToken")

    assert post_refresh(client, token_a).status_code == 403
    assert post_refresh(client, token_c).status_code == 403


def test_token_from_previous_login_is_reuse(client, db, make_user):
    user = make_user()
    old_session_token = _login_token(client, user)
    _login_token(client, user)

    response = post_refresh(client, old_session_token)

    assert response.status_code == 403
    assert response.json()["detail"] == REUSE
    assert session_store.load(db, user.id).active is False


def test_refresh_after_logout_is_revoked(client, make_user):
    user = make_user()
    token = _login_token(client, user)
    client.post("/auth/logout", headers={"Cookie": f"refreshToken={token}"})

    response = post_refresh(client, token)

    assert response.status_code == 403
    assert response.json()["detail"] == "Token revoked"


def test_refresh_without_cookie(client):
    response = client.post("/auth/refresh")
    assert response.status_code == 401
    assert response.json()["detail"] == "No token provided"


def test_refresh_with_invalid_token(client):
    response = post_refresh(client, "not.a.token")
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid refresh token"


def test_refresh_for_deleted_user(client, db, make_user):
    user = make_user()
    token, _ = generate_refresh_token(user, "family-x")
    db.delete(user)
    db.commit()

    assert post_refresh(client, token).status_code == 404


def test_password_change_revokes_refresh_session(client, db, make_user):
    user = make_user()
    login_response = login(client, user.email)
    access = login_response.json()["accessToken"]
    session_token = login_response.cookies.get("refreshToken")

    response = client.put(
        f"/users/{user.id}",
        json={"password": "BrandNewPass1!"},
        headers={"Authorization": f"Bearer {access}"},
    )

    assert response.status_code == 200
    assert session_store.load(db, user.id).active is False
    assert post_refresh(client, session_token).json()["detail"] == "Token revoked"
    assert login(client, user.email, DEFAULT_PASSWORD).status_code == 401
    assert login(client, user.email, "BrandNewPass1!").status_code == 200


def test_concurrent_rotation_lets_only_one_writer_win(db, make_user):
    user = make_user()
    family = session_store.new_family()
    session_store.start(db, user.id, family, "jti-1")

    assert session_store.rotate(db, user.id, family, "jti-1", "jti-2") is True
    assert session_store.rotate(db, user.id, family, "jti-1", "jti-3") is False
    assert session_store.rotate(db, user.id, "other-family", "jti-2", "jti-4") is False
