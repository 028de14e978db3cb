from __future__ import annotations

import time

import jwt
from fastapi.testclient import TestClient

from auth import ResearcherSessionManager, is_allowlisted
from config import Settings

SHARED_SECRET = "test-shared-secret-with-enough-bytes"


def _identity_token(email: str | None, secret: str = SHARED_SECRET) -> str:
    claims = {"sub": "user-1", "iat": int(time.time())}
    if email is not None:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def _login(client: TestClient, token: str):
    return client.post("/api/admin/auth/login", headers={"Authorization": f"Bearer {token}"})


def test_login_sets_session_cookie_for_allowlisted_email(client: TestClient, settings: Settings) -> None:
    response = _login(client, _identity_token("Researcher@Example.com"))

    assert response.status_code == 200
    assert response.json() == {"ok": True, "email": "Researcher@Example.com"}
    assert settings.auth.session_cookie in response.cookies

    studies = client.get("/api/admin/studies")
    assert studies.status_code == 200


def test_login_rejects_email_outside_allowlist(client: TestClient) -> None:
    response = _login(client, _identity_token("someone@example.com"))

    assert response.status_code == 403
    assert response.json()["detail"] == "Email is not allowlisted"


def test_login_rejects_bad_tokens(client: TestClient) -> None:
    assert client.post("/api/admin/auth/login").status_code == 401
    forged = _identity_token("researcher@example.com", secret="another-secret-of-the-same-length!!")
    assert _login(client, forged).status_code == 401
    assert _login(client, _identity_token(None)).status_code == 401


def test_secure_routes_require_a_session(client: TestClient) -> None:
    response = client.get("/api/admin/studies")

    assert response.status_code == 401


def test_secure_routes_require_allowlisted_session(client: TestClient, settings: Settings) -> None:
    manager = ResearcherSessionManager(settings)
    client.cookies.set(manager.cookie_name, manager.encode("intruder@example.com"))

    response = client.get("/api/admin/studies")

    assert response.status_code == 403


def test_logout_clears_the_cookie(researcher_client: TestClient, settings: Settings) -> None:
    response = researcher_client.post("/api/admin/auth/logout")

    assert response.status_code == 200
    assert settings.auth.session_cookie in response.headers["set-cookie"]


def test_session_cookie_round_trip_and_tampering(settings: Settings) -> None:
    manager = ResearcherSessionManager(settings, clock=lambda: 1_000_000)
    token = manager.encode("researcher@example.com")

    session = manager.decode(token)
    assert session is not None
    assert session.email == "researcher@example.com"
    assert session.issued_at == 1_000_000

    version, payload, signature = token.split(".")
    forged = "A" * len(signature)
    assert manager.decode(f"{version}.{payload}.{forged}") is None
    assert manager.decode(f"v0.{payload}.{signature}") is None
    assert manager.decode("garbage") is None


def test_expired_session_cookie_is_rejected(settings: Settings) -> None:
    now = [1_000_000]
    manager = ResearcherSessionManager(settings, clock=lambda: now[0])
    token = manager.encode("researcher@example.com")

    now[0] += settings.auth.session_max_age
    assert manager.decode(token) is not None

    now[0] += 1
    assert manager.decode(token) is None


def test_allowlist_is_case_insensitive(settings: Settings) -> None:
    assert is_allowlisted(" RESEARCHER@example.com ", settings)
    assert not is_allowlisted("other@example.com", settings)
