from __future__ import annotations

import base64
import hmac
import json
import time
from hashlib import sha256
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response

from config import Settings, get_settings


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_json(obj: dict) -> str:
    return _b64url(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def _unb64url(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _unb64url_json(data: str) -> dict:
    return json.loads(_unb64url(data))


def _sign(secret: str, payload: str) -> str:
    return _b64url(hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), sha256).digest())


class ResearcherSession:
    def __init__(self, email: str, issued_at: int):
        self.email = email
        self.issued_at = issued_at


class ResearcherSessionManager:
    """Stateless, signed session cookie for researcher access.

    Cookie format: v1.<payload>.<signature>
      - payload: base64url({"email": str, "iat": int})
      - signature: base64url(HMAC_SHA256(auth.session_secret, payload))

    Cookies older than auth.session_max_age are rejected even if the browser
    still sends them.
    """

    VERSION = "v1"

    def __init__(self, settings: Settings, clock=time.time):
        self._settings = settings
        self._clock = clock

    @property
    def cookie_name(self) -> str:
        return self._settings.auth.session_cookie

    def encode(self, email: str) -> str:
        payload = _b64url_json({"email": email, "iat": int(self._clock())})
        sig = _sign(self._settings.auth.session_secret, payload)
        return f"{self.VERSION}.{payload}.{sig}"

    def decode(self, token: str) -> Optional[ResearcherSession]:
        try:
            ver, payload, sig = token.split(".")
        except ValueError:
            return None
        if ver != self.VERSION:
            return None
        expected = _sign(self._settings.auth.session_secret, payload)
        if not hmac.compare_digest(expected, sig):
            return None
        try:
            data = _unb64url_json(payload)
        except ValueError:
            return None
        email = data.get("email")
        iat = int(data.get("iat", 0))
        if not isinstance(email, str) or not email:
            return None
        if int(self._clock()) - iat > self._settings.auth.session_max_age:
            return None
        return ResearcherSession(email=email, issued_at=iat)

    def set_cookie(self, response: Response, email: str) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=self.encode(email),
            max_age=self._settings.auth.session_max_age,
            httponly=True,
            secure=self._settings.auth.cookie_secure,
            # The researcher UI may be served from another origin; SameSite=None
            # lets credentialed cross-site requests carry the cookie.
            samesite="none",
            path="/",
        )

    def clear_cookie(self, response: Response) -> None:
        response.delete_cookie(self.cookie_name, path="/")

    def get_session(self, request: Request) -> Optional[ResearcherSession]:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return None
        return self.decode(token)


def is_allowlisted(email: str, settings: Settings) -> bool:
    allow = {e.strip().lower() for e in settings.auth.researcher_allowlist}
    return email.strip().lower() in allow


def get_session_manager(settings: Settings = Depends(get_settings)) -> ResearcherSessionManager:
    return ResearcherSessionManager(settings)


async def require_researcher(
    request: Request,
    settings: Settings = Depends(get_settings),
    manager: ResearcherSessionManager = Depends(get_session_manager),
) -> ResearcherSession:
    session = manager.get_session(request)
    if not session:
        raise HTTPException(status_code=401, detail="Researcher session required")

    if not is_allowlisted(session.email, settings):
        raise HTTPException(status_code=403, detail="Not allowlisted for researcher access")

    return session
