from __future__ import annotations

from fastapi import HTTPException
import jwt
from jwt import PyJWTError, PyJWKClient

from config import Settings


def _decode_claims(token: str, settings: Settings) -> dict:
    auth = settings.auth
    issuer = (auth.issuer or "").strip() or None
    audience = (auth.audience or "").strip() or None
    options = {"verify_aud": audience is not None, "verify_iss": issuer is not None}

    shared_secret = (auth.shared_secret or "").strip()
    if shared_secret:
        return jwt.decode(
            token,
            shared_secret,
            algorithms=["HS256"],
            issuer=issuer,
            audience=audience,
            options=options,
        )

    jwks_url = (auth.jwks_url or "").strip()
    if not jwks_url or not issuer:
        raise HTTPException(status_code=500, detail="Identity provider configuration is missing")

    jwks_client = PyJWKClient(jwks_url)
    signing_key = jwks_client.get_signing_key_from_jwt(token).key
    return jwt.decode(
        token,
        signing_key,
        algorithms=["RS256"],
        issuer=issuer,
        audience=audience,
        options=options,
    )


async def verify_identity_token_and_get_email(token: str, settings: Settings) -> str:
    """Verify an identity-provider JWT and return the embedded email claim.

    Security:
    - HS256 with auth.shared_secret when configured, otherwise RS256 keys
      resolved from auth.jwks_url via PyJWKClient
    - Enforces issuer and audience whenever they are configured
    """
    try:
        claims = _decode_claims(token, settings)
    except HTTPException:
        raise
    except PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token signature or claims")
    except Exception:
        raise HTTPException(status_code=401, detail="Failed to verify token")

    email = claims.get("email")
    if not isinstance(email, str) or not email.strip():
        raise HTTPException(status_code=401, detail="Email claim missing in token")

    return email.strip()
