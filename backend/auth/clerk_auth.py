# auth/clerk_auth.py

import requests
from fastapi import Request, HTTPException
from jose import jwt, JWTError

from utils.log import get_logger

ALGORITHMS = ["RS256"]
JWKS_TIMEOUT = 10

logger = get_logger("auth")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


# jwks_url -> key set, refreshed when a token names an unknown kid
_jwks_cache = {}


def _download_jwks(jwks_url: str) -> dict:
    try:
        response = requests.get(jwks_url, timeout=JWKS_TIMEOUT)
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Failed to fetch JWKS from %s: %s", jwks_url, e)
        raise HTTPException(status_code=500, detail="Failed to fetch JWKS")


def fetch_jwks(jwks_url: str, refresh: bool = False) -> dict:
    if refresh or jwks_url not in _jwks_cache:
        _jwks_cache[jwks_url] = _download_jwks(jwks_url)
    return _jwks_cache[jwks_url]


def find_signing_key(jwks_url: str, kid):
    def lookup(jwks):
        return next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)

    key = lookup(fetch_jwks(jwks_url))
    if key is None:
        # The issuer may have rotated keys since the set was cached
        key = lookup(fetch_jwks(jwks_url, refresh=True))
    return key


def get_current_user(request: Request):
    auth_header = request.headers.get("authorization")

    if not auth_header or not auth_header.startswith("Bearer "):
        raise _unauthorized("Not authenticated")

    token = auth_header.replace("Bearer ", "", 1).strip()
    settings = request.app.state.settings

    try:
        unverified_header = jwt.get_unverified_header(token)
        kid = unverified_header.get("kid")

        key = find_signing_key(settings.jwks_url, kid)
        if not key:
            logger.warning("Rejected token with unknown key id %r", kid)
            raise _unauthorized("Invalid token key")

        payload = jwt.decode(
            token,
            key,
            algorithms=ALGORITHMS,
            issuer=settings.clerk_issuer,
            options={"verify_aud": False},  # Clerk session tokens carry no aud
        )
    except JWTError as e:
        logger.warning("Clerk auth error: %s", e)
        raise _unauthorized("Invalid or expired token")

    request.state.user_id = payload.get("sub")
    return payload
