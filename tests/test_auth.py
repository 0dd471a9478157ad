"""Bearer-token gate on the /states routes."""

import time

import pytest
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from fastapi.testclient import TestClient
from jose import jwk, jwt

from auth import clerk_auth
from conftest import TEST_ISSUER

KID = "test-key"


@pytest.fixture(scope="module")
def rsa_pem():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


@pytest.fixture
def jwks(rsa_pem, monkeypatch):
    _, public_pem = rsa_pem
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = KID
    keyset = {"keys": [public_jwk]}
    monkeypatch.setattr(clerk_auth, "_jwks_cache", {})
    monkeypatch.setattr(clerk_auth, "_download_jwks", lambda url: keyset)
    return keyset


@pytest.fixture
def make_token(rsa_pem):
    private_pem, _ = rsa_pem

    def _make(kid=KID, issuer=TEST_ISSUER, expires_in=300, sub="user_123"):
        now = int(time.time())
        claims = {"sub": sub, "iss": issuer, "iat": now, "exp": now + expires_in}
        return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})

    return _make


@pytest.fixture
def anon_client(app):
    with TestClient(app) as c:
        yield c


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_valid_token_passes(anon_client, jwks, make_token):
    response = anon_client.get("/states", headers=_auth(make_token()))

    assert response.status_code == 200


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Basic abc"}])
def test_missing_bearer_is_401(anon_client, headers):
    response = anon_client.get("/states", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"errors": {"message": "Not authenticated"}}
    assert response.headers["www-authenticate"] == "Bearer"


def test_every_route_is_gated(anon_client):
    calls = [
        ("GET", "/states"),
        ("GET", "/states/1"),
        ("POST", "/states"),
        ("PUT", "/states/1"),
        ("DELETE", "/states/1"),
    ]
    for method, path in calls:
        response = anon_client.request(method, path, json={"stateName": "Goa"})
        assert response.status_code == 401, (method, path)


def test_unknown_key_id(anon_client, jwks, make_token):
    response = anon_client.get("/states", headers=_auth(make_token(kid="rotated")))

    assert response.status_code == 401
    assert response.json()["errors"]["message"] == "Invalid token key"


@pytest.mark.parametrize(
    "kwargs",
    [{"expires_in": -60}, {"issuer": "https://someone-else.test"}],
)
def test_expired_or_foreign_token(anon_client, jwks, make_token, kwargs):
    response = anon_client.get("/states", headers=_auth(make_token(**kwargs)))

    assert response.status_code == 401
    assert response.json()["errors"]["message"] == "Invalid or expired token"


def test_garbage_token(anon_client, jwks):
    response = anon_client.get("/states", headers=_auth("not-a-jwt"))

    assert response.status_code == 401


def test_jwks_fetch_failure(monkeypatch):
    def fail(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(clerk_auth, "_jwks_cache", {})
    monkeypatch.setattr(clerk_auth.requests, "get", fail)

    with pytest.raises(HTTPException) as exc:
        clerk_auth.fetch_jwks("https://issuer.test/.well-known/jwks.json")

    assert exc.value.status_code == 500


def test_rotated_key_is_picked_up(anon_client, rsa_pem, make_token, monkeypatch):
    """A token signed with a new kid triggers one refetch of the key set."""
    _, public_pem = rsa_pem
    old_key = jwk.construct(public_pem, "RS256").to_dict()
    old_key["kid"] = "old-key"
    new_key = dict(old_key, kid="new-key")
    served = [{"keys": [old_key]}, {"keys": [old_key, new_key]}]
    downloads = []

    def download(url):
        downloads.append(url)
        return served[min(len(downloads), len(served)) - 1]

    monkeypatch.setattr(clerk_auth, "_jwks_cache", {})
    monkeypatch.setattr(clerk_auth, "_download_jwks", download)

    first = anon_client.get("/states", headers=_auth(make_token(kid="old-key")))
    rotated = anon_client.get("/states", headers=_auth(make_token(kid="new-key")))
    again = anon_client.get("/states", headers=_auth(make_token(kid="new-key")))

    assert first.status_code == 200
    assert rotated.status_code == 200
    assert again.status_code == 200
    assert len(downloads) == 2


def test_known_key_served_from_cache(anon_client, jwks, make_token, monkeypatch):
    downloads = []
    monkeypatch.setattr(clerk_auth, "_download_jwks", lambda url: downloads.append(url) or jwks)

    for _ in range(3):
        assert anon_client.get("/states", headers=_auth(make_token())).status_code == 200

    assert len(downloads) == 1
