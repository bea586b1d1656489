"""
Tests for bearer token resolution.

Every member-facing route fails closed: no token, a bad token, or a token for
a member that is not in the claimed box all yield 401 before any work is done.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

pytest.importorskip("fastapi")

import boxsocial.auth.deps as auth_deps
from boxsocial.auth import security
from boxsocial.auth.security import create_access_token, decode_access_token
from boxsocial.errors import Internal, Unauthenticated


def _token(payload, secret=None):
    return jwt.encode(payload, secret or security.JWT_SECRET, algorithm="HS256")


def _future():
    return int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp())


class TestTokenCodec:
    def test_round_trip_claims(self):
        payload = decode_access_token(create_access_token("ana", "tenant-a"))
        assert payload["sub"] == "ana"
        assert payload["tenant_id"] == "tenant-a"

    def test_expired_token(self):
        token = create_access_token("ana", "tenant-a", ttl_minutes=-1)
        with pytest.raises(Unauthenticated, match="expired"):
            decode_access_token(token)

    def test_wrong_secret(self):
        token = _token({"sub": "ana", "tenant_id": "tenant-a", "exp": _future()}, secret="other")
        with pytest.raises(Unauthenticated, match="Invalid token"):
            decode_access_token(token)

    def test_missing_secret_is_internal(self, monkeypatch):
        monkeypatch.setattr(security, "JWT_SECRET", "")
        with pytest.raises(Internal):
            decode_access_token("anything")


class TestProtectedRoutes:
    def test_health_is_open(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_missing_token(self, client):
        resp = client.get("/friends")
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthenticated"

    def test_malformed_header(self, client):
        resp = client.get("/friends", headers={"Authorization": "Token abc"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid Authorization header"

    def test_invalid_token(self, client):
        resp = client.get("/friends", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token"

    def test_token_without_tenant_claim(self, client):
        token = _token({"sub": "ana", "exp": _future()})
        resp = client.get("/friends", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_unknown_member(self, client, auth_headers):
        resp = client.get("/friends", headers=auth_headers("ghost"))
        assert resp.status_code == 401

    def test_valid_token(self, client, auth_headers):
        resp = client.get("/friends", headers=auth_headers("ana"))
        assert resp.status_code == 200
        assert resp.json() == {"friends": [], "count": 0}

    def test_dev_mode_includes_reason_and_trace(self, client, monkeypatch):
        monkeypatch.setattr(auth_deps, "DEV_MODE", True)
        resp = client.get("/friends")
        assert resp.status_code == 401
        assert "missing_token" in resp.json()["detail"]
        assert "trace_id=" in resp.json()["detail"]

    def test_write_routes_require_token(self, client):
        assert client.post("/matches/bruno/like").status_code == 401
        assert client.post("/friends/requests", json={"target_id": "bruno"}).status_code == 401
        assert client.delete("/challenges/x").status_code == 401
