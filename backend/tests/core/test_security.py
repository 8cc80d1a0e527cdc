import pytest
from fastapi import HTTPException
from jose import jwt

from app.core.config import settings
from app.core.security import (
    compute_hmac_base64,
    create_session_token,
    decode_session_token,
    shop_from_claims,
    verify_shopify_hmac,
)
from app.services.auth_service import get_current_shop


SHOP = "demo-shop.myshopify.com"


# ---------- HMAC ----------
def test_hmac_roundtrip_and_mismatch():
    raw = b'{"rate": {}}'
    good = compute_hmac_base64("test-app-secret", raw)
    assert verify_shopify_hmac(good, raw)
    assert not verify_shopify_hmac(good, raw + b" ")
    assert not verify_shopify_hmac("", raw)
    assert not verify_shopify_hmac(None, raw)


def test_hmac_fails_closed_without_secret():
    raw = b"{}"
    assert not verify_shopify_hmac(compute_hmac_base64("", raw), raw, secret="")


# ---------- session token ----------
def test_session_token_roundtrip():
    claims = decode_session_token(create_session_token(SHOP))
    assert claims is not None
    assert claims["aud"] == "test-api-key"
    assert shop_from_claims(claims) == SHOP


def test_expired_or_foreign_tokens_are_rejected():
    assert decode_session_token(create_session_token(SHOP, expires_in_sec=-120)) is None
    forged = jwt.encode({"dest": f"https://{SHOP}", "aud": "test-api-key"}, "wrong-secret", algorithm="HS256")
    assert decode_session_token(forged) is None
    other_app = jwt.encode({"dest": f"https://{SHOP}", "aud": "another-app"}, "test-app-secret", algorithm="HS256")
    assert decode_session_token(other_app) is None
    assert decode_session_token("not-a-jwt") is None


def test_shop_from_claims_variants():
    assert shop_from_claims({"dest": "https://Demo-Shop.myshopify.com"}) == SHOP
    assert shop_from_claims({"dest": SHOP}) == SHOP
    assert shop_from_claims({}) is None


def test_get_current_shop_from_bearer_header():
    token = create_session_token(SHOP)
    assert get_current_shop(f"Bearer {token}") == SHOP


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Bearer garbage"])
def test_get_current_shop_rejects_bad_headers(header):
    with pytest.raises(HTTPException) as exc:
        get_current_shop(header)
    assert exc.value.status_code == 401


def test_protected_route_requires_session_token(monkeypatch):
    from fastapi.testclient import TestClient
    from app.main import app

    monkeypatch.setattr(settings, "SHOPIFY_API_KEY", "test-api-key")
    with TestClient(app) as c:
        assert c.get("/api/v1/shipping/rules").status_code == 401
