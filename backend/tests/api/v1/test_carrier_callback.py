"""carrier 回调：HMAC 拒绝 / 放行，以及端到端报价。"""

import json

import pytest

from app.core.config import settings
from app.core.security import compute_hmac_base64
from app.repository import shipping_rule_repo as repo
from app.services.shipping.ranges import parse_ranges


SHOP = "demo-shop.myshopify.com"
SECRET = "test-app-secret"
URL = "/api/v1/carrier/callback"


def _body(country="US", grams=300, quantity=2):
    return json.dumps({
        "rate": {
            "destination": {"country": country},
            "items": [{"grams": grams, "quantity": quantity}],
        }
    }).encode("utf-8")


def _headers(raw: bytes, shop: str = SHOP, secret: str = SECRET) -> dict:
    return {
        "Content-Type": "application/json",
        "X-Shopify-Hmac-Sha256": compute_hmac_base64(secret, raw),
        "X-Shopify-Shop-Domain": shop,
    }


@pytest.fixture()
def seeded_rule(db_session):
    return repo.insert_rule(
        db_session,
        SHOP,
        {"name": "Standard", "charge_by": "weight", "countries": ["US"], "description": None},
        parse_ranges([{"from": 0, "to": 0.5, "pricePer": 120, "fee": 20}], "weight"),
    )


def test_valid_hmac_returns_rates(client, seeded_rule):
    raw = _body()
    resp = client.post(URL, content=raw, headers=_headers(raw))

    assert resp.status_code == 200
    assert resp.json() == {
        "rates": [{
            "service_name": "Standard",
            "service_code": f"RRC_{seeded_rule.id[-6:]}",
            "total_price": "5600",
            "currency": "CNY",
            "description": "weight based rate",
        }]
    }


def test_country_mismatch_returns_empty_rates(client, seeded_rule):
    raw = _body(country="Germany")
    resp = client.post(URL, content=raw, headers=_headers(raw))
    assert resp.status_code == 200
    assert resp.json() == {"rates": []}


@pytest.mark.parametrize("hmac_header", ["", "bm90LXRoZS1yaWdodC1obWFj"])
def test_bad_or_missing_hmac_is_401(client, seeded_rule, hmac_header):
    raw = _body()
    headers = _headers(raw)
    headers["X-Shopify-Hmac-Sha256"] = hmac_header
    resp = client.post(URL, content=raw, headers=headers)
    assert resp.status_code == 401
    assert resp.json() == {"error": "HMAC validation failed"}


def test_hmac_signed_with_other_secret_is_401(client):
    raw = _body()
    resp = client.post(URL, content=raw, headers=_headers(raw, secret="someone-else"))
    assert resp.status_code == 401


# HMAC 校验在 JSON 解析之前：坏 JSON + 坏签名 → 401，坏 JSON + 好签名 → 400
def test_invalid_json_after_valid_hmac_is_400(client):
    raw = b"{not json"
    assert client.post(URL, content=raw, headers=_headers(raw)).status_code == 400
    bad = _headers(raw)
    bad["X-Shopify-Hmac-Sha256"] = "x"
    assert client.post(URL, content=raw, headers=bad).status_code == 401


def test_dev_skip_hmac_bypasses_check(client, seeded_rule, monkeypatch):
    monkeypatch.setattr(settings, "DEV_SKIP_HMAC", True)
    raw = _body()
    resp = client.post(URL, content=raw, headers={"X-Shopify-Shop-Domain": SHOP})
    assert resp.status_code == 200
    assert len(resp.json()["rates"]) == 1


def test_missing_shop_header_yields_empty_rates(client, seeded_rule):
    raw = _body()
    headers = _headers(raw)
    headers.pop("X-Shopify-Shop-Domain")
    resp = client.post(URL, content=raw, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"rates": []}


def test_callback_ping(client):
    assert client.get(URL).json() == {"ok": True}
