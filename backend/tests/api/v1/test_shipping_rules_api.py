"""规则 CRUD：依赖覆盖后的整应用（conftest.client）。"""

import pytest


BASE = "/api/v1/shipping/rules"


def _rule_body(**overrides):
    body = {
        "name": "Standard",
        "chargeBy": "weight",
        "countries": [{"label": "United States"}, "ca"],
        "ranges": [
            {"fromVal": 10, "toVal": 20, "pricePer": 1, "fee": 0},
            {"fromVal": 0, "toVal": 10, "pricePer": 2, "fee": 1},
        ],
    }
    body.update(overrides)
    return body


@pytest.fixture()
def created(client):
    resp = client.post(BASE, json=_rule_body())
    assert resp.status_code == 200
    return resp.json()["rule"]


def test_create_and_list(client, created):
    assert created["countries"] == ["US", "CA"]
    assert [r["fromVal"] for r in created["ranges"]] == [0, 10]

    listed = client.get(BASE).json()["rules"]
    assert [r["id"] for r in listed] == [created["id"]]
    assert listed[0]["shop"] == "demo-shop.myshopify.com"


def test_create_response_flags(client):
    body = client.post(BASE, json=_rule_body(name="Fresh")).json()
    assert body["created"] is True
    assert "updated" not in body


def test_update_response_flags(client, created):
    body = client.post(BASE, json=_rule_body(id=created["id"], description="Two-day")).json()
    assert body["updated"] is True
    assert body["rule"]["description"] == "Two-day"


def test_duplicate_name_is_409(client, created):
    resp = client.post(BASE, json=_rule_body())
    assert resp.status_code == 409
    assert resp.json()["code"] == "NAME_DUPLICATE"


def test_unknown_id_is_404(client):
    resp = client.post(BASE, json=_rule_body(id="nope"))
    assert resp.status_code == 404
    assert resp.json() == {"error": "Rule not found or not permitted", "code": "NOT_FOUND"}


def test_invalid_ranges_is_422_with_field_errors(client):
    resp = client.post(BASE, json=_rule_body(ranges=[{"fromVal": 5, "toVal": 1}]))
    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "INVALID_RANGES"
    assert body["fieldErrors"]["ranges"] == [
        {"index": 0, "message": "Range end must be greater than or equal to range start"},
    ]


def test_missing_name_is_400(client):
    resp = client.post(BASE, json=_rule_body(name=""))
    assert resp.status_code == 400
    assert resp.json()["code"] == "BAD_REQUEST"


def test_non_json_body_is_400(client):
    resp = client.post(BASE, content=b"not-json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400


def test_delete_single_and_batch(client, created):
    other = client.post(BASE, json=_rule_body(name="Other")).json()["rule"]

    resp = client.delete(f"{BASE}/{created['id']}")
    assert resp.json() == {"deleted": True, "id": created["id"]}
    assert client.delete(f"{BASE}/{created['id']}").status_code == 404

    resp = client.post(f"{BASE}/delete", json={"ids": [other["id"], "missing"]})
    assert resp.json() == {"deleted": [other["id"]], "count": 1}
    assert client.post(f"{BASE}/delete", json={"ids": "x"}).status_code == 400
    assert client.get(BASE).json() == {"rules": []}


def test_untrusted_origin_is_rejected(client):
    resp = client.post(BASE, json=_rule_body(), headers={"Origin": "https://evil.example"})
    assert resp.status_code == 403
