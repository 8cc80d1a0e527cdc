from app.integrations.countries.country_catalog import get_country_catalog


class StubCatalog:
    def list_options(self):
        return [{"label": "Canada", "value": "CA"}]


def test_countries_route_uses_catalog(client):
    from app.main import app

    app.dependency_overrides[get_country_catalog] = StubCatalog
    resp = client.get("/api/v1/countries")
    assert resp.status_code == 200
    assert resp.json() == {"countries": [{"label": "Canada", "value": "CA"}]}


def test_health_and_root(client):
    assert client.get("/api/v1/health").json() == {"status": "ok"}
    root = client.get("/").json()
    assert root["ok"] is True
