import pytest
from fastapi.testclient import TestClient

from tradebot.core.control_api import app
from tradebot.core.config import settings

NOW = 1_700_000_000
AUTH = {"Authorization": "Bearer tok"}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "CONTROL_API_TOKEN", "tok")
    return TestClient(app)


def quote(venue, price, age=0):
    return {"venue": venue, "price": price, "confidence": 1_000, "publish_time": NOW - age}


def test_healthz_is_public(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "kill_switch_active": False}


def test_requests_need_token(client):
    r = client.post("/kill/toggle")
    assert r.status_code == 401


def test_missing_token_configuration(monkeypatch):
    monkeypatch.setattr(settings, "CONTROL_API_TOKEN", None)
    r = TestClient(app).post("/kill/toggle", headers=AUTH)
    assert r.status_code == 500


def test_route_scan(client):
    body = {
        "pair": {"base": "SOL", "quote": "USDC"},
        "quotes": [quote("raydium", 100_000_000), quote("jupiter", 101_000_000)],
        "min_profit_bps": 50,
        "now": NOW,
    }
    r = client.post("/routes/scan", headers=AUTH, json=body)
    assert r.status_code == 200
    routes = r.json()["routes"]
    assert len(routes) == 1
    assert routes[0]["route_kind"] == "raydium_jupiter"
    assert routes[0]["expected_profit_bps"] == 100


def test_route_scan_rejects_stale_quote(client):
    body = {
        "pair": {"base": "SOL", "quote": "USDC"},
        "quotes": [quote("raydium", 100_000_000, age=120)],
        "min_profit_bps": 50,
        "now": NOW,
    }
    r = client.post("/routes/scan", headers=AUTH, json=body)
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "STALE_PRICE"


def test_rebalance_plan(client):
    body = {
        "current": {"raydium": 700, "jupiter": 300},
        "targets": [{"venue": "raydium", "pool": "SOL/USDC", "target_ratio": 50},
                    {"venue": "jupiter", "pool": "SOL/USDC", "target_ratio": 50}],
    }
    r = client.post("/rebalance/plan", headers=AUTH, json=body)
    assert r.status_code == 200
    assert r.json()["moves"] == [
        {"venue": "raydium", "pool": "SOL/USDC", "amount": 200, "direction": "remove"},
        {"venue": "jupiter", "pool": "SOL/USDC", "amount": 200, "direction": "add"},
    ]


def test_rebalance_plan_rejects_bad_ratios(client):
    body = {"current": {}, "targets": [{"venue": "raydium", "pool": "SOL/USDC", "target_ratio": 90}]}
    r = client.post("/rebalance/plan", headers=AUTH, json=body)
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "INVALID_RATIOS"
