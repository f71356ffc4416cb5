import pytest
from fastapi.testclient import TestClient

from conftest import BONK, PUMP, USDC, WALLET, FakeLedger, FakeMarket, make_pair
from solscope.main import create_app
from solscope.providers.base import RawTokenBalance


@pytest.fixture
def client(build_aggregator):
    ledger = FakeLedger(
        lamports=2_500_000_000,
        balances=[
            RawTokenBalance(USDC, 25_000_000, 6),
            RawTokenBalance(BONK, 1_000_000, 5),
            RawTokenBalance(PUMP, 100_000_000, 6),
        ],
    )
    market = FakeMarket(pairs={
        USDC: [make_pair("1", 30_000_000_000, symbol="USDC")],
        BONK: [make_pair("0.00002", 1_500_000_000, symbol="BONK")],
        PUMP: [make_pair("0.004", 40_000, symbol="DOG", volume={"h24": 1200})],
    })
    with TestClient(create_app(aggregator=build_aggregator(ledger, market))) as test_client:
        yield test_client


def test_snapshot_is_empty_before_any_query(client):
    response = client.get("/portfolio/snapshot")

    assert response.status_code == 200
    body = response.json()
    assert body["state"]["status"] == "idle"
    assert body["snapshot"] is None


def test_query_and_wait_returns_final_state(client):
    response = client.post("/portfolio/query", params={"wait": "true"}, json={"address": WALLET})

    assert response.status_code == 200
    assert response.json()["status"] == "complete"

    snapshot = client.get("/portfolio/snapshot").json()["snapshot"]
    assert snapshot["status"] == "complete"
    assert snapshot["native_balance"] == "2.5"
    assert [h["symbol"] for h in snapshot["holdings"]] == ["USDC", "BONK", "DOG"]
    assert snapshot["dropped_count"] == 0


def test_invalid_address_is_a_bad_request(client):
    response = client.post("/portfolio/query", json={"address": "0xdeadbeef"})

    assert response.status_code == 400
    assert "Invalid Solana wallet address" in response.json()["detail"]
    assert client.get("/portfolio/snapshot").json()["state"]["error_code"] == "invalid_address"


def test_holdings_filters_and_sorting(client):
    client.post("/portfolio/query", params={"wait": "true"}, json={"address": WALLET})

    everything = client.get("/portfolio/holdings", params={"sort": "value_usd"}).json()
    assert [row["symbol"] for row in everything["rows"]] == ["USDC", "DOG", "BONK"]
    assert everything["total_rows"] == 3

    small_hidden = client.get("/portfolio/holdings", params={"hide_small": "true"}).json()
    assert [row["symbol"] for row in small_hidden["rows"]] == ["USDC"]

    pump_only = client.get("/portfolio/holdings", params={"high_risk": "true"}).json()
    assert [row["symbol"] for row in pump_only["rows"]] == ["DOG"]
    assert pump_only["rows"][0]["is_high_risk_category"] is True

    searched = client.get("/portfolio/holdings", params={"search": "bon"}).json()
    assert [row["asset_id"] for row in searched["rows"]] == [BONK]


def test_columns_describe_the_table_schema(client):
    columns = client.get("/portfolio/columns").json()

    keys = [column["key"] for column in columns]
    assert keys[0] == "symbol"
    assert "risk_tier" in keys
    assert {"key", "label", "sortable", "sort_key"} <= set(columns[0])


def test_charts_after_query(client):
    client.post("/portfolio/query", params={"wait": "true"}, json={"address": WALLET})

    charts = client.get("/portfolio/charts").json()

    assert charts["distribution"][0]["name"] == "USDC"
    assert set(charts["risk"]["tiers"]) == {"stable", "low", "medium", "medium_high", "high"}
    assert 0 <= charts["risk"]["score"] <= 100


def test_healthz_reports_providers_and_queue(client):
    body = client.get("/healthz").json()

    assert body["status"] == "healthy"
    assert body["providers"]["fake-ledger"]["role"] == "ledger"
    assert body["providers"]["fake-market"]["status"] == "configured"
    assert body["queue"] == {"draining": False, "pending": 0}
