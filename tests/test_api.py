"""HTTP and WebSocket tests for the FastAPI app."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from signal_desk.api.app import create_app, status_for
from signal_desk.config import AppConfig
from signal_desk.errors import (
    Forbidden,
    InvalidSymbol,
    MessagingPlatformError,
    NotFound,
    TooManyTags,
    Unauthorized,
    UpstreamUnavailable,
)
from signal_desk.exchange import BinanceClient
from signal_desk.models import Candle
from signal_desk.services import build_services

OWNER = {
    "Authorization": "Bearer tok-1",
    "X-User-Id": "U1",
    "X-User-Name": "alice",
    "X-User-Avatar": "https://cdn/a.png",
}
STRANGER = {"Authorization": "Bearer tok-2", "X-User-Id": "U2"}

DRAFT = {
    "coinSymbol": "BTC",
    "coinName": "Bitcoin",
    "positionType": "long",
    "entryPrice": "50000",
    "takeProfit": "55000",
    "stopLoss": "48000",
    "reason": "breakout",
    "serverId": "S1",
    "channelId": "C1",
}


def kline_rows(n):
    return [
        [1_700_000_000_000 + i * 60_000, "1", "2", "0.5", str(100 + i), "10"]
        for i in range(n)
    ]


def binance_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    symbol = request.url.params.get("symbol", "")
    if symbol.startswith("DOGE"):
        return httpx.Response(500)
    if path.endswith("/klines"):
        return httpx.Response(200, json=kline_rows(int(request.url.params["limit"])))
    if path.endswith("/ticker/price"):
        return httpx.Response(200, json={"symbol": symbol, "price": "64000.5"})
    if path.endswith("/exchangeInfo"):
        return httpx.Response(200, json={"symbols": [
            {"symbol": "BTCUSDT", "baseAsset": "BTC", "status": "TRADING", "contractType": "PERPETUAL"},
            {"symbol": "ETHUSDT", "baseAsset": "ETH", "status": "TRADING", "contractType": "PERPETUAL"},
        ]})
    if path.endswith("/ticker/24hr"):
        return httpx.Response(200, json=[
            {"symbol": "BTCUSDT", "quoteVolume": "900", "priceChangePercent": "1.2"},
            {"symbol": "ETHUSDT", "quoteVolume": "500", "priceChangePercent": "-0.4"},
        ])
    return httpx.Response(404)


class ScriptedStreamClient(BinanceClient):
    """Binance client whose kline stream replays a fixed list of bars."""

    def __init__(self, ticks, **kwargs):
        super().__init__(**kwargs)
        self.ticks = ticks

    async def stream_klines(self, symbol, interval):
        for tick in self.ticks:
            if isinstance(tick, Exception):
                raise tick
            yield tick


@pytest.fixture
def services(db, bot_api, observer):
    config = AppConfig()
    config.chart.default_limit = 30
    binance = ScriptedStreamClient(
        [
            Candle(open_time=1_700_000_000 + 29 * 60, open=1, high=2, low=0.5, close=200.0),
            Candle(open_time=1_700_000_000, open=1, high=2, low=0.5, close=1.0),  # out of order
            Candle(open_time=1_700_000_000 + 30 * 60, open=1, high=2, low=0.5, close=201.0),
        ],
        transport=httpx.MockTransport(binance_handler),
    )
    return build_services(config, db=db, binance=binance, bot_api=bot_api, observer=observer)


@pytest.fixture
def client(services):
    with TestClient(create_app(services=services)) as c:
        yield c


def post_signal(client, **overrides):
    resp = client.post("/api/signals", json={**DRAFT, **overrides}, headers=OWNER)
    assert resp.status_code == 201, resp.text
    return resp.json()["signal"]


class TestErrorMapping:
    def test_status_for(self):
        assert status_for(InvalidSymbol("x")) == 400
        assert status_for(TooManyTags(6, 5)) == 400
        assert status_for(Unauthorized()) == 401
        assert status_for(Forbidden()) == 403
        assert status_for(NotFound()) == 404
        assert status_for(UpstreamUnavailable("binance_klines")) == 502
        assert status_for(MessagingPlatformError("down")) == 502


class TestBasics:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_request_id_echoed(self, client):
        resp = client.get("/api/health", headers={"X-Request-Id": "abc"})
        assert resp.headers["X-Request-Id"] == "abc"

    @pytest.mark.parametrize("headers", [{}, {"X-User-Id": "U1"}, {"Authorization": "Bearer tok"}])
    def test_missing_identity(self, client, headers):
        resp = client.get("/api/signals", headers=headers)
        assert resp.status_code == 401
        assert "error" in resp.json()


class TestSignals:
    def test_post_and_get(self, client):
        signal = post_signal(client)
        assert signal["threadId"] == "T1"
        assert signal["riskRewardRatio"] == "2.50"
        assert signal["sender"] == "alice"

        resp = client.get(f"/api/signals/{signal['id']}", headers=OWNER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["signal"] == signal
        assert body["logs"] == []

    def test_post_invalid_level(self, client):
        resp = client.post("/api/signals", json={**DRAFT, "takeProfit": "soon"}, headers=OWNER)
        assert resp.status_code == 422

    @pytest.mark.parametrize("text", ["NaN", "Infinity"])
    def test_non_finite_levels_rejected(self, client, fake_bot, text):
        resp = client.post("/api/signals", json={**DRAFT, "entryPrice": text}, headers=OWNER)
        assert resp.status_code == 422
        assert fake_bot.requests == []

        signal = post_signal(client)
        resp = client.patch(f"/api/signals/{signal['id']}", json={"takeProfit": text}, headers=OWNER)
        assert resp.status_code == 422

    def test_post_missing_stop(self, client, fake_bot):
        resp = client.post("/api/signals", json={**DRAFT, "stopLoss": ""}, headers=OWNER)
        assert resp.status_code == 400
        assert fake_bot.requests == []

    def test_post_bot_failure(self, client, fake_bot):
        fake_bot.fail_paths["/api/send-forum-message"] = 500
        resp = client.post("/api/signals", json=DRAFT, headers=OWNER)
        assert resp.status_code == 502

    def test_patch_logs_change_and_syncs(self, client, services, fake_bot):
        signal = post_signal(client)
        resp = client.patch(f"/api/signals/{signal['id']}", json={"takeProfit": "56000"}, headers=OWNER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["changed"] is True
        assert body["signal"]["takeProfit"] == "56000"
        assert body["logEntry"]["oldTakeProfit"] == "55000"

        client.portal.call(services.coordinator.drain)
        assert ("PATCH", f"/api/update-thread-message/{signal['threadId']}") in fake_bot.paths()

        logs = client.get(f"/api/signals/{signal['id']}", headers=OWNER).json()["logs"]
        assert len(logs) == 1
        assert logs[0]["updatedBy"] == "alice"

    def test_patch_no_op(self, client):
        signal = post_signal(client)
        resp = client.patch(f"/api/signals/{signal['id']}", json={"takeProfit": "55000"}, headers=OWNER)
        assert resp.json()["changed"] is False

    def test_patch_rejects_other_fields(self, client):
        signal = post_signal(client)
        resp = client.patch(f"/api/signals/{signal['id']}", json={"entryPrice": "1"}, headers=OWNER)
        assert resp.status_code == 422

    def test_other_user_forbidden(self, client):
        signal = post_signal(client)
        url = f"/api/signals/{signal['id']}"
        assert client.get(url, headers=STRANGER).status_code == 403
        assert client.patch(url, json={"takeProfit": "1"}, headers=STRANGER).status_code == 403
        assert client.delete(url, headers=STRANGER).status_code == 403

    def test_unknown_signal(self, client):
        assert client.get("/api/signals/nope", headers=OWNER).status_code == 404

    def test_delete(self, client, services, fake_bot):
        signal = post_signal(client)
        resp = client.delete(f"/api/signals/{signal['id']}", headers=OWNER)
        assert resp.status_code == 200
        assert resp.json() == {"deleted": signal["id"], "threadId": "T1"}
        client.portal.call(services.coordinator.drain)
        assert ("DELETE", "/api/delete-thread/T1") in fake_bot.paths()
        assert client.get(f"/api/signals/{signal['id']}", headers=OWNER).status_code == 404

    def test_list(self, client):
        post_signal(client)
        post_signal(client, serverId="S2")
        resp = client.get("/api/signals", params={"serverId": "S2"}, headers=OWNER)
        assert [s["serverId"] for s in resp.json()["signals"]] == ["S2"]
        assert len(client.get("/api/signals", headers=OWNER).json()["signals"]) == 2
        assert client.get("/api/signals", headers=STRANGER).json()["signals"] == []


class TestTags:
    def test_get_and_set(self, client, fake_bot):
        signal = post_signal(client)
        url = f"/api/signals/{signal['id']}/tags"
        assert client.get(url, headers=OWNER).json() == {"tags": ["tag-a"]}

        resp = client.put(url, json={"tagIds": ["tag-a", "tag-b"]}, headers=OWNER)
        assert resp.json() == {"tags": ["tag-a", "tag-b"]}

    def test_too_many_tags(self, client):
        signal = post_signal(client)
        resp = client.put(
            f"/api/signals/{signal['id']}/tags",
            json={"tagIds": ["1", "2", "3", "4", "5", "6"]},
            headers=OWNER,
        )
        assert resp.status_code == 400

    def test_channel_tags(self, client):
        resp = client.get("/api/channels/C1/tags", headers=OWNER)
        assert [t["id"] for t in resp.json()["tags"]] == ["tag-a", "tag-b"]


class TestServers:
    def test_settings_round_trip(self, client):
        assert client.get("/api/server-settings/S1", headers=OWNER).status_code == 404
        resp = client.post(
            "/api/server-settings",
            json={"serverId": "S1", "defaultChannelId": "C-default"},
            headers=OWNER,
        )
        assert resp.status_code == 200
        body = client.get("/api/server-settings/S1", headers=OWNER).json()
        assert body["defaultChannelId"] == "C-default"
        assert body["updatedBy"] == "alice"

        signal = post_signal(client, channelId=None)
        assert signal["channelId"] == "C-default"

    def test_server_stats(self, client):
        post_signal(client)
        post_signal(client)
        post_signal(client, serverId="S2")
        body = client.get("/api/admin/server-stats", headers=OWNER).json()
        assert body["totalServers"] == 2
        assert body["servers"][0]["serverId"] == "S1"
        assert body["servers"][0]["totalSignals"] == 2


class TestMarketData:
    def test_klines(self, client):
        resp = client.get("/api/binance/klines", params={"symbol": "BTCUSDT", "interval": "15m", "limit": 5})
        assert resp.status_code == 200
        body = resp.json()
        assert body["interval"] == "15m"
        assert len(body["candles"]) == 5
        assert body["candles"][0]["time"] == 1_700_000_000

    def test_klines_invalid_symbol(self, client):
        resp = client.get("/api/binance/klines", params={"symbol": "btc"})
        assert resp.status_code == 400
        assert "Invalid symbol" in resp.json()["error"]

    def test_klines_upstream_down(self, client):
        resp = client.get("/api/binance/klines", params={"symbol": "DOGEUSDT", "limit": 5})
        assert resp.status_code == 502

    def test_price_normalizes_symbol(self, client):
        resp = client.get("/api/binance/price", params={"symbol": "btc"})
        assert resp.json() == {"symbol": "BTCUSDT", "price": "64000.5"}

    def test_symbols(self, client):
        body = client.get("/api/binance/symbols", params={"q": "et"}).json()
        assert [s["symbol"] for s in body["symbols"]] == ["ETHUSDT"]
        assert body["symbols"][0]["baseAsset"] == "ETH"

    def test_chart(self, client):
        body = client.get("/api/chart/BTCUSDT", params={"limit": 40, "maWindow": 10}).json()
        points = body["points"]
        assert len(points) == 40
        assert points[8]["movingAverage"] is None
        assert points[9]["movingAverage"] is not None
        assert points[24]["main"] is None
        assert points[25]["main"] is not None

    def test_live_chart_websocket(self, client):
        with client.websocket_connect("/ws/chart/BTCUSDT/1m") as ws:
            snapshot = ws.receive_json()
            assert snapshot["type"] == "snapshot"
            assert len(snapshot["points"]) == 30

            first = ws.receive_json()
            assert first["type"] == "tick"
            assert first["point"]["close"] == 200.0

            second = ws.receive_json()
            assert second["point"]["time"] == 1_700_000_000 + 30 * 60

    def test_live_chart_invalid_symbol(self, client):
        with client.websocket_connect("/ws/chart/btc/1m") as ws:
            message = ws.receive_json()
            assert message["type"] == "error"

    def test_live_chart_stream_failure(self, client, services):
        services.binance.ticks = [
            Candle(open_time=1_700_000_000 + 29 * 60, open=1, high=2, low=0.5, close=200.0),
            OSError("connection refused"),
        ]
        with client.websocket_connect("/ws/chart/BTCUSDT/1m") as ws:
            assert ws.receive_json()["type"] == "snapshot"
            assert ws.receive_json()["type"] == "tick"
            message = ws.receive_json()
            assert message == {"type": "error", "error": "market stream unavailable"}
