"""API tests for indicator calculation and chart sessions."""

import pytest

from conftest import build_bars


def bars_payload(count: int = 60) -> list[dict]:
    return [bar.model_dump() for bar in build_bars([100 + (i % 7) - i * 0.1 for i in range(count)])]


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["storage"] == "memory"


class TestIndicatorsAPI:
    async def test_list_types(self, client):
        response = await client.get("/api/v1/indicators/types")
        assert response.status_code == 200
        types = {t["typeId"]: t for t in response.json()["types"]}
        assert len(types) == 10
        assert types["MACD"]["kind"] == "panel"
        assert types["MACD"]["defaults"]["fastPeriod"] == 12
        assert types["SMA"]["kind"] == "overlay"

    async def test_calculate(self, client):
        response = await client.post(
            "/api/v1/indicators/calculate",
            json={"typeId": "RSI", "options": {"period": 14}, "bars": bars_payload(30)},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "RSI (14)"
        assert data["kind"] == "panel"
        assert data["paneHeight"] == 100
        assert len(data["data"]) == 30
        assert all(p["value"] is None for p in data["data"][:14])
        assert data["data"][14]["value"] is not None
        assert data["range"]["fixed_max"] == 100

    async def test_calculate_multi_series(self, client):
        response = await client.post(
            "/api/v1/indicators/calculate",
            json={"typeId": "BollingerBands", "bars": bars_payload(25)},
        )
        assert response.status_code == 200
        points = response.json()["data"]
        assert points[0]["values"] == [None, None, None]
        assert len(points[-1]["values"]) == 3

    async def test_unknown_type(self, client):
        response = await client.post(
            "/api/v1/indicators/calculate",
            json={"typeId": "Ichimoku", "bars": []},
        )
        assert response.status_code == 400

    async def test_invalid_options(self, client):
        response = await client.post(
            "/api/v1/indicators/calculate",
            json={"typeId": "SMA", "options": {"source": "volume"}, "bars": []},
        )
        assert response.status_code == 422


class TestChartsAPI:
    async def test_bars_round_trip(self, client):
        payload = bars_payload(40)
        response = await client.put("/api/v1/charts/aapl/bars", json={"bars": payload})
        assert response.status_code == 200
        assert response.json() == {"symbol": "AAPL", "bars": 40, "indicators": 0}

        response = await client.get("/api/v1/charts/AAPL/bars")
        assert response.json()["bars"] == payload

    async def test_indicator_lifecycle(self, client):
        await client.put("/api/v1/charts/AAPL/bars", json={"bars": bars_payload(60)})

        response = await client.post(
            "/api/v1/charts/AAPL/indicators",
            json={"typeId": "SMA", "options": {"period": 20}},
        )
        assert response.status_code == 201
        created = response.json()
        indicator_id = created["id"]
        assert created["name"] == "SMA (20)"
        assert len(created["data"]) == 60

        response = await client.get("/api/v1/charts/AAPL/indicators")
        assert [i["id"] for i in response.json()] == [indicator_id]

        response = await client.patch(
            f"/api/v1/charts/AAPL/indicators/{indicator_id}/settings",
            json={"changes": {"period": 10}},
        )
        assert response.status_code == 200
        result = response.json()
        assert result["recalculated"] is True
        assert result["indicator"]["name"] == "SMA (10)"
        assert result["indicator"]["data"][9]["value"] is not None

        response = await client.patch(
            f"/api/v1/charts/AAPL/indicators/{indicator_id}/settings",
            json={"changes": {"color": "#000000"}},
        )
        assert response.json()["recalculated"] is False

        response = await client.delete(f"/api/v1/charts/AAPL/indicators/{indicator_id}")
        assert response.status_code == 204

        response = await client.delete(f"/api/v1/charts/AAPL/indicators/{indicator_id}")
        assert response.status_code == 404

    async def test_settings_config(self, client):
        response = await client.post("/api/v1/charts/AAPL/indicators", json={"typeId": "MACD"})
        indicator_id = response.json()["id"]

        response = await client.get(f"/api/v1/charts/AAPL/indicators/{indicator_id}/settings")
        assert response.status_code == 200
        assert response.json()["name"] == "MACD (12, 26, 9)"

    async def test_invalid_setting(self, client):
        response = await client.post("/api/v1/charts/AAPL/indicators", json={"typeId": "RSI"})
        indicator_id = response.json()["id"]

        response = await client.patch(
            f"/api/v1/charts/AAPL/indicators/{indicator_id}/settings",
            json={"changes": {"period": "fast"}},
        )
        assert response.status_code == 422

    async def test_unknown_indicator(self, client):
        response = await client.patch(
            "/api/v1/charts/AAPL/indicators/SMA_missing/settings",
            json={"changes": {"period": 5}},
        )
        assert response.status_code == 404

    async def test_unknown_type(self, client):
        response = await client.post("/api/v1/charts/AAPL/indicators", json={"typeId": "Ichimoku"})
        assert response.status_code == 400

    async def test_save_and_load(self, client):
        response = await client.post("/api/v1/charts/AAPL/indicators", json={"typeId": "EMA"})
        indicator_id = response.json()["id"]

        response = await client.post("/api/v1/charts/AAPL/save")
        assert response.status_code == 200
        saved = response.json()
        assert saved["symbol"] == "AAPL"
        assert saved["indicators"][0]["typeId"] == "EMA"

        await client.delete(f"/api/v1/charts/AAPL/indicators/{indicator_id}")

        response = await client.post("/api/v1/charts/AAPL/load")
        data = response.json()
        assert data["loaded"] is True
        assert [i["id"] for i in data["indicators"]] == [indicator_id]

    async def test_load_without_saved_state(self, client):
        response = await client.post("/api/v1/charts/NEW/load")
        assert response.status_code == 200
        assert response.json() == {"symbol": "NEW", "loaded": False, "indicators": []}

    @pytest.mark.parametrize("symbol", ["AAPL", "MSFT"])
    async def test_sessions_are_per_symbol(self, client, symbol):
        await client.post(f"/api/v1/charts/{symbol}/indicators", json={"typeId": "Volume"})
        response = await client.get(f"/api/v1/charts/{symbol}/indicators")
        assert len(response.json()) == 1
