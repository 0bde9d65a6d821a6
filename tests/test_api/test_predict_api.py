"""
API Contract Tests.

Drives the FastAPI app in-process via httpx.ASGITransport with a scripted
oracle and an in-memory audit log.
"""

import httpx
import pytest

from conftest import FakeOracle, RecordingAuditLog, vote_json
from skysniper.container import build_container
from skysniper.exceptions import PersistenceError
from skysniper.main import create_app

SERIES = [1.2, 3.4, 1.8, 2.5, 7.1, 1.1, 1.9, 4.2, 2.2, 1.5, 3.3, 1.4]


def _client(script: dict) -> httpx.AsyncClient:
    container = build_container(oracle=FakeOracle(script), audit_log=RecordingAuditLog())
    app = create_app(container)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


def _ok_script():
    return {
        0.3: vote_json(prediction="2.00x", confidence="Low", risk_level=3),
        0.7: vote_json(prediction="3.00x", confidence="Medium", risk_level=5),
        0.9: vote_json(prediction="5.00x", confidence="High", risk_level=8),
    }


def _down_script():
    return {t: RuntimeError("down") for t in (0.3, 0.7, 0.9)}


class TestPredictEndpoint:

    @pytest.mark.asyncio
    async def test_consensus_response(self):
        async with _client(_ok_script()) as client:
            resp = await client.post("/api/predict", json={"crash_points": SERIES, "strategy": "Balanced"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["prediction"] == "3.00x"
        assert body["confidence"] == "Medium"
        assert body["models_used"] == 3
        assert body["voting_consensus"] == 3
        assert body["cached"] is False
        assert body["fallback"] is False
        assert isinstance(body["latency"], int)
        assert "error" not in body
        assert "X-Request-ID" in resp.headers

    @pytest.mark.asyncio
    async def test_second_call_cached(self):
        async with _client(_ok_script()) as client:
            await client.post("/api/predict", json={"crash_points": SERIES})
            resp = await client.post("/api/predict", json={"crash_points": SERIES})
        assert resp.json()["cached"] is True

    @pytest.mark.asyncio
    async def test_short_series_is_400(self):
        async with _client(_ok_script()) as client:
            resp = await client.post("/api/predict", json={"crash_points": SERIES[:5]})
        assert resp.status_code == 400
        assert resp.json() == {
            "error": "Insufficient data",
            "message": "Need at least 10 crash points for prediction",
        }

    @pytest.mark.asyncio
    async def test_missing_series_is_400(self):
        async with _client(_ok_script()) as client:
            resp = await client.post("/api/predict", json={})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_all_oracles_down_is_still_200(self):
        async with _client(_down_script()) as client:
            resp = await client.post("/api/predict", json={"crash_points": SERIES})
        assert resp.status_code == 200
        body = resp.json()
        assert body["fallback"] is True
        assert body["models_used"] == 0
        assert body["error"] == "All AI calls failed (3 attempted)"
        assert body["prediction"].endswith("x")

    @pytest.mark.asyncio
    async def test_unknown_strategy_rejected(self):
        async with _client(_ok_script()) as client:
            resp = await client.post("/api/predict", json={"crash_points": SERIES, "strategy": "Yolo"})
        assert resp.status_code == 422


class TestMonitoringEndpoints:

    @pytest.mark.asyncio
    async def test_latency_after_prediction(self):
        async with _client(_ok_script()) as client:
            await client.post("/api/predict", json={"crash_points": SERIES})
            resp = await client.get("/api/latency")
            single = await client.get("/api/latency/oracle_prediction")
            missing = await client.get("/api/latency/nothing")
        assert resp.status_code == 200
        assert resp.json()["oracle_prediction"]["count"] == 1
        assert "audit_write" in resp.json()
        assert single.json()["threshold"] == 5000
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_cache_stats(self):
        async with _client(_ok_script()) as client:
            await client.post("/api/predict", json={"crash_points": SERIES})
            await client.post("/api/predict", json={"crash_points": SERIES})
            resp = await client.get("/api/cache/stats")
        stats = resp.json()
        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    @pytest.mark.asyncio
    async def test_health(self):
        async with _client(_ok_script()) as client:
            resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["service"] == "skysniper"
        assert body["cache"]["size"] == 0

    @pytest.mark.asyncio
    async def test_metrics(self):
        async with _client(_ok_script()) as client:
            await client.post("/api/predict", json={"crash_points": SERIES})
            resp = await client.get("/metrics")
        assert resp.status_code == 200
        assert "skysniper_cache_size 1" in resp.text
        assert "skysniper_latency_oracle_prediction_count 1" in resp.text


class TestErrorHandling:

    def _app(self):
        app = create_app(build_container(oracle=FakeOracle(_ok_script()), audit_log=RecordingAuditLog()))

        @app.get("/boom/domain")
        async def domain_error():
            raise PersistenceError("audit store gone")

        @app.get("/boom/other")
        async def other_error():
            raise RuntimeError("secret internals")

        return app

    @pytest.mark.asyncio
    async def test_application_error_keeps_status_and_code(self):
        transport = httpx.ASGITransport(app=self._app())
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/boom/domain")
        assert resp.status_code == 500
        body = resp.json()
        assert body["code"] == "E6000"
        assert body["error"] == "audit store gone"
        assert body["error_id"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_opaque(self):
        transport = httpx.ASGITransport(app=self._app())
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/boom/other")
        assert resp.status_code == 500
        assert "secret" not in resp.text
        assert resp.json()["code"] == "E1000"
