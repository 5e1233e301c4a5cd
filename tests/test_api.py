"""Tests de la API HTTP con TestClient (pipeline en memoria)."""

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from ingest_api.bootstrap import build_pipeline
from ingest_api.main import create_app

from conftest import T0


def _client(settings, engine, clock, scheduler, publisher):
    def factory(cfg):
        return build_pipeline(
            cfg,
            engine=engine,
            clock=clock,
            timers=scheduler,
            publisher=publisher,
            background_publishing=False,
        )

    return TestClient(create_app(settings, pipeline_factory=factory))


@pytest.fixture
def client(settings, engine, clock, scheduler, publisher):
    with _client(settings, engine, clock, scheduler, publisher) as c:
        yield c


def _reading(i=0, device_id="motor-1", **overrides):
    body = {
        "deviceId": device_id,
        "temperature": 84.0 + 2 * i,
        "vibration": round(0.16 + 0.06 * i, 2),
        "pressure": 38.0 + 2 * i,
        "timestamp": T0.isoformat(),
    }
    body.update(overrides)
    return body


# =============================================================================
# SALUD DEL SERVICIO
# =============================================================================

class TestServiceHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready(self, client):
        body = client.get("/ready").json()
        assert body["status"] == "ready"
        assert body["mqtt"] is None

    def test_metrics_exposed(self, client):
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "health_ingest_readings_total" in resp.text


# =============================================================================
# INGESTA
# =============================================================================

class TestIngest:
    def test_single_reading_accepted(self, client):
        resp = client.post("/ingest/readings", json=_reading())

        assert resp.status_code == 202
        body = resp.json()
        assert body["deviceId"] == "motor-1"
        assert body["inferenceTriggered"] is False

    def test_missing_field_is_422(self, client):
        body = _reading()
        del body["vibration"]

        assert client.post("/ingest/readings", json=body).status_code == 422

    def test_bulk_triggers_inference(self, client):
        resp = client.post("/ingest/readings/bulk", json={"readings": [_reading(i) for i in range(10)]})

        body = resp.json()
        assert resp.status_code == 202
        assert body["accepted"] == 10
        assert body["results"][-1]["inferenceTriggered"] is True
        assert body["results"][-1]["healthScore"] < 50
        assert body["results"][-1]["flushed"] == 10


# =============================================================================
# DISPOSITIVOS
# =============================================================================

class TestDevices:
    def test_unknown_device_is_404(self, client):
        assert client.get("/devices/ghost").status_code == 404
        assert client.get("/devices/ghost/health").status_code == 404

    def test_device_registered_and_health(self, client):
        client.post("/ingest/readings/bulk", json={"readings": [_reading(i) for i in range(10)]})

        assert client.get("/devices").json() == ["motor-1"]

        device = client.get("/devices/motor-1").json()
        assert device["alertThresholds"]["temperature"] == 85.0

        health = client.get("/devices/motor-1/health").json()
        assert health["failureRisk"] == "HIGH"
        assert health["reason"]

    def test_health_falls_back_to_registry(self, client):
        client.post("/ingest/readings", json=_reading())

        health = client.get("/devices/motor-1/health").json()
        assert health["healthScore"] == 100
        assert health["status"] == "STABLE"

    def test_recent_readings_and_stats(self, client):
        client.post("/ingest/readings/bulk", json={"readings": [_reading(i) for i in range(10)]})

        readings = client.get("/devices/motor-1/readings", params={"range": "1h"}).json()
        assert len(readings) == 10
        assert readings[0]["vibration"] == pytest.approx(16.0)

        stats = client.get("/devices/motor-1/stats", params={"range": "1h"}).json()
        assert stats["data"]["sample_count"] == 10

    def test_no_readings_is_404(self, client):
        client.post("/ingest/readings", json=_reading())
        # La lectura sigue en la cola de batch
        assert client.get("/devices/motor-1/readings").status_code == 404


# =============================================================================
# ALERTAS
# =============================================================================

class TestAlerts:
    def _raise_alert(self, client):
        client.post("/ingest/readings/bulk", json={"readings": [_reading(i) for i in range(10)]})
        [alert] = client.get("/alerts").json()
        return alert

    def test_alert_listed_and_fetched(self, client):
        alert = self._raise_alert(client)

        assert alert["triggerType"] == "FORMULA_PREDICTION"
        assert alert["message"].startswith("Health Analysis: ")
        assert client.get(f"/alerts/{alert['id']}").json()["id"] == alert["id"]
        assert len(client.get("/devices/motor-1/alerts").json()) == 1

    def test_acknowledge_then_resolve(self, client):
        alert = self._raise_alert(client)

        acked = client.post(
            f"/alerts/{alert['id']}/acknowledge", json={"acknowledgedBy": "operator-7"}
        ).json()
        assert acked["status"] == "ACKNOWLEDGED"
        assert acked["acknowledgedBy"] == "operator-7"

        resolved = client.post(f"/alerts/{alert['id']}/resolve").json()
        assert resolved["status"] == "RESOLVED"
        assert client.get("/alerts").json() == []

    def test_acknowledge_without_body(self, client):
        alert = self._raise_alert(client)

        resp = client.post(f"/alerts/{alert['id']}/acknowledge")

        assert resp.status_code == 200
        assert resp.json()["acknowledgedBy"] is None

    def test_unknown_alert_is_404(self, client):
        assert client.get("/alerts/missing").status_code == 404
        assert client.post("/alerts/missing/acknowledge").status_code == 404
        assert client.post("/alerts/missing/resolve").status_code == 404

    def test_cleanup_resolved(self, client, clock):
        alert = self._raise_alert(client)
        client.post(f"/alerts/{alert['id']}/resolve")
        clock.advance(2 * 3600)

        resp = client.delete("/alerts/resolved", params={"older_than_hours": 1})

        assert resp.json() == {"deleted": 1}


# =============================================================================
# AUTENTICACIÓN
# =============================================================================

class TestApiKey:
    @pytest.fixture
    def secured(self, settings, engine, clock, scheduler, publisher):
        secured_settings = replace(settings, api_key="s3cret")
        with _client(secured_settings, engine, clock, scheduler, publisher) as c:
            yield c

    def test_missing_key_is_401(self, secured):
        assert secured.post("/ingest/readings", json=_reading()).status_code == 401

    def test_wrong_key_is_401(self, secured):
        resp = secured.get("/devices", headers={"X-API-Key": "nope"})
        assert resp.status_code == 401

    def test_valid_key(self, secured):
        resp = secured.post("/ingest/readings", json=_reading(), headers={"X-API-Key": "s3cret"})
        assert resp.status_code == 202

    def test_probes_are_public(self, secured):
        assert secured.get("/health").status_code == 200
